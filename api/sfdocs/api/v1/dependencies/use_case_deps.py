"""
Dependencias para inyeccion de casos de uso.
"""
from functools import lru_cache

from sfdocs.application.use_cases.sync_use_cases import SyncUseCases
from sfdocs.infrastructure.notion_sync.template_registry import (
    TemplateRegistry,
    build_default_registry,
)


@lru_cache
def get_template_registry() -> TemplateRegistry:
    """
    Registro de plantillas compartido por la aplicacion HTTP.

    Returns:
        TemplateRegistry: Registro con las plantillas por defecto
    """
    return build_default_registry()


def get_sync_use_cases() -> SyncUseCases:
    """
    Dependencia para obtener los casos de uso de sincronizacion.

    Returns:
        SyncUseCases: Instancia de casos de uso de sync
    """
    return SyncUseCases(registry=get_template_registry())
