"""
Endpoints de consulta del catálogo de plantillas.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from sfdocs.application.dto.sync_dto import TemplateInfoDTO
from sfdocs.application.services.template_demo import render_demo
from sfdocs.domain.entities.metadata import EntityKind
from sfdocs.infrastructure.notion_sync.template_registry import TemplateRegistry
from sfdocs.api.v1.dependencies.use_case_deps import get_template_registry


router = APIRouter(prefix="/templates", tags=["Templates"])


@router.get("", response_model=List[TemplateInfoDTO], summary="Listar plantillas")
async def list_templates(
    registry: TemplateRegistry = Depends(get_template_registry),
) -> List[TemplateInfoDTO]:
    return [TemplateInfoDTO(**item) for item in registry.describe()]


@router.get("/{kind}/demo", summary="Renderizar plantillas con datos de ejemplo")
async def demo_templates(
    kind: EntityKind,
    registry: TemplateRegistry = Depends(get_template_registry),
) -> List[Dict[str, Any]]:
    """Renderiza overview y tablas de `kind` sin tocar Notion."""
    return render_demo(registry, kind)
