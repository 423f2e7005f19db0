"""
Excepciones relacionadas con la lógica de dominio.
"""
from typing import Any, Iterable

from sfdocs.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class EntityNotFoundException(DomainException):
    """Excepción cuando no se encuentra una entidad."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} con ID {entity_id} no encontrado",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)}
        )
        self.status_code = 404


class TemplateNotFoundError(DomainException):
    """
    Excepción cuando no existe la plantilla solicitada.
    Siempre es un error de programacion/configuracion.
    """

    def __init__(self, kind: str, template_name: str = None):
        if template_name is None:
            message = f"No hay plantillas registradas para el tipo '{kind}'"
        else:
            message = f"Plantilla '{template_name}' no encontrada para el tipo '{kind}'"
        super().__init__(
            message=message,
            error_code="TEMPLATE_NOT_FOUND",
            details={"kind": kind, "template": template_name}
        )
        self.status_code = 500
        self.kind = kind
        self.template_name = template_name


class ContextValidationError(DomainException):
    """Excepción cuando faltan claves obligatorias del contexto de una plantilla."""

    def __init__(self, kind: str, template_name: str, missing: Iterable[str]):
        self.missing = sorted(missing)
        super().__init__(
            message=(
                f"Faltan claves de contexto para '{kind}/{template_name}': "
                f"{', '.join(self.missing)}"
            ),
            error_code="VALIDATION_ERROR",
            details={"kind": kind, "template": template_name, "missing": self.missing}
        )


class MetadataParseError(DomainException):
    """Excepción cuando un archivo de metadata de Salesforce no se puede parsear."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"No se pudo parsear '{path}': {reason}",
            error_code="METADATA_PARSE_ERROR",
            details={"path": path, "reason": reason}
        )
        self.path = path
