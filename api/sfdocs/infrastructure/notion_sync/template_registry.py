"""
Registro de plantillas de documentación.

El registro es un valor construido y se inyecta en el orquestador; no hay
instancia global. Las plantillas se indexan por (EntityKind, nombre).

Render "best effort": los placeholders {CLAVE} sin valor en el contexto se
dejan tal cual, para que una clave faltante se vea en Notion en vez de
abortar un sync largo.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from sfdocs.domain.entities.metadata import EntityKind
from sfdocs.shared.exceptions.domain import ContextValidationError, TemplateNotFoundError

from .types import BlockSpec, TemplateDescriptor

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z0-9_]+)\}")


def render_text(text: Optional[str], context: Mapping[str, Any]) -> str:
    """Sustituye {CLAVE} por context[CLAVE]; deja el token si no existe."""
    if not text:
        return text or ""

    def _sub(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key not in context or context[key] is None:
            return match.group(0)
        return str(context[key])

    return _PLACEHOLDER_RE.sub(_sub, text)


def _coerce_kind(kind: Any) -> EntityKind:
    if isinstance(kind, EntityKind):
        return kind
    try:
        return EntityKind(str(kind))
    except ValueError:
        raise TemplateNotFoundError(str(kind)) from None


class TemplateRegistry:
    """Catálogo de TemplateDescriptor por tipo de entidad."""

    def __init__(self) -> None:
        self._templates: Dict[EntityKind, Dict[str, TemplateDescriptor]] = {}

    def register(self, kind: EntityKind, descriptor: TemplateDescriptor) -> None:
        self._templates.setdefault(kind, {})[descriptor.name] = descriptor

    def register_many(self, kind: EntityKind, descriptors: Iterable[TemplateDescriptor]) -> None:
        for descriptor in descriptors:
            self.register(kind, descriptor)

    def get(self, kind: Any, name: str) -> TemplateDescriptor:
        """
        Retorna la plantilla registrada.

        Raises:
            TemplateNotFoundError: si el tipo o el nombre no están registrados
        """
        entity_kind = _coerce_kind(kind)
        by_name = self._templates.get(entity_kind)
        if not by_name:
            raise TemplateNotFoundError(entity_kind.value)
        descriptor = by_name.get(name)
        if descriptor is None:
            raise TemplateNotFoundError(entity_kind.value, name)
        return descriptor

    def kinds(self) -> List[EntityKind]:
        return list(self._templates.keys())

    def templates(self, kind: Any) -> List[str]:
        """Nombres de plantillas de un tipo; lista vacía si no hay."""
        try:
            entity_kind = _coerce_kind(kind)
        except TemplateNotFoundError:
            return []
        return list(self._templates.get(entity_kind, {}).keys())

    def table_templates(self, kind: Any) -> List[str]:
        """Nombres de plantillas que definen una tabla, en orden de registro."""
        return [
            name
            for name in self.templates(kind)
            if self.get(kind, name).table_schema is not None
        ]

    def validate_context(self, kind: Any, name: str, context: Mapping[str, Any]) -> None:
        """
        Verifica que el contexto tenga todas las claves obligatorias.

        Se llama antes de cualquier escritura remota: un contexto incompleto
        nunca produce documentación parcial.

        Raises:
            ContextValidationError: con todas las claves faltantes
        """
        descriptor = self.get(kind, name)
        missing = [
            key
            for key in descriptor.required_context
            if context.get(key) is None or context.get(key) == ""
        ]
        if missing:
            raise ContextValidationError(_coerce_kind(kind).value, name, missing)

    def render(self, kind: Any, name: str, context: Mapping[str, Any]) -> TemplateDescriptor:
        """Retorna una copia de la plantilla con los placeholders sustituidos."""
        descriptor = self.get(kind, name)
        schema = descriptor.table_schema
        if schema is not None:
            schema = replace(schema, title=render_text(schema.title, context))
        return replace(
            descriptor,
            title=render_text(descriptor.title, context),
            page_structure=tuple(_render_block(b, context) for b in descriptor.page_structure),
            table_schema=schema,
        )

    def describe(self) -> List[Dict[str, Any]]:
        """Resumen serializable del catálogo (CLI y endpoint /templates)."""
        out: List[Dict[str, Any]] = []
        for kind, by_name in self._templates.items():
            for name, descriptor in by_name.items():
                schema = descriptor.table_schema
                out.append(
                    {
                        "kind": kind.value,
                        "name": name,
                        "has_page": bool(descriptor.page_structure),
                        "table_title": schema.title if schema else None,
                        "columns": schema.column_names if schema else [],
                        "key_columns": list(schema.key_columns) if schema else [],
                        "required_context": list(descriptor.required_context),
                    }
                )
        return out


def _render_block(block: BlockSpec, context: Mapping[str, Any]) -> BlockSpec:
    return replace(
        block,
        content=render_text(block.content, context),
        items=tuple(render_text(item, context) for item in block.items),
    )


def build_default_registry() -> TemplateRegistry:
    """Registro con las plantillas de objetos, perfiles y flows."""
    from .templates.flow_templates import FLOW_TEMPLATES
    from .templates.object_templates import OBJECT_TEMPLATES
    from .templates.profile_templates import PROFILE_TEMPLATES

    registry = TemplateRegistry()
    sources: Tuple[Tuple[EntityKind, Dict[str, TemplateDescriptor]], ...] = (
        (EntityKind.OBJECT, OBJECT_TEMPLATES),
        (EntityKind.PROFILE, PROFILE_TEMPLATES),
        (EntityKind.FLOW, FLOW_TEMPLATES),
    )
    for kind, templates in sources:
        registry.register_many(kind, templates.values())
    logger.debug(
        f"Registro de plantillas construido: "
        f"{sum(len(t) for _, t in sources)} plantillas en {len(sources)} tipos"
    )
    return registry
