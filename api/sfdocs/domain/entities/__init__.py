"""
Entidades del dominio.
"""
from .metadata import (
    EntityKind,
    MetadataRecord,
    ParsedEntity,
    ParsedFlow,
    ParsedObject,
    ParsedProfile,
    PROFILE_PERMISSION_TYPES,
)

__all__ = [
    "EntityKind",
    "MetadataRecord",
    "ParsedEntity",
    "ParsedFlow",
    "ParsedObject",
    "ParsedProfile",
    "PROFILE_PERMISSION_TYPES",
]
