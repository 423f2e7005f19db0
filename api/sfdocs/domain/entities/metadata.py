"""
Modelo de registros de metadata de Salesforce.

Los parsers (XML) y el cache local producen estas estructuras; el
orquestador de sincronizacion solo consume estos tipos.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from itertools import chain
from typing import Any, ClassVar, Dict, List, Optional, Union

# Valor del bag `details`: union cerrada (str, bool, numero, None, mapping, lista)
DetailValue = Union[str, bool, int, float, None, Dict[str, Any], List[Any]]
Details = Dict[str, DetailValue]


class EntityKind(str, Enum):
    """Tipos de entidad de primer nivel que se documentan."""

    OBJECT = "objects"
    PROFILE = "profiles"
    FLOW = "flows"


class RecordKind(str, Enum):
    """Variantes de MetadataRecord."""

    OBJECT = "object"
    FIELD = "field"
    RECORD_TYPE = "recordType"
    BUSINESS_PROCESS = "businessProcess"
    COMPACT_LAYOUT = "compactLayout"
    VALIDATION_RULE = "validationRule"
    LIST_VIEW = "listView"
    PROFILE = "profile"
    PROFILE_PERMISSION = "profilePermission"
    FLOW = "flow"
    FLOW_ELEMENT = "flowElement"


# Subtipos de permisos de un perfil (nombre del tag XML)
PROFILE_PERMISSION_TYPES = (
    "applicationVisibilities",
    "classAccesses",
    "fieldPermissions",
    "objectPermissions",
    "userPermissions",
    "layoutAssignments",
    "recordTypeVisibilities",
    "tabVisibilities",
    "pageAccesses",
    "flowAccesses",
)

# Campos que identifican una fila de permiso, por subtipo. El primero
# presente (en orden) forma la clave; layoutAssignments usa clave compuesta.
PERMISSION_KEY_FIELDS: Dict[str, tuple] = {
    "applicationVisibilities": (("application",),),
    "classAccesses": (("apexClass", "apexClassName"),),
    "fieldPermissions": (("field",),),
    "objectPermissions": (("object",),),
    "userPermissions": (("name", "userPermission"),),
    "layoutAssignments": (("layout",), ("recordType",)),
    "recordTypeVisibilities": (("recordType", "recordTypeName"),),
    "tabVisibilities": (("tab",),),
    "pageAccesses": (("apexPage", "apexPageName"),),
    "flowAccesses": (("flow", "flowName"),),
}


@dataclass
class MetadataRecord:
    """
    Registro base de metadata.

    - api_name: identificador estable (unico dentro de su padre)
    - details: atributos del XML que no se promueven a campos propios
    """

    api_name: str
    label: Optional[str] = None
    description: Optional[str] = None
    details: Details = field(default_factory=dict)

    kind: ClassVar[RecordKind] = RecordKind.OBJECT

    @property
    def display_name(self) -> str:
        return self.label or self.api_name or ""

    def raw(self) -> Dict[str, Any]:
        """Vista plana del registro (details + atributos promovidos)."""
        data: Dict[str, Any] = dict(self.details)
        data.update(
            {
                "api_name": self.api_name,
                "label": self.label,
                "description": self.description,
            }
        )
        return data


@dataclass
class ObjectRecord(MetadataRecord):
    plural_label: Optional[str] = None
    kind: ClassVar[RecordKind] = RecordKind.OBJECT


@dataclass
class FieldRecord(MetadataRecord):
    type: str = ""
    kind: ClassVar[RecordKind] = RecordKind.FIELD


@dataclass
class RecordTypeRecord(MetadataRecord):
    kind: ClassVar[RecordKind] = RecordKind.RECORD_TYPE


@dataclass
class BusinessProcessRecord(MetadataRecord):
    kind: ClassVar[RecordKind] = RecordKind.BUSINESS_PROCESS


@dataclass
class CompactLayoutRecord(MetadataRecord):
    kind: ClassVar[RecordKind] = RecordKind.COMPACT_LAYOUT


@dataclass
class ValidationRuleRecord(MetadataRecord):
    error_condition_formula: str = ""
    error_message: str = ""
    active: bool = False
    kind: ClassVar[RecordKind] = RecordKind.VALIDATION_RULE


@dataclass
class ListViewRecord(MetadataRecord):
    kind: ClassVar[RecordKind] = RecordKind.LIST_VIEW


@dataclass
class ProfilePermissionRecord(MetadataRecord):
    """
    Fila de permiso de un perfil (objectPermissions, fieldPermissions, ...).

    `details` contiene el elemento XML tal cual; `api_name` es la clave
    derivada de los campos identificadores del subtipo.
    """

    permission_type: str = ""
    kind: ClassVar[RecordKind] = RecordKind.PROFILE_PERMISSION

    @classmethod
    def from_raw(cls, permission_type: str, raw: Dict[str, Any]) -> "ProfilePermissionRecord":
        return cls(
            api_name=permission_key(permission_type, raw),
            details=dict(raw),
            permission_type=permission_type,
        )


@dataclass
class FlowElementRecord(MetadataRecord):
    """Elemento de un flow (decision o recordUpdate)."""

    element_type: str = ""
    kind: ClassVar[RecordKind] = RecordKind.FLOW_ELEMENT


def permission_key(permission_type: str, raw: Dict[str, Any]) -> str:
    """Calcula la clave de una fila de permiso; "" si no hay identificador."""
    parts = []
    for candidates in PERMISSION_KEY_FIELDS.get(permission_type, (("name",),)):
        value = next((raw.get(c) for c in candidates if raw.get(c)), None)
        if value:
            parts.append(str(value))
    return " | ".join(parts)


def flatten_chunks(chunks: List[List[Any]]) -> List[Any]:
    """Concatena chunks; equivalente al array original sin partir."""
    return list(chain.from_iterable(chunks))


@dataclass
class ParsedObject:
    """Objeto de Salesforce con sus colecciones hijas."""

    object: ObjectRecord
    fields: List[FieldRecord] = field(default_factory=list)
    record_types: List[RecordTypeRecord] = field(default_factory=list)
    business_processes: List[BusinessProcessRecord] = field(default_factory=list)
    compact_layouts: List[CompactLayoutRecord] = field(default_factory=list)
    validation_rules: List[ValidationRuleRecord] = field(default_factory=list)
    list_views: List[ListViewRecord] = field(default_factory=list)

    kind: ClassVar[EntityKind] = EntityKind.OBJECT

    @property
    def api_name(self) -> str:
        return self.object.api_name

    def collections(self) -> Dict[str, List[MetadataRecord]]:
        """Colecciones por nombre de plantilla de tabla."""
        return {
            "fields": self.fields,
            "recordTypes": self.record_types,
            "validationRules": self.validation_rules,
            "businessProcesses": self.business_processes,
            "compactLayouts": self.compact_layouts,
            "listViews": self.list_views,
        }

    def template_context(self) -> Dict[str, Any]:
        obj = self.object
        return {
            "OBJECT_NAME": obj.display_name,
            "OBJECT_LABEL": obj.display_name,
            "OBJECT_API_NAME": obj.api_name,
            "OBJECT_PLURAL_LABEL": obj.plural_label or obj.display_name,
            "OBJECT_DESCRIPTION": obj.description or "",
            "SHARING_MODEL": obj.details.get("sharingModel") or "",
            "DEPLOYMENT_STATUS": obj.details.get("deploymentStatus") or "",
            "FIELD_COUNT": len(self.fields),
            "RECORD_TYPE_COUNT": len(self.record_types),
            "VALIDATION_RULE_COUNT": len(self.validation_rules),
            "BUSINESS_PROCESS_COUNT": len(self.business_processes),
            "COMPACT_LAYOUT_COUNT": len(self.compact_layouts),
            "LIST_VIEW_COUNT": len(self.list_views),
        }


@dataclass
class ParsedProfile:
    """
    Perfil con sus arrays de permisos partidos en chunks.

    chunks[permission_type] es una lista de chunks (listas) de
    ProfilePermissionRecord. Aplanar los chunks equivale al array original.
    """

    api_name: str
    label: Optional[str] = None
    description: Optional[str] = None
    user_license: str = ""
    custom: bool = False
    chunks: Dict[str, List[List[ProfilePermissionRecord]]] = field(default_factory=dict)
    raw: Details = field(default_factory=dict)

    kind: ClassVar[EntityKind] = EntityKind.PROFILE

    def records(self, permission_type: str) -> List[ProfilePermissionRecord]:
        return flatten_chunks(self.chunks.get(permission_type) or [])

    def collections(self) -> Dict[str, List[MetadataRecord]]:
        return {name: self.records(name) for name in PROFILE_PERMISSION_TYPES}

    def template_context(self) -> Dict[str, Any]:
        context: Dict[str, Any] = {
            "PROFILE_LABEL": self.label or self.api_name,
            "PROFILE_API_NAME": self.api_name,
            "USER_LICENSE": self.user_license,
            "PROFILE_DESCRIPTION": self.description or "",
            "PROFILE_CUSTOM": "Yes" if self.custom else "No",
        }
        for name in PROFILE_PERMISSION_TYPES:
            context[f"{_upper_snake(name)}_COUNT"] = len(self.records(name))
        return context


@dataclass
class ParsedFlow:
    """Flow con su resumen y elementos (decisions, recordUpdates)."""

    api_name: str
    label: Optional[str] = None
    description: Optional[str] = None
    status: str = ""
    process_type: str = ""
    object: Optional[str] = None
    operator: Optional[str] = None
    decisions: List[FlowElementRecord] = field(default_factory=list)
    record_updates: List[FlowElementRecord] = field(default_factory=list)
    start: Details = field(default_factory=dict)
    details: Details = field(default_factory=dict)

    kind: ClassVar[EntityKind] = EntityKind.FLOW

    def collections(self) -> Dict[str, List[MetadataRecord]]:
        return {
            "decisions": self.decisions,
            "recordUpdates": self.record_updates,
        }

    def template_context(self) -> Dict[str, Any]:
        return {
            "FLOW_NAME": self.label or self.api_name,
            "FLOW_API_NAME": self.api_name,
            "FLOW_DESCRIPTION": self.description or "",
            "FLOW_STATUS": self.status,
            "FLOW_PROCESS_TYPE": self.process_type,
            "OBJECT": self.object or "",
            "OPERATOR": self.operator or "",
            "TRIGGER_TYPE": self.start.get("triggerType") or "",
            "RECORD_TRIGGER_TYPE": self.start.get("recordTriggerType") or "",
            "DECISION_COUNT": len(self.decisions),
            "RECORD_UPDATE_COUNT": len(self.record_updates),
        }


ParsedEntity = Union[ParsedObject, ParsedProfile, ParsedFlow]


def _upper_snake(name: str) -> str:
    out = []
    for ch in name:
        if ch.isupper():
            out.append("_")
        out.append(ch.upper())
    return "".join(out)
