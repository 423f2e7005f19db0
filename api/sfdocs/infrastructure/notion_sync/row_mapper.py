"""
Mapeo registro de metadata -> valores de columnas de una tabla.

Cada (EntityKind, tabla) tiene una tabla de reglas columna -> función.
Las columnas sin regla usan el fallback: nombre de columna tal cual en
el registro, luego en minúsculas, y por defecto "".

Los valores producidos son Python planos (str, bool, número, nombre de
opción o None); la codificación a payload de Notion vive en properties.py.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from sfdocs.domain.entities.metadata import EntityKind, MetadataRecord
from sfdocs.shared.utils.values import as_list, join_values, to_boolean

from .templates.object_templates import FIELD_TYPE_LABELS
from .types import ColumnSpec, ColumnType, TableSchema
from .validation_analysis import analyze_logic, analyze_merge, analyze_purpose

ColumnRule = Callable[[MetadataRecord, Sequence[MetadataRecord]], Any]
RuleTable = Dict[str, ColumnRule]

_FIELD_TYPE_LOOKUP = {k.lower(): v for k, v in FIELD_TYPE_LABELS.items()}
OTHER_FIELD_TYPE = "Other"


# ---------------------------------------------------------------------------
# Helpers de extracción
# ---------------------------------------------------------------------------


def _d(record: MetadataRecord, key: str) -> Any:
    return record.details.get(key)


def _first(record: MetadataRecord, *keys: str) -> Any:
    for key in keys:
        value = record.details.get(key)
        if value not in (None, ""):
            return value
    return ""


def _flag(*keys: str) -> ColumnRule:
    """Regla booleana: True si cualquiera de las claves es true/"true"."""
    return lambda r, _s: any(to_boolean(_d(r, k)) for k in keys)


def _text(*keys: str) -> ColumnRule:
    return lambda r, _s: join_values(_first(r, *keys))


def _name(r: MetadataRecord, _s: Sequence[MetadataRecord]) -> str:
    return r.display_name


def _api_name(r: MetadataRecord, _s: Sequence[MetadataRecord]) -> str:
    return r.api_name or ""


def _description(r: MetadataRecord, _s: Sequence[MetadataRecord]) -> str:
    return r.description or join_values(_d(r, "description"))


def _prefix(value: Any, sep: str) -> str:
    text = str(value or "")
    return text.split(sep, 1)[0] if sep in text else ""


def translate_field_type(sf_type: Optional[str]) -> str:
    """Tipo de campo Salesforce -> opción del select Type ("Other" si no se conoce)."""
    if not sf_type:
        return OTHER_FIELD_TYPE
    return _FIELD_TYPE_LOOKUP.get(str(sf_type).lower(), OTHER_FIELD_TYPE)


def _value_text(value: Any) -> str:
    """rightValue/value de un flow: {"stringValue": "x"} -> "x"."""
    if isinstance(value, dict):
        return join_values(next(iter(value.values()), ""))
    return join_values(value)


def _condition_text(condition: Mapping[str, Any]) -> str:
    left = condition.get("leftValueReference") or condition.get("field") or ""
    operator = condition.get("operator") or ""
    right = _value_text(condition.get("rightValue") or condition.get("value"))
    return " ".join(p for p in (str(left), str(operator), right) if p)


# ---------------------------------------------------------------------------
# Reglas: objetos
# ---------------------------------------------------------------------------

FIELD_RULES: RuleTable = {
    "Field Name": _name,
    "API Name": _api_name,
    "Type": lambda r, _s: translate_field_type(getattr(r, "type", None) or _d(r, "type")),
    "Required": _flag("required"),
    "Unique": _flag("unique"),
    "External ID": _flag("externalId"),
    "Description": _description,
    "Help Text": _text("inlineHelpText"),
    "Default Value": _text("defaultValue"),
    "Formula": _text("formula"),
    "Reference To": _text("referenceTo"),
    "Field Level Security": _text("fieldLevelSecurity"),
}

RECORD_TYPE_RULES: RuleTable = {
    "Record Type Name": _name,
    "API Name": _api_name,
    "Active": _flag("active"),
    "Description": _description,
    "Available Fields": _text("availableFields"),
    "Required Fields": _text("requiredFields"),
    "Page Layout": _text("pageLayout"),
    "Business Process": _text("businessProcess"),
    "Picklist Values": lambda r, _s: join_values(
        [v.get("picklist") if isinstance(v, dict) else v for v in as_list(_d(r, "picklistValues"))]
    ),
}

VALIDATION_RULE_RULES: RuleTable = {
    "Rule Name": _name,
    "API Name": _api_name,
    "Error Message": lambda r, _s: getattr(r, "error_message", "") or _text("errorMessage")(r, _s),
    "Active": lambda r, _s: to_boolean(getattr(r, "active", None)) or to_boolean(_d(r, "active")),
    "Error Condition": lambda r, _s: getattr(r, "error_condition_formula", "")
    or _text("errorConditionFormula")(r, _s),
    "Purpose": lambda r, _s: analyze_purpose(
        getattr(r, "error_condition_formula", "") or join_values(_d(r, "errorConditionFormula")),
        getattr(r, "error_message", "") or "",
    ),
    "Logic Breakdown": lambda r, _s: analyze_logic(
        getattr(r, "error_condition_formula", "") or join_values(_d(r, "errorConditionFormula"))
    ),
    "Merge Analysis": lambda r, siblings: analyze_merge(r, siblings),
    "Impact Analysis": _text("impactAnalysis"),
    "Testing Scenarios": _text("testingScenarios"),
}

BUSINESS_PROCESS_RULES: RuleTable = {
    "Process Name": _name,
    "API Name": _api_name,
    "Active": _flag("isActive", "active"),
    "Description": _description,
    "Stages": lambda r, _s: join_values(
        [v.get("fullName") if isinstance(v, dict) else v for v in as_list(_d(r, "values"))]
        or as_list(_d(r, "stages"))
    ),
    "Entry Criteria": _text("entryCriteria"),
    "Exit Criteria": _text("exitCriteria"),
    "Related Record Types": _text("relatedRecordTypes"),
}

COMPACT_LAYOUT_RULES: RuleTable = {
    "Layout Name": _name,
    "API Name": _api_name,
    "Active": _flag("active"),
    "Description": _description,
    "Fields in Layout": _text("fields"),
    "Field Order": _text("fieldOrder"),
    "Related Record Types": _text("relatedRecordTypes"),
}

LIST_VIEW_RULES: RuleTable = {
    "View Name": _name,
    "API Name": _api_name,
    "Type": _text("type"),
    "Visible": _flag("visible"),
    "Description": _description,
    "Filter Criteria": lambda r, _s: "; ".join(
        _condition_text(f) for f in as_list(_d(r, "filters")) if isinstance(f, dict)
    )
    or join_values(_d(r, "filterCriteria")),
    "Columns": _text("columns"),
    "Sort Order": _text("sortOrder"),
    "Scope": _text("filterScope", "scope"),
}


# ---------------------------------------------------------------------------
# Reglas: perfiles
# ---------------------------------------------------------------------------

_ENABLED = _flag("enabled", "hasAccess", "allowed", "visible")

PROFILE_RULES: Dict[str, RuleTable] = {
    "objectPermissions": {
        "Object": _text("object", "Object"),
        "Read": _flag("allowRead"),
        "Create": _flag("allowCreate"),
        "Edit": _flag("allowEdit"),
        "Delete": _flag("allowDelete"),
        "View All": _flag("viewAllRecords"),
        "Modify All": _flag("modifyAllRecords"),
    },
    "fieldPermissions": {
        "Field": _text("field", "Field"),
        "Object": lambda r, _s: join_values(_first(r, "object", "Object"))
        or _prefix(_d(r, "field"), "."),
        "Readable": _flag("readable"),
        "Editable": _flag("editable"),
    },
    "recordTypeVisibilities": {
        "Record Type": _text("recordType", "recordTypeName"),
        "Object": lambda r, _s: join_values(_first(r, "object", "Object"))
        or _prefix(_d(r, "recordType"), "."),
        "Visible": _flag("visible"),
        "Default": _flag("default"),
    },
    "applicationVisibilities": {
        "Application": _text("application", "Application"),
        "Visible": _flag("visible"),
        "Default": _flag("default"),
    },
    "tabVisibilities": {
        "Tab": _text("tab", "Tab"),
        "Visibility": _text("visibility", "Visibility"),
    },
    "classAccesses": {
        "Apex Class": _text("apexClass", "apexClassName"),
        "Enabled": _ENABLED,
    },
    "flowAccesses": {
        "Flow": _text("flow", "flowName"),
        "Enabled": _ENABLED,
    },
    "userPermissions": {
        "Permission": _text("name", "userPermission"),
        "Enabled": _ENABLED,
    },
    "layoutAssignments": {
        "Layout": _text("layout", "Layout"),
        "Object": lambda r, _s: join_values(_first(r, "object", "Object"))
        or _prefix(_d(r, "layout"), "-"),
        "Record Type": _text("recordType", "RecordType"),
    },
    "pageAccesses": {
        "Page": _text("apexPage", "apexPageName"),
        "Enabled": _ENABLED,
    },
}


# ---------------------------------------------------------------------------
# Reglas: flows
# ---------------------------------------------------------------------------


def _decision_rules(r: MetadataRecord) -> List[Dict[str, Any]]:
    return [x for x in as_list(_d(r, "rules")) if isinstance(x, dict)]


def _decision_conditions(r: MetadataRecord, _s: Sequence[MetadataRecord]) -> str:
    parts = []
    for rule in _decision_rules(r):
        logic = str(rule.get("conditionLogic") or "and").upper()
        conditions = [
            _condition_text(c) for c in as_list(rule.get("conditions")) if isinstance(c, dict)
        ]
        label = rule.get("label") or rule.get("name") or ""
        parts.append(f"{label}: {f' {logic} '.join(conditions)}")
    return "\n".join(parts)


def _assignments(r: MetadataRecord) -> List[Dict[str, Any]]:
    return [x for x in as_list(_d(r, "inputAssignments")) if isinstance(x, dict)]


def _target(r: MetadataRecord, _s: Sequence[MetadataRecord]) -> str:
    connector = _d(r, "connector")
    if isinstance(connector, dict):
        return join_values(connector.get("targetReference"))
    return ""


DECISION_RULES: RuleTable = {
    "Decision Name": _name,
    "API Name": _api_name,
    "Default Outcome": _text("defaultConnectorLabel"),
    "Rule Count": lambda r, _s: len(_decision_rules(r)),
    "Outcomes": lambda r, _s: join_values(
        [x.get("label") or x.get("name") for x in _decision_rules(r)]
    ),
    "Conditions": _decision_conditions,
}

RECORD_UPDATE_RULES: RuleTable = {
    "Update Name": _name,
    "API Name": _api_name,
    "Object": _text("object", "inputReference"),
    "Filters": lambda r, _s: "; ".join(
        _condition_text(f) for f in as_list(_d(r, "filters")) if isinstance(f, dict)
    ),
    "Assignment Count": lambda r, _s: len(_assignments(r)),
    "Field Assignments": lambda r, _s: "; ".join(
        f"{a.get('field', '')} = {_value_text(a.get('value'))}" for a in _assignments(r)
    ),
    "Next Element": _target,
}


ROW_RULES: Dict[Tuple[EntityKind, str], RuleTable] = {
    (EntityKind.OBJECT, "fields"): FIELD_RULES,
    (EntityKind.OBJECT, "recordTypes"): RECORD_TYPE_RULES,
    (EntityKind.OBJECT, "validationRules"): VALIDATION_RULE_RULES,
    (EntityKind.OBJECT, "businessProcesses"): BUSINESS_PROCESS_RULES,
    (EntityKind.OBJECT, "compactLayouts"): COMPACT_LAYOUT_RULES,
    (EntityKind.OBJECT, "listViews"): LIST_VIEW_RULES,
    (EntityKind.FLOW, "decisions"): DECISION_RULES,
    (EntityKind.FLOW, "recordUpdates"): RECORD_UPDATE_RULES,
}
ROW_RULES.update({(EntityKind.PROFILE, name): rules for name, rules in PROFILE_RULES.items()})


# ---------------------------------------------------------------------------
# Coerción por tipo de columna
# ---------------------------------------------------------------------------


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def coerce_value(column: ColumnSpec, value: Any) -> Any:
    """Adapta un valor crudo al tipo de la columna."""
    if column.type is ColumnType.BOOLEAN:
        return to_boolean(value)
    if column.type is ColumnType.SELECT:
        return column.match_option(value)
    if column.type is ColumnType.NUMBER:
        return _to_number(value)
    return join_values(value)


def fallback_lookup(record: MetadataRecord, column_name: str) -> Any:
    """Columna tal cual, luego en minúsculas; por defecto ""."""
    raw = record.raw()
    for key in (column_name, column_name.lower()):
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return ""


class RowMapper:
    """Aplica las tablas de reglas a registros de metadata."""

    def __init__(self, rules: Optional[Dict[Tuple[EntityKind, str], RuleTable]] = None) -> None:
        self._rules = rules if rules is not None else ROW_RULES

    def rules_for(self, kind: EntityKind, table_name: str) -> RuleTable:
        return self._rules.get((kind, table_name), {})

    def map_record(
        self,
        kind: EntityKind,
        table_name: str,
        schema: TableSchema,
        record: MetadataRecord,
        siblings: Sequence[MetadataRecord] = (),
    ) -> Dict[str, Any]:
        """Retorna exactamente las columnas del esquema, en orden."""
        rules = self.rules_for(kind, table_name)
        values: Dict[str, Any] = {}
        for column in schema.columns:
            rule = rules.get(column.name)
            raw = rule(record, siblings) if rule else fallback_lookup(record, column.name)
            values[column.name] = coerce_value(column, raw)
        return values

    def map_records(
        self,
        kind: EntityKind,
        table_name: str,
        schema: TableSchema,
        records: Sequence[MetadataRecord],
    ) -> List[Dict[str, Any]]:
        """Mapea una colección; los registros sin api_name se omiten con warning."""
        rows: List[Dict[str, Any]] = []
        for record in records:
            if not record.api_name:
                logger.warning(
                    f"[{kind.value}/{table_name}] Registro sin api_name omitido: "
                    f"{record.label or record.details}"
                )
                continue
            rows.append(self.map_record(kind, table_name, schema, record, records))
        return rows
