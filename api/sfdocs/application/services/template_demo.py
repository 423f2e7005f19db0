"""
Render de plantillas con datos de ejemplo (comando `template-demo`).

Permite revisar títulos y columnas sin tocar Notion.
"""
from typing import Any, Dict, List

from sfdocs.domain.entities.metadata import EntityKind
from sfdocs.infrastructure.notion_sync.template_registry import TemplateRegistry
from sfdocs.shared.exceptions.domain import ContextValidationError

DEMO_CONTEXTS: Dict[EntityKind, Dict[str, Any]] = {
    EntityKind.OBJECT: {
        "OBJECT_NAME": "Opportunity",
        "OBJECT_LABEL": "Opportunity",
        "OBJECT_API_NAME": "Opportunity",
        "OBJECT_PLURAL_LABEL": "Opportunities",
        "OBJECT_DESCRIPTION": "Represents a sales opportunity in the CRM system",
        "DEPLOYMENT_STATUS": "Deployed",
        "SHARING_MODEL": "Read/Write",
        "FIELD_COUNT": 156,
        "RECORD_TYPE_COUNT": 5,
        "BUSINESS_PROCESS_COUNT": 4,
        "COMPACT_LAYOUT_COUNT": 3,
        "VALIDATION_RULE_COUNT": 19,
        "LIST_VIEW_COUNT": 18,
    },
    EntityKind.PROFILE: {
        "PROFILE_LABEL": "Sales User",
        "PROFILE_API_NAME": "Sales_User",
        "USER_LICENSE": "Salesforce",
        "PROFILE_DESCRIPTION": "Standard profile for the sales team",
        "PROFILE_CUSTOM": "Yes",
    },
    EntityKind.FLOW: {
        "FLOW_NAME": "Opportunity Stage Update",
        "FLOW_API_NAME": "Opportunity_Stage_Update",
        "FLOW_DESCRIPTION": "Keeps the probability in line with the stage",
        "FLOW_STATUS": "Active",
        "FLOW_PROCESS_TYPE": "AutoLaunchedFlow",
        "OBJECT": "Opportunity",
        "OPERATOR": "IsChanged",
        "TRIGGER_TYPE": "RecordAfterSave",
        "RECORD_TRIGGER_TYPE": "Update",
        "DECISION_COUNT": 2,
        "RECORD_UPDATE_COUNT": 1,
    },
}


def render_demo(registry: TemplateRegistry, kind: EntityKind) -> List[Dict[str, Any]]:
    """Renderiza todas las plantillas de `kind` con el contexto de ejemplo."""
    context = DEMO_CONTEXTS[kind]
    out: List[Dict[str, Any]] = []
    for name in registry.templates(kind):
        entry: Dict[str, Any] = {"kind": kind.value, "template": name, "valid": True}
        try:
            registry.validate_context(kind, name, context)
        except ContextValidationError as e:
            entry["valid"] = False
            entry["missing"] = e.missing
        rendered = registry.render(kind, name, context)
        entry["title"] = rendered.title
        entry["blocks"] = len(rendered.page_structure)
        if rendered.table_schema is not None:
            entry["table_title"] = rendered.table_schema.title
            entry["columns"] = len(rendered.table_schema.columns)
        out.append(entry)
    return out
