"""
Plantillas para objetos de Salesforce (kind = "objects").

Cada tabla usa "API Name" como SyncKey. Este módulo no realiza I/O:
solo define estructura.
"""

from __future__ import annotations

from typing import Dict

from ..types import (
    TableSchema,
    TemplateDescriptor,
    bool_col,
    bullets,
    code,
    database_ref,
    divider,
    heading,
    paragraph,
    select_col,
    text_col,
    title_col,
)

# Tipos de Salesforce -> opción del select "Type"
FIELD_TYPE_LABELS: Dict[str, str] = {
    "Text": "Text",
    "TextArea": "Text",
    "EncryptedText": "Text",
    "AutoNumber": "Text",
    "Number": "Number",
    "Date": "Date",
    "DateTime": "DateTime",
    "Time": "DateTime",
    "Checkbox": "Boolean",
    "Picklist": "Picklist",
    "MultiselectPicklist": "Multi-Select Picklist",
    "Lookup": "Reference",
    "MasterDetail": "Reference",
    "Hierarchy": "Reference",
    "Currency": "Currency",
    "Percent": "Percent",
    "Email": "Email",
    "Phone": "Phone",
    "Url": "URL",
    "LongTextArea": "Long Text Area",
    "Html": "Rich Text Area",
    "Location": "Location",
}

FIELDS = TemplateDescriptor(
    name="fields",
    table_schema=TableSchema(
        title="🏷️ {OBJECT_NAME} - All Fields",
        columns=(
            title_col("Field Name"),
            text_col("API Name"),
            select_col(
                "Type",
                ("Text", "blue"),
                ("Number", "green"),
                ("Date", "orange"),
                ("DateTime", "orange"),
                ("Boolean", "purple"),
                ("Picklist", "pink"),
                ("Multi-Select Picklist", "pink"),
                ("Reference", "yellow"),
                ("Currency", "brown"),
                ("Percent", "green"),
                ("Email", "blue"),
                ("Phone", "blue"),
                ("URL", "blue"),
                ("Long Text Area", "gray"),
                ("Rich Text Area", "gray"),
                ("Location", "yellow"),
                ("Other", "gray"),
            ),
            bool_col("Required"),
            bool_col("Unique"),
            bool_col("External ID"),
            text_col("Description"),
            text_col("Help Text"),
            text_col("Default Value"),
            text_col("Formula"),
            text_col("Reference To"),
            text_col("Field Level Security"),
        ),
    ),
    required_context=("OBJECT_NAME",),
)

RECORD_TYPES = TemplateDescriptor(
    name="recordTypes",
    table_schema=TableSchema(
        title="📝 {OBJECT_NAME} - Record Types",
        columns=(
            title_col("Record Type Name"),
            text_col("API Name"),
            bool_col("Active"),
            text_col("Description"),
            text_col("Available Fields"),
            text_col("Required Fields"),
            text_col("Page Layout"),
            text_col("Business Process"),
            text_col("Picklist Values"),
        ),
    ),
    required_context=("OBJECT_NAME",),
)

VALIDATION_RULES = TemplateDescriptor(
    name="validationRules",
    table_schema=TableSchema(
        title="✅ {OBJECT_NAME} - Validation Rules",
        columns=(
            title_col("Rule Name"),
            text_col("API Name"),
            text_col("Error Message"),
            bool_col("Active"),
            text_col("Error Condition"),
            text_col("Purpose"),
            text_col("Logic Breakdown"),
            text_col("Merge Analysis"),
            text_col("Impact Analysis"),
            text_col("Testing Scenarios"),
        ),
    ),
    required_context=("OBJECT_NAME",),
)

BUSINESS_PROCESSES = TemplateDescriptor(
    name="businessProcesses",
    table_schema=TableSchema(
        title="🔄 {OBJECT_NAME} - Business Processes",
        columns=(
            title_col("Process Name"),
            text_col("API Name"),
            bool_col("Active"),
            text_col("Description"),
            text_col("Stages"),
            text_col("Entry Criteria"),
            text_col("Exit Criteria"),
            text_col("Related Record Types"),
        ),
    ),
    required_context=("OBJECT_NAME",),
)

COMPACT_LAYOUTS = TemplateDescriptor(
    name="compactLayouts",
    table_schema=TableSchema(
        title="📱 {OBJECT_NAME} - Compact Layouts",
        columns=(
            title_col("Layout Name"),
            text_col("API Name"),
            bool_col("Active"),
            text_col("Description"),
            text_col("Fields in Layout"),
            text_col("Field Order"),
            text_col("Related Record Types"),
        ),
    ),
    required_context=("OBJECT_NAME",),
)

LIST_VIEWS = TemplateDescriptor(
    name="listViews",
    table_schema=TableSchema(
        title="👁️ {OBJECT_NAME} - List Views",
        columns=(
            title_col("View Name"),
            text_col("API Name"),
            select_col("Type", ("Standard", "blue"), ("Custom", "green"), ("Recent", "orange")),
            bool_col("Visible"),
            text_col("Description"),
            text_col("Filter Criteria"),
            text_col("Columns"),
            text_col("Sort Order"),
            text_col("Scope"),
        ),
    ),
    required_context=("OBJECT_NAME",),
)

OVERVIEW = TemplateDescriptor(
    name="overview",
    title="📋 {OBJECT_LABEL} ({OBJECT_API_NAME})",
    page_structure=(
        heading(1, "🗂️ {OBJECT_LABEL} (`{OBJECT_API_NAME}`)"),
        heading(2, "🔍 Overview Page"),
        bullets(
            "Label: {OBJECT_LABEL}",
            "Plural Label: {OBJECT_PLURAL_LABEL}",
            "API Name: {OBJECT_API_NAME}",
            "Description: {OBJECT_DESCRIPTION}",
            "Sharing Model: {SHARING_MODEL}",
            "Deployment Status: {DEPLOYMENT_STATUS}",
            "Record Type Count: {RECORD_TYPE_COUNT}",
            "Field Count: {FIELD_COUNT}",
            "Validation Rule Count: {VALIDATION_RULE_COUNT}",
        ),
        heading(2, "🧱 Fields Database"),
        paragraph("See the full fields database below."),
        database_ref("fields"),
        heading(2, "🧩 Record Types Database"),
        paragraph(
            "See the full record types database below. Include business logic "
            "if record type drives layouts, processes, or flows."
        ),
        database_ref("recordTypes"),
        heading(2, "📐 Compact Layouts"),
        paragraph("Highlight which layouts are used in Mobile vs Desktop."),
        database_ref("compactLayouts"),
        heading(2, "🧪 Validation Rules"),
        paragraph(
            "For each rule: purpose, error message, logic breakdown and merge analysis."
        ),
        database_ref("validationRules"),
        heading(2, "🔄 Business Processes"),
        database_ref("businessProcesses"),
        heading(2, "👁️ List Views"),
        database_ref("listViews"),
        divider(),
        heading(2, "📝 Page Layouts"),
        code(
            'graph TD;\n    A["{OBJECT_LABEL}"] --> B["Section 1"];\n'
            '    A --> C["Section 2"];\n    C --> F["Related Lists"];',
            language="mermaid",
        ),
        heading(2, "📚 Documentation History"),
        paragraph("Generated from Salesforce metadata."),
    ),
    required_context=("OBJECT_API_NAME", "OBJECT_LABEL"),
)

OBJECT_TEMPLATES: Dict[str, TemplateDescriptor] = {
    t.name: t
    for t in (
        OVERVIEW,
        FIELDS,
        RECORD_TYPES,
        VALIDATION_RULES,
        BUSINESS_PROCESSES,
        COMPACT_LAYOUTS,
        LIST_VIEWS,
    )
}
