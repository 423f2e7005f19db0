"""Plantillas para flows (kind = "flows")."""

from __future__ import annotations

from typing import Dict

from ..types import (
    TableSchema,
    TemplateDescriptor,
    bullets,
    database_ref,
    heading,
    number_col,
    paragraph,
    text_col,
    title_col,
)

DECISIONS = TemplateDescriptor(
    name="decisions",
    table_schema=TableSchema(
        title="🔀 {FLOW_NAME} - Decisions",
        columns=(
            title_col("Decision Name"),
            text_col("API Name"),
            text_col("Default Outcome"),
            number_col("Rule Count"),
            text_col("Outcomes"),
            text_col("Conditions"),
        ),
    ),
    required_context=("FLOW_NAME",),
)

RECORD_UPDATES = TemplateDescriptor(
    name="recordUpdates",
    table_schema=TableSchema(
        title="✏️ {FLOW_NAME} - Record Updates",
        columns=(
            title_col("Update Name"),
            text_col("API Name"),
            text_col("Object"),
            text_col("Filters"),
            number_col("Assignment Count"),
            text_col("Field Assignments"),
            text_col("Next Element"),
        ),
    ),
    required_context=("FLOW_NAME",),
)

OVERVIEW = TemplateDescriptor(
    name="overview",
    title="🔁 {FLOW_NAME}",
    page_structure=(
        heading(1, "🔁 Flow - {FLOW_NAME}"),
        heading(2, "📋 Overview"),
        paragraph("{FLOW_DESCRIPTION}"),
        bullets(
            "API Name: {FLOW_API_NAME}",
            "Status: {FLOW_STATUS}",
        ),
        heading(2, "🔄 Trigger Details"),
        bullets(
            "🧩 Process Type: {FLOW_PROCESS_TYPE}",
            "🧩 Trigger Type: {TRIGGER_TYPE} {RECORD_TRIGGER_TYPE}",
            "📦 Object: {OBJECT}",
            "⚙️ Operator: {OPERATOR}",
        ),
        heading(2, "🔀 Decisions ({DECISION_COUNT})"),
        database_ref("decisions"),
        heading(2, "✏️ Record Updates ({RECORD_UPDATE_COUNT})"),
        database_ref("recordUpdates"),
    ),
    required_context=("FLOW_API_NAME", "FLOW_NAME"),
)

FLOW_TEMPLATES: Dict[str, TemplateDescriptor] = {
    t.name: t for t in (OVERVIEW, DECISIONS, RECORD_UPDATES)
}
