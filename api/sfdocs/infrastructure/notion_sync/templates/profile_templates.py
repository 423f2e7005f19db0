"""
Plantillas para perfiles (kind = "profiles").

Una tabla por subtipo de permiso. La SyncKey sale de la columna title,
salvo layoutAssignments (Layout + Record Type).
"""

from __future__ import annotations

from typing import Dict

from ..types import (
    TableSchema,
    TemplateDescriptor,
    bool_col,
    bullets,
    callout,
    database_ref,
    divider,
    heading,
    text_col,
    title_col,
)


def _table(name: str, title: str, columns, key_columns) -> TemplateDescriptor:
    return TemplateDescriptor(
        name=name,
        table_schema=TableSchema(title=title, columns=tuple(columns), key_columns=key_columns),
    )


OBJECT_PERMISSIONS = _table(
    "objectPermissions",
    "🔐 Object Permissions",
    (
        title_col("Object"),
        bool_col("Read"),
        bool_col("Create"),
        bool_col("Edit"),
        bool_col("Delete"),
        bool_col("View All"),
        bool_col("Modify All"),
    ),
    ("Object",),
)

FIELD_PERMISSIONS = _table(
    "fieldPermissions",
    "🔑 Field-Level Security (FLS)",
    (title_col("Field"), text_col("Object"), bool_col("Readable"), bool_col("Editable")),
    ("Field",),
)

RECORD_TYPE_VISIBILITIES = _table(
    "recordTypeVisibilities",
    "🔗 Record Type Visibility",
    (title_col("Record Type"), text_col("Object"), bool_col("Visible"), bool_col("Default")),
    ("Record Type",),
)

APPLICATION_VISIBILITIES = _table(
    "applicationVisibilities",
    "🧱 App Visibility",
    (title_col("Application"), bool_col("Visible"), bool_col("Default")),
    ("Application",),
)

TAB_VISIBILITIES = _table(
    "tabVisibilities",
    "🧱 Tab Visibility",
    (title_col("Tab"), text_col("Visibility")),
    ("Tab",),
)

CLASS_ACCESSES = _table(
    "classAccesses",
    "🔁 Apex Class Access",
    (title_col("Apex Class"), bool_col("Enabled")),
    ("Apex Class",),
)

FLOW_ACCESSES = _table(
    "flowAccesses",
    "🔁 Flow Access",
    (title_col("Flow"), bool_col("Enabled")),
    ("Flow",),
)

USER_PERMISSIONS = _table(
    "userPermissions",
    "⚙️ Administrative Permissions",
    (title_col("Permission"), bool_col("Enabled")),
    ("Permission",),
)

LAYOUT_ASSIGNMENTS = _table(
    "layoutAssignments",
    "📄 Page Layout Assignments",
    (title_col("Layout"), text_col("Object"), text_col("Record Type")),
    ("Layout", "Record Type"),
)

PAGE_ACCESSES = _table(
    "pageAccesses",
    "🔐 Visualforce Page Access",
    (title_col("Page"), bool_col("Enabled")),
    ("Page",),
)

OVERVIEW = TemplateDescriptor(
    name="overview",
    title="👤 {PROFILE_LABEL} ({PROFILE_API_NAME})",
    page_structure=(
        heading(1, "👤 {PROFILE_LABEL} (`{PROFILE_API_NAME}`)"),
        heading(2, "🔍 Overview"),
        bullets(
            "API Name: {PROFILE_API_NAME}",
            "User License: {USER_LICENSE}",
            "Custom: {PROFILE_CUSTOM}",
            "Description: {PROFILE_DESCRIPTION}",
        ),
        divider(),
        heading(2, "🔐 Object Permissions"),
        database_ref("objectPermissions"),
        heading(2, "🔑 Field-Level Security (FLS)"),
        callout("Field-level security rows are listed per object.field."),
        database_ref("fieldPermissions"),
        heading(2, "📄 Page Layout Assignments"),
        database_ref("layoutAssignments"),
        heading(2, "🔗 Record Type Visibility"),
        database_ref("recordTypeVisibilities"),
        heading(2, "🧱 App and Tab Visibility"),
        heading(3, "Apps"),
        database_ref("applicationVisibilities"),
        heading(3, "Tabs"),
        database_ref("tabVisibilities"),
        heading(2, "⚙️ Administrative Permissions"),
        database_ref("userPermissions"),
        heading(2, "🔁 Flow & Apex Class Access"),
        database_ref("classAccesses"),
        database_ref("flowAccesses"),
        database_ref("pageAccesses"),
        divider(),
        heading(2, "🧠 Notes / Recommendations"),
        bullets(
            "Mention any risk areas (e.g. excessive access, outdated object usage)",
            "Recommend use of Permission Sets if applicable",
        ),
    ),
    required_context=("PROFILE_API_NAME", "PROFILE_LABEL"),
)

PROFILE_TEMPLATES: Dict[str, TemplateDescriptor] = {
    t.name: t
    for t in (
        OVERVIEW,
        OBJECT_PERMISSIONS,
        FIELD_PERMISSIONS,
        RECORD_TYPE_VISIBILITIES,
        APPLICATION_VISIBILITIES,
        TAB_VISIBILITIES,
        CLASS_ACCESSES,
        FLOW_ACCESSES,
        USER_PERMISSIONS,
        LAYOUT_ASSIGNMENTS,
        PAGE_ACCESSES,
    )
}
