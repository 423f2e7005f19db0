"""
Tipos puros del pipeline Salesforce -> Notion.

- Descriptores de plantillas (estructura de pagina + esquema de tabla)
- Recursos remotos creados (contenedor, tabla, fila)
- Reportes de sincronizacion por tabla/entidad

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TemplateDefinitionError(ValueError):
    """Plantilla mal definida (error de programación)."""


class ColumnType(str, Enum):
    """Tipos de columna soportados (nombres de la API de Notion)."""

    TITLE = "title"
    TEXT = "rich_text"
    BOOLEAN = "checkbox"
    SELECT = "select"
    NUMBER = "number"


class BlockType(str, Enum):
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    PARAGRAPH = "paragraph"
    BULLETED_LIST = "bulleted_list"
    NUMBERED_LIST = "numbered_list"
    CODE = "code"
    QUOTE = "quote"
    CALLOUT = "callout"
    DIVIDER = "divider"
    DATABASE = "database"


@dataclass(frozen=True)
class SelectOption:
    name: str
    color: str = "default"


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    type: ColumnType
    options: Tuple[SelectOption, ...] = ()

    def match_option(self, value: Any) -> Optional[str]:
        """Busca la opcion (case-insensitive). Nunca inventa opciones nuevas."""
        if value is None:
            return None
        wanted = str(value).strip().lower()
        if not wanted:
            return None
        for option in self.options:
            if option.name.lower() == wanted:
                return option.name
        return None


@dataclass(frozen=True)
class TableSchema:
    """
    Esquema de una tabla (base de datos de Notion).

    - title: patron con placeholders ({OBJECT_NAME}, ...)
    - columns: columnas ordenadas; exactamente una de tipo title
    - key_columns: columnas que forman la SyncKey (compuesta si hay varias)
    """

    title: str
    columns: Tuple[ColumnSpec, ...]
    key_columns: Tuple[str, ...] = ("API Name",)

    def __post_init__(self) -> None:
        titles = [c.name for c in self.columns if c.type is ColumnType.TITLE]
        if len(titles) != 1:
            raise TemplateDefinitionError(
                f"La tabla '{self.title}' debe tener exactamente una columna title "
                f"(tiene {len(titles)})"
            )
        names = {c.name for c in self.columns}
        missing = [k for k in self.key_columns if k not in names]
        if not self.key_columns or missing:
            raise TemplateDefinitionError(
                f"La tabla '{self.title}' declara columnas clave inexistentes: {missing}"
            )

    @property
    def title_column(self) -> str:
        return next(c.name for c in self.columns if c.type is ColumnType.TITLE)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnSpec:
        for c in self.columns:
            if c.name == name:
                return c
        raise KeyError(name)


@dataclass(frozen=True)
class BlockSpec:
    """
    Bloque de una estructura de pagina.

    Para DATABASE, `table` indica la plantilla de tabla referenciada.
    """

    type: BlockType
    content: str = ""
    items: Tuple[str, ...] = ()
    language: str = "plain text"
    table: Optional[str] = None


@dataclass(frozen=True)
class TemplateDescriptor:
    """Forma de un documento destino: pagina y/o tabla."""

    name: str
    title: str = ""
    page_structure: Tuple[BlockSpec, ...] = ()
    table_schema: Optional[TableSchema] = None
    required_context: Tuple[str, ...] = ()


def heading(level: int, content: str) -> BlockSpec:
    return BlockSpec(type=BlockType(f"heading_{level}"), content=content)


def paragraph(content: str) -> BlockSpec:
    return BlockSpec(type=BlockType.PARAGRAPH, content=content)


def bullets(*items: str) -> BlockSpec:
    return BlockSpec(type=BlockType.BULLETED_LIST, items=tuple(items))


def numbered(*items: str) -> BlockSpec:
    return BlockSpec(type=BlockType.NUMBERED_LIST, items=tuple(items))


def code(content: str, language: str = "plain text") -> BlockSpec:
    return BlockSpec(type=BlockType.CODE, content=content, language=language)


def callout(content: str) -> BlockSpec:
    return BlockSpec(type=BlockType.CALLOUT, content=content)


def divider() -> BlockSpec:
    return BlockSpec(type=BlockType.DIVIDER)


def database_ref(table: str) -> BlockSpec:
    return BlockSpec(type=BlockType.DATABASE, table=table)


def title_col(name: str) -> ColumnSpec:
    return ColumnSpec(name, ColumnType.TITLE)


def text_col(name: str) -> ColumnSpec:
    return ColumnSpec(name, ColumnType.TEXT)


def bool_col(name: str) -> ColumnSpec:
    return ColumnSpec(name, ColumnType.BOOLEAN)


def number_col(name: str) -> ColumnSpec:
    return ColumnSpec(name, ColumnType.NUMBER)


def select_col(name: str, *options: Tuple[str, str]) -> ColumnSpec:
    return ColumnSpec(
        name,
        ColumnType.SELECT,
        tuple(SelectOption(name=n, color=c) for n, c in options),
    )


# ---------------------------------------------------------------------------
# Recursos remotos y reportes
# ---------------------------------------------------------------------------


class RowOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ParentRef:
    """Padre de una pagina: base de datos, pagina o workspace."""

    type: str  # database_id | page_id | workspace
    id: Optional[str] = None

    @property
    def is_database(self) -> bool:
        return self.type == "database_id"

    def to_payload(self) -> Dict[str, Any]:
        if self.type == "workspace":
            return {"type": "workspace", "workspace": True}
        return {"type": self.type, self.type: self.id}


@dataclass(frozen=True)
class RemoteRow:
    id: str
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RowFailure:
    key: str
    signature: str
    error: str


@dataclass
class TableSyncReport:
    """Resultado de poblar una tabla."""

    table: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    duplicates_dropped: int = 0
    vacuous_dropped: int = 0
    missing_key_dropped: int = 0
    failures: List[RowFailure] = field(default_factory=list)

    def record(self, outcome: RowOutcome) -> None:
        if outcome is RowOutcome.CREATED:
            self.created += 1
        elif outcome is RowOutcome.UPDATED:
            self.updated += 1
        elif outcome is RowOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    @property
    def total_processed(self) -> int:
        return self.created + self.updated + self.skipped + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "duplicates_dropped": self.duplicates_dropped,
            "vacuous_dropped": self.vacuous_dropped,
            "missing_key_dropped": self.missing_key_dropped,
        }


@dataclass
class RemoteTable:
    id: str
    name: str
    title: str
    reused: bool = False
    report: Optional[TableSyncReport] = None
    error: Optional[str] = None


@dataclass
class RemoteContainer:
    """Pagina principal de una entidad y sus tablas hijas."""

    id: str
    title: str
    api_name: str
    url: Optional[str] = None
    reused: bool = False
    tables: Dict[str, RemoteTable] = field(default_factory=dict)

    @property
    def failed_tables(self) -> List[str]:
        return [name for name, t in self.tables.items() if t.error]
