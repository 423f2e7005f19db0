"""
Codificación de valores y bloques al formato de la API de Notion.

Funciones puras: sin I/O.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from .types import BlockSpec, BlockType, ColumnType, TableSchema

# Límite de caracteres por objeto rich_text en Notion
RICH_TEXT_LIMIT = 2000


def rich_text(content: Any) -> List[Dict[str, Any]]:
    """Texto -> lista de objetos rich_text (partidos cada 2000 caracteres)."""
    text = "" if content is None else str(content)
    return [
        {"type": "text", "text": {"content": text[i : i + RICH_TEXT_LIMIT]}}
        for i in range(0, len(text), RICH_TEXT_LIMIT)
    ]


def encode_property(column_type: ColumnType, value: Any) -> Dict[str, Any]:
    if column_type is ColumnType.TITLE:
        return {"title": rich_text(value)}
    if column_type is ColumnType.BOOLEAN:
        return {"checkbox": bool(value)}
    if column_type is ColumnType.SELECT:
        return {"select": {"name": value} if value else None}
    if column_type is ColumnType.NUMBER:
        return {"number": value}
    return {"rich_text": rich_text(value)}


def encode_properties(
    schema: TableSchema,
    values: Mapping[str, Any],
    only: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Valores planos -> payload `properties` (opcionalmente solo algunas columnas)."""
    wanted = set(only) if only is not None else None
    payload: Dict[str, Any] = {}
    for column in schema.columns:
        if wanted is not None and column.name not in wanted:
            continue
        payload[column.name] = encode_property(column.type, values.get(column.name))
    return payload


def schema_properties(schema: TableSchema) -> Dict[str, Any]:
    """Definición de columnas para POST /databases."""
    out: Dict[str, Any] = {}
    for column in schema.columns:
        if column.type is ColumnType.SELECT:
            out[column.name] = {
                "select": {
                    "options": [{"name": o.name, "color": o.color} for o in column.options]
                }
            }
        else:
            out[column.name] = {column.type.value: {}}
    return out


def is_blank_property(prop: Optional[Mapping[str, Any]]) -> bool:
    """
    Indica si una propiedad existente en Notion está "en blanco".

    - ausente
    - title / rich_text sin texto
    - select sin opción
    - checkbox no booleano
    - number nulo (0 NO es blanco)
    """
    if not prop:
        return True
    prop_type = prop.get("type")
    if prop_type in ("title", "rich_text"):
        return not "".join(t.get("plain_text") or "" for t in prop.get(prop_type) or [])
    if prop_type == "select":
        select = prop.get("select")
        return not select or not select.get("name")
    if prop_type == "checkbox":
        return not isinstance(prop.get("checkbox"), bool)
    if prop_type == "number":
        return prop.get("number") is None
    return prop_type not in prop or prop.get(prop_type) in (None, "", [])


def _text_block(block_type: str, content: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"rich_text": rich_text(content)}
    body.update(extra)
    return {"object": "block", "type": block_type, block_type: body}


def blocks_from_structure(structure: Iterable[BlockSpec]) -> List[Dict[str, Any]]:
    """
    Estructura de página -> bloques de Notion.

    Las referencias a tablas (DATABASE) no generan bloque: la tabla se crea
    como base de datos hija de la página.
    """
    blocks: List[Dict[str, Any]] = []
    for block in structure:
        if block.type is BlockType.DATABASE:
            continue
        if block.type is BlockType.DIVIDER:
            blocks.append({"object": "block", "type": "divider", "divider": {}})
        elif block.type in (BlockType.BULLETED_LIST, BlockType.NUMBERED_LIST):
            item_type = f"{block.type.value}_item"
            blocks.extend(_text_block(item_type, item) for item in block.items)
        elif block.type is BlockType.CODE:
            blocks.append(_text_block("code", block.content, language=block.language))
        else:
            blocks.append(_text_block(block.type.value, block.content))
    return blocks
