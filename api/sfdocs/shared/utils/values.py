"""
Normalización de valores de metadata.

La metadata de Salesforce codifica flags de forma inconsistente (True o
"true"); todas las reglas de mapeo pasan por estos helpers.
"""
from typing import Any, List


def to_boolean(value: Any) -> bool:
    """True solo para el booleano True o el string "true" (sin importar mayúsculas)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def as_list(value: Any) -> List[Any]:
    """Un tag XML repetido llega como lista y uno único como dict/str."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def join_values(value: Any, sep: str = ", ") -> str:
    """Convierte listas a texto; None -> ""."""
    if value is None:
        return ""
    if isinstance(value, list):
        return sep.join(str(v) for v in value if v is not None and v != "")
    return str(value)


def is_empty_value(value: Any) -> bool:
    """
    Vacío para el filtro de filas vacuas: None, "", False.

    El número 0 NO es vacío.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False
