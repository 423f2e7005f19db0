"""
Lectura de archivos *-meta.xml a diccionarios planos.

- Se eliminan los namespaces ({http://soap.sforce.com/...}Tag -> Tag).
- Un tag repetido se convierte en lista; uno único queda como dict/str.
- El texto de las hojas se mantiene como string ("true" no se convierte).
"""
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from sfdocs.shared.exceptions.domain import MetadataParseError

PathLike = Union[str, Path]


def strip_namespace(tag: str) -> str:
    return tag.split("}")[-1]


def element_to_dict(elem: ET.Element) -> Dict[str, Any]:
    """Convierte un elemento XML a diccionario."""
    result: Dict[str, Any] = {}
    for child in elem:
        tag = strip_namespace(child.tag)
        value: Any = element_to_dict(child) if len(child) > 0 else (child.text or "").strip()
        if tag in result:
            if not isinstance(result[tag], list):
                result[tag] = [result[tag]]
            result[tag].append(value)
        else:
            result[tag] = value
    return result


def read_metadata_xml(path: PathLike, root_tag: str) -> Dict[str, Any]:
    """
    Lee un archivo de metadata y retorna el contenido del elemento raíz.

    Raises:
        MetadataParseError: XML mal formado o raíz inesperada
    """
    path = Path(path)
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise MetadataParseError(str(path), f"XML inválido: {e}") from e
    except OSError as e:
        raise MetadataParseError(str(path), f"No se pudo leer: {e}") from e

    tag = strip_namespace(root.tag)
    if tag != root_tag:
        raise MetadataParseError(str(path), f"Se esperaba <{root_tag}> y se encontró <{tag}>")
    return element_to_dict(root)


def strip_suffix(name: str, suffix: str) -> str:
    return name[: -len(suffix)] if name.endswith(suffix) else name


def list_metadata_files(directory: PathLike, suffix: str) -> List[Path]:
    """Archivos con el sufijo dado, ordenados por nombre ([] si no existe)."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix))


def find_files(root: PathLike, suffix: str) -> Iterable[Path]:
    """Un archivo suelto o todos los archivos con sufijo bajo `root` (recursivo)."""
    root = Path(root)
    if root.is_file():
        return [root] if root.name.endswith(suffix) else []
    return sorted(p for p in root.rglob(f"*{suffix}") if p.is_file())
