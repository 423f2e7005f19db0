"""
Parser de perfiles (*.profile-meta.xml).

Los arrays de permisos se parten en chunks de tamaño fijo (100 por
defecto); aplanar los chunks equivale al array original.
"""
from pathlib import Path
from typing import Any, Dict, Iterator, List, Sequence, TypeVar

from loguru import logger

from sfdocs.domain.entities.metadata import (
    PROFILE_PERMISSION_TYPES,
    ParsedProfile,
    ProfilePermissionRecord,
)
from sfdocs.shared.utils.values import as_list, to_boolean

from .xml_reader import PathLike, find_files, read_metadata_xml, strip_suffix

PROFILE_SUFFIX = ".profile-meta.xml"

T = TypeVar("T")


def iter_chunks(items: Sequence[T], chunk_size: int) -> Iterator[List[T]]:
    if chunk_size < 1:
        raise ValueError("chunk_size debe ser >= 1")
    for i in range(0, len(items), chunk_size):
        yield list(items[i : i + chunk_size])


def chunk_permissions(
    raw: Dict[str, Any], chunk_size: int
) -> Dict[str, List[List[ProfilePermissionRecord]]]:
    chunks: Dict[str, List[List[ProfilePermissionRecord]]] = {}
    for permission_type in PROFILE_PERMISSION_TYPES:
        records = [
            ProfilePermissionRecord.from_raw(permission_type, item)
            for item in as_list(raw.get(permission_type))
            if isinstance(item, dict)
        ]
        chunks[permission_type] = list(iter_chunks(records, chunk_size))
    return chunks


def parse_profile(path: PathLike, chunk_size: int = 100) -> ParsedProfile:
    """
    Parsea un perfil.

    Raises:
        MetadataParseError: XML inválido
    """
    path = Path(path)
    raw = read_metadata_xml(path, "Profile")
    api_name = raw.get("fullName") or strip_suffix(path.name, PROFILE_SUFFIX)
    chunks = chunk_permissions(raw, chunk_size)

    for permission_type, parts in chunks.items():
        if parts:
            logger.debug(
                f"Perfil {api_name}: {permission_type} "
                f"{sum(len(c) for c in parts)} items en {len(parts)} chunks"
            )

    return ParsedProfile(
        api_name=api_name,
        label=raw.get("label") or api_name,
        description=raw.get("description") or "",
        user_license=raw.get("userLicense") or "",
        custom=to_boolean(raw.get("custom")),
        chunks=chunks,
        raw={k: v for k, v in raw.items() if k not in PROFILE_PERMISSION_TYPES},
    )


def find_profile_files(root: PathLike) -> List[Path]:
    return list(find_files(root, PROFILE_SUFFIX))
