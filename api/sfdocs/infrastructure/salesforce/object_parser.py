"""
Parser de objetos de Salesforce (layout source).

  <Obj>/<Obj>.object-meta.xml
  <Obj>/fields/*.field-meta.xml
  <Obj>/recordTypes/*.recordType-meta.xml
  <Obj>/businessProcesses/*.businessProcess-meta.xml
  <Obj>/compactLayouts/*.compactLayout-meta.xml
  <Obj>/validationRules/*.validationRule-meta.xml
  <Obj>/listViews/*.listView-meta.xml
"""
from pathlib import Path
from typing import Any, Callable, Dict, List, TypeVar

from loguru import logger

from sfdocs.domain.entities.metadata import (
    BusinessProcessRecord,
    CompactLayoutRecord,
    FieldRecord,
    ListViewRecord,
    ObjectRecord,
    ParsedObject,
    RecordTypeRecord,
    ValidationRuleRecord,
)
from sfdocs.shared.utils.values import to_boolean

from .xml_reader import PathLike, list_metadata_files, read_metadata_xml, strip_suffix

OBJECT_SUFFIX = ".object-meta.xml"

R = TypeVar("R")


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _components(
    directory: Path, suffix: str, root_tag: str, build: Callable[[str, Dict[str, Any]], R]
) -> List[R]:
    records: List[R] = []
    for path in list_metadata_files(directory, suffix):
        data = read_metadata_xml(path, root_tag)
        api_name = _text(data, "fullName") or strip_suffix(path.name, suffix)
        records.append(build(api_name, data))
    return records


def _field(api_name: str, d: Dict[str, Any]) -> FieldRecord:
    return FieldRecord(
        api_name=api_name,
        label=_text(d, "label") or api_name,
        description=_text(d, "description"),
        type=_text(d, "type"),
        details=d,
    )


def _record_type(api_name: str, d: Dict[str, Any]) -> RecordTypeRecord:
    return RecordTypeRecord(
        api_name=api_name,
        label=_text(d, "label") or api_name,
        description=_text(d, "description"),
        details=d,
    )


def _business_process(api_name: str, d: Dict[str, Any]) -> BusinessProcessRecord:
    return BusinessProcessRecord(
        api_name=api_name, label=api_name, description=_text(d, "description"), details=d
    )


def _compact_layout(api_name: str, d: Dict[str, Any]) -> CompactLayoutRecord:
    return CompactLayoutRecord(api_name=api_name, label=_text(d, "label") or api_name, details=d)


def _validation_rule(api_name: str, d: Dict[str, Any]) -> ValidationRuleRecord:
    return ValidationRuleRecord(
        api_name=api_name,
        label=api_name,
        description=_text(d, "description"),
        error_condition_formula=_text(d, "errorConditionFormula"),
        error_message=_text(d, "errorMessage"),
        active=to_boolean(d.get("active")),
        details=d,
    )


def _list_view(api_name: str, d: Dict[str, Any]) -> ListViewRecord:
    return ListViewRecord(api_name=api_name, label=_text(d, "label") or api_name, details=d)


def parse_object(object_dir: PathLike) -> ParsedObject:
    """
    Parsea un directorio de objeto.

    Raises:
        MetadataParseError: algún XML del objeto es inválido
    """
    object_dir = Path(object_dir)
    api_name = object_dir.name
    meta_path = object_dir / f"{api_name}{OBJECT_SUFFIX}"
    meta: Dict[str, Any] = read_metadata_xml(meta_path, "CustomObject") if meta_path.is_file() else {}

    parsed = ParsedObject(
        object=ObjectRecord(
            api_name=api_name,
            label=_text(meta, "label") or api_name,
            description=_text(meta, "description"),
            plural_label=_text(meta, "pluralLabel") or None,
            details=meta,
        ),
        fields=_components(object_dir / "fields", ".field-meta.xml", "CustomField", _field),
        record_types=_components(
            object_dir / "recordTypes", ".recordType-meta.xml", "RecordType", _record_type
        ),
        business_processes=_components(
            object_dir / "businessProcesses",
            ".businessProcess-meta.xml",
            "BusinessProcess",
            _business_process,
        ),
        compact_layouts=_components(
            object_dir / "compactLayouts", ".compactLayout-meta.xml", "CompactLayout", _compact_layout
        ),
        validation_rules=_components(
            object_dir / "validationRules",
            ".validationRule-meta.xml",
            "ValidationRule",
            _validation_rule,
        ),
        list_views=_components(object_dir / "listViews", ".listView-meta.xml", "ListView", _list_view),
    )
    logger.debug(
        f"Objeto {api_name}: {len(parsed.fields)} campos, "
        f"{len(parsed.validation_rules)} reglas de validación"
    )
    return parsed


def find_object_dirs(root: PathLike) -> List[Path]:
    """
    Directorios de objeto bajo `root`.

    Si `root` ya es un directorio de objeto se retorna solo.
    """
    root = Path(root)
    if (root / f"{root.name}{OBJECT_SUFFIX}").is_file() or (root / "fields").is_dir():
        return [root]
    if not root.is_dir():
        return []
    return sorted(p for p in root.iterdir() if p.is_dir())
