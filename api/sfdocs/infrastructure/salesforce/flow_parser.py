"""Parser de flows (*.flow-meta.xml): resumen + decisions + recordUpdates."""
from pathlib import Path
from typing import Any, Dict, List, Optional

from sfdocs.domain.entities.metadata import FlowElementRecord, ParsedFlow
from sfdocs.shared.utils.values import as_list

from .xml_reader import PathLike, find_files, read_metadata_xml, strip_suffix

FLOW_SUFFIX = ".flow-meta.xml"


def _elements(raw: Dict[str, Any], tag: str, element_type: str) -> List[FlowElementRecord]:
    records = []
    for item in as_list(raw.get(tag)):
        if not isinstance(item, dict):
            continue
        records.append(
            FlowElementRecord(
                api_name=item.get("name") or "",
                label=item.get("label") or None,
                description=item.get("description") or None,
                element_type=element_type,
                details=item,
            )
        )
    return records


def _first_operator(start: Dict[str, Any]) -> Optional[str]:
    filters = [f for f in as_list(start.get("filters")) if isinstance(f, dict)]
    return filters[0].get("operator") if filters else None


def parse_flow(path: PathLike) -> ParsedFlow:
    """
    Parsea un flow.

    Raises:
        MetadataParseError: XML inválido
    """
    path = Path(path)
    raw = read_metadata_xml(path, "Flow")
    api_name = strip_suffix(path.name, FLOW_SUFFIX)
    start = raw.get("start") if isinstance(raw.get("start"), dict) else {}

    return ParsedFlow(
        api_name=api_name,
        label=raw.get("label") or api_name,
        description=raw.get("description") or "",
        status=raw.get("status") or "",
        process_type=raw.get("processType") or "",
        object=start.get("object") or None,
        operator=_first_operator(start),
        decisions=_elements(raw, "decisions", "decision"),
        record_updates=_elements(raw, "recordUpdates", "recordUpdate"),
        start=start,
        details={k: v for k, v in raw.items() if k not in ("decisions", "recordUpdates")},
    )


def find_flow_files(root: PathLike) -> List[Path]:
    return list(find_files(root, FLOW_SUFFIX))
