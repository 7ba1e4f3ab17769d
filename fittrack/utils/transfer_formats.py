"""
JSON / YAML / XML codecs for plan and analysis import and export.

Both document shapes are flat enough to share one codec:

    plan:     {"plan": {...}, "days": [...], "items": [{"dayIndex", ...}]}
    analysis: {"analysis": {...}, "datasets": {...}, "rawData": [...]}

XML carries no types, so parsed XML values are strings (or None for empty
elements) and callers validate them through their pydantic schemas.
"""
import json
import os
import xml.etree.ElementTree as ET
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import yaml

from fittrack.enums import TransferFormat
from fittrack.exceptions.errors import ValidationError
from fittrack.utils.time_utils import isoformat

PLAN_ROOT = "plan"
ANALYSIS_ROOT = "analysis"

MEDIA_TYPES = {
    TransferFormat.JSON: "application/json",
    TransferFormat.XML: "application/xml",
    TransferFormat.YAML: "text/yaml",
}

_EXTENSIONS = {
    ".json": TransferFormat.JSON,
    ".xml": TransferFormat.XML,
    ".yaml": TransferFormat.YAML,
    ".yml": TransferFormat.YAML,
}

# XML layout: root tag -> (info section, [(container tag, entry tag, key in data)])
_XML_LAYOUT = {
    PLAN_ROOT: ("planInfo", [("days", "day", "days"), ("items", "item", "items")]),
    ANALYSIS_ROOT: ("analysisInfo", [("rawData", "item", "rawData")]),
}

_DATASET_SERIES = ("years", "healthData", "economicData")


def detect_file_format(filename: Optional[str]) -> Optional[TransferFormat]:
    _, ext = os.path.splitext(filename or "")
    return _EXTENSIONS.get(ext.lower())


def to_plain(value: Any) -> Any:
    """Recursively turn datetimes into ISO strings so every codec can write the value."""
    if isinstance(value, (datetime, date)):
        return isoformat(value)
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


# Serialization

def _build(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, list):
        for entry in value:
            _build(parent, tag, entry)
        return
    element = ET.SubElement(parent, tag)
    if isinstance(value, dict):
        for key, item in value.items():
            _build(element, key, item)
    elif value is None:
        pass
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)


def _to_xml(data: Dict[str, Any], root: str) -> str:
    info_tag, containers = _XML_LAYOUT[root]
    element = ET.Element(root, {"version": "1.0"})
    _build(element, info_tag, data.get(root) or {})
    if root == ANALYSIS_ROOT:
        _build(element, "datasets", data.get("datasets") or {})
    for container_tag, entry_tag, key in containers:
        container = ET.SubElement(element, container_tag)
        _build(container, entry_tag, list(data.get(key) or []))
    ET.indent(element)
    return ET.tostring(element, encoding="unicode", xml_declaration=True)


def serialize_to_format(data: Dict[str, Any], fmt: TransferFormat, root: str) -> str:
    plain = to_plain(data)
    fmt = TransferFormat(fmt)
    if fmt is TransferFormat.JSON:
        return json.dumps(plain, indent=2, ensure_ascii=False)
    if fmt is TransferFormat.YAML:
        return yaml.safe_dump(plain, allow_unicode=True, sort_keys=False)
    return _to_xml(plain, root)


# Parsing

def _from_element(element: ET.Element) -> Any:
    children = list(element)
    if not children:
        text = (element.text or "").strip()
        return text if text else None
    value: Dict[str, Any] = {}
    for child in children:
        parsed = _from_element(child)
        if child.tag in value:
            existing = value[child.tag]
            if not isinstance(existing, list):
                value[child.tag] = [existing]
            value[child.tag].append(parsed)
        else:
            value[child.tag] = parsed
    return value


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _from_xml(text: str, root: str) -> Dict[str, Any]:
    try:
        element = ET.fromstring(text)
    except ET.ParseError as e:
        raise ValidationError(f"Invalid XML file: {e}")
    if element.tag != root:
        raise ValidationError("Invalid XML file structure")

    info_tag, containers = _XML_LAYOUT[root]
    body = _from_element(element)
    body = body if isinstance(body, dict) else {}
    if not isinstance(body.get(info_tag), dict):
        raise ValidationError("Invalid XML file structure")

    data: Dict[str, Any] = {root: body[info_tag]}
    for container_tag, entry_tag, key in containers:
        container = body.get(container_tag)
        data[key] = _as_list(container.get(entry_tag)) if isinstance(container, dict) else []
    if root == ANALYSIS_ROOT:
        datasets = body.get("datasets") if isinstance(body.get("datasets"), dict) else {}
        data["datasets"] = {series: _as_list(datasets.get(series)) for series in _DATASET_SERIES}
    return data


def parse_import_content(text: str, fmt: TransferFormat, root: str) -> Dict[str, Any]:
    fmt = TransferFormat(fmt)
    if fmt is TransferFormat.XML:
        data = _from_xml(text, root)
    elif fmt is TransferFormat.JSON:
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ValidationError(f"Invalid JSON file: {e}")
    else:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML file: {e}")

    if not isinstance(data, dict) or not isinstance(data.get(root), dict):
        raise ValidationError("Invalid file structure")
    if root == PLAN_ROOT and not isinstance(data.get("days"), list):
        raise ValidationError("Invalid file structure: 'days' must be a list")
    if root == ANALYSIS_ROOT and not isinstance(data.get("datasets"), dict):
        raise ValidationError("Invalid file structure: 'datasets' is required")
    return data


def parse_import_file(path: str, fmt: TransferFormat, root: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        try:
            text = handle.read()
        except UnicodeDecodeError:
            raise ValidationError("Import file must be UTF-8 text")
    return parse_import_content(text, fmt, root)
