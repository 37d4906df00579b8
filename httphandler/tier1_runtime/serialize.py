"""
httphandler.tier1_runtime.serialize
────────────────────────────────────
Byte-level serialization of plain data for the default encoders.
Formats: json | xml

JSON goes through the stdlib encoder (Pydantic models via model_dump_json).
XML goes through ElementTree: dict keys become child elements, list items
become repeated <item> elements, scalars become text. Characters XML cannot
carry are replaced with U+FFFD.
"""
from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from typing import Any

from pydantic import BaseModel

_XML_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")
# Characters outside the XML 1.0 Char production.
_XML_INVALID = re.compile("[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def serialize(obj: BaseModel | dict | list, format: str = "json", root: str = "Data") -> bytes:
    """
    Serialize a Pydantic model, dict or list to bytes.

    Usage:
        data = serialize({"StatusCode": 500})              # → b'{"StatusCode": 500}'
        data = serialize({"StatusCode": 500}, "xml", root="WireError")
    """
    fmt = format.lower()
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json")
    if fmt == "json":
        return json.dumps(obj).encode()
    if fmt == "xml":
        element = ET.Element(root)
        _fill(element, obj)
        return ET.tostring(element, encoding="utf-8", xml_declaration=False)
    raise ValueError(f"Unsupported serialize format: {fmt!r}. Supported: json, xml")


def _fill(element: ET.Element, value: Any) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            name = str(key)
            if _XML_NAME.match(name):
                child = ET.SubElement(element, name)
            else:
                child = ET.SubElement(element, "entry", {"name": _xml_text(name)})
            _fill(child, item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _fill(ET.SubElement(element, "item"), item)
    elif value is None:
        return
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = _xml_text(str(value))


def _xml_text(text: str) -> str:
    return _XML_INVALID.sub("\ufffd", text)


__all__ = ["serialize"]
