"""
Small lxml element builder used by the part serializers.

Elements are created with prefixed tag names ("a:rPr"), attributes are set in
the order given and None values are skipped, and text is escaped only once,
by lxml, when a tree is serialized.
"""
from typing import Any, Dict, Optional

from lxml import etree
from pptx.oxml.ns import _nsmap, qn as _qn

# PresentationML prefixes plus the few package-level ones python-pptx does not list
NAMESPACES: Dict[str, str] = dict(_nsmap)
NAMESPACES.update({
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
    "pr": "http://schemas.openxmlformats.org/package/2006/relationships",
    "vt": "http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes",
})


def qn(tag: str) -> str:
    """Clark name for a prefixed tag; bare tags are returned unchanged."""
    if ":" not in tag:
        return tag
    prefix, local = tag.split(":", 1)
    if prefix in ("ct", "pr", "vt"):
        return "{%s}%s" % (NAMESPACES[prefix], local)
    return _qn(tag)


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _set_attributes(node: etree._Element, attrs: Optional[Dict[str, Any]]) -> None:
    for name, value in (attrs or {}).items():
        if value is None:
            continue
        node.set(qn(name), _format(value))


def root(tag: str, *prefixes: str, attrs: Optional[Dict[str, Any]] = None,
         default: Optional[str] = None) -> etree._Element:
    """Creates a document root declaring the given prefixes (and an optional default namespace)."""
    nsmap = {prefix: NAMESPACES[prefix] for prefix in prefixes}
    if default:
        nsmap[None] = NAMESPACES[default]
        if ":" not in tag:
            tag = f"{default}:{tag}"
    node = etree.Element(qn(tag), nsmap=nsmap)
    _set_attributes(node, attrs)
    return node


def sub(parent: etree._Element, tag: str, attrs: Optional[Dict[str, Any]] = None,
        text: Any = None) -> etree._Element:
    """Appends a child element and returns it."""
    node = etree.SubElement(parent, qn(tag))
    _set_attributes(node, attrs)
    if text is not None:
        node.text = str(text)
    return node


def to_xml(node: etree._Element) -> str:
    """Serializes a finished part with the standalone declaration Office expects."""
    data = etree.tostring(node, xml_declaration=True, encoding="UTF-8", standalone=True)
    return data.decode("utf-8")
