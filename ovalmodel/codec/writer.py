"""
Definitions Document Writer.

Builds an oval_definitions element tree from a DefinitionModel and writes
it out as a canonical UTF-8 document.

Shape:
    oval_definitions[@xsi:schemaLocation]
        generator          (standalone documents only)
        definitions        (each group only when its registry is non-empty)
        tests
        objects
        states
        variables
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from ..constants import (
    EXPORT_ENCODING,
    FAMILY_NAMESPACE_PREFIXES,
    GENERATOR_PRODUCT_NAME,
    GENERATOR_SCHEMA_VERSION,
    GENERATOR_TIMESTAMP_FORMAT,
    OVAL_COMMON_NAMESPACE,
    OVAL_DEFINITIONS_NAMESPACE,
    OVAL_DEFINITIONS_PREFIX,
    XMLNS_XSI,
    XSI_SCHEMA_LOCATION,
)
from ..errors import ModelExportError

if TYPE_CHECKING:
    from ..model import DefinitionModel

logger = logging.getLogger(__name__)

ET.register_namespace("oval", OVAL_COMMON_NAMESPACE)
ET.register_namespace("xsi", XMLNS_XSI)
ET.register_namespace(OVAL_DEFINITIONS_PREFIX, OVAL_DEFINITIONS_NAMESPACE)
for _prefix, _uri in FAMILY_NAMESPACE_PREFIXES.items():
    ET.register_namespace(_prefix, _uri)


def _def_tag(local_name: str) -> str:
    return f"{{{OVAL_DEFINITIONS_NAMESPACE}}}{local_name}"


def _common_tag(local_name: str) -> str:
    return f"{{{OVAL_COMMON_NAMESPACE}}}{local_name}"


# =============================================================================
# ELEMENT TREE
# =============================================================================

def generator_to_element(parent: ET.Element, timestamp: Optional[datetime] = None) -> ET.Element:
    """Append the generator block (product, schema version, local time)."""
    if timestamp is None:
        timestamp = datetime.now()

    generator = ET.SubElement(parent, _def_tag("generator"))
    ET.SubElement(generator, _common_tag("product_name")).text = GENERATOR_PRODUCT_NAME
    ET.SubElement(generator, _common_tag("schema_version")).text = GENERATOR_SCHEMA_VERSION
    ET.SubElement(generator, _common_tag("timestamp")).text = timestamp.strftime(
        GENERATOR_TIMESTAMP_FORMAT
    )
    return generator


def definitions_to_element(
    model: DefinitionModel,
    parent: Optional[ET.Element] = None,
) -> ET.Element:
    """
    Build the oval_definitions element for model.

    Args:
        model: Model to serialize
        parent: When given, the element is appended to it and no
            generator block is emitted, so the definitions can be embedded
            in a larger document

    Embedded elements are qualified with the oval-def prefix. ElementTree
    writes namespace declarations on the outermost serialized element,
    not on oval_definitions, and declares only the namespaces actually
    used, so the oval prefix is absent from embedded output.

    Returns:
        The oval_definitions element
    """
    if parent is not None:
        root = ET.SubElement(parent, _def_tag("oval_definitions"))
    else:
        root = ET.Element(_def_tag("oval_definitions"))
    root.set(XSI_SCHEMA_LOCATION, model.schema)

    if parent is None:
        generator_to_element(root)

    groups = (
        ("definitions", model.definitions),
        ("tests", model.tests),
        ("objects", model.objects),
        ("states", model.states),
        ("variables", model.variables),
    )
    for group_name, registry in groups:
        if not registry:
            continue
        group = ET.SubElement(root, _def_tag(group_name))
        for entity in registry:
            entity.to_element(group)

    return root


def serialize_model(model: DefinitionModel) -> bytes:
    """
    Serialize model as an indented standalone UTF-8 document.

    The definitions namespace is the default namespace of the document.
    ElementTree's default_namespace option rejects the unqualified
    attributes every entity carries, so the empty prefix is registered
    for the duration of this call only and the regular prefix restored
    afterwards.
    """
    root = definitions_to_element(model)
    ET.indent(root, space="  ")
    ET.register_namespace("", OVAL_DEFINITIONS_NAMESPACE)
    try:
        return ET.tostring(root, encoding=EXPORT_ENCODING, xml_declaration=True)
    finally:
        ET.register_namespace(OVAL_DEFINITIONS_PREFIX, OVAL_DEFINITIONS_NAMESPACE)


# =============================================================================
# EXPORT
# =============================================================================

def export_model(model: DefinitionModel, path: str) -> int:
    """
    Write model to path.

    Returns:
        Number of bytes written

    Raises:
        ModelExportError: If the file cannot be written. A partially
            written file may remain.
    """
    data = serialize_model(model)
    try:
        with open(path, "wb") as fh:
            written = fh.write(data)
    except OSError as e:
        raise ModelExportError(path, str(e)) from e

    logger.debug("Exported %d bytes to %s", written, path)
    return written
