"""
Definitions Document Reader.

Populates a DefinitionModel from an oval_definitions document.

Design principles:
- Every entity, whether defined or merely referenced, is obtained through
  the model's get_new_<kind>() so forward references and definitions
  resolve to the same instance
- The document is parsed and checked before the model is touched; a
  source that cannot be read or is malformed leaves the model unchanged
- Fields of an entity defined again (e.g. by a later merge) are
  overwritten, never removed from the registry
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Callable, Optional

from ..constants import OVAL_DEFINITIONS_NAMESPACE, XSI_SCHEMA_LOCATION
from ..entities import (
    Criteria,
    Criterion,
    ExtendDefinition,
    Reference,
    VariableType,
    scan_references,
    split_tag,
)
from ..errors import ModelImportError
from ..values import Datatype, Value

if TYPE_CHECKING:
    from ..model import DefinitionModel

logger = logging.getLogger(__name__)


def _def_tag(local_name: str) -> str:
    return f"{{{OVAL_DEFINITIONS_NAMESPACE}}}{local_name}"


def _parse_bool(text: Optional[str]) -> bool:
    return (text or "").strip().lower() in ("true", "1")


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is not None and element.text:
        return element.text.strip()
    return None


# =============================================================================
# ENTRY POINTS
# =============================================================================

def merge_file(model: DefinitionModel, path: str) -> None:
    """
    Parse the document at path into model.

    Raises:
        ModelImportError: If the file cannot be opened or parsed
    """
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as e:
        raise ModelImportError(path, str(e)) from e

    parse_definitions(model, root, source=path)


def merge_string(model: DefinitionModel, xml_content: str, source: str = "<string>") -> None:
    """
    Parse a document held in memory into model.

    Raises:
        ModelImportError: If the content is not well-formed
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise ModelImportError(source, f"Invalid XML: {e}") from e

    parse_definitions(model, root, source=source)


def parse_definitions(model: DefinitionModel, root: ET.Element, source: str = "<element>") -> None:
    """
    Walk an oval_definitions element and register everything it names.

    Groups are processed in document order. The generator block and any
    unknown group are skipped.
    """
    if root.tag != _def_tag("oval_definitions"):
        raise ModelImportError(source, f"unexpected root element {root.tag}")
    _check_document(root, source)

    if model.is_locked():
        logger.warning("Attempt to merge '%s' into locked model; ignored", source)
        return

    schema = root.get(XSI_SCHEMA_LOCATION)
    if schema:
        model.set_schema(schema)

    count = 0
    for group in root:
        _, group_name = split_tag(group.tag)
        parse_entity = _GROUP_PARSERS.get(group_name)
        if parse_entity is None:
            continue
        for element in group:
            parse_entity(model, element)
            count += 1

    logger.debug("Parsed %d entities from %s", count, source)


# =============================================================================
# STRUCTURAL CHECK
# =============================================================================

# attribute each leaf of a criteria tree must carry
_REQUIRED_REF_ATTRIBUTES = {
    "criterion": "test_ref",
    "extend_definition": "definition_ref",
}


def _check_document(root: ET.Element, source: str) -> None:
    """
    Reject documents whose entities cannot be keyed or typed.

    Only structural presence is checked: every entity needs an id, every
    criteria leaf its reference, every variable datatype must be known.
    """
    for group in root:
        _, group_name = split_tag(group.tag)
        if group_name not in _GROUP_PARSERS:
            continue
        for element in group:
            _, local_name = split_tag(element.tag)
            if not element.get("id"):
                raise ModelImportError(source, f"{local_name} without id in {group_name}")

            if group_name == "definitions":
                for node in element.iter():
                    _, node_name = split_tag(node.tag)
                    required = _REQUIRED_REF_ATTRIBUTES.get(node_name)
                    if required and not node.get(required):
                        raise ModelImportError(
                            source,
                            f"{node_name} without {required} in {element.get('id')}",
                        )

            if group_name == "variables":
                datatype = element.get("datatype")
                if datatype is not None:
                    try:
                        Datatype.from_text(datatype)
                    except ValueError as e:
                        raise ModelImportError(
                            source,
                            f"unknown datatype '{datatype}' for {element.get('id')}",
                        ) from e


# =============================================================================
# ENTITY PARSERS
# =============================================================================

def _parse_common(entity, element: ET.Element) -> None:
    entity.version = element.get("version")
    entity.comment = element.get("comment")
    entity.deprecated = _parse_bool(element.get("deprecated"))


def _parse_definition(model: DefinitionModel, element: ET.Element) -> None:
    definition = model.get_new_definition(element.get("id"))
    _parse_common(definition, element)
    definition.definition_class = element.get("class")

    metadata = element.find(_def_tag("metadata"))
    definition.title = _text(metadata.find(_def_tag("title"))) if metadata is not None else None
    definition.description = (
        _text(metadata.find(_def_tag("description"))) if metadata is not None else None
    )
    definition.references = []
    if metadata is not None:
        for ref in metadata.findall(_def_tag("reference")):
            definition.references.append(Reference(
                source=ref.get("source", ""),
                ref_id=ref.get("ref_id", ""),
                ref_url=ref.get("ref_url"),
            ))

    criteria = element.find(_def_tag("criteria"))
    definition.criteria = _parse_criteria(model, criteria) if criteria is not None else None


def _parse_criteria(model: DefinitionModel, element: ET.Element) -> Criteria:
    criteria = Criteria(
        operator=element.get("operator", "AND"),
        negate=_parse_bool(element.get("negate")),
        comment=element.get("comment"),
    )
    for child in element:
        _, local_name = split_tag(child.tag)
        if local_name == "criteria":
            criteria.children.append(_parse_criteria(model, child))
        elif local_name == "criterion":
            test_ref = child.get("test_ref")
            model.get_new_test(test_ref)
            criteria.children.append(Criterion(
                test_ref=test_ref,
                negate=_parse_bool(child.get("negate")),
                comment=child.get("comment"),
            ))
        elif local_name == "extend_definition":
            definition_ref = child.get("definition_ref")
            model.get_new_definition(definition_ref)
            criteria.children.append(ExtendDefinition(
                definition_ref=definition_ref,
                negate=_parse_bool(child.get("negate")),
                comment=child.get("comment"),
            ))
    return criteria


def _parse_test(model: DefinitionModel, element: ET.Element) -> None:
    test = model.get_new_test(element.get("id"))
    _parse_common(test, element)
    test.tag = element.tag
    test.check = element.get("check")
    test.check_existence = element.get("check_existence")
    test.state_operator = element.get("state_operator")
    test.object_ref = None
    test.state_refs = []

    for child in element:
        _, local_name = split_tag(child.tag)
        if local_name == "object" and child.get("object_ref"):
            test.object_ref = child.get("object_ref")
            model.get_new_object(test.object_ref)
        elif local_name == "state" and child.get("state_ref"):
            test.state_refs.append(child.get("state_ref"))
            model.get_new_state(child.get("state_ref"))


def _resolve_content_references(model: DefinitionModel, content: list[ET.Element]) -> None:
    refs = scan_references(content)
    for var_ref in refs.variables:
        model.get_new_variable(var_ref)
    for object_ref in refs.objects:
        model.get_new_object(object_ref)
    for state_ref in refs.states:
        model.get_new_state(state_ref)


def _parse_object(model: DefinitionModel, element: ET.Element) -> None:
    oval_object = model.get_new_object(element.get("id"))
    _parse_common(oval_object, element)
    oval_object.tag = element.tag
    oval_object.content = list(element)
    _resolve_content_references(model, oval_object.content)


def _parse_state(model: DefinitionModel, element: ET.Element) -> None:
    state = model.get_new_state(element.get("id"))
    _parse_common(state, element)
    state.tag = element.tag
    state.content = list(element)
    _resolve_content_references(model, state.content)


def _variable_type(element: ET.Element) -> Optional[VariableType]:
    _, local_name = split_tag(element.tag)
    try:
        return VariableType(local_name)
    except ValueError:
        logger.warning("Unknown variable element '%s' for %s", local_name, element.get("id"))
        return None


def _parse_variable(model: DefinitionModel, element: ET.Element) -> None:
    variable = model.get_new_variable(element.get("id"), _variable_type(element))
    _parse_common(variable, element)
    variable.tag = element.tag
    datatype = element.get("datatype")
    variable.datatype = Datatype.from_text(datatype) if datatype else None

    value_tag = _def_tag("value")
    if variable.type == VariableType.CONSTANT:
        variable.values = [
            Value(variable.datatype or Datatype.STRING, value.text or "")
            for value in element.findall(value_tag)
        ]
    else:
        variable.values = []
    variable.content = [child for child in element if child.tag != value_tag]
    _resolve_content_references(model, variable.content)


_GROUP_PARSERS: dict[str, Callable[[DefinitionModel, ET.Element], None]] = {
    "definitions": _parse_definition,
    "tests": _parse_test,
    "objects": _parse_object,
    "states": _parse_state,
    "variables": _parse_variable,
}
