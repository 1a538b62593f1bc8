"""
Entity variants held by a DefinitionModel.

Entities:
    Definition  — An assessable statement built from a criteria tree
    Test        — Pairs an object (what to inspect) with states (expected)
    OvalObject  — A system item to inspect; content kept opaque
    State       — An expected-value predicate; content kept opaque
    Variable    — A named value container, inline or externally bound

Every entity has one immutable identifier and a non-owning back reference
to the model whose registry holds it. References to other entities are
stored as identifiers only and are resolved through the owning model.
"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Optional, Union

from .constants import (
    OBJECT_REF_ATTRIBUTE,
    OBJECT_REF_ELEMENT,
    OVAL_DEFINITIONS_NAMESPACE,
    STATE_REF_ELEMENT,
    VARIABLE_REF_ATTRIBUTE,
    VARIABLE_REF_ELEMENT,
)
from .values import Datatype, Value

if TYPE_CHECKING:
    from .model import DefinitionModel


def _def_tag(local_name: str) -> str:
    return f"{{{OVAL_DEFINITIONS_NAMESPACE}}}{local_name}"


def split_tag(tag: str) -> tuple[Optional[str], str]:
    """Split a qualified element name into (namespace, local name)."""
    if tag.startswith("{"):
        namespace, _, local_name = tag[1:].partition("}")
        return namespace, local_name
    return None, tag


# =============================================================================
# REFERENCES INSIDE OPAQUE CONTENT
# =============================================================================

@dataclass
class ContentReferences:
    """Identifiers named from inside object, state or variable content."""
    variables: list[str] = field(default_factory=list)
    objects: list[str] = field(default_factory=list)
    states: list[str] = field(default_factory=list)


def scan_references(elements: list[ET.Element]) -> ContentReferences:
    """
    Collect entity identifiers referenced from opaque child elements.

    Recognized forms:
    - var_ref="..." attribute on any element (variables)
    - <var_ref>id</var_ref>, e.g. in variable_object (variables)
    - object_ref="..." attribute, e.g. on object_component (objects)
    - <filter>id</filter> inside a set (states)
    - <object_reference>id</object_reference> inside a set (objects)
    """
    variables: dict[str, None] = {}
    objects: dict[str, None] = {}
    states: dict[str, None] = {}

    for element in elements:
        for node in element.iter():
            var_ref = node.get(VARIABLE_REF_ATTRIBUTE)
            if var_ref:
                variables[var_ref] = None
            object_ref = node.get(OBJECT_REF_ATTRIBUTE)
            if object_ref:
                objects[object_ref] = None

            _, local_name = split_tag(node.tag)
            text = (node.text or "").strip()
            if not text:
                continue
            if local_name == VARIABLE_REF_ELEMENT:
                variables[text] = None
            elif local_name == STATE_REF_ELEMENT:
                states[text] = None
            elif local_name == OBJECT_REF_ELEMENT:
                objects[text] = None

    return ContentReferences(
        variables=list(variables),
        objects=list(objects),
        states=list(states),
    )


# =============================================================================
# ENTITY BASE
# =============================================================================

class Entity:
    """
    Capability shared by all five entity kinds.

    Subclasses provide is_valid(), clone_into() and to_element().
    """
    kind = "entity"

    def __init__(self, model: DefinitionModel, entity_id: str):
        if not entity_id:
            raise ValueError(f"{self.kind} id is required")
        self._id = entity_id
        self.model = model
        self.version: Optional[str] = None
        self.comment: Optional[str] = None
        self.deprecated: bool = False

    @property
    def id(self) -> str:
        return self._id

    def is_valid(self) -> bool:
        raise NotImplementedError

    def clone_into(self, model: DefinitionModel) -> Entity:
        raise NotImplementedError

    def to_element(self, parent: ET.Element) -> ET.Element:
        raise NotImplementedError

    def _copy_common(self, other: Entity) -> None:
        other.version = self.version
        other.comment = self.comment
        other.deprecated = self.deprecated

    def _set_common_attributes(self, element: ET.Element) -> None:
        element.set("id", self.id)
        if self.version is not None:
            element.set("version", self.version)
        if self.comment:
            element.set("comment", self.comment)
        if self.deprecated:
            element.set("deprecated", "true")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"


# =============================================================================
# DEFINITION
# =============================================================================

@dataclass
class Criterion:
    """Leaf of a criteria tree naming a test."""
    test_ref: str
    negate: bool = False
    comment: Optional[str] = None


@dataclass
class ExtendDefinition:
    """Leaf of a criteria tree naming another definition."""
    definition_ref: str
    negate: bool = False
    comment: Optional[str] = None


@dataclass
class Criteria:
    """Inner node of a criteria tree combining children with an operator."""
    operator: str = "AND"
    negate: bool = False
    comment: Optional[str] = None
    children: list[Union[Criteria, Criterion, ExtendDefinition]] = field(default_factory=list)

    def walk(self) -> Iterator[Union[Criteria, Criterion, ExtendDefinition]]:
        """Yield every node below this one, depth first."""
        for child in self.children:
            yield child
            if isinstance(child, Criteria):
                yield from child.walk()

    def test_refs(self) -> list[str]:
        return [node.test_ref for node in self.walk() if isinstance(node, Criterion)]

    def definition_refs(self) -> list[str]:
        return [
            node.definition_ref for node in self.walk()
            if isinstance(node, ExtendDefinition)
        ]

    def is_valid(self) -> bool:
        """A criteria node must combine at least one child, recursively."""
        if not self.children:
            return False
        return all(
            child.is_valid() for child in self.children
            if isinstance(child, Criteria)
        )

    def to_element(self, parent: ET.Element) -> ET.Element:
        element = ET.SubElement(parent, _def_tag("criteria"))
        element.set("operator", self.operator)
        if self.negate:
            element.set("negate", "true")
        if self.comment:
            element.set("comment", self.comment)

        for child in self.children:
            if isinstance(child, Criteria):
                child.to_element(element)
            elif isinstance(child, Criterion):
                leaf = ET.SubElement(element, _def_tag("criterion"))
                leaf.set("test_ref", child.test_ref)
                if child.negate:
                    leaf.set("negate", "true")
                if child.comment:
                    leaf.set("comment", child.comment)
            else:
                leaf = ET.SubElement(element, _def_tag("extend_definition"))
                leaf.set("definition_ref", child.definition_ref)
                if child.negate:
                    leaf.set("negate", "true")
                if child.comment:
                    leaf.set("comment", child.comment)
        return element


@dataclass
class Reference:
    """A metadata pointer to an external advisory or identifier."""
    source: str
    ref_id: str
    ref_url: Optional[str] = None


class Definition(Entity):
    """
    Top-level assessable statement.

    Required for validity:
        - version
        - definition_class
        - a non-empty criteria tree (may be omitted only when deprecated)
    """
    kind = "definition"

    def __init__(self, model: DefinitionModel, entity_id: str):
        super().__init__(model, entity_id)
        self.definition_class: Optional[str] = None
        self.title: Optional[str] = None
        self.description: Optional[str] = None
        self.references: list[Reference] = []
        self.criteria: Optional[Criteria] = None

    def test_refs(self) -> list[str]:
        return self.criteria.test_refs() if self.criteria else []

    def definition_refs(self) -> list[str]:
        return self.criteria.definition_refs() if self.criteria else []

    def is_valid(self) -> bool:
        if self.version is None or not self.definition_class:
            return False
        if self.criteria is None:
            return self.deprecated
        return self.criteria.is_valid()

    def clone_into(self, model: DefinitionModel) -> Definition:
        existing = model.get_definition(self.id)
        if existing is not None:
            return existing

        clone = model.get_new_definition(self.id)
        self._copy_common(clone)
        clone.definition_class = self.definition_class
        clone.title = self.title
        clone.description = self.description
        clone.references = [copy.copy(ref) for ref in self.references]
        clone.criteria = copy.deepcopy(self.criteria)

        for test_ref in self.test_refs():
            _clone_reference(self.model.get_test(test_ref), model.get_new_test, test_ref, model)
        for definition_ref in self.definition_refs():
            _clone_reference(
                self.model.get_definition(definition_ref),
                model.get_new_definition, definition_ref, model,
            )
        return clone

    def to_element(self, parent: ET.Element) -> ET.Element:
        element = ET.SubElement(parent, _def_tag("definition"))
        element.set("id", self.id)
        if self.version is not None:
            element.set("version", self.version)
        if self.definition_class:
            element.set("class", self.definition_class)
        if self.deprecated:
            element.set("deprecated", "true")

        metadata = ET.SubElement(element, _def_tag("metadata"))
        ET.SubElement(metadata, _def_tag("title")).text = self.title or ""
        for ref in self.references:
            ref_element = ET.SubElement(metadata, _def_tag("reference"))
            ref_element.set("source", ref.source)
            ref_element.set("ref_id", ref.ref_id)
            if ref.ref_url:
                ref_element.set("ref_url", ref.ref_url)
        ET.SubElement(metadata, _def_tag("description")).text = self.description or ""

        if self.criteria is not None:
            self.criteria.to_element(element)
        return element


# =============================================================================
# TEST
# =============================================================================

class Test(Entity):
    """
    Associates one object with zero or more states.

    tag is the qualified element name, which carries the platform family,
    e.g. "{...oval-definitions-5#independent}textfilecontent54_test".
    """
    kind = "test"
    __test__ = False  # not a pytest collection target

    def __init__(self, model: DefinitionModel, entity_id: str):
        super().__init__(model, entity_id)
        self.tag: Optional[str] = None
        self.check: Optional[str] = None
        self.check_existence: Optional[str] = None
        self.state_operator: Optional[str] = None
        self.object_ref: Optional[str] = None
        self.state_refs: list[str] = []

    def is_valid(self) -> bool:
        return bool(self.tag) and self.version is not None and bool(self.check)

    def clone_into(self, model: DefinitionModel) -> Test:
        existing = model.get_test(self.id)
        if existing is not None:
            return existing

        clone = model.get_new_test(self.id)
        self._copy_common(clone)
        clone.tag = self.tag
        clone.check = self.check
        clone.check_existence = self.check_existence
        clone.state_operator = self.state_operator
        clone.object_ref = self.object_ref
        clone.state_refs = list(self.state_refs)

        if self.object_ref:
            _clone_reference(
                self.model.get_object(self.object_ref),
                model.get_new_object, self.object_ref, model,
            )
        for state_ref in self.state_refs:
            _clone_reference(self.model.get_state(state_ref), model.get_new_state, state_ref, model)
        return clone

    def to_element(self, parent: ET.Element) -> ET.Element:
        tag = self.tag or _def_tag("unknown_test")
        namespace, _ = split_tag(tag)
        element = ET.SubElement(parent, tag)
        self._set_common_attributes(element)
        if self.check_existence:
            element.set("check_existence", self.check_existence)
        if self.check:
            element.set("check", self.check)
        if self.state_operator:
            element.set("state_operator", self.state_operator)

        prefix = f"{{{namespace}}}" if namespace else ""
        if self.object_ref:
            ET.SubElement(element, f"{prefix}object").set("object_ref", self.object_ref)
        for state_ref in self.state_refs:
            ET.SubElement(element, f"{prefix}state").set("state_ref", state_ref)
        return element


# =============================================================================
# OBJECT & STATE
# =============================================================================

class _ContentEntity(Entity):
    """Entity whose body is a list of opaque child elements."""

    def __init__(self, model: DefinitionModel, entity_id: str):
        super().__init__(model, entity_id)
        self.tag: Optional[str] = None
        self.content: list[ET.Element] = []

    def references(self) -> ContentReferences:
        return scan_references(self.content)

    def is_valid(self) -> bool:
        return bool(self.tag) and self.version is not None

    def _copy_content(self, other: _ContentEntity) -> None:
        self._copy_common(other)
        other.tag = self.tag
        other.content = [copy.deepcopy(child) for child in self.content]

    def _clone_content_references(self, model: DefinitionModel) -> None:
        refs = self.references()
        for var_ref in refs.variables:
            _clone_reference(
                self.model.get_variable(var_ref),
                model.get_new_variable, var_ref, model,
            )
        for object_ref in refs.objects:
            _clone_reference(self.model.get_object(object_ref), model.get_new_object, object_ref, model)
        for state_ref in refs.states:
            _clone_reference(self.model.get_state(state_ref), model.get_new_state, state_ref, model)

    def to_element(self, parent: ET.Element) -> ET.Element:
        element = ET.SubElement(parent, self.tag or _def_tag(f"unknown_{self.kind}"))
        self._set_common_attributes(element)
        for child in self.content:
            element.append(copy.deepcopy(child))
        return element


class OvalObject(_ContentEntity):
    """A system item to inspect. Its body is specific to a platform family."""
    kind = "object"

    def clone_into(self, model: DefinitionModel) -> OvalObject:
        existing = model.get_object(self.id)
        if existing is not None:
            return existing

        clone = model.get_new_object(self.id)
        self._copy_content(clone)
        self._clone_content_references(model)
        return clone


class State(_ContentEntity):
    """An expected-value predicate compared against collected items."""
    kind = "state"

    def clone_into(self, model: DefinitionModel) -> State:
        existing = model.get_state(self.id)
        if existing is not None:
            return existing

        clone = model.get_new_state(self.id)
        self._copy_content(clone)
        self._clone_content_references(model)
        return clone


# =============================================================================
# VARIABLE
# =============================================================================

class VariableType(Enum):
    """
    How a variable obtains its values, valued by its element name.

    CONSTANT and LOCAL are defined inside the document (internal).
    EXTERNAL values are supplied at bind time. UNKNOWN marks a variable
    that has only been referenced so far.
    """
    UNKNOWN = "variable"
    CONSTANT = "constant_variable"
    LOCAL = "local_variable"
    EXTERNAL = "external_variable"

    @property
    def is_internal(self) -> bool:
        return self in (VariableType.CONSTANT, VariableType.LOCAL)


class Variable(_ContentEntity):
    """
    A named value container.

    type may change after registration: a variable first get-or-created
    from a reference is classified once its own declaration is parsed.
    """
    kind = "variable"

    def __init__(
        self,
        model: DefinitionModel,
        entity_id: str,
        variable_type: VariableType = VariableType.UNKNOWN,
    ):
        super().__init__(model, entity_id)
        self.type = variable_type
        self.datatype: Optional[Datatype] = None
        self.values: list[Value] = []

    @property
    def is_external(self) -> bool:
        return self.type == VariableType.EXTERNAL

    def add_value(self, value: Value) -> None:
        self.values.append(value)

    def clear_values(self) -> None:
        self.values = []

    def is_valid(self) -> bool:
        if self.type == VariableType.UNKNOWN:
            return False
        if self.version is None or self.datatype is None:
            return False
        if self.type == VariableType.CONSTANT:
            return bool(self.values)
        return True

    def clone_into(self, model: DefinitionModel) -> Variable:
        existing = model.get_variable(self.id)
        if existing is not None:
            return existing

        clone = model.get_new_variable(self.id, self.type)
        self._copy_content(clone)
        clone.datatype = self.datatype
        clone.values = list(self.values)
        self._clone_content_references(model)
        return clone

    def to_element(self, parent: ET.Element) -> ET.Element:
        element = ET.SubElement(parent, _def_tag(self.type.value))
        self._set_common_attributes(element)
        if self.datatype is not None:
            element.set("datatype", self.datatype.value)

        # external values come from a variable model, never from this document
        if self.type == VariableType.CONSTANT:
            for value in self.values:
                ET.SubElement(element, _def_tag("value")).text = value.text
        for child in self.content:
            element.append(copy.deepcopy(child))
        return element


# =============================================================================
# CLONE HELPERS
# =============================================================================

def _clone_reference(source, get_new, entity_id: str, model: DefinitionModel) -> None:
    """
    Make sure entity_id exists in model.

    A referenced entity present in the source model is cloned with its
    content; a dangling reference is reproduced as a stub.
    """
    if source is not None:
        source.clone_into(model)
    else:
        get_new(entity_id)
