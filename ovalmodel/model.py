"""
DefinitionModel — the identity-resolving container for OVAL definitions.

SYSTEM INVARIANT:
    For each of the five registries, at most one entity exists per
    identifier. Every creation goes through get_new_<kind>(), which returns
    the registered entity when present and creates a stub otherwise, so a
    reference seen before its definition and the definition itself land on
    the same instance.

Lifecycle:
    new / import → merge* → bind_variable_model* → lock → export / clone

Locking freezes registry membership only. Entity contents, in particular
the values of external variables, stay mutable so a locked model can be
re-bound against another variable model.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterator, Optional

from .codec.reader import merge_file
from .codec.writer import definitions_to_element, export_model
from .constants import DEFAULT_SCHEMA_LOCATION
from .entities import (
    Definition,
    Entity,
    OvalObject,
    State,
    Test,
    Variable,
    VariableType,
)
from .registry import Registry
from .values import Value
from .variables import VariableModel

logger = logging.getLogger(__name__)


class DefinitionModel:
    """
    Five ID-keyed registries plus a schema location and a lock flag.

    The model exclusively owns its registries and the entities in them.
    Entities refer to one another by identifier only.
    """

    def __init__(self, schema: str = DEFAULT_SCHEMA_LOCATION):
        self.definitions: Registry[Definition] = Registry("definition")
        self.tests: Registry[Test] = Registry("test")
        self.objects: Registry[OvalObject] = Registry("object")
        self.states: Registry[State] = Registry("state")
        self.variables: Registry[Variable] = Registry("variable")
        self._schema = schema
        self._locked = False

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def import_file(cls, path: str, schema: str = DEFAULT_SCHEMA_LOCATION) -> DefinitionModel:
        """
        Create a model populated from one document.

        Raises:
            ModelImportError: If the document cannot be read or parsed
        """
        model = cls(schema=schema)
        model.merge(path)
        return model

    def merge(self, path: str) -> None:
        """
        Add the content of another document to this model.

        Identifiers shared with content already present resolve to the
        same entities; fields from the merged document overwrite. Nothing
        is ever removed.

        Raises:
            ModelImportError: If the document cannot be read or parsed.
                The model is left unchanged in that case.
        """
        if self._locked:
            logger.warning("Attempt to merge '%s' into locked model; ignored", path)
            return

        merge_file(self, path)

    # =========================================================================
    # SCHEMA & LOCK
    # =========================================================================

    @property
    def schema(self) -> str:
        return self._schema

    def set_schema(self, schema: str) -> None:
        if self._locked:
            logger.warning("Attempt to update schema of locked model; ignored")
            return
        self._schema = schema

    def is_locked(self) -> bool:
        return self._locked

    def lock(self) -> bool:
        """
        Make registry membership read-only.

        A model that does not validate is never locked.

        Returns:
            True if the model is locked after the call
        """
        if not self._locked and self.is_valid():
            self._locked = True
            logger.debug("Definition model locked")
        return self._locked

    def is_valid(self) -> bool:
        """
        Check definitions, tests, objects and states, in that order.

        Stops at the first invalid entity. Variables are not part of this
        check; use invalid_entities() to inspect them as well.
        """
        for registry in (self.definitions, self.tests, self.objects, self.states):
            for entity in registry:
                if not entity.is_valid():
                    logger.debug("Invalid %s: %s", registry.kind, entity.id)
                    return False
        return True

    def invalid_entities(self) -> list[Entity]:
        """List every entity, variables included, that fails validation."""
        return [entity for entity in self.iter_entities() if not entity.is_valid()]

    # =========================================================================
    # ADD
    # =========================================================================

    def _add(self, registry: Registry, entity: Entity) -> None:
        if self._locked:
            logger.warning(
                "Attempt to add %s '%s' to locked model; ignored",
                registry.kind, entity.id,
            )
            return
        registry.put(entity.id, entity)

    def add_definition(self, definition: Definition) -> None:
        self._add(self.definitions, definition)

    def add_test(self, test: Test) -> None:
        self._add(self.tests, test)

    def add_object(self, oval_object: OvalObject) -> None:
        self._add(self.objects, oval_object)

    def add_state(self, state: State) -> None:
        self._add(self.states, state)

    def add_variable(self, variable: Variable) -> None:
        self._add(self.variables, variable)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get_definition(self, entity_id: str) -> Optional[Definition]:
        return self.definitions.get(entity_id)

    def get_test(self, entity_id: str) -> Optional[Test]:
        return self.tests.get(entity_id)

    def get_object(self, entity_id: str) -> Optional[OvalObject]:
        return self.objects.get(entity_id)

    def get_state(self, entity_id: str) -> Optional[State]:
        return self.states.get(entity_id)

    def get_variable(self, entity_id: str) -> Optional[Variable]:
        return self.variables.get(entity_id)

    def iter_entities(self) -> Iterator[Entity]:
        """Yield all entities, registry by registry."""
        for registry in (self.definitions, self.tests, self.objects, self.states, self.variables):
            yield from registry

    # =========================================================================
    # GET-OR-CREATE
    # =========================================================================

    def get_new_definition(self, entity_id: str) -> Definition:
        definition = self.get_definition(entity_id)
        if definition is None:
            definition = Definition(self, entity_id)
            self.add_definition(definition)
        return definition

    def get_new_test(self, entity_id: str) -> Test:
        test = self.get_test(entity_id)
        if test is None:
            test = Test(self, entity_id)
            self.add_test(test)
        return test

    def get_new_object(self, entity_id: str) -> OvalObject:
        oval_object = self.get_object(entity_id)
        if oval_object is None:
            oval_object = OvalObject(self, entity_id)
            self.add_object(oval_object)
        return oval_object

    def get_new_state(self, entity_id: str) -> State:
        state = self.get_state(entity_id)
        if state is None:
            state = State(self, entity_id)
            self.add_state(state)
        return state

    def get_new_variable(
        self,
        entity_id: str,
        variable_type: Optional[VariableType] = None,
    ) -> Variable:
        """
        Get or create a variable.

        When a type is given it is applied even to an existing variable, so
        a stub created from a reference takes the type of the declaration
        parsed later. Passing no type resolves a reference without
        classifying the variable.
        """
        variable = self.get_variable(entity_id)
        if variable is None:
            variable = Variable(self, entity_id, variable_type or VariableType.UNKNOWN)
            self.add_variable(variable)
        elif variable_type is not None:
            variable.type = variable_type
        return variable

    # =========================================================================
    # CLONE
    # =========================================================================

    def clone(self) -> DefinitionModel:
        """
        Deep copy into a new, unlocked model with the same schema.

        Each entity clones itself into the new model by identifier and
        pulls in whatever it references, so no entity of the copy points
        back into this model.
        """
        new_model = DefinitionModel(schema=self._schema)
        for entity in self.iter_entities():
            entity.clone_into(new_model)
        return new_model

    # =========================================================================
    # VARIABLE BINDING
    # =========================================================================

    def bind_variable_model(self, variable_model: VariableModel) -> None:
        """
        Append values from variable_model to every external variable.

        A variable whose datatype differs from the one declared by the
        variable model is skipped with a warning, as is one whose values do
        not convert to that datatype. Identifiers the variable
        model does not know are left untouched. Values accumulate across
        calls; call clear_external_variables() to start over.
        """
        for variable in self.variables:
            if variable.type != VariableType.EXTERNAL:
                continue

            bound_datatype = variable_model.get_datatype(variable.id)
            if bound_datatype is None:
                continue

            if bound_datatype != variable.datatype:
                logger.warning(
                    "Unmatched variable datatypes: varid=%s; "
                    "definition_model datatype=%s; variable_model datatype=%s",
                    variable.id,
                    variable.datatype.value if variable.datatype else None,
                    bound_datatype.value,
                )
                continue

            values = [Value(bound_datatype, text) for text in variable_model.get_values(variable.id)]
            malformed = [value.text for value in values if not value.is_well_formed()]
            if malformed:
                logger.warning(
                    "Malformed %s values for varid=%s: %s; skipped",
                    bound_datatype.value, variable.id, malformed,
                )
                continue

            for value in values:
                variable.add_value(value)

    def clear_external_variables(self) -> None:
        """Drop bound values of external variables; others are untouched."""
        for variable in self.variables:
            if variable.type == VariableType.EXTERNAL:
                variable.clear_values()

    # =========================================================================
    # EXPORT
    # =========================================================================

    def to_element(self, parent: Optional[ET.Element] = None) -> ET.Element:
        """
        Build the oval_definitions element, appended to parent when given.

        Embedded output has no generator block. Its namespace declarations
        land on the outermost element the caller serializes, and only for
        namespaces in use. See codec.writer.definitions_to_element.
        """
        return definitions_to_element(self, parent)

    def export(self, path: str) -> int:
        """
        Write this model as a standalone document.

        Returns:
            Number of bytes written

        Raises:
            ModelExportError: If the destination cannot be written
        """
        return export_model(self, path)

    def __repr__(self) -> str:
        return (
            f"DefinitionModel(definitions={len(self.definitions)}, "
            f"tests={len(self.tests)}, objects={len(self.objects)}, "
            f"states={len(self.states)}, variables={len(self.variables)}, "
            f"locked={self._locked})"
        )


def import_model(path: str, schema: str = DEFAULT_SCHEMA_LOCATION) -> DefinitionModel:
    """Create a model from one document. See DefinitionModel.import_file."""
    return DefinitionModel.import_file(path, schema=schema)
