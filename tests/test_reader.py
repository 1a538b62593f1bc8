"""
Tests for loading and merging definition documents.

These tests verify that:
1. Every element lands in the right registry with its fields
2. Forward references and definitions resolve to one instance
3. Document order does not change the resulting model
4. Merging is additive and last-merge-wins per identifier
5. Unreadable or malformed sources raise and leave the model unchanged
"""

import logging

import pytest

from sample_documents import FOOTER, GROUPS, HEADER, build_document

from ovalmodel.codec.reader import merge_string
from ovalmodel.entities import Criteria, VariableType
from ovalmodel.errors import ModelImportError, OvalModelError
from ovalmodel.model import DefinitionModel, import_model
from ovalmodel.values import Datatype


IND = "http://oval.mitre.org/XMLSchema/oval-definitions-5#independent"

SECOND_DOCUMENT = HEADER + """
  <definitions>
    <definition id="oval:test:def:1" version="2" class="compliance">
      <metadata>
        <title>Session limit is configured (revised)</title>
        <description>Revised check.</description>
      </metadata>
      <criteria>
        <criterion test_ref="oval:test:tst:1"/>
      </criteria>
    </definition>
    <definition id="oval:test:def:2" version="1" class="inventory">
      <metadata>
        <title>Config file present</title>
        <description>Reuses an object from another document.</description>
      </metadata>
      <criteria>
        <criterion test_ref="oval:test:tst:3"/>
      </criteria>
    </definition>
  </definitions>
  <tests>
    <ind-def:textfilecontent54_test id="oval:test:tst:3" version="1" check="at least one">
      <ind-def:object object_ref="oval:test:obj:1"/>
    </ind-def:textfilecontent54_test>
  </tests>
""" + FOOTER


def _snapshot(model: DefinitionModel) -> dict:
    """Comparable view of a model's identifiers and main fields."""
    return {
        "definitions": {
            d.id: (d.version, d.definition_class, d.title, d.description, d.test_refs())
            for d in model.definitions
        },
        "tests": {
            t.id: (t.tag, t.version, t.check, t.object_ref, tuple(t.state_refs))
            for t in model.tests
        },
        "objects": {o.id: (o.tag, o.version, len(o.content)) for o in model.objects},
        "states": {s.id: (s.tag, s.version, len(s.content)) for s in model.states},
        "variables": {
            v.id: (v.type, v.datatype, tuple(value.text for value in v.values))
            for v in model.variables
        },
    }


# =============================================================================
# IMPORT
# =============================================================================

class TestImport:
    """Test that a document populates every registry."""

    def test_registry_counts(self, sample_model):
        """All entities of the sample document are registered."""
        assert len(sample_model.definitions) == 1
        assert len(sample_model.tests) == 2
        assert len(sample_model.objects) == 2
        assert len(sample_model.states) == 1
        assert len(sample_model.variables) == 2

    def test_import_model_function(self, sample_path):
        """import_model is new + merge."""
        model = import_model(sample_path)
        assert sorted(model.tests.ids()) == ["oval:test:tst:1", "oval:test:tst:2"]

    def test_schema_location_adopted(self, sample_model):
        """The root schemaLocation becomes the model schema."""
        assert sample_model.schema == (
            "http://oval.mitre.org/XMLSchema/oval-definitions-5 oval-definitions-schema.xsd"
        )

    def test_definition_fields(self, sample_model):
        """Definition metadata and criteria are parsed."""
        definition = sample_model.get_definition("oval:test:def:1")

        assert definition.version == "1"
        assert definition.definition_class == "compliance"
        assert definition.title == "Session limit is configured"
        assert definition.references[0].source == "CCE"
        assert definition.references[0].ref_id == "CCE-1234-5"
        assert definition.test_refs() == ["oval:test:tst:1", "oval:test:tst:2"]

        nested = definition.criteria.children[1]
        assert isinstance(nested, Criteria)
        assert nested.operator == "OR"
        assert nested.negate is True
        assert definition.criteria.children[0].comment == "limit present"

    def test_test_fields(self, sample_model):
        """Test element name, check and references are parsed."""
        test = sample_model.get_test("oval:test:tst:1")

        assert test.tag == f"{{{IND}}}textfilecontent54_test"
        assert test.check == "all"
        assert test.check_existence == "at_least_one_exists"
        assert test.object_ref == "oval:test:obj:1"
        assert test.state_refs == ["oval:test:ste:1"]

    def test_object_content_kept(self, sample_model):
        """Object children are kept verbatim."""
        oval_object = sample_model.get_object("oval:test:obj:1")

        assert [child.tag for child in oval_object.content] == [
            f"{{{IND}}}filepath",
            f"{{{IND}}}pattern",
            f"{{{IND}}}instance",
        ]
        assert oval_object.content[0].text == "/etc/app.conf"

    def test_variables_typed(self, sample_model):
        """Variable element names and datatypes are parsed."""
        external = sample_model.get_variable("oval:test:var:1")
        constant = sample_model.get_variable("oval:test:var:2")

        assert external.type == VariableType.EXTERNAL
        assert external.datatype == Datatype.INT
        assert external.values == []
        assert constant.type == VariableType.CONSTANT
        assert [value.native for value in constant.values] == ["alpha", "beta"]

    def test_content_references_recorded(self, sample_model):
        """References inside object and state content are discovered."""
        assert sample_model.get_object("oval:test:obj:2").references().variables == [
            "oval:test:var:1"
        ]
        assert sample_model.get_state("oval:test:ste:1").references().variables == [
            "oval:test:var:1"
        ]

    def test_sample_model_is_valid(self, sample_model):
        """A complete document yields a lockable model."""
        assert sample_model.is_valid()
        assert sample_model.lock()


# =============================================================================
# FORWARD REFERENCES
# =============================================================================

class TestForwardReferences:
    """Test identity resolution across document order."""

    def test_reference_and_definition_share_instance(self):
        """A stub created by a reference is the instance later filled in."""
        model = DefinitionModel()
        stub = model.get_new_test("oval:test:tst:1")
        assert stub.version is None

        merge_string(model, build_document())

        assert model.get_test("oval:test:tst:1") is stub
        assert stub.version == "1"
        assert stub.check == "all"

    def test_order_independence(self, sample_path, reordered_path):
        """Reversed group order yields the same model."""
        forward = DefinitionModel.import_file(sample_path)
        backward = DefinitionModel.import_file(reordered_path)

        assert _snapshot(forward) == _snapshot(backward)

    def test_referenced_variable_classified_by_declaration(self, sample_model):
        """A variable first seen from a state is EXTERNAL after its declaration."""
        assert sample_model.get_variable("oval:test:var:1").type == VariableType.EXTERNAL

    def test_missing_definition_leaves_invalid_stub(self):
        """A reference without a defining element stays an invalid stub."""
        groups = dict(GROUPS)
        groups["states"] = ""
        model = DefinitionModel()

        merge_string(model, build_document(groups=groups))

        stub = model.get_state("oval:test:ste:1")
        assert stub is not None
        assert stub.version is None
        assert not model.is_valid()
        assert not model.lock()


# =============================================================================
# MERGE
# =============================================================================

class TestMerge:
    """Test accumulating several documents into one model."""

    def test_merge_is_union(self, sample_model, write_file):
        """Identifiers from both documents are present."""
        sample_model.merge(write_file("second.xml", SECOND_DOCUMENT))

        assert sorted(sample_model.definitions.ids()) == ["oval:test:def:1", "oval:test:def:2"]
        assert sorted(sample_model.tests.ids()) == [
            "oval:test:tst:1", "oval:test:tst:2", "oval:test:tst:3",
        ]
        assert len(sample_model.objects) == 2

    def test_last_merge_wins(self, sample_model, write_file):
        """Shared identifiers take the content of the later document."""
        before = sample_model.get_definition("oval:test:def:1")

        sample_model.merge(write_file("second.xml", SECOND_DOCUMENT))

        after = sample_model.get_definition("oval:test:def:1")
        assert after is before
        assert after.version == "2"
        assert after.title == "Session limit is configured (revised)"
        assert after.test_refs() == ["oval:test:tst:1"]
        assert after.references == []

    def test_documents_share_identifier_space(self, sample_model, write_file):
        """A test in one document can use an object from another."""
        sample_model.merge(write_file("second.xml", SECOND_DOCUMENT))

        test = sample_model.get_test("oval:test:tst:3")
        assert sample_model.get_object(test.object_ref).version == "1"
        assert sample_model.is_valid()

    def test_redeclared_variable_drops_constant_values(self):
        """A constant redeclared as external keeps none of its old values."""
        constant = build_document(order=("variables",), groups={"variables": """
  <variables>
    <constant_variable id="oval:test:var:1" version="1" datatype="int">
      <value>7</value>
    </constant_variable>
  </variables>
"""})
        model = DefinitionModel()
        merge_string(model, constant)
        assert [value.text for value in model.get_variable("oval:test:var:1").values] == ["7"]

        merge_string(model, build_document())

        variable = model.get_variable("oval:test:var:1")
        assert variable.type == VariableType.EXTERNAL
        assert variable.values == []

    def test_merge_into_locked_model_ignored(self, sample_model, write_file, caplog):
        """A locked model does not accept merged content."""
        sample_model.lock()

        with caplog.at_level(logging.WARNING):
            sample_model.merge(write_file("second.xml", SECOND_DOCUMENT))

        assert sample_model.get_definition("oval:test:def:2") is None
        assert sample_model.get_definition("oval:test:def:1").version == "1"
        assert "locked model" in caplog.text

    def test_merge_string_into_locked_model_ignored(self, sample_model):
        """In-memory merges honor the lock too."""
        sample_model.lock()

        merge_string(sample_model, SECOND_DOCUMENT)

        assert sample_model.get_test("oval:test:tst:3") is None


# =============================================================================
# ERRORS
# =============================================================================

class TestImportErrors:
    """Test failure handling for unusable sources."""

    def test_missing_file(self, tmp_path):
        """A path that cannot be opened raises ModelImportError."""
        with pytest.raises(ModelImportError) as exc_info:
            DefinitionModel.import_file(str(tmp_path / "missing.xml"))

        assert isinstance(exc_info.value, OvalModelError)
        assert "missing.xml" in str(exc_info.value)

    def test_malformed_document_leaves_model_unchanged(self, sample_model, write_file):
        """A parse error does not modify the model."""
        before = _snapshot(sample_model)

        with pytest.raises(ModelImportError):
            sample_model.merge(write_file("broken.xml", "<oval_definitions><tests>"))

        assert _snapshot(sample_model) == before

    def test_wrong_root_element(self, write_file):
        """Only oval_definitions documents are accepted."""
        path = write_file("rss.xml", "<rss><channel/></rss>")

        with pytest.raises(ModelImportError, match="unexpected root element"):
            DefinitionModel.import_file(path)

    def test_entity_without_id(self):
        """An entity element without id is rejected before any change."""
        groups = dict(GROUPS)
        groups["objects"] = """
  <objects>
    <ind-def:family_object version="1"/>
  </objects>
"""
        model = DefinitionModel()

        with pytest.raises(ModelImportError, match="without id"):
            merge_string(model, build_document(groups=groups))

        assert len(model.definitions) == 0
        assert len(model.tests) == 0

    def test_unknown_datatype(self):
        """A variable with an unknown datatype is rejected."""
        groups = dict(GROUPS)
        groups["variables"] = """
  <variables>
    <external_variable id="oval:test:var:1" version="1" datatype="number"/>
  </variables>
"""
        model = DefinitionModel()

        with pytest.raises(ModelImportError, match="unknown datatype"):
            merge_string(model, build_document(groups=groups))

        assert len(model.variables) == 0

    def test_criterion_without_reference(self):
        """A criterion must name a test."""
        groups = dict(GROUPS)
        groups["definitions"] = """
  <definitions>
    <definition id="oval:test:def:1" version="1" class="compliance">
      <criteria><criterion/></criteria>
    </definition>
  </definitions>
"""
        model = DefinitionModel()

        with pytest.raises(ModelImportError, match="without test_ref"):
            merge_string(model, build_document(groups=groups))

        assert len(model.definitions) == 0
        assert len(model.tests) == 0
