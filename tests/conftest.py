"""Shared fixtures built on the sample documents."""

import pytest

from sample_documents import DOCUMENT_ORDER, VARIABLES_XML, build_document

from ovalmodel.model import DefinitionModel


@pytest.fixture
def write_file(tmp_path):
    """Write text content to a file under tmp_path and return its path."""
    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def sample_path(write_file):
    return write_file("definitions.xml", build_document())


@pytest.fixture
def reordered_path(write_file):
    return write_file("reordered.xml", build_document(tuple(reversed(DOCUMENT_ORDER))))


@pytest.fixture
def variables_path(write_file):
    return write_file("variables.xml", VARIABLES_XML)


@pytest.fixture
def sample_model(sample_path):
    return DefinitionModel.import_file(sample_path)
