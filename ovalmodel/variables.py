"""
Variable Model — externally supplied values for external variables.

A VariableModel maps a variable identifier to a declared datatype and an
ordered list of raw textual values. It is the value source consumed by
DefinitionModel.bind_variable_model().

Document shape:
    <oval_variables xmlns="http://oval.mitre.org/XMLSchema/oval-variables-5">
      <variables>
        <variable id="oval:x:var:1" datatype="int" comment="...">
          <value>1</value>
        </variable>
      </variables>
    </oval_variables>
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Optional

from .constants import OVAL_VARIABLES_NAMESPACE
from .errors import ModelImportError
from .values import Datatype

logger = logging.getLogger(__name__)


def _var_tag(local_name: str) -> str:
    return f"{{{OVAL_VARIABLES_NAMESPACE}}}{local_name}"


@dataclass
class BoundVariable:
    """Values declared for one identifier."""
    datatype: Datatype
    values: list[str] = field(default_factory=list)
    comment: Optional[str] = None


class VariableModel:
    """Identifier → (datatype, ordered textual values)."""

    def __init__(self):
        self._variables: dict[str, BoundVariable] = {}

    @classmethod
    def import_file(cls, path: str) -> VariableModel:
        """
        Create a variable model from one document.

        Raises:
            ModelImportError: If the document cannot be read or parsed
        """
        model = cls()
        model.merge(path)
        return model

    def add(
        self,
        variable_id: str,
        datatype: Datatype,
        values: list[str],
        comment: Optional[str] = None,
    ) -> None:
        """Declare values for an identifier, replacing earlier ones."""
        self._variables[variable_id] = BoundVariable(
            datatype=datatype,
            values=list(values),
            comment=comment,
        )

    def get_datatype(self, variable_id: str) -> Optional[Datatype]:
        """The declared datatype, or None when nothing is declared."""
        bound = self._variables.get(variable_id)
        return bound.datatype if bound else None

    def get_values(self, variable_id: str) -> list[str]:
        bound = self._variables.get(variable_id)
        return list(bound.values) if bound else []

    def ids(self) -> list[str]:
        return list(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def merge(self, path: str) -> None:
        """
        Add declarations from a variables document.

        Raises:
            ModelImportError: If the document cannot be read or parsed.
                Nothing is added in that case.
        """
        try:
            root = ET.parse(path).getroot()
        except (OSError, ET.ParseError) as e:
            raise ModelImportError(path, str(e)) from e

        parsed = _parse_variables(root, path)
        self._variables.update(parsed)
        logger.debug("Merged %d variable declarations from %s", len(parsed), path)


def _parse_variables(root: ET.Element, source: str) -> dict[str, BoundVariable]:
    if root.tag != _var_tag("oval_variables"):
        raise ModelImportError(source, f"unexpected root element {root.tag}")

    parsed: dict[str, BoundVariable] = {}
    for element in root.iterfind(f"{_var_tag('variables')}/{_var_tag('variable')}"):
        variable_id = element.get("id")
        datatype_text = element.get("datatype")
        if not variable_id or not datatype_text:
            raise ModelImportError(source, "variable requires id and datatype")
        try:
            datatype = Datatype.from_text(datatype_text)
        except ValueError as e:
            raise ModelImportError(source, f"unknown datatype '{datatype_text}'") from e

        parsed[variable_id] = BoundVariable(
            datatype=datatype,
            values=[value.text or "" for value in element.findall(_var_tag("value"))],
            comment=element.get("comment"),
        )
    return parsed
