"""
Typed values carried by variables.

A Value keeps the raw text exactly as it appeared in the document and
interprets it on demand according to its Datatype.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Datatype(Enum):
    """OVAL simple datatypes, valued by their document spelling."""
    BINARY = "binary"
    BOOLEAN = "boolean"
    EVR_STRING = "evr_string"
    DEBIAN_EVR_STRING = "debian_evr_string"
    FILESET_REVISION = "fileset_revision"
    FLOAT = "float"
    IOS_VERSION = "ios_version"
    INT = "int"
    IPV4_ADDRESS = "ipv4_address"
    IPV6_ADDRESS = "ipv6_address"
    STRING = "string"
    VERSION = "version"

    @classmethod
    def from_text(cls, text: str) -> Datatype:
        """
        Look up a datatype by its document spelling.

        Raises:
            ValueError: If the text names no known datatype
        """
        return cls(text.strip())


_TRUE_TEXTS = frozenset({"true", "1"})


@dataclass(frozen=True)
class Value:
    """A single typed value."""
    datatype: Datatype
    text: str

    @property
    def native(self) -> Any:
        """
        The value converted to the closest Python type.

        Raises:
            ValueError: If the text is not a valid int or float for an
                int or float datatype
        """
        if self.datatype == Datatype.INT:
            return int(self.text)
        if self.datatype == Datatype.FLOAT:
            return float(self.text)
        if self.datatype == Datatype.BOOLEAN:
            return self.text.strip().lower() in _TRUE_TEXTS
        return self.text

    def is_well_formed(self) -> bool:
        """True when native conversion succeeds."""
        try:
            self.native
        except ValueError:
            return False
        return True
