"""
onchanged Descriptor Parser.

Extracts the two facts the tracker needs from solution and project
files: which sub-descriptors a container references, and which paths a
leaf-bearing descriptor references.
Requires Python 3.11+.
"""

import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from pathlib import Path

from dependency.models import DescriptorReference
from utils.config import get_settings
from utils.errors import DescriptorParseError
from utils.logger import LoggerMixin

# Project("{KIND-GUID}") = "Name", "relative\path.proj", "{PROJECT-GUID}"
CONTAINER_REFERENCE_RE = re.compile(
    r'Project\("\{([^}]*)\}"\) = "[^"]*", "([^"]*)", "\{[^}]*\}"'
)


def parse_container_references(text: str) -> list[DescriptorReference]:
    """
    Find sub-descriptor references in container descriptor text.

    Args:
        text: Raw descriptor contents

    Returns:
        (kind, relative path) references in file order
    """
    return [
        DescriptorReference(kind=match.group(1), relative_path=match.group(2))
        for match in CONTAINER_REFERENCE_RE.finditer(text)
    ]


def parse_leaf_references(data: bytes | str, attributes: Iterable[str] = ("Include",)) -> list[str]:
    """
    Collect path-valued attributes from a markup descriptor.

    Every element is inspected, whatever its tag, so source, header,
    resource and project references are all returned.

    Args:
        data: Raw descriptor contents
        attributes: Attribute names holding paths

    Returns:
        Attribute values in document order

    Raises:
        ET.ParseError: If the descriptor is not well-formed markup
    """
    names = tuple(attributes)
    root = ET.fromstring(data)
    references: list[str] = []
    for element in root.iter():
        for name in names:
            value = element.get(name)
            if value:
                references.append(value)
    return references


class DescriptorParser(LoggerMixin):
    """Reads descriptor files and applies the parsing rules above."""

    def __init__(self, include_attributes: list[str] | None = None) -> None:
        """
        Initialize the parser.

        Args:
            include_attributes: Attribute names holding leaf paths
        """
        settings = get_settings()
        self._include_attributes = include_attributes or settings.descriptor.include_attributes

    def _read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise DescriptorParseError(path, e.strerror or str(e)) from e

    def container_references(self, path: Path) -> list[DescriptorReference]:
        """
        Read a descriptor and return its sub-descriptor references.

        Raises:
            DescriptorParseError: If the file cannot be read or decoded
        """
        data = self._read(path)
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DescriptorParseError(path, str(e)) from e
        references = parse_container_references(text)
        self.log.debug("container_parsed", path=str(path), references=len(references))
        return references

    def leaf_references(self, path: Path) -> list[str]:
        """
        Read a descriptor and return its path-valued attribute references.

        Raises:
            DescriptorParseError: If the file cannot be read or is not valid markup
        """
        data = self._read(path)
        try:
            references = parse_leaf_references(data, self._include_attributes)
        except ET.ParseError as e:
            raise DescriptorParseError(path, str(e)) from e
        self.log.debug("descriptor_parsed", path=str(path), references=len(references))
        return references
