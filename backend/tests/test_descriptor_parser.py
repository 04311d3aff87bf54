"""
Tests for the Descriptor Parser.

Requires Python 3.11+.
"""

from pathlib import Path

import pytest

from dependency.descriptor_parser import (
    DescriptorParser,
    parse_container_references,
    parse_leaf_references,
)
from dependency.models import DescriptorReference
from conftest import CSHARP_PROJECT_KIND, SOLUTION_FOLDER_KIND, project_xml, solution_text
from utils.errors import DescriptorParseError


class TestContainerReferences:
    """Test cases for solution-style reference extraction."""

    def test_references_in_order(self):
        """Test kinds and relative paths come back in file order."""
        text = solution_text(
            (CSHARP_PROJECT_KIND, "core", "core\\core.csproj"),
            (SOLUTION_FOLDER_KIND, "Items", "Items"),
        )

        references = parse_container_references(text)

        assert references == [
            DescriptorReference(CSHARP_PROJECT_KIND, "core\\core.csproj"),
            DescriptorReference(SOLUTION_FOLDER_KIND, "Items"),
        ]

    def test_project_file_has_no_references(self):
        """Test markup descriptors are not mistaken for containers."""
        assert parse_container_references(project_xml("a.c")) == []

    def test_malformed_lines_are_skipped(self):
        """Test lines missing the project GUID do not match."""
        text = 'Project("{ABC}") = "x", "x.proj"\n'
        assert parse_container_references(text) == []


class TestLeafReferences:
    """Test cases for attribute-style reference extraction."""

    def test_include_attributes_of_any_element(self):
        """Test every element's Include is collected regardless of tag."""
        data = """<Project>
          <ItemGroup>
            <ClCompile Include="a.cpp" />
            <ClInclude Include="a.h" />
            <None Include="readme.txt" />
            <ProjectReference Include="..\\lib\\lib.vcxproj" />
            <Reference Name="NoInclude" />
          </ItemGroup>
        </Project>"""

        assert parse_leaf_references(data) == ["a.cpp", "a.h", "readme.txt", "..\\lib\\lib.vcxproj"]

    def test_custom_attribute_names(self):
        """Test the attribute names are configurable."""
        data = '<root><item Source="x.c" Include="y.c" /></root>'
        assert parse_leaf_references(data, attributes=("Source",)) == ["x.c"]

    def test_namespaced_document(self):
        """Test a default namespace does not hide attributes."""
        assert parse_leaf_references(project_xml("one.c", "two.c").encode()) == ["one.c", "two.c"]


class TestDescriptorParser:
    """Test cases for file-based parsing."""

    @pytest.fixture
    def parser(self) -> DescriptorParser:
        return DescriptorParser()

    def test_missing_file(self, parser: DescriptorParser, tmp_path: Path):
        """Test unreadable descriptors raise DescriptorParseError."""
        with pytest.raises(DescriptorParseError):
            parser.container_references(tmp_path / "nope.sln")

    def test_invalid_markup(self, parser: DescriptorParser, tmp_path: Path):
        """Test malformed markup raises DescriptorParseError."""
        broken = tmp_path / "broken.proj"
        broken.write_text("<Project><ItemGroup></Project>")

        with pytest.raises(DescriptorParseError) as excinfo:
            parser.leaf_references(broken)
        assert excinfo.value.path == broken

    def test_byte_order_mark(self, parser: DescriptorParser, tmp_path: Path):
        """Test solutions saved with a BOM still parse."""
        solution = tmp_path / "bom.sln"
        solution.write_bytes(
            b"\xef\xbb\xbf" + solution_text((CSHARP_PROJECT_KIND, "a", "a.csproj")).encode()
        )

        assert parser.container_references(solution)[0].relative_path == "a.csproj"
