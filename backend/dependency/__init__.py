"""
onchanged Dependency Package.

Descriptor parsing and watch-set discovery.
Requires Python 3.11+.
"""

from dependency.models import DependencyGraph, DescriptorReference, PathRole
from dependency.descriptor_parser import (
    DescriptorParser,
    parse_container_references,
    parse_leaf_references,
)
from dependency.tracker import DependencyTracker

__all__ = [
    # Data classes
    "DependencyGraph",
    "DescriptorReference",
    "PathRole",
    # Parsing
    "DescriptorParser",
    "parse_container_references",
    "parse_leaf_references",
    # Discovery
    "DependencyTracker",
]
