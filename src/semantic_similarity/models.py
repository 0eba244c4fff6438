# Semantic Similarity Engine - Find near-duplicate functions and types
# Copyright (C) 2025  Jonathan Louis
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Data models for semantic-similarity-engine.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class FunctionFeatureSet:
    """Structural and behavioural summary of one function."""

    qualified_name: str          # Containing type + name, no parameters
    file_path: str
    start_line: int              # 1-indexed
    name: str
    return_type: str
    parameter_types: Tuple[str, ...]
    invoked_signatures: FrozenSet[str]
    basic_block_count: int
    conditional_branch_count: int
    loop_count: int
    cyclomatic_complexity: int
    operation_counts: Mapping[str, int] = field(default_factory=dict, hash=False)
    accessed_types: FrozenSet[str] = frozenset()
    end_line: Optional[int] = None

    @property
    def line_count(self) -> int:
        """Number of lines in this function (0 when the end is unknown)."""
        if self.end_line is None:
            return 0
        return self.end_line - self.start_line + 1

    @property
    def location(self) -> str:
        """Human-readable location string."""
        return f"{self.file_path}:{self.start_line}"

    @property
    def signature(self) -> str:
        params = ", ".join(self.parameter_types)
        return f"{self.return_type} {self.qualified_name}({params})"


@dataclass(frozen=True)
class TypeFeatureSet:
    """Structural summary of one type and the methods it owns."""

    qualified_name: str
    file_path: str
    start_line: int
    name: str
    base_type: Optional[str] = None
    interfaces: FrozenSet[str] = frozenset()

    public_method_count: int = 0
    protected_method_count: int = 0
    private_method_count: int = 0
    static_method_count: int = 0
    abstract_method_count: int = 0
    virtual_method_count: int = 0

    property_count: int = 0
    read_only_property_count: int = 0
    static_property_count: int = 0

    field_count: int = 0
    static_field_count: int = 0
    readonly_field_count: int = 0
    const_field_count: int = 0

    event_count: int = 0

    nested_class_count: int = 0
    nested_struct_count: int = 0
    nested_enum_count: int = 0
    nested_interface_count: int = 0

    average_method_complexity: float = 0.0
    external_types: FrozenSet[str] = frozenset()
    used_namespaces: FrozenSet[str] = frozenset()
    line_count: int = 0
    methods: Tuple[FunctionFeatureSet, ...] = ()

    @property
    def location(self) -> str:
        return f"{self.file_path}:{self.start_line}"

    @property
    def method_count(self) -> int:
        return len(self.methods)


@dataclass(frozen=True)
class SimilarityResult:
    """A group of mutually similar feature sets."""

    members: Tuple                   # Feature sets, at least two
    average_score: float             # Mean of the scores that formed the group
    id: int = 0                      # 1-based rank after sorting

    kind = "symbol"

    @property
    def size(self) -> int:
        """Number of members in this group."""
        return len(self.members)

    @property
    def files(self) -> List[str]:
        """Unique files in this group, in first-seen order."""
        return list(dict.fromkeys(m.file_path for m in self.members))

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def representative(self):
        """The member the group was seeded from."""
        return self.members[0]

    def contains(self, qualified_name: str) -> bool:
        return any(m.qualified_name == qualified_name for m in self.members)

    def total_lines(self) -> int:
        """Total lines across all members."""
        return sum(m.line_count for m in self.members)


@dataclass(frozen=True)
class FunctionSimilarityResult(SimilarityResult):
    kind = "function"

    @property
    def functions(self) -> Tuple[FunctionFeatureSet, ...]:
        return self.members


@dataclass(frozen=True)
class TypeSimilarityResult(SimilarityResult):
    kind = "type"

    @property
    def types(self) -> Tuple[TypeFeatureSet, ...]:
        return self.members


@dataclass(frozen=True)
class SimilarMatch:
    """The closest counterpart of one symbol inside its similarity group."""

    qualified_name: str
    match: object                    # FunctionFeatureSet or TypeFeatureSet
    score: float
    group: SimilarityResult

