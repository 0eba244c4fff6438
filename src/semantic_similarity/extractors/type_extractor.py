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
Type feature extraction.

Members are dispatched by kind into counters. Every declared type is
checked for being external to the type's own assembly, and the
operation trees of the type's own members (not those of nested types)
are walked for references that signatures alone do not reveal.
"""

from collections import Counter
from typing import Iterator, List, Optional, Set
import logging

from .base import BaseExtractor
from .function_extractor import FunctionFeatureExtractor
from ..cancellation import CancellationToken, ensure_token
from ..config import SimilaritySettings, DEFAULT_SETTINGS
from ..models import FunctionFeatureSet, TypeFeatureSet
from ..program import (
    Accessibility,
    Document,
    EventDeclaration,
    FieldDeclaration,
    FunctionDeclaration,
    FunctionKind,
    Operation,
    Project,
    PropertyDeclaration,
    TypeDeclaration,
    TypeKind,
)
from ..type_shapes import TypeShape, collect_external_types, display_name

logger = logging.getLogger(__name__)


# Kinds that are compared at all
ANALYZED_KINDS = {TypeKind.CLASS, TypeKind.RECORD}

_ACCESS_COUNTERS = {
    Accessibility.PUBLIC: "public_method_count",
    Accessibility.PROTECTED: "protected_method_count",
    Accessibility.PRIVATE: "private_method_count",
}

_NESTED_COUNTERS = {
    TypeKind.CLASS: "nested_class_count",
    TypeKind.RECORD: "nested_class_count",
    TypeKind.STRUCT: "nested_struct_count",
    TypeKind.ENUM: "nested_enum_count",
    TypeKind.INTERFACE: "nested_interface_count",
}


class TypeFeatureExtractor(BaseExtractor):
    """Builds TypeFeatureSets for concrete classes and records."""

    def __init__(
        self,
        function_extractor: FunctionFeatureExtractor,
        settings: SimilaritySettings = DEFAULT_SETTINGS,
    ):
        self._functions = function_extractor
        self._settings = settings

    def is_candidate(self, type_decl: TypeDeclaration) -> bool:
        return (
            type_decl.kind in ANALYZED_KINDS
            and not type_decl.is_abstract
            and not type_decl.is_static
        )

    def extract(
        self,
        type_decl: TypeDeclaration,
        document: Document,
        project: Optional[Project] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[TypeFeatureSet]:
        token = ensure_token(cancellation)
        token.raise_if_cancelled()

        if not self.is_candidate(type_decl):
            return None

        min_lines = self._settings.type_min_lines
        if type_decl.line_count < min_lines:
            logger.debug(
                f"Type {type_decl.name} in {document.file_path} has {type_decl.line_count} lines, "
                f"less than filter {min_lines}. Skipping."
            )
            return None

        home = project.assembly if project is not None else None
        external: Set[str] = set()
        namespaces: Set[str] = {u for u in document.usings if u}

        def note(shape: Optional[TypeShape]) -> None:
            collect_external_types(shape, home, external, namespaces)

        note(type_decl.base_type)
        for interface in type_decl.interfaces:
            note(interface)

        counts: Counter = Counter()
        methods: List[FunctionFeatureSet] = []
        complexity_sum = 0

        for member in type_decl.members:
            token.raise_if_cancelled()

            if isinstance(member, FunctionDeclaration):
                if member.is_accessor or member.is_implicit:
                    continue
                self._count_method(member, counts)
                note(member.return_type)
                for parameter in member.parameter_types:
                    note(parameter)

                if member.kind == FunctionKind.METHOD:
                    features = self._functions.try_extract(member, document, project, token)
                    if features is not None:
                        methods.append(features)
                        complexity_sum += features.cyclomatic_complexity

            elif isinstance(member, PropertyDeclaration):
                if member.is_implicit:
                    continue
                counts["property_count"] += 1
                if member.is_read_only:
                    counts["read_only_property_count"] += 1
                if member.is_static:
                    counts["static_property_count"] += 1
                note(member.type)

            elif isinstance(member, FieldDeclaration):
                if member.is_implicit:
                    continue
                counts["field_count"] += 1
                if member.is_static:
                    counts["static_field_count"] += 1
                if member.is_readonly:
                    counts["readonly_field_count"] += 1
                if member.is_const:
                    counts["const_field_count"] += 1
                note(member.type)

            elif isinstance(member, EventDeclaration):
                if member.is_implicit:
                    continue
                counts["event_count"] += 1
                note(member.type)

            elif isinstance(member, TypeDeclaration):
                counter = _NESTED_COUNTERS.get(member.kind)
                if counter:
                    counts[counter] += 1

        # References inside bodies and initializers
        for op in _own_operations(type_decl):
            token.raise_if_cancelled()
            note(op.type)
            if op.target is not None:
                note(op.target.return_type)
                for parameter in op.target.parameter_types:
                    note(parameter)

        average = complexity_sum / len(methods) if methods else 0.0

        return TypeFeatureSet(
            qualified_name=type_decl.qualified_name,
            file_path=document.file_path,
            start_line=type_decl.start_line,
            name=type_decl.name,
            base_type=display_name(type_decl.base_type) or None,
            interfaces=frozenset(display_name(i) for i in type_decl.interfaces),
            average_method_complexity=average,
            external_types=frozenset(external),
            used_namespaces=frozenset(namespaces),
            line_count=type_decl.line_count,
            methods=tuple(methods),
            **counts,
        )

    @staticmethod
    def _count_method(method: FunctionDeclaration, counts: Counter) -> None:
        counter = _ACCESS_COUNTERS.get(method.accessibility)
        if counter:
            counts[counter] += 1
        if method.is_static:
            counts["static_method_count"] += 1
        if method.is_abstract:
            counts["abstract_method_count"] += 1
        if method.is_virtual:
            counts["virtual_method_count"] += 1


def _own_operations(type_decl: TypeDeclaration) -> Iterator[Operation]:
    """Every operation in the type's own members; nested types are not entered."""
    for member in type_decl.members:
        roots: List[Optional[Operation]] = []
        if isinstance(member, FunctionDeclaration):
            roots.append(member.body)
        elif isinstance(member, PropertyDeclaration):
            roots.append(member.initializer)
            roots.extend(accessor.body for accessor in member.accessors)
        elif isinstance(member, FieldDeclaration):
            roots.append(member.initializer)

        for root in roots:
            if root is not None:
                yield from root.walk()
