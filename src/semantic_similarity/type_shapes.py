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
Resolved type shapes.

A type reference coming out of the program model is one of four shapes:
a plain named type, a constructed generic, an array or a pointer. The
helpers here render display names and collect the externally-defined
types (and namespaces) a reference touches, unwrapping generics, arrays
and pointers recursively.
"""

from dataclasses import dataclass
from typing import Optional, Set, Tuple, Union


@dataclass(frozen=True)
class NamedType:
    """A non-generic type, or the open definition of a generic one."""

    name: str                        # Fully qualified, e.g. "System.String"
    namespace: str = ""              # "" is the global namespace
    assembly: Optional[str] = None   # Defining assembly, None if unknown
    is_error: bool = False           # Unresolved reference
    is_void: bool = False

    @property
    def display_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class GenericType:
    """A constructed generic, e.g. List<Order>."""

    definition: NamedType            # name like "System.Collections.Generic.List<T>"
    arguments: Tuple["TypeShape", ...] = ()

    @property
    def display_name(self) -> str:
        base = self.definition.name.split("<", 1)[0]
        args = ", ".join(display_name(a) for a in self.arguments)
        return f"{base}<{args}>"


@dataclass(frozen=True)
class ArrayType:
    element: "TypeShape"
    rank: int = 1

    @property
    def display_name(self) -> str:
        return f"{display_name(self.element)}[{',' * (self.rank - 1)}]"


@dataclass(frozen=True)
class PointerType:
    pointee: "TypeShape"

    @property
    def display_name(self) -> str:
        return f"{display_name(self.pointee)}*"


TypeShape = Union[NamedType, GenericType, ArrayType, PointerType]

VOID = NamedType("void", is_void=True)


def display_name(shape: Optional[TypeShape]) -> str:
    """Human-readable, fully qualified name of a type shape."""
    if shape is None:
        return ""
    return shape.display_name


def collect_external_types(
    shape: Optional[TypeShape],
    home_assembly: Optional[str],
    external_types: Set[str],
    used_namespaces: Set[str],
) -> None:
    """
    Record the namespaces and external types reachable from a type reference.

    A named type contributes its namespace when that is not the global
    namespace, and contributes its open definition name when it is
    defined in an assembly other than ``home_assembly``. Generic
    arguments, array elements and pointees are visited recursively.
    Error types and void are ignored.

    Args:
        shape: The type reference to inspect (None is ignored)
        home_assembly: Assembly of the type being analyzed
        external_types: Accumulates external type names
        used_namespaces: Accumulates namespace names
    """
    if shape is None:
        return

    if isinstance(shape, ArrayType):
        collect_external_types(shape.element, home_assembly, external_types, used_namespaces)
        return

    if isinstance(shape, PointerType):
        collect_external_types(shape.pointee, home_assembly, external_types, used_namespaces)
        return

    if isinstance(shape, GenericType):
        _collect_named(shape.definition, home_assembly, external_types, used_namespaces)
        for argument in shape.arguments:
            collect_external_types(argument, home_assembly, external_types, used_namespaces)
        return

    _collect_named(shape, home_assembly, external_types, used_namespaces)


def _collect_named(
    named: NamedType,
    home_assembly: Optional[str],
    external_types: Set[str],
    used_namespaces: Set[str],
) -> None:
    if named.is_error or named.is_void:
        return

    if named.namespace:
        used_namespaces.add(named.namespace)

    # Both assemblies must be known to call a type external
    if named.assembly is not None and home_assembly is not None and named.assembly != home_assembly:
        external_types.add(named.name)
