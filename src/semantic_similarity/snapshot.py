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
JSON program snapshots.

A snapshot is what an external front-end (compiler workspace, language
server) writes after resolving a solution: projects, documents, typed
declarations and lowered operation trees. Loading one gives an
InMemoryProgramModel the engine can analyze without any parser.

Minimal shape:

    {
      "projects": [{
        "name": "Shop", "assembly": "Shop",
        "documents": [{
          "path": "src/Orders.cs",
          "usings": ["System", "System.Linq"],
          "types": [{
            "name": "OrderService", "qualified_name": "Shop.OrderService",
            "kind": "class", "namespace": "Shop",
            "start_line": 3, "end_line": 80,
            "base_type": "object",
            "members": [
              {"member": "function", "name": "Place", "start_line": 10, "end_line": 30,
               "return_type": "void", "parameters": ["Shop.Order"],
               "accessibility": "public",
               "body": {"kind": "Block", "children": [...]}},
              {"member": "field", "name": "_log",
               "type": {"name": "ILogger", "namespace": "Logging", "assembly": "Logging"}}
            ]
          }]
        }]
      }]
    }

Type shapes are either a bare name string or an object with ``name``,
``namespace``, ``assembly`` and one of ``generic``/``arguments``,
``array``/``rank`` or ``pointer``.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union
from enum import Enum
import json
import logging

from .program import (
    Accessibility,
    Document,
    EventDeclaration,
    FieldDeclaration,
    FunctionDeclaration,
    FunctionKind,
    InMemoryProgramModel,
    MethodReference,
    Operation,
    OperationKind,
    Project,
    PropertyDeclaration,
    TypeDeclaration,
    TypeKind,
)
from .type_shapes import ArrayType, GenericType, NamedType, PointerType, TypeShape, VOID

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class SnapshotError(ValueError):
    """The snapshot file is missing required data or is malformed."""


def load_snapshot(path: Union[str, Path]) -> InMemoryProgramModel:
    """
    Load a JSON snapshot file.

    Raises:
        OSError: If the file cannot be read
        SnapshotError: If the content is not a valid snapshot
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"{path}: invalid JSON ({e})") from e
        except UnicodeDecodeError as e:
            raise SnapshotError(f"{path}: not UTF-8 text ({e})") from e

    model = model_from_dict(data)
    logger.info(f"Loaded snapshot {path} with {len(model.get_projects())} projects")
    return model


def model_from_dict(data: Dict[str, Any]) -> InMemoryProgramModel:
    """Build a program model from already-parsed snapshot data."""
    if not isinstance(data, dict) or not isinstance(data.get("projects"), list):
        raise SnapshotError("snapshot must be an object with a 'projects' list")

    projects = [_project(p) for p in data["projects"]]
    return InMemoryProgramModel(projects)


def type_shape_from_json(raw: Any) -> Optional[TypeShape]:
    """Decode a type shape; None stays None."""
    if raw is None:
        return None

    if isinstance(raw, str):
        if raw == "void":
            return VOID
        return NamedType(name=raw, namespace=raw.rsplit(".", 1)[0] if "." in raw else "")

    if not isinstance(raw, dict):
        raise SnapshotError(f"type shape must be a string or object, got {type(raw).__name__}")

    if "array" in raw:
        rank = _integer(raw, "rank", "array shape") if "rank" in raw else 1
        return ArrayType(element=type_shape_from_json(raw["array"]), rank=rank)
    if "pointer" in raw:
        return PointerType(pointee=type_shape_from_json(raw["pointer"]))

    named = NamedType(
        name=_required(raw, "name", "type shape"),
        namespace=raw.get("namespace", ""),
        assembly=raw.get("assembly"),
        is_error=bool(raw.get("error", False)),
        is_void=bool(raw.get("void", False)),
    )
    if raw.get("generic") or raw.get("arguments"):
        arguments = tuple(type_shape_from_json(a) for a in raw.get("arguments", []))
        return GenericType(definition=named, arguments=arguments)
    return named


def operation_from_json(raw: Dict[str, Any]) -> Operation:
    """Decode one operation node and its subtree."""
    if not isinstance(raw, dict):
        raise SnapshotError(f"operation must be an object, got {type(raw).__name__}")

    target = None
    if raw.get("target") is not None:
        t = raw["target"]
        target = MethodReference(
            signature=_required(t, "signature", "invocation target"),
            return_type=type_shape_from_json(t.get("return_type")),
            parameter_types=tuple(type_shape_from_json(p) for p in t.get("parameters", [])),
        )

    return Operation(
        kind=_enum(OperationKind, _required(raw, "kind", "operation")),
        children=tuple(operation_from_json(c) for c in raw.get("children", [])),
        type=type_shape_from_json(raw.get("type")),
        target=target,
        operator=raw.get("operator"),
    )


def _project(raw: Dict[str, Any]) -> Project:
    name = _required(raw, "name", "project")
    return Project(
        name=name,
        assembly=raw.get("assembly", name),
        documents=[_document(d) for d in raw.get("documents", [])],
        is_compilable=bool(raw.get("compilable", True)),
    )


def _document(raw: Dict[str, Any]) -> Document:
    return Document(
        file_path=_required(raw, "path", "document"),
        usings=tuple(raw.get("usings", [])),
        types=[_type(t, parent=None) for t in raw.get("types", [])],
        has_semantic_model=bool(raw.get("semantic_model", True)),
    )


def _type(raw: Dict[str, Any], parent: Optional[str]) -> TypeDeclaration:
    name = _required(raw, "name", "type")
    qualified = raw.get("qualified_name") or (f"{parent}.{name}" if parent else name)

    members: List = []
    for m in raw.get("members", []):
        members.append(_member(m, qualified))

    return TypeDeclaration(
        name=name,
        qualified_name=qualified,
        start_line=_integer(raw, "start_line", f"type {name}"),
        end_line=_integer(raw, "end_line", f"type {name}"),
        kind=_enum(TypeKind, raw.get("kind", "class")),
        namespace=raw.get("namespace", ""),
        base_type=type_shape_from_json(raw.get("base_type")),
        interfaces=tuple(type_shape_from_json(i) for i in raw.get("interfaces", [])),
        is_abstract=bool(raw.get("abstract", False)),
        is_static=bool(raw.get("static", False)),
        members=members,
    )


def _member(raw: Dict[str, Any], owner: str):
    member = raw.get("member", "function")

    if member == "function":
        return _function(raw, owner)
    if member == "type":
        return _type(raw, parent=owner)

    name = _required(raw, "name", f"{member} in {owner}")
    shape = type_shape_from_json(_required(raw, "type", f"{member} {owner}.{name}"))
    initializer = operation_from_json(raw["initializer"]) if raw.get("initializer") else None

    if member == "property":
        return PropertyDeclaration(
            name=name,
            type=shape,
            is_static=bool(raw.get("static", False)),
            is_read_only=bool(raw.get("read_only", False)),
            is_implicit=bool(raw.get("implicit", False)),
            accessors=tuple(
                _function(dict(a, kind="accessor"), owner) for a in raw.get("accessors", [])
            ),
            initializer=initializer,
        )
    if member == "field":
        return FieldDeclaration(
            name=name,
            type=shape,
            is_static=bool(raw.get("static", False)),
            is_readonly=bool(raw.get("readonly", False)),
            is_const=bool(raw.get("const", False)),
            is_implicit=bool(raw.get("implicit", False)),
            initializer=initializer,
        )
    if member == "event":
        return EventDeclaration(
            name=name,
            type=shape,
            is_static=bool(raw.get("static", False)),
            is_implicit=bool(raw.get("implicit", False)),
        )

    raise SnapshotError(f"unknown member kind {member!r} in {owner}")


def _function(raw: Dict[str, Any], owner: str) -> FunctionDeclaration:
    name = _required(raw, "name", f"function in {owner}")
    where = f"function {owner}.{name}"
    return_type = type_shape_from_json(raw.get("return_type"))
    body = operation_from_json(raw["body"]) if raw.get("body") else None

    return FunctionDeclaration(
        name=name,
        qualified_name=raw.get("qualified_name") or f"{owner}.{name}",
        start_line=_integer(raw, "start_line", where),
        end_line=_integer(raw, "end_line", where),
        kind=_enum(FunctionKind, raw.get("kind", "method")),
        return_type=return_type if return_type is not None else VOID,
        parameter_types=tuple(type_shape_from_json(p) for p in raw.get("parameters", [])),
        accessibility=_enum(Accessibility, raw.get("accessibility", "private")),
        is_static=bool(raw.get("static", False)),
        is_abstract=bool(raw.get("abstract", False)),
        is_virtual=bool(raw.get("virtual", False)),
        is_extern=bool(raw.get("extern", False)),
        is_implicit=bool(raw.get("implicit", False)),
        body=body,
    )


def _required(raw: Dict[str, Any], key: str, what: str) -> Any:
    try:
        return raw[key]
    except (KeyError, TypeError):
        raise SnapshotError(f"{what} is missing '{key}'") from None


def _integer(raw: Dict[str, Any], key: str, what: str) -> int:
    value = _required(raw, key, what)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise SnapshotError(f"{what} has a non-numeric '{key}': {value!r}") from None


def _enum(cls: Type[E], value: str) -> E:
    """Accept an enum value ("Invocation") or member name ("INVOCATION")."""
    try:
        return cls(value)
    except ValueError:
        pass
    try:
        return cls[str(value).upper()]
    except KeyError:
        raise SnapshotError(f"unknown {cls.__name__} {value!r}") from None
