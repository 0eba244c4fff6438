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
Program model consumed by the similarity engine.

The engine never parses source text. A front-end (a compiler workspace,
a language server, a snapshot file) supplies projects, documents and
typed declarations whose bodies are already lowered to semantic
operation trees. Everything the extractors need is described here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union, TYPE_CHECKING

from .type_shapes import TypeShape, VOID

if TYPE_CHECKING:
    from .cfg import ControlFlowGraph


class OperationKind(str, Enum):
    """Kinds of semantic operation nodes inside a function body."""

    BLOCK = "Block"
    EXPRESSION_STATEMENT = "ExpressionStatement"
    VARIABLE_DECLARATION = "VariableDeclaration"
    RETURN = "Return"
    THROW = "Throw"
    INVOCATION = "Invocation"
    OBJECT_CREATION = "ObjectCreation"
    ARRAY_CREATION = "ArrayCreation"
    FIELD_REFERENCE = "FieldReference"
    PROPERTY_REFERENCE = "PropertyReference"
    EVENT_REFERENCE = "EventReference"
    LOCAL_REFERENCE = "LocalReference"
    PARAMETER_REFERENCE = "ParameterReference"
    INSTANCE_REFERENCE = "InstanceReference"
    TYPE_REFERENCE = "TypeOf"
    LITERAL = "Literal"
    BINARY = "Binary"
    UNARY = "Unary"
    ASSIGNMENT = "SimpleAssignment"
    COMPOUND_ASSIGNMENT = "CompoundAssignment"
    CONVERSION = "Conversion"
    CONDITIONAL = "Conditional"
    COALESCE = "Coalesce"
    LOOP = "Loop"
    SWITCH = "Switch"
    SWITCH_CASE = "SwitchCase"
    TRY = "Try"
    CATCH = "CatchClause"
    BRANCH = "Branch"
    AWAIT = "Await"
    LAMBDA = "AnonymousFunction"
    INTERPOLATED_STRING = "InterpolatedString"
    OTHER = "None"


@dataclass(frozen=True)
class MethodReference:
    """Resolved target of an invocation."""

    signature: str                               # e.g. "Logger.Log(string)"
    return_type: Optional[TypeShape] = None
    parameter_types: Tuple[TypeShape, ...] = ()


@dataclass(frozen=True)
class Operation:
    """
    One node of a function body's semantic operation tree.

    ``type`` is the type of the referenced symbol for member references,
    the created type for object creation and the operand type for typeof.
    ``target`` is set for invocations. ``operator`` carries the operator
    token for binary/unary nodes and the branch kind ("break",
    "continue", "goto") for branch nodes.

    Structured statements follow a fixed child layout:
    Conditional is (condition, when_true[, when_false]); Loop is
    (condition..., body) with the body last; Switch is (value, cases...);
    Try is (body, catch clauses...[, finally]).
    """

    kind: OperationKind
    children: Tuple["Operation", ...] = ()
    type: Optional[TypeShape] = None
    target: Optional[MethodReference] = None
    operator: Optional[str] = None

    def walk(self) -> Iterator["Operation"]:
        """Pre-order traversal of this node and all descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


class Accessibility(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"
    INTERNAL = "internal"
    PROTECTED_INTERNAL = "protected internal"
    PRIVATE_PROTECTED = "private protected"


class FunctionKind(str, Enum):
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    DESTRUCTOR = "destructor"
    OPERATOR = "operator"
    ACCESSOR = "accessor"


class TypeKind(str, Enum):
    CLASS = "class"
    RECORD = "record"
    STRUCT = "struct"
    INTERFACE = "interface"
    ENUM = "enum"
    DELEGATE = "delegate"


@dataclass(eq=False)
class FunctionDeclaration:
    """A method, constructor, operator or accessor with its resolved signature."""

    name: str
    qualified_name: str          # Containing type + name, no parameter list
    start_line: int              # 1-indexed
    end_line: int                # inclusive
    kind: FunctionKind = FunctionKind.METHOD
    return_type: TypeShape = VOID
    parameter_types: Tuple[TypeShape, ...] = ()
    accessibility: Accessibility = Accessibility.PRIVATE
    is_static: bool = False
    is_abstract: bool = False
    is_virtual: bool = False
    is_extern: bool = False
    is_implicit: bool = False    # Compiler-synthesized
    body: Optional[Operation] = None

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    @property
    def is_accessor(self) -> bool:
        return self.kind == FunctionKind.ACCESSOR


@dataclass(eq=False)
class PropertyDeclaration:
    name: str
    type: TypeShape
    is_static: bool = False
    is_read_only: bool = False
    is_implicit: bool = False
    accessors: Tuple[FunctionDeclaration, ...] = ()
    initializer: Optional[Operation] = None


@dataclass(eq=False)
class FieldDeclaration:
    name: str
    type: TypeShape
    is_static: bool = False
    is_readonly: bool = False
    is_const: bool = False
    is_implicit: bool = False
    initializer: Optional[Operation] = None


@dataclass(eq=False)
class EventDeclaration:
    name: str
    type: TypeShape
    is_static: bool = False
    is_implicit: bool = False


Member = Union[
    FunctionDeclaration,
    PropertyDeclaration,
    FieldDeclaration,
    EventDeclaration,
    "TypeDeclaration",
]


@dataclass(eq=False)
class TypeDeclaration:
    """A named type and its directly declared members."""

    name: str
    qualified_name: str
    start_line: int
    end_line: int
    kind: TypeKind = TypeKind.CLASS
    namespace: str = ""
    base_type: Optional[TypeShape] = None
    interfaces: Tuple[TypeShape, ...] = ()   # All implemented interfaces, inherited included
    is_abstract: bool = False
    is_static: bool = False
    members: List[Member] = field(default_factory=list)

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def nested_types(self) -> List["TypeDeclaration"]:
        return [m for m in self.members if isinstance(m, TypeDeclaration)]


@dataclass(eq=False)
class Document:
    """A source file with its resolved declarations."""

    file_path: str
    usings: Tuple[str, ...] = ()             # Imported namespaces
    types: List[TypeDeclaration] = field(default_factory=list)
    has_semantic_model: bool = True

    def iter_types(self) -> Iterator[TypeDeclaration]:
        """All type declarations in the file, nested ones included."""
        stack = list(reversed(self.types))
        while stack:
            type_decl = stack.pop()
            yield type_decl
            stack.extend(reversed(type_decl.nested_types()))

    def iter_functions(self) -> Iterator[FunctionDeclaration]:
        """All function declarations owned by types in the file."""
        for type_decl in self.iter_types():
            for member in type_decl.members:
                if isinstance(member, FunctionDeclaration):
                    yield member


@dataclass(eq=False)
class Project:
    name: str
    assembly: str
    documents: List[Document] = field(default_factory=list)
    is_compilable: bool = True


class ProgramModel(ABC):
    """Enumerable project → document → declaration model."""

    @property
    def is_loaded(self) -> bool:
        return True

    @abstractmethod
    def get_projects(self) -> List[Project]:
        """Projects currently available for analysis."""
        pass

    def build_control_flow_graph(self, function: FunctionDeclaration) -> "ControlFlowGraph":
        """
        Build a control-flow graph for a function body.

        Best effort: raises for bodies the lowering cannot represent.
        Front-ends with a native flow analysis should override this.
        """
        from .cfg import build_control_flow_graph

        if function.body is None:
            raise ValueError(f"{function.qualified_name} has no body")
        return build_control_flow_graph(function.body)


class InMemoryProgramModel(ProgramModel):
    """Program model over already-materialized projects."""

    def __init__(self, projects: Optional[List[Project]] = None):
        self._projects = list(projects or [])

    @property
    def is_loaded(self) -> bool:
        return bool(self._projects)

    def get_projects(self) -> List[Project]:
        return list(self._projects)
