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
Control-flow graphs over semantic operation trees.

The similarity engine only needs three numbers from a CFG: how many basic
blocks it has, how many of them end in a conditional jump and how many
loops it contains. ``build_control_flow_graph`` lowers an operation tree
into blocks linked by the edges of a ``networkx.DiGraph``, with an entry
and an exit block; shapes it cannot represent raise
``UnsupportedControlFlowError``. Loops are counted from the back edges of
a depth-first walk, so they do not depend on block layout.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import networkx as nx

from .program import Operation, OperationKind


class UnsupportedControlFlowError(ValueError):
    """The operation tree contains a construct the lowering cannot model."""


class BlockKind(str, Enum):
    ENTRY = "entry"
    BLOCK = "block"
    EXIT = "exit"


@dataclass(eq=False)
class BasicBlock:
    """A straight-line run of operations with at most two successors."""

    kind: BlockKind = BlockKind.BLOCK
    operations: List[OperationKind] = field(default_factory=list)
    fall_through: Optional["BasicBlock"] = None
    conditional: Optional["BasicBlock"] = None

    @property
    def successors(self) -> List["BasicBlock"]:
        return [b for b in (self.fall_through, self.conditional) if b is not None]


@dataclass(frozen=True)
class ControlFlowMetrics:
    basic_blocks: int = 0
    conditional_branches: int = 0
    loops: int = 0


@dataclass
class ControlFlowGraph:
    blocks: List[BasicBlock]                 # Layout order, entry first and exit last
    graph: nx.DiGraph

    @property
    def entry(self) -> BasicBlock:
        return self.blocks[0]

    @property
    def exit(self) -> BasicBlock:
        return self.blocks[-1]

    def back_edges(self) -> List[Tuple[BasicBlock, BasicBlock]]:
        """
        Edges that return to a block still on the depth-first stack.

        The walk starts at the entry and then restarts from any block it
        could not reach, such as catch handlers and code after a return.
        """
        on_stack = set()
        edges = []
        for source, target, label in nx.dfs_labeled_edges(self.graph):
            if label == "forward":
                on_stack.add(target)
            elif label == "reverse":
                on_stack.discard(target)
            elif label == "nontree" and target in on_stack:
                edges.append((source, target))
        return edges

    def metrics(self) -> ControlFlowMetrics:
        """Block, conditional-branch and loop counts."""
        branches = sum(1 for _, _, conditional in self.graph.edges(data="conditional") if conditional)
        loop_headers = {target for _, target in self.back_edges()}
        return ControlFlowMetrics(
            basic_blocks=self.graph.number_of_nodes(),
            conditional_branches=branches,
            loops=len(loop_headers),
        )


def build_control_flow_graph(body: Operation) -> ControlFlowGraph:
    """
    Lower a function body into a control-flow graph.

    Args:
        body: Root operation of the function body

    Returns:
        ControlFlowGraph whose first block is the entry and last is the exit

    Raises:
        UnsupportedControlFlowError: For goto, or break/continue with no
            enclosing loop or switch
    """
    return _GraphBuilder().build(body)


class _GraphBuilder:
    """Single-use lowering state."""

    def __init__(self):
        self._blocks: List[BasicBlock] = []
        self._graph = nx.DiGraph()
        self._exit = BasicBlock(kind=BlockKind.EXIT)
        # (continue target or None for switches, break target)
        self._jump_targets: List[Tuple[Optional[BasicBlock], BasicBlock]] = []
        self._current: Optional[BasicBlock] = None
        self._handlers = {
            OperationKind.CONDITIONAL: self._lower_conditional,
            OperationKind.COALESCE: self._lower_coalesce,
            OperationKind.LOOP: self._lower_loop,
            OperationKind.SWITCH: self._lower_switch,
            OperationKind.TRY: self._lower_try,
            OperationKind.RETURN: self._lower_exit,
            OperationKind.THROW: self._lower_exit,
            OperationKind.BRANCH: self._lower_branch,
            OperationKind.LAMBDA: self._lower_opaque,
        }

    def build(self, body: Operation) -> ControlFlowGraph:
        entry = BasicBlock(kind=BlockKind.ENTRY)
        self._place(entry)
        self._current = entry
        self._start(BasicBlock())

        self._lower(body)

        self._jump(self._exit)
        self._place(self._exit)
        return ControlFlowGraph(blocks=self._blocks, graph=self._graph)

    # -- block bookkeeping -------------------------------------------------

    def _place(self, block: BasicBlock) -> None:
        self._blocks.append(block)
        self._graph.add_node(block)

    def _link(self, source: BasicBlock, target: BasicBlock, conditional: bool = False) -> None:
        if conditional:
            source.conditional = target
        else:
            source.fall_through = target
        self._graph.add_edge(source, target, conditional=conditional)

    def _start(self, block: BasicBlock) -> None:
        """Make block current, falling through into it from the open block."""
        if self._current is not None and self._current.fall_through is None:
            self._link(self._current, block)
        self._place(block)
        self._current = block

    def _jump(self, target: BasicBlock) -> None:
        """Close the open block with an unconditional jump."""
        if self._current is not None:
            if self._current.fall_through is None:
                self._link(self._current, target)
            self._current = None

    def _open(self) -> BasicBlock:
        # Code after return/throw/break still gets a (unreachable) block
        if self._current is None:
            block = BasicBlock()
            self._place(block)
            self._current = block
        return self._current

    def _branch(self, when_false: BasicBlock, when_true: BasicBlock) -> None:
        """Close the open block with a conditional jump."""
        test = self._open()
        self._link(test, when_false, conditional=True)
        self._link(test, when_true)
        self._current = None

    # -- lowering ----------------------------------------------------------

    def _lower(self, op: Optional[Operation]) -> None:
        if op is None:
            return
        handler = self._handlers.get(op.kind)

        if handler is not None:
            handler(op)
            return

        # Recorded before the children so a trailing return closes the block
        self._open().operations.append(op.kind)
        for child in op.children:
            self._lower(child)

    def _lower_opaque(self, op: Operation) -> None:
        # Lambda bodies get their own graph in a real flow analysis
        self._open().operations.append(op.kind)

    def _lower_conditional(self, op: Operation) -> None:
        children = list(op.children) + [None, None, None]
        condition, when_true, when_false = children[:3]

        self._lower(condition)
        true_block = BasicBlock()
        join = BasicBlock()
        false_block = BasicBlock() if when_false is not None else join

        self._branch(when_false=false_block, when_true=true_block)
        self._start(true_block)
        self._lower(when_true)
        self._jump(join)

        if when_false is not None:
            self._start(false_block)
            self._lower(when_false)

        self._start(join)

    def _lower_coalesce(self, op: Operation) -> None:
        if not op.children:
            self._open().operations.append(op.kind)
            return

        self._lower(op.children[0])
        fallback = BasicBlock()
        join = BasicBlock()
        self._branch(when_false=join, when_true=fallback)
        self._start(fallback)
        for child in op.children[1:]:
            self._lower(child)
        self._start(join)

    def _lower_loop(self, op: Operation) -> None:
        header = BasicBlock()
        body = BasicBlock()
        after = BasicBlock()

        self._start(header)
        *conditions, loop_body = op.children or (None,)
        for condition in conditions:
            self._lower(condition)
        if conditions:
            self._branch(when_false=after, when_true=body)

        self._jump_targets.append((header, after))
        self._start(body)
        self._lower(loop_body)
        self._jump(header)
        self._jump_targets.pop()

        self._start(after)

    def _lower_switch(self, op: Operation) -> None:
        cases = [c for c in op.children if c.kind == OperationKind.SWITCH_CASE]
        for child in op.children:
            if child.kind != OperationKind.SWITCH_CASE:
                self._lower(child)

        join = BasicBlock()
        self._jump_targets.append((None, join))
        for case in cases:
            case_body = BasicBlock()
            next_test = BasicBlock()
            self._branch(when_false=next_test, when_true=case_body)
            self._start(case_body)
            for child in case.children:
                self._lower(child)
            self._jump(join)
            self._start(next_test)
        self._jump_targets.pop()

        self._start(join)

    def _lower_try(self, op: Operation) -> None:
        if not op.children:
            return

        body, *rest = op.children
        handlers = [c for c in rest if c.kind == OperationKind.CATCH]
        finally_parts = [c for c in rest if c.kind != OperationKind.CATCH]

        self._lower(body)
        after = BasicBlock()
        self._jump(after)

        # Handlers are entered through exception edges, which are implicit
        for handler in handlers:
            self._current = None
            self._start(BasicBlock())
            for child in handler.children:
                self._lower(child)
            self._jump(after)

        self._start(after)
        for part in finally_parts:
            self._lower(part)

    def _lower_exit(self, op: Operation) -> None:
        for child in op.children:
            self._lower(child)
        self._open().operations.append(op.kind)
        self._jump(self._exit)

    def _lower_branch(self, op: Operation) -> None:
        if op.operator == "break":
            if not self._jump_targets:
                raise UnsupportedControlFlowError("break outside of a loop or switch")
            self._open().operations.append(op.kind)
            self._jump(self._jump_targets[-1][1])
        elif op.operator == "continue":
            loops = [t for t in self._jump_targets if t[0] is not None]
            if not loops:
                raise UnsupportedControlFlowError("continue outside of a loop")
            self._open().operations.append(op.kind)
            self._jump(loops[-1][0])
        else:
            raise UnsupportedControlFlowError(f"unsupported branch kind: {op.operator!r}")
