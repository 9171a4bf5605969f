# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-19
"""
Scope graph: lexical scopes with explicitly enumerated exit edges.

Every `HBlock` of a procedure body becomes a `Scope` owning its locals in
declaration order. Every way control can leave a scope is an `ExitEdge`:

  FALLTHROUGH  end of the block is reachable (loop bodies: back to the head)
  RETURN       unwinds every scope up to and including the procedure body
  BREAK        unwinds scopes up to and including the innermost loop body
  CONTINUE     same unwind as BREAK, lands on the loop head instead

Each edge records how many locals of each unwound scope were declared before
the exit point (those are the live ones) and which binding, if any, the
edge consumes (`return x` moves `x` out instead of destroying it).

Statements after a terminator in the same block are unreachable and do not
contribute locals or edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from liftc.core.span import Span
from liftc.core.types_core import TypeId
from liftc.stage1 import hir_nodes as H

ScopeId = int
EdgeId = int


class ExitKind(Enum):
	FALLTHROUGH = auto()
	RETURN = auto()
	BREAK = auto()
	CONTINUE = auto()


@dataclass(frozen=True)
class LocalVariable:
	"""A local introduced by a declaration inside a scope (never a parameter)."""

	binding_id: H.BindingId
	name: str
	type_id: TypeId
	order: int  # declaration index within the owning scope
	decl_node: H.NodeId = 0
	loc: Span = field(default_factory=Span)


@dataclass
class ExitEdge:
	edge_id: EdgeId
	kind: ExitKind
	origin: ScopeId
	unwound: Tuple[ScopeId, ...]  # innermost first
	anchor: H.NodeId  # exiting statement, or the block itself for FALLTHROUGH
	live_counts: Dict[ScopeId, int] = field(default_factory=dict)
	consumed: FrozenSet[H.BindingId] = frozenset()
	loc: Span = field(default_factory=Span)


@dataclass
class Scope:
	scope_id: ScopeId
	parent: Optional[ScopeId]
	block_node: H.NodeId
	is_loop_body: bool = False
	locals: List[LocalVariable] = field(default_factory=list)
	# Anchors of every statement the front end saw leaving this scope.
	exit_points: List[H.NodeId] = field(default_factory=list)
	exit_edges: List[EdgeId] = field(default_factory=list)
	can_fall_through: bool = True


@dataclass
class ScopeGraph:
	proc_name: str
	root: ScopeId
	scopes: Dict[ScopeId, Scope] = field(default_factory=dict)
	edges: Dict[EdgeId, ExitEdge] = field(default_factory=dict)

	def scope_chain(self, scope_id: ScopeId) -> List[ScopeId]:
		"""`scope_id` and its ancestors, innermost first."""
		out: List[ScopeId] = []
		cur: Optional[ScopeId] = scope_id
		while cur is not None:
			out.append(cur)
			cur = self.scopes[cur].parent
		return out


class LoopControlOutsideLoop(AssertionError):
	"""`break`/`continue` outside a loop reached the scope builder (front-end bug)."""


@dataclass
class _Builder:
	proc: H.HProc
	binding_types: Mapping[H.BindingId, TypeId]
	graph: ScopeGraph = field(init=False)
	_next_scope: int = field(init=False, default=0)
	_next_edge: int = field(init=False, default=0)
	_synthetic_binding: int = field(init=False, default=-1)
	_names: Dict[ScopeId, Dict[str, LocalVariable]] = field(init=False, default_factory=dict)

	def build(self) -> ScopeGraph:
		self.graph = ScopeGraph(proc_name=self.proc.name, root=0)
		root = self._walk_block(self.proc.body, parent=None, is_loop_body=False)
		self.graph.root = root
		return self.graph

	def _walk_block(self, block: H.HBlock, *, parent: Optional[ScopeId], is_loop_body: bool) -> ScopeId:
		scope_id = self._next_scope
		self._next_scope += 1
		scope = Scope(scope_id=scope_id, parent=parent, block_node=block.node_id, is_loop_body=is_loop_body)
		self.graph.scopes[scope_id] = scope
		self._names[scope_id] = {}
		falls = True
		for stmt in block.statements:
			if not self._walk_stmt(stmt, scope):
				falls = False
				break
		scope.can_fall_through = falls
		if falls:
			self._add_edge(ExitKind.FALLTHROUGH, scope, (scope_id,), anchor=block.node_id, loc=block.loc)
		return scope_id

	def _walk_stmt(self, stmt: H.HStmt, scope: Scope) -> bool:
		"""Process one statement; returns False when control cannot continue after it."""
		if isinstance(stmt, H.HLet):
			self._declare(stmt, scope)
			return True
		if isinstance(stmt, H.HReturn):
			unwound = tuple(self.graph.scope_chain(scope.scope_id))
			consumed: FrozenSet[H.BindingId] = frozenset()
			if isinstance(stmt.value, H.HVar):
				local = self._lookup(stmt.value, scope.scope_id)
				if local is not None:
					consumed = frozenset({local.binding_id})
			self._add_edge(ExitKind.RETURN, scope, unwound, anchor=stmt.node_id, consumed=consumed, loc=stmt.loc)
			return False
		if isinstance(stmt, (H.HBreak, H.HContinue)):
			kind = ExitKind.BREAK if isinstance(stmt, H.HBreak) else ExitKind.CONTINUE
			chain: List[ScopeId] = []
			for sid in self.graph.scope_chain(scope.scope_id):
				chain.append(sid)
				if self.graph.scopes[sid].is_loop_body:
					break
			else:
				raise LoopControlOutsideLoop(f"{kind.name.lower()} outside of a loop in '{self.proc.name}'")
			self._add_edge(kind, scope, tuple(chain), anchor=stmt.node_id, loc=stmt.loc)
			return False
		if isinstance(stmt, H.HIf):
			then_id = self._walk_block(stmt.then_block, parent=scope.scope_id, is_loop_body=False)
			then_falls = self.graph.scopes[then_id].can_fall_through
			else_falls = True
			if stmt.else_block is not None:
				else_id = self._walk_block(stmt.else_block, parent=scope.scope_id, is_loop_body=False)
				else_falls = self.graph.scopes[else_id].can_fall_through
			return then_falls or else_falls
		if isinstance(stmt, H.HWhile):
			self._walk_block(stmt.body, parent=scope.scope_id, is_loop_body=True)
			return True
		if isinstance(stmt, H.HBlock):
			inner = self._walk_block(stmt, parent=scope.scope_id, is_loop_body=False)
			return self.graph.scopes[inner].can_fall_through
		return True

	def _declare(self, stmt: H.HLet, scope: Scope) -> None:
		ty = None
		if stmt.binding_id is not None:
			ty = self.binding_types.get(stmt.binding_id)
		if ty is None:
			ty = stmt.declared_type
		if ty is None:
			# Untyped declaration: the front end already reported it.
			return
		binding_id = stmt.binding_id
		if binding_id is None:
			binding_id = self._synthetic_binding
			self._synthetic_binding -= 1
		local = LocalVariable(
			binding_id=binding_id,
			name=stmt.name,
			type_id=ty,
			order=len(scope.locals),
			decl_node=stmt.node_id,
			loc=stmt.loc,
		)
		scope.locals.append(local)
		self._names[scope.scope_id][stmt.name] = local

	def _lookup(self, var: H.HVar, scope_id: ScopeId) -> Optional[LocalVariable]:
		for sid in self.graph.scope_chain(scope_id):
			for local in reversed(self.graph.scopes[sid].locals):
				if var.binding_id is not None and local.binding_id == var.binding_id:
					return local
			if var.binding_id is None:
				local = self._names[sid].get(var.name)
				if local is not None:
					return local
		return None

	def _add_edge(
		self,
		kind: ExitKind,
		origin: Scope,
		unwound: Tuple[ScopeId, ...],
		*,
		anchor: H.NodeId,
		consumed: FrozenSet[H.BindingId] = frozenset(),
		loc: Span | None = None,
	) -> None:
		edge = ExitEdge(
			edge_id=self._next_edge,
			kind=kind,
			origin=origin.scope_id,
			unwound=unwound,
			anchor=anchor,
			live_counts={sid: len(self.graph.scopes[sid].locals) for sid in unwound},
			consumed=consumed,
			loc=loc or Span(),
		)
		self._next_edge += 1
		self.graph.edges[edge.edge_id] = edge
		for sid in unwound:
			scope = self.graph.scopes[sid]
			scope.exit_edges.append(edge.edge_id)
			scope.exit_points.append(anchor)


def build_scope_graph(proc: H.HProc, binding_types: Mapping[H.BindingId, TypeId] | None = None) -> ScopeGraph:
	"""Build the scope graph of `proc` (NodeIds must already be assigned)."""
	return _Builder(proc=proc, binding_types=binding_types or {}).build()


__all__ = [
	"ScopeId",
	"EdgeId",
	"ExitKind",
	"LocalVariable",
	"ExitEdge",
	"Scope",
	"ScopeGraph",
	"LoopControlOutsideLoop",
	"build_scope_graph",
]
