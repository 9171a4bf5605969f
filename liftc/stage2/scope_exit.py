# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-19
"""
Scope-exit destructor inserter.

For every exit edge of a scope graph, schedule a destroy for each local that
is live on that edge and whose type has a non-default effective `=destroy`:

  - unwound scopes innermost first;
  - within a scope, reverse declaration order (most recent first);
  - only locals declared before the exit point;
  - a local consumed by the edge (`return x`) is skipped on that edge only.

Each scheduled destroy carries the expanded call plan from the resolver, so a
lifted object destroys its own fields (reverse declaration order) and then
chains into its base object's destroy. Parameters and the implicit `result`
never appear in a scope's locals and so are never destroyed here.

Before scheduling, the graph's edge set is checked for completeness. A scope
whose recorded exit point has no enumerated edge (or that can fall through
without a FALLTHROUGH edge) means upstream CFG construction is broken; that
is fatal for the unit and raised as `MissingScopeExitEdge`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from liftc.lifecycle.registry import OpKind
from liftc.lifecycle.resolver import EffectiveOperation, PlanNode, Resolver
from liftc.stage1 import hir_nodes as H
from liftc.stage2.scope_graph import EdgeId, ExitEdge, ExitKind, LocalVariable, ScopeGraph


class MissingScopeExitEdge(AssertionError):
	"""A control-flow edge leaving a scope was not enumerated (upstream CFG bug)."""


@dataclass(frozen=True)
class ScheduledDestroy:
	"""One destroy call inserted before control leaves along an edge."""

	local: LocalVariable
	op: EffectiveOperation
	plan: Tuple[PlanNode, ...]


@dataclass
class ScopeExitSchedule:
	"""Annotated program points: destroy lists per exit edge of one procedure."""

	graph: ScopeGraph
	by_edge: Dict[EdgeId, List[ScheduledDestroy]] = field(default_factory=dict)

	def at_anchor(self, anchor: H.NodeId) -> List[ScheduledDestroy]:
		"""Destroys to emit before the statement (or block end) `anchor`."""
		out: List[ScheduledDestroy] = []
		for edge_id, calls in self.by_edge.items():
			if self.graph.edges[edge_id].anchor == anchor:
				out.extend(calls)
		return out

	def destroy_order(self, edge_id: EdgeId) -> List[str]:
		"""Local names destroyed on `edge_id`, in emission order."""
		return [d.local.name for d in self.by_edge.get(edge_id, [])]

	def edges_of_kind(self, kind: ExitKind) -> List[ExitEdge]:
		return [e for e in self.graph.edges.values() if e.kind is kind]


def verify_exit_edges(graph: ScopeGraph) -> None:
	"""Raise MissingScopeExitEdge unless every way out of every scope is an edge."""
	for scope in graph.scopes.values():
		for edge_id in scope.exit_edges:
			if edge_id not in graph.edges:
				raise MissingScopeExitEdge(
					f"scope {scope.scope_id} of '{graph.proc_name}' references unknown exit edge {edge_id}"
				)
		leaving = [graph.edges[e] for e in scope.exit_edges]
		for anchor in scope.exit_points:
			if not any(e.anchor == anchor and scope.scope_id in e.unwound for e in leaving):
				raise MissingScopeExitEdge(
					f"scope {scope.scope_id} of '{graph.proc_name}' has exit point at node {anchor} with no exit edge"
				)
		if scope.can_fall_through and not any(
			e.kind is ExitKind.FALLTHROUGH and e.origin == scope.scope_id for e in leaving
		):
			raise MissingScopeExitEdge(
				f"scope {scope.scope_id} of '{graph.proc_name}' can fall through but has no fallthrough edge"
			)
	for edge in graph.edges.values():
		expected = graph.scope_chain(edge.origin)[: len(edge.unwound)]
		if list(edge.unwound) != expected:
			raise MissingScopeExitEdge(
				f"exit edge {edge.edge_id} of '{graph.proc_name}' does not unwind a contiguous scope chain"
			)
		for sid in edge.unwound:
			if edge.edge_id not in graph.scopes[sid].exit_edges:
				raise MissingScopeExitEdge(
					f"exit edge {edge.edge_id} of '{graph.proc_name}' leaves scope {sid} without being enumerated there"
				)


@dataclass
class ScopeExitInserter:
	resolver: Resolver

	def schedule(self, graph: ScopeGraph) -> ScopeExitSchedule:
		verify_exit_edges(graph)
		out = ScopeExitSchedule(graph=graph)
		for edge_id in sorted(graph.edges):
			out.by_edge[edge_id] = self._schedule_edge(graph, graph.edges[edge_id])
		return out

	def _schedule_edge(self, graph: ScopeGraph, edge: ExitEdge) -> List[ScheduledDestroy]:
		calls: List[ScheduledDestroy] = []
		for sid in edge.unwound:
			live = graph.scopes[sid].locals[: edge.live_counts.get(sid, 0)]
			for local in reversed(live):
				if local.binding_id in edge.consumed:
					continue
				op = self.resolver.resolve(local.type_id, OpKind.DESTROY)
				if op.is_default:
					continue
				plan = self.resolver.expand(local.type_id, OpKind.DESTROY, local.name)
				calls.append(ScheduledDestroy(local=local, op=op, plan=tuple(plan)))
		return calls


__all__ = [
	"MissingScopeExitEdge",
	"ScheduledDestroy",
	"ScopeExitSchedule",
	"ScopeExitInserter",
	"verify_exit_edges",
]
