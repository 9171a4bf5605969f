#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-20
"""Scope-exit destroy scheduling over explicit exit edges."""

import pytest

from liftc.core.types_core import FieldDef, TypeTable
from liftc.lifecycle import HookCall, HookDecl, OperationBinder, Resolver, TypeRegistry
from liftc.stage1 import assign_node_ids
from liftc.stage1 import hir_nodes as H
from liftc.stage2 import ExitKind, MissingScopeExitEdge, ScopeExitInserter, build_scope_graph, verify_exit_edges


class _Env:
	def __init__(self) -> None:
		self.table = TypeTable()
		self.int = self.table.ensure_int()
		self.handle = self.table.declare_object("Handle")
		self.table.define_object(self.handle, [FieldDef("fd", self.int)])
		self.pair = self.table.declare_object("Pair")
		self.table.define_object(self.pair, [FieldDef("a", self.handle), FieldDef("b", self.handle)])
		self.bind()
		self._next_binding = 1

	def bind(self, *extra: HookDecl) -> None:
		"""(Re)bind `=destroy` on Handle plus `extra` hooks and rebuild the resolver."""
		registry = TypeRegistry()
		OperationBinder(type_table=self.table, registry=registry).bind_all(
			[HookDecl("=destroy", "destroyHandle", (self.handle,), self.table.ensure_void()), *extra]
		)
		self.resolver = Resolver(type_table=self.table, registry=registry)

	def var(self, name: str, ty=None) -> H.HLet:
		bid = self._next_binding
		self._next_binding += 1
		return H.HLet(name=name, value=H.HCall(fn="open"), declared_type=ty or self.handle, binding_id=bid)

	def schedule(self, *stmts: H.HStmt):
		proc = H.HProc(name="f", params=[], result_type=self.table.ensure_void(), body=H.HBlock(statements=list(stmts)))
		assign_node_ids(proc)
		graph = build_scope_graph(proc)
		return graph, ScopeExitInserter(resolver=self.resolver).schedule(graph)


def _only(schedule, kind: ExitKind):
	(edge,) = schedule.edges_of_kind(kind)
	return edge


def test_locals_are_destroyed_in_reverse_declaration_order():
	env = _Env()
	graph, sched = env.schedule(env.var("a"), env.var("b"), env.var("c"))
	edge = _only(sched, ExitKind.FALLTHROUGH)
	assert sched.destroy_order(edge.edge_id) == ["c", "b", "a"]


def test_early_return_gets_same_schedule_as_fallthrough():
	"""`return` inside a nested block destroys `b` then `a`; fallthrough destroys `c` then `a`."""
	env = _Env()
	inner = H.HBlock(statements=[env.var("b"), H.HReturn()])
	graph, sched = env.schedule(
		env.var("a"),
		H.HIf(cond=H.HLiteralBool(True), then_block=inner),
		env.var("c"),
	)
	ret = _only(sched, ExitKind.RETURN)
	assert sched.destroy_order(ret.edge_id) == ["b", "a"]
	fall = [e for e in sched.edges_of_kind(ExitKind.FALLTHROUGH) if e.origin == graph.root]
	assert len(fall) == 1
	assert sched.destroy_order(fall[0].edge_id) == ["c", "a"]


def test_only_locals_declared_before_the_exit_are_live():
	env = _Env()
	graph, sched = env.schedule(
		env.var("a"),
		H.HIf(cond=H.HLiteralBool(True), then_block=H.HBlock(statements=[H.HReturn()])),
		env.var("b"),
	)
	ret = _only(sched, ExitKind.RETURN)
	assert sched.destroy_order(ret.edge_id) == ["a"]


def test_object_local_destroys_fields_in_reverse_order_on_every_edge():
	env = _Env()
	loop_body = H.HBlock(
		statements=[
			env.var("p", env.pair),
			H.HIf(cond=H.HLiteralBool(True), then_block=H.HBlock(statements=[H.HContinue()])),
			H.HIf(cond=H.HLiteralBool(False), then_block=H.HBlock(statements=[H.HBreak()])),
		]
	)
	graph, sched = env.schedule(H.HWhile(cond=H.HLiteralBool(True), body=loop_body))
	loop_scope = next(s for s in graph.scopes.values() if s.is_loop_body)
	edges = [graph.edges[e] for e in loop_scope.exit_edges]
	assert sorted(e.kind.name for e in edges) == ["BREAK", "CONTINUE", "FALLTHROUGH"]
	for edge in edges:
		(destroy,) = sched.by_edge[edge.edge_id]
		assert [n.place for n in destroy.plan] == ["p.b", "p.a"]
		assert all(isinstance(n, HookCall) for n in destroy.plan)


def test_derived_destroy_hook_is_followed_by_base_destroy():
	env = _Env()
	base = env.table.declare_object("Base")
	env.table.define_object(base, [FieldDef("h", env.handle)])
	derived = env.table.declare_object("Derived")
	env.table.define_object(derived, [FieldDef("n", env.int)], base=base)
	env.bind(HookDecl("=destroy", "destroyDerived", (derived,), env.table.ensure_void()))
	graph, sched = env.schedule(env.var("d", derived))
	edge = _only(sched, ExitKind.FALLTHROUGH)
	(destroy,) = sched.by_edge[edge.edge_id]
	assert [(n.place, n.entry.impl) for n in destroy.plan] == [("d", "destroyDerived"), ("Base(d).h", "destroyHandle")]


def test_break_unwinds_to_loop_body_only():
	env = _Env()
	nested = H.HBlock(statements=[env.var("b"), H.HBreak()])
	body = H.HBlock(statements=[env.var("a"), nested])
	graph, sched = env.schedule(env.var("outer"), H.HWhile(cond=H.HLiteralBool(True), body=body))
	brk = _only(sched, ExitKind.BREAK)
	assert sched.destroy_order(brk.edge_id) == ["b", "a"]
	assert graph.root not in brk.unwound


def test_returned_local_is_consumed_not_destroyed():
	env = _Env()
	a = env.var("a")
	b = env.var("b")
	graph, sched = env.schedule(a, b, H.HReturn(value=H.HVar("b", binding_id=b.binding_id)))
	ret = _only(sched, ExitKind.RETURN)
	assert ret.consumed == frozenset({b.binding_id})
	assert sched.destroy_order(ret.edge_id) == ["a"]
	assert sched.edges_of_kind(ExitKind.FALLTHROUGH) == []


def test_redeclaration_destroys_both_bindings_only_at_exit():
	env = _Env()
	first = env.var("x")
	second = env.var("x")
	graph, sched = env.schedule(first, second)
	assert sched.at_anchor(second.node_id) == []
	edge = _only(sched, ExitKind.FALLTHROUGH)
	destroyed = [d.local.binding_id for d in sched.by_edge[edge.edge_id]]
	assert destroyed == [second.binding_id, first.binding_id]


def test_default_destroy_locals_are_skipped():
	env = _Env()
	graph, sched = env.schedule(env.var("n", env.int), env.var("h"))
	edge = _only(sched, ExitKind.FALLTHROUGH)
	assert sched.destroy_order(edge.edge_id) == ["h"]


def test_statements_after_return_are_unreachable():
	env = _Env()
	ret = H.HReturn()
	graph, sched = env.schedule(env.var("a"), ret, env.var("dead"))
	assert [l.name for l in graph.scopes[graph.root].locals] == ["a"]
	assert [d.local.name for d in sched.at_anchor(ret.node_id)] == ["a"]


def test_unenumerated_exit_is_an_internal_error():
	env = _Env()
	graph, _ = env.schedule(env.var("a"), H.HReturn())
	graph.scopes[graph.root].exit_points.append(9999)
	with pytest.raises(MissingScopeExitEdge):
		verify_exit_edges(graph)


def test_dangling_edge_reference_is_an_internal_error():
	env = _Env()
	graph, _ = env.schedule(env.var("a"))
	edge_id = graph.scopes[graph.root].exit_edges[0]
	del graph.edges[edge_id]
	with pytest.raises(MissingScopeExitEdge):
		ScopeExitInserter(resolver=env.resolver).schedule(graph)
