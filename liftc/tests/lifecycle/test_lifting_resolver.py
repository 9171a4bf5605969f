#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-14
"""Lifting resolver: override reachability, lift order, recursion handling."""

import pytest

from liftc.core import diagnostics as D
from liftc.core.types_core import FieldDef, TypeTable
from liftc.lifecycle import (
	ElementLoop,
	HookCall,
	HookDecl,
	LiftedCall,
	OperationBinder,
	OpKind,
	OpOrigin,
	Resolver,
	ResolverNotReadyError,
	TypeRegistry,
	count_hook_calls,
)


class _World:
	"""Type table with a `Handle` object plus helpers to bind hooks on it."""

	def __init__(self) -> None:
		self.table = TypeTable()
		self.handle = self.table.declare_object("Handle")
		self.table.define_object(self.handle, [FieldDef("fd", self.table.ensure_int())])
		self.decls: list[HookDecl] = []

	def obj(self, name: str, fields: dict, *, base=None) -> int:
		tid = self.table.declare_object(name)
		self.table.define_object(tid, [FieldDef(n, t) for n, t in fields.items()], base=base)
		return tid

	def destroy(self, ty: int, impl: str = "destroyHandle") -> None:
		self.decls.append(HookDecl("=destroy", impl, (ty,), self.table.ensure_void()))

	def assign(self, ty: int, impl: str = "assignHandle") -> None:
		self.decls.append(HookDecl("=", impl, (self.table.ensure_var(ty), ty), self.table.ensure_void()))

	def deep_copy(self, ty: int, impl: str = "copyHandle", *, ptr: bool = False) -> None:
		ind = self.table.ensure_ptr(ty) if ptr else self.table.ensure_ref(ty)
		self.decls.append(HookDecl("=deepCopy", impl, (ind,), ind))

	def resolver(self) -> Resolver:
		registry = TypeRegistry()
		binder = OperationBinder(type_table=self.table, registry=registry)
		binder.bind_all(self.decls)
		assert binder.diagnostics == []
		return Resolver(type_table=self.table, registry=registry)


def _places(plan) -> list:
	return [node.place for node in plan]


def test_query_before_freeze_is_internal_error():
	w = _World()
	resolver = Resolver(type_table=w.table, registry=TypeRegistry())
	with pytest.raises(ResolverNotReadyError):
		resolver.resolve(w.handle, OpKind.DESTROY)


def test_no_overrides_anywhere_is_default_for_every_kind():
	w = _World()
	pair = w.obj("Pair", {"a": w.handle, "b": w.table.ensure_int()})
	r = w.resolver()
	for ty in (w.handle, pair, w.table.ensure_seq(pair), w.table.ensure_array(2, pair)):
		for kind in OpKind:
			op = r.resolve(ty, kind)
			assert op.origin is OpOrigin.DEFAULT
			assert r.expand(ty, kind, "x") == []


def test_array_assign_lifts_element_override_in_index_order():
	w = _World()
	w.assign(w.handle)
	r = w.resolver()
	arr = w.table.ensure_array(3, w.handle)
	op = r.resolve(arr, OpKind.ASSIGN)
	assert op.origin is OpOrigin.LIFTED
	plan = r.expand(arr, OpKind.ASSIGN, "a")
	assert all(isinstance(n, HookCall) for n in plan)
	assert _places(plan) == ["a[0]", "a[1]", "a[2]"]
	assert count_hook_calls(plan) == 3


def test_seq_assign_lifts_to_element_loop():
	w = _World()
	w.assign(w.handle)
	r = w.resolver()
	seq = w.table.ensure_seq(w.handle)
	assert r.resolve(seq, OpKind.ASSIGN).origin is OpOrigin.LIFTED
	(loop,) = r.expand(seq, OpKind.ASSIGN, "s")
	assert isinstance(loop, ElementLoop)
	assert loop.place == "s"
	assert _places(loop.body) == ["s[i]"]
	assert r.resolve(seq, OpKind.DESTROY).origin is OpOrigin.DEFAULT


def test_object_destroy_runs_fields_in_reverse_declaration_order():
	w = _World()
	w.destroy(w.handle)
	w.assign(w.handle)
	pair = w.obj("Pair", {"a": w.handle, "n": w.table.ensure_int(), "b": w.handle})
	r = w.resolver()
	op = r.resolve(pair, OpKind.DESTROY)
	assert op.origin is OpOrigin.LIFTED
	assert [s.name for s in op.steps] == ["b", "a"]
	assert _places(r.expand(pair, OpKind.DESTROY, "p")) == ["p.b", "p.a"]
	assert _places(r.expand(pair, OpKind.ASSIGN, "p")) == ["p.a", "p.b"]


def test_tuple_destroy_is_reverse_positional():
	w = _World()
	w.destroy(w.handle)
	r = w.resolver()
	tup = w.table.ensure_tuple([w.handle, w.table.ensure_int(), w.handle])
	assert _places(r.expand(tup, OpKind.DESTROY, "t")) == ["t[2]", "t[0]"]


def test_base_object_is_destroyed_after_own_fields():
	w = _World()
	w.destroy(w.handle)
	w.assign(w.handle)
	base = w.obj("Base", {"h": w.handle})
	derived = w.obj("Derived", {"g": w.handle}, base=base)
	r = w.resolver()
	assert _places(r.expand(derived, OpKind.DESTROY, "d")) == ["d.g", "Base(d).h"]
	assert _places(r.expand(derived, OpKind.ASSIGN, "d")) == ["Base(d).h", "d.g"]


def test_derived_destroy_hook_still_destroys_its_base():
	w = _World()
	w.destroy(w.handle)
	base = w.obj("Base", {"h": w.handle})
	derived = w.obj("Derived", {"n": w.table.ensure_int()}, base=base)
	w.destroy(derived, "destroyDerived")
	r = w.resolver()
	assert r.resolve(derived, OpKind.DESTROY).origin is OpOrigin.USER_OVERRIDE
	plan = r.expand(derived, OpKind.DESTROY, "d")
	assert [(n.place, n.entry.impl) for n in plan] == [("d", "destroyDerived"), ("Base(d).h", "destroyHandle")]
	# Only destroy chains; a user `=` owns the whole value.
	w.assign(derived, "assignDerived")
	assert _places(w.resolver().expand(derived, OpKind.ASSIGN, "d")) == ["d"]


def test_derived_destroy_hook_reentered_through_its_base_is_a_lifted_call():
	w = _World()
	w.destroy(w.handle)
	base = w.table.declare_object("Base")
	derived = w.obj("Derived", {}, base=base)
	w.table.define_object(base, [FieldDef("h", w.handle), FieldDef("kids", w.table.ensure_seq(derived))])
	w.destroy(derived, "destroyDerived")
	r = w.resolver()
	call, kids, h = r.expand(derived, OpKind.DESTROY, "d")
	assert isinstance(call, HookCall) and call.place == "d"
	assert isinstance(kids, ElementLoop) and kids.place == "Base(d).kids"
	(inner,) = kids.body
	assert isinstance(inner, LiftedCall) and inner.type_id == derived
	assert h.place == "Base(d).h"


def test_distinct_lifts_from_underlying_unless_it_has_its_own_hook():
	w = _World()
	w.destroy(w.handle)
	fd = w.table.declare_distinct("Fd", w.handle)
	own = w.table.declare_distinct("OwnFd", w.handle)
	w.destroy(own, "destroyOwnFd")
	r = w.resolver()
	assert r.resolve(fd, OpKind.DESTROY).origin is OpOrigin.LIFTED
	assert _places(r.expand(fd, OpKind.DESTROY, "f")) == ["Handle(f)"]
	op = r.resolve(own, OpKind.DESTROY)
	assert op.origin is OpOrigin.USER_OVERRIDE
	assert op.entry.impl == "destroyOwnFd"


def test_indirections_do_not_lift_assign_or_destroy():
	w = _World()
	w.destroy(w.handle)
	holder = w.obj("Holder", {"r": w.table.ensure_ref(w.handle), "p": w.table.ensure_ptr(w.handle)})
	r = w.resolver()
	assert r.resolve(w.table.ensure_ref(w.handle), OpKind.DESTROY).is_default
	assert r.resolve(holder, OpKind.DESTROY).is_default


def test_generic_instance_uses_head_binding_unless_specialized():
	w = _World()
	lst = w.table.declare_object("List", type_params=["T"])
	(t,) = w.table.get(lst).type_params
	w.table.define_object(lst, [FieldDef("items", w.table.ensure_seq(t))])
	u = w.table.new_typevar("U")
	w.destroy(w.table.ensure_instance(lst, [u]), "destroyList")
	int_list = w.table.ensure_instance(lst, [w.table.ensure_int()])
	w.destroy(int_list, "destroyIntList")
	r = w.resolver()
	handle_list = w.table.ensure_instance(lst, [w.handle])
	assert r.resolve(handle_list, OpKind.DESTROY).entry.impl == "destroyList"
	assert r.resolve(int_list, OpKind.DESTROY).entry.impl == "destroyIntList"


def test_by_value_recursion_is_reported_once_and_resolves_default():
	w = _World()
	w.destroy(w.handle)
	node = w.table.declare_object("Node")
	w.table.define_object(node, [FieldDef("h", w.handle), FieldDef("next", node)])
	r = w.resolver()
	for kind in OpKind:
		assert r.resolve(node, kind).is_default
	assert r.resolve(w.table.ensure_array(2, node), OpKind.DESTROY).is_default
	assert [d.code for d in r.diagnostics] == [D.UNRESOLVABLE_RECURSIVE_TYPE]


def test_mutual_by_value_recursion_is_one_diagnostic():
	w = _World()
	a = w.table.declare_object("A")
	b = w.table.declare_object("B")
	w.table.define_object(a, [FieldDef("b", b)])
	w.table.define_object(b, [FieldDef("a", a)])
	r = w.resolver()
	r.resolve(a, OpKind.DESTROY)
	r.resolve(b, OpKind.ASSIGN)
	assert [d.code for d in r.diagnostics] == [D.UNRESOLVABLE_RECURSIVE_TYPE]
	assert "A -> B -> A" in r.diagnostics[0].message


def test_recursion_through_seq_is_finite_lifted_call():
	"""A type reached again through `seq` becomes a call to its own lifted routine."""
	w = _World()
	w.destroy(w.handle)
	tree = w.table.declare_object("Tree")
	w.table.define_object(tree, [FieldDef("h", w.handle), FieldDef("kids", w.table.ensure_seq(tree))])
	r = w.resolver()
	assert r.resolve(tree, OpKind.DESTROY).origin is OpOrigin.LIFTED
	assert r.diagnostics == []
	loop, call = r.expand(tree, OpKind.DESTROY, "t")
	assert isinstance(loop, ElementLoop) and loop.place == "t.kids"
	(inner,) = loop.body
	assert isinstance(inner, LiftedCall)
	assert inner.place == "t.kids[i]" and inner.type_id == tree
	assert isinstance(call, HookCall) and call.place == "t.h"


def test_deep_copy_override_matches_its_indirection_only():
	w = _World()
	w.deep_copy(w.handle)
	r = w.resolver()
	via_ref = r.resolve(w.table.ensure_ref(w.handle), OpKind.DEEP_COPY)
	assert via_ref.origin is OpOrigin.USER_OVERRIDE
	# Neither the other indirection nor the bare value goes through the hook.
	assert r.resolve(w.table.ensure_ptr(w.handle), OpKind.DEEP_COPY).is_default
	assert r.resolve(w.handle, OpKind.DEEP_COPY).is_default
	holder = w.obj("Holder", {"r": w.table.ensure_ref(w.handle), "p": w.table.ensure_ptr(w.handle), "h": w.handle})
	assert _places(r.expand(holder, OpKind.DEEP_COPY, "x")) == ["x.r"]
	# Deep copy is independent of the other two kinds.
	assert r.resolve(w.handle, OpKind.DESTROY).is_default
	assert r.resolve(w.handle, OpKind.ASSIGN).is_default


def test_results_are_memoized():
	w = _World()
	w.destroy(w.handle)
	pair = w.obj("Pair", {"a": w.handle})
	r = w.resolver()
	assert r.resolve(pair, OpKind.DESTROY) is r.resolve(pair, OpKind.DESTROY)
	table = r.operation_table([pair])
	assert set(table[pair]) == set(OpKind)


def _expanding_generic(w: _World, *, through_seq: bool) -> int:
	"""`W[T] = object { h: Handle, w: W[seq[T]] }`, optionally as `seq[W[seq[T]]]`."""
	gen = w.table.declare_object("W", type_params=["T"])
	(t,) = w.table.get(gen).type_params
	grown = w.table.ensure_instance(gen, [w.table.ensure_seq(t)])
	field_ty = w.table.ensure_seq(grown) if through_seq else grown
	w.table.define_object(gen, [FieldDef("h", w.handle), FieldDef("w", field_ty)])
	return gen


@pytest.mark.parametrize("through_seq", [False, True])
def test_generic_growing_into_itself_is_reported_once(through_seq):
	w = _World()
	w.destroy(w.handle)
	w.assign(w.handle)
	gen = _expanding_generic(w, through_seq=through_seq)
	int_w = w.table.ensure_instance(gen, [w.table.ensure_int()])
	holder = w.obj("Holder", {"w": int_w, "h": w.handle})
	r = w.resolver()
	for ty in (gen, int_w, w.table.ensure_seq(int_w)):
		for kind in OpKind:
			assert r.resolve(ty, kind).is_default
	assert r.is_unresolvable(int_w)
	assert not r.is_unresolvable(holder)
	assert _places(r.expand(holder, OpKind.DESTROY, "x")) == ["x.h"]
	assert [d.code for d in r.diagnostics] == [D.UNRESOLVABLE_RECURSIVE_TYPE]
	assert "'W[T]'" in r.diagnostics[0].message
	assert r.diagnostics[0].phase == "resolve"


def test_generic_wrapping_a_growing_generic_is_not_blamed():
	w = _World()
	w.destroy(w.handle)
	gen = _expanding_generic(w, through_seq=True)
	box = w.table.declare_object("Box", type_params=["U"])
	(u,) = w.table.get(box).type_params
	w.table.define_object(box, [FieldDef("inner", w.table.ensure_instance(gen, [u])), FieldDef("h", w.handle)])
	int_box = w.table.ensure_instance(box, [w.table.ensure_int()])
	r = w.resolver()
	assert r.resolve(int_box, OpKind.DESTROY).origin is OpOrigin.LIFTED
	assert _places(r.expand(int_box, OpKind.DESTROY, "b")) == ["b.h"]
	assert len(r.diagnostics) == 1
	assert "'W[T]'" in r.diagnostics[0].message


def test_finitely_nested_generic_is_not_growing():
	w = _World()
	w.destroy(w.handle)
	lst = w.table.declare_object("List", type_params=["T"])
	(t,) = w.table.get(lst).type_params
	next_ty = w.table.ensure_ref(w.table.ensure_instance(lst, [t]))
	w.table.define_object(lst, [FieldDef("items", w.table.ensure_seq(t)), FieldDef("next", next_ty)])
	deep = w.handle
	for _ in range(4):
		deep = w.table.ensure_seq(deep)
	r = w.resolver()
	nested = w.table.ensure_instance(lst, [deep])
	assert r.resolve(nested, OpKind.DESTROY).origin is OpOrigin.LIFTED
	assert r.diagnostics == []
