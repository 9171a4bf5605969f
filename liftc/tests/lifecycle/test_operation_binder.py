#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-13
"""Operation binder: hook validation, binding keys and conflict diagnostics."""

import pytest

from liftc.core import diagnostics as D
from liftc.core.types_core import FieldDef, TypeKind, TypeTable
from liftc.lifecycle import HookDecl, OperationBinder, OpKind, RegistryFrozenError, TypeRegistry


def _world():
	table = TypeTable()
	handle = table.declare_object("Handle")
	table.define_object(handle, [FieldDef("fd", table.ensure_int())])
	registry = TypeRegistry()
	binder = OperationBinder(type_table=table, registry=registry)
	return table, handle, registry, binder


def _codes(binder: OperationBinder) -> list:
	return [d.code for d in binder.diagnostics]


def test_destroy_binds_to_receiver_type():
	table, handle, registry, binder = _world()
	entry = binder.bind(HookDecl("=destroy", "destroyHandle", (handle,), table.ensure_void()))
	assert entry is not None
	assert entry.kind is OpKind.DESTROY
	assert entry.target == handle
	assert registry.lookup(handle, OpKind.DESTROY) is entry
	assert binder.diagnostics == []


def test_assign_accepts_value_or_lent_source():
	"""`=` takes (var T, T) or (var T, lent T)."""
	table, handle, registry, binder = _world()
	void = table.ensure_void()
	entry = binder.bind(HookDecl("=", "assignHandle", (table.ensure_var(handle), table.ensure_lent(handle)), void))
	assert entry is not None and entry.target == handle
	other = table.declare_object("Other")
	assert binder.bind(HookDecl("=", "assignOther", (table.ensure_var(other), other), void)) is not None
	assert binder.diagnostics == []


def test_assign_requires_var_destination():
	table, handle, registry, binder = _world()
	assert binder.bind(HookDecl("=", "bad", (handle, handle), table.ensure_void())) is None
	assert _codes(binder) == [D.INVALID_SIGNATURE]
	assert registry.lookup(handle, OpKind.ASSIGN) is None


def test_assign_source_must_match_receiver():
	table, handle, registry, binder = _world()
	decl = HookDecl("=", "bad", (table.ensure_var(handle), table.ensure_int()), table.ensure_void())
	assert binder.bind(decl) is None
	assert _codes(binder) == [D.INVALID_SIGNATURE]


def test_destroy_rejects_param_modes_and_results():
	table, handle, registry, binder = _world()
	binder.bind(HookDecl("=destroy", "d1", (table.ensure_var(handle),), table.ensure_void()))
	binder.bind(HookDecl("=destroy", "d2", (handle,), table.ensure_int()))
	binder.bind(HookDecl("=destroy", "d3", (handle, handle), table.ensure_void()))
	assert _codes(binder) == [D.INVALID_SIGNATURE] * 3
	assert len(registry) == 0


def test_non_nominal_receiver_is_rejected():
	"""Hooks attach only to object and distinct types."""
	table, handle, registry, binder = _world()
	binder.bind(HookDecl("=destroy", "d", (table.ensure_int(),), table.ensure_void()))
	binder.bind(HookDecl("=destroy", "d", (table.ensure_seq(handle),), table.ensure_void()))
	assert _codes(binder) == [D.NON_NOMINAL_RECEIVER, D.NON_NOMINAL_RECEIVER]


def test_duplicate_binding_reports_previous_declaration():
	table, handle, registry, binder = _world()
	void = table.ensure_void()
	first = binder.bind(HookDecl("=destroy", "first", (handle,), void))
	assert binder.bind(HookDecl("=destroy", "second", (handle,), void)) is None
	assert _codes(binder) == [D.DUPLICATE_BINDING]
	assert binder.diagnostics[0].notes
	assert registry.lookup(handle, OpKind.DESTROY) is first


def test_deep_copy_records_indirection():
	table, handle, registry, binder = _world()
	ref_handle = table.ensure_ref(handle)
	entry = binder.bind(HookDecl("=deepCopy", "copyHandle", (ref_handle,), ref_handle))
	assert entry is not None
	assert entry.target == handle
	assert entry.indirection is TypeKind.REF


def test_deep_copy_through_ref_and_ptr_conflicts():
	"""Binding `=deepCopy` for one pointee through both `ref` and `ptr` is an error."""
	table, handle, registry, binder = _world()
	ref_handle = table.ensure_ref(handle)
	ptr_handle = table.ensure_ptr(handle)
	binder.bind(HookDecl("=deepCopy", "viaRef", (ref_handle,), ref_handle))
	assert binder.bind(HookDecl("=deepCopy", "viaPtr", (ptr_handle,), ptr_handle)) is None
	assert _codes(binder) == [D.CONFLICTING_INDIRECTION_BINDING]
	assert registry.lookup(handle, OpKind.DEEP_COPY).impl == "viaRef"


def test_deep_copy_twice_through_ref_is_a_duplicate():
	table, handle, registry, binder = _world()
	ref_handle = table.ensure_ref(handle)
	binder.bind(HookDecl("=deepCopy", "a", (ref_handle,), ref_handle))
	binder.bind(HookDecl("=deepCopy", "b", (ref_handle,), ref_handle))
	assert _codes(binder) == [D.DUPLICATE_BINDING]


def test_deep_copy_signature_checks():
	table, handle, registry, binder = _world()
	ref_handle = table.ensure_ref(handle)
	binder.bind(HookDecl("=deepCopy", "byValue", (handle,), handle))
	binder.bind(HookDecl("=deepCopy", "wrongResult", (ref_handle,), table.ensure_void()))
	binder.bind(HookDecl("=deepCopy", "toInt", (table.ensure_ref(table.ensure_int()),), table.ensure_ref(table.ensure_int())))
	assert _codes(binder) == [D.INVALID_SIGNATURE, D.INVALID_SIGNATURE, D.NON_NOMINAL_RECEIVER]


def test_unknown_hook_name_is_invalid_signature():
	table, handle, registry, binder = _world()
	assert binder.bind(HookDecl("=copy", "c", (handle,), table.ensure_void())) is None
	assert _codes(binder) == [D.INVALID_SIGNATURE]


def test_generic_receiver_binds_head_and_concrete_binds_instance():
	"""`List[T]` binds the generic declaration; `List[Int]` binds that instance only."""
	table, handle, registry, binder = _world()
	lst = table.declare_object("List", type_params=["T"])
	(t,) = table.get(lst).type_params
	table.define_object(lst, [FieldDef("items", table.ensure_seq(t))])
	void = table.ensure_void()
	proc_t = table.new_typevar("U")
	generic = binder.bind(HookDecl("=destroy", "destroyList", (table.ensure_instance(lst, [proc_t]),), void))
	concrete_ty = table.ensure_instance(lst, [table.ensure_int()])
	concrete = binder.bind(HookDecl("=destroy", "destroyIntList", (concrete_ty,), void))
	assert generic is not None and generic.target == lst
	assert concrete is not None and concrete.target == concrete_ty
	assert binder.diagnostics == []


def test_bind_all_freezes_registry():
	table, handle, registry, binder = _world()
	void = table.ensure_void()
	binder.bind_all([HookDecl("=destroy", "d", (handle,), void)])
	assert registry.frozen
	other = table.declare_object("Other")
	with pytest.raises(RegistryFrozenError):
		binder.bind(HookDecl("=destroy", "late", (other,), void))
