# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-13
"""
Operation binder: validate lifecycle hook declarations and bind them.

Pinned signature shapes:
  `=`         (dst: var T, src: T | lent T)      no result
  `=destroy`  (x: T)                             no result
  `=deepCopy` (x: ref T | ptr T): same as param

T must be nominal (object, distinct, or a generic object/instance). For
`=deepCopy` the binding target is the pointee T, not the indirection type; a
pointee may be bound through `ref` or `ptr` but never both.

Every rejected declaration produces exactly one diagnostic and is treated as
absent; binding continues with the next declaration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from liftc.core import diagnostics as D
from liftc.core.diagnostics import Diagnostic
from liftc.core.span import Span
from liftc.core.types_core import INDIRECTION_KINDS, NOMINAL_KINDS, TypeId, TypeKind, TypeTable
from liftc.lifecycle.registry import BoundOperationEntry, HookSignature, OpKind, TypeRegistry


@dataclass(frozen=True)
class HookDecl:
	"""A declared operator procedure whose name is a lifecycle hook token."""

	name: str
	impl: str
	param_types: Tuple[TypeId, ...]
	result_type: TypeId
	span: Span = field(default_factory=Span)


class _Reject(Exception):
	"""Internal signal carrying the diagnostic for a rejected declaration."""

	def __init__(self, code: str, message: str, notes: list[str] | None = None) -> None:
		super().__init__(message)
		self.code = code
		self.message = message
		self.notes = notes or []


@dataclass
class OperationBinder:
	"""
	Populates a TypeRegistry from hook declarations.

	Call `bind_all` once per unit: it binds every declaration in source order
	and freezes the registry so resolver queries may start.
	"""

	type_table: TypeTable
	registry: TypeRegistry
	diagnostics: List[Diagnostic] = field(default_factory=list)

	def bind_all(self, decls: Iterable[HookDecl]) -> List[Diagnostic]:
		for decl in decls:
			self.bind(decl)
		self.registry.freeze()
		return self.diagnostics

	def bind(self, decl: HookDecl) -> Optional[BoundOperationEntry]:
		"""Validate and bind one declaration; returns the entry or None when rejected."""
		try:
			entry = self._validate(decl)
			self._check_conflicts(entry)
		except _Reject as rej:
			self.diagnostics.append(
				Diagnostic(
					message=rej.message,
					code=rej.code,
					phase="bind",
					span=decl.span,
					notes=rej.notes,
				)
			)
			return None
		self.registry.bind(entry)
		return entry

	# -- validation ----------------------------------------------------

	def _validate(self, decl: HookDecl) -> BoundOperationEntry:
		kind = OpKind.from_hook_name(decl.name)
		if kind is None:
			raise _Reject(D.INVALID_SIGNATURE, f"unknown lifecycle operator `{decl.name}` (expected `=`, `=destroy` or `=deepCopy`)")
		if kind is OpKind.ASSIGN:
			return self._validate_assign(decl)
		if kind is OpKind.DESTROY:
			return self._validate_destroy(decl)
		return self._validate_deep_copy(decl)

	def _validate_assign(self, decl: HookDecl) -> BoundOperationEntry:
		if len(decl.param_types) != 2:
			raise _Reject(D.INVALID_SIGNATURE, f"`=` takes exactly two parameters (var T, T), got {len(decl.param_types)}")
		dst, src = decl.param_types
		dst_def = self.type_table.get(dst)
		if dst_def.kind is not TypeKind.VAR:
			raise _Reject(D.INVALID_SIGNATURE, f"first parameter of `=` must be `var T`, got '{self._name(dst)}'")
		receiver = dst_def.param_types[0]
		target = self._receiver_target(receiver, "=")
		src_def = self.type_table.get(src)
		src_value = src_def.param_types[0] if src_def.kind is TypeKind.LENT else src
		if src_value != receiver:
			raise _Reject(
				D.INVALID_SIGNATURE,
				f"second parameter of `=` must be '{self._name(receiver)}' or 'lent {self._name(receiver)}', got '{self._name(src)}'",
			)
		self._expect_no_result(decl, "=")
		return BoundOperationEntry(
			kind=OpKind.ASSIGN,
			target=target,
			signature=HookSignature(decl.param_types, decl.result_type),
			impl=decl.impl,
			span=decl.span,
		)

	def _validate_destroy(self, decl: HookDecl) -> BoundOperationEntry:
		if len(decl.param_types) != 1:
			raise _Reject(D.INVALID_SIGNATURE, f"`=destroy` takes exactly one parameter, got {len(decl.param_types)}")
		param = decl.param_types[0]
		if self.type_table.get(param).kind in (TypeKind.VAR, TypeKind.LENT):
			raise _Reject(D.INVALID_SIGNATURE, f"`=destroy` takes its parameter by value, got '{self._name(param)}'")
		target = self._receiver_target(param, "=destroy")
		self._expect_no_result(decl, "=destroy")
		return BoundOperationEntry(
			kind=OpKind.DESTROY,
			target=target,
			signature=HookSignature(decl.param_types, decl.result_type),
			impl=decl.impl,
			span=decl.span,
		)

	def _validate_deep_copy(self, decl: HookDecl) -> BoundOperationEntry:
		if len(decl.param_types) != 1:
			raise _Reject(D.INVALID_SIGNATURE, f"`=deepCopy` takes exactly one parameter, got {len(decl.param_types)}")
		param = decl.param_types[0]
		param_def = self.type_table.get(param)
		if param_def.kind not in INDIRECTION_KINDS:
			raise _Reject(D.INVALID_SIGNATURE, f"`=deepCopy` parameter must be a `ref` or `ptr` type, got '{self._name(param)}'")
		if decl.result_type != param:
			raise _Reject(
				D.INVALID_SIGNATURE,
				f"`=deepCopy` must return its parameter type '{self._name(param)}', got '{self._name(decl.result_type)}'",
			)
		target = self._receiver_target(param_def.param_types[0], "=deepCopy")
		return BoundOperationEntry(
			kind=OpKind.DEEP_COPY,
			target=target,
			signature=HookSignature(decl.param_types, decl.result_type),
			impl=decl.impl,
			indirection=param_def.kind,
			span=decl.span,
		)

	def _receiver_target(self, receiver: TypeId, hook: str) -> TypeId:
		"""
		Map a receiver type to its binding key.

		Instances whose arguments are all type variables (`List[T]`) bind the
		generic head; concrete instances (`List[Int]`) bind themselves.
		"""
		td = self.type_table.get(receiver)
		if td.kind not in NOMINAL_KINDS:
			raise _Reject(
				D.NON_NOMINAL_RECEIVER,
				f"`{hook}` receiver '{self._name(receiver)}' is not an object or distinct type",
			)
		if td.kind is TypeKind.INSTANCE:
			args = td.param_types[1:]
			if all(self.type_table.get(a).kind is TypeKind.TYPEVAR for a in args):
				return td.param_types[0]
		return receiver

	def _expect_no_result(self, decl: HookDecl, hook: str) -> None:
		if self.type_table.get(decl.result_type).kind is not TypeKind.VOID:
			raise _Reject(D.INVALID_SIGNATURE, f"`{hook}` must not declare a result type, got '{self._name(decl.result_type)}'")

	def _check_conflicts(self, entry: BoundOperationEntry) -> None:
		existing = self.registry.lookup(entry.target, entry.kind)
		if existing is None:
			return
		target_name = self._name(entry.target)
		prev_note = f"previous `{entry.kind.hook_name}` for '{target_name}' declared at {existing.span.render()}"
		if entry.kind is OpKind.DEEP_COPY and existing.indirection is not entry.indirection:
			raise _Reject(
				D.CONFLICTING_INDIRECTION_BINDING,
				f"`=deepCopy` for '{target_name}' is already bound through "
				f"'{_indirection_word(existing.indirection)}'; binding it again through "
				f"'{_indirection_word(entry.indirection)}' is not allowed (introduce a distinct wrapper type)",
				[prev_note],
			)
		raise _Reject(
			D.DUPLICATE_BINDING,
			f"duplicate `{entry.kind.hook_name}` for '{target_name}'",
			[prev_note],
		)

	def _name(self, ty: TypeId) -> str:
		return self.type_table.type_name(ty)


def _indirection_word(kind: Optional[TypeKind]) -> str:
	return "ptr" if kind is TypeKind.PTR else "ref"


__all__ = ["HookDecl", "OperationBinder"]
