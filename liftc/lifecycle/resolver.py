# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-14
"""
Lifting resolver: effective lifecycle operation for any type.

`resolve(type, kind)` answers one of three outcomes:

  USER_OVERRIDE  the type (or its generic head) has a bound hook for `kind`;
                 for DEEP_COPY, the `ref`/`ptr` the hook was declared on
  LIFTED         some constituent, transitively, has an override; the
                 operation applies each non-default constituent's effective
                 operation slot by slot
  DEFAULT        nothing anywhere in the structure overrides `kind`
                 (bitwise assign / no-op destroy / structural deep copy)

Non-defaultness is computed as reachability of an override through the
constituent edges relevant to `kind`, so recursion through indirections or
sequences terminates without special casing. Containment cycles *by value*
(object/tuple/array/distinct/base with no `ref`/`ptr`/`seq` in between)
describe infinitely sized types; they are reported once as
`E-LIFT-RECURSIVE` and the offending types resolve as DEFAULT.

Ordering of lifted steps:
  - objects/tuples: declaration order for ASSIGN and DEEP_COPY, reverse
    declaration order for DESTROY;
  - base objects: first for ASSIGN/DEEP_COPY, chained last for DESTROY
    (after the derived type's own fields, or after its own `=destroy`
    hook when it has one);
  - array/seq elements: index order for every kind.

Results are memoized per (TypeId, OpKind). The registry must be frozen before
the first query; bindings never change afterwards so the memo never needs
invalidation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from liftc.core import diagnostics as D
from liftc.core.diagnostics import Diagnostic
from liftc.core.types_core import INDIRECTION_KINDS, Slot, SlotKind, TypeId, TypeKind, TypeTable
from liftc.lifecycle.registry import BoundOperationEntry, OpKind, TypeRegistry


# Deepest generic instance nesting accepted before a head counts as expanding.
_EXPANSION_LIMIT = 32


class OpOrigin(Enum):
	USER_OVERRIDE = auto()
	LIFTED = auto()
	DEFAULT = auto()


@dataclass(frozen=True)
class EffectiveOperation:
	"""Resolved operation for (type, kind). `steps` is only set for LIFTED."""

	type_id: TypeId
	kind: OpKind
	origin: OpOrigin
	entry: Optional[BoundOperationEntry] = None
	steps: Tuple[Slot, ...] = ()

	@property
	def is_default(self) -> bool:
		return self.origin is OpOrigin.DEFAULT


# Call plan nodes (what code generation emits for one value).


@dataclass(frozen=True)
class HookCall:
	"""Invoke the user hook `entry.impl` on `place`."""

	place: str
	type_id: TypeId
	entry: BoundOperationEntry


@dataclass(frozen=True)
class LiftedCall:
	"""Invoke the synthesized lifted operation of `type_id` (recursive types)."""

	place: str
	type_id: TypeId
	kind: OpKind


@dataclass(frozen=True)
class ElementLoop:
	"""Apply `body` to every element of a sequence, in index order."""

	place: str
	elem_type: TypeId
	body: Tuple["PlanNode", ...]


PlanNode = Union[HookCall, LiftedCall, ElementLoop]


class ResolverNotReadyError(AssertionError):
	"""Resolver queried before the binder phase froze the registry."""


@dataclass
class Resolver:
	"""Memoizing lifting resolver over a frozen TypeRegistry."""

	type_table: TypeTable
	registry: TypeRegistry
	diagnostics: List[Diagnostic] = field(default_factory=list)
	_memo: Dict[Tuple[TypeId, OpKind], EffectiveOperation] = field(init=False, default_factory=dict, repr=False)
	# Tarjan SCC state for by-value containment cycles (incremental).
	_scc_index: Dict[TypeId, int] = field(init=False, default_factory=dict, repr=False)
	_cyclic: Set[TypeId] = field(init=False, default_factory=set, repr=False)
	_sccs_by_member: Dict[TypeId, Tuple[TypeId, ...]] = field(init=False, default_factory=dict, repr=False)
	_reported: Set[TypeId] = field(init=False, default_factory=set, repr=False)
	# Generic heads whose bodies instantiate ever deeper copies of themselves.
	_expansive: Dict[TypeId, bool] = field(init=False, default_factory=dict, repr=False)
	_expanding: Set[TypeId] = field(init=False, default_factory=set, repr=False)

	# -- public API ----------------------------------------------------

	def resolve(self, ty: TypeId, kind: OpKind) -> EffectiveOperation:
		if not self.registry.frozen:
			raise ResolverNotReadyError("resolver queried before the binder phase completed")
		key = (ty, kind)
		cached = self._memo.get(key)
		if cached is not None:
			return cached
		op = self._compute(ty, kind)
		self._memo[key] = op
		return op

	def is_destructible(self, ty: TypeId) -> bool:
		"""True when `ty` has a non-default effective DESTROY."""
		return not self.resolve(ty, OpKind.DESTROY).is_default

	def is_unresolvable(self, ty: TypeId) -> bool:
		"""True for types that have no finite structure (reported as E-LIFT-RECURSIVE)."""
		return self._is_erroneous(ty)

	def operation_table(self, type_ids: Iterable[TypeId]) -> Dict[TypeId, Dict[OpKind, EffectiveOperation]]:
		"""Per-type operation table for every requested type (all three kinds)."""
		return {ty: {kind: self.resolve(ty, kind) for kind in OpKind} for ty in type_ids}

	def expand(self, ty: TypeId, kind: OpKind, place: str) -> List[PlanNode]:
		"""
		Flatten the effective operation of `ty` applied to `place` into calls.

		Arrays are unrolled per index (`a[0]`, `a[1]`, ...); sequences become an
		`ElementLoop` over `a[i]`. A type reached again while it is being
		expanded (recursion through `seq`/`ref`) yields a `LiftedCall` so the
		plan stays finite.
		"""
		return self._expand(ty, kind, place, ())

	# -- resolution ----------------------------------------------------

	def _compute(self, ty: TypeId, kind: OpKind) -> EffectiveOperation:
		if self._is_erroneous(ty):
			return EffectiveOperation(ty, kind, OpOrigin.DEFAULT)
		entry = self._override(ty, kind)
		if entry is not None:
			return EffectiveOperation(ty, kind, OpOrigin.USER_OVERRIDE, entry=entry)
		slots = self._edges(ty, kind)
		if not slots:
			return EffectiveOperation(ty, kind, OpOrigin.DEFAULT)
		if not self._reaches_override(ty, kind):
			return EffectiveOperation(ty, kind, OpOrigin.DEFAULT)
		steps = [s for s in slots if self._reaches_override(s.type_id, kind)]
		return EffectiveOperation(ty, kind, OpOrigin.LIFTED, steps=tuple(_order_steps(steps, kind)))

	def _override(self, ty: TypeId, kind: OpKind) -> Optional[BoundOperationEntry]:
		td = self.type_table.get(ty)
		if kind is OpKind.DEEP_COPY:
			# A deepCopy hook takes and returns one indirection kind; it never
			# applies to the bare value or to the other indirection.
			if td.kind not in INDIRECTION_KINDS:
				return None
			entry = self._nominal_entry(td.param_types[0], kind)
			if entry is not None and entry.indirection is td.kind:
				return entry
			return None
		if td.kind in INDIRECTION_KINDS:
			return None
		return self._nominal_entry(ty, kind)

	def _nominal_entry(self, ty: TypeId, kind: OpKind) -> Optional[BoundOperationEntry]:
		if not self.type_table.is_nominal(ty):
			return None
		entry = self.registry.lookup(ty, kind)
		if entry is not None:
			return entry
		head = self.type_table.nominal_head(ty)
		if head is not None and head != ty:
			return self.registry.lookup(head, kind)
		return None

	def _edges(self, ty: TypeId, kind: OpKind) -> List[Slot]:
		"""Constituents whose operation contributes to `ty`'s operation for `kind`."""
		td = self.type_table.get(ty)
		if td.kind in INDIRECTION_KINDS and kind is not OpKind.DEEP_COPY:
			# Assign/destroy of an indirection never touches the pointee here;
			# heap ownership is handled by the runtime, not by scoped hooks.
			return []
		if td.kind in (TypeKind.VAR, TypeKind.LENT, TypeKind.TYPEVAR):
			return []
		return self.type_table.constituents(ty)

	def _reaches_override(self, root: TypeId, kind: OpKind) -> bool:
		"""DFS over `kind`-relevant edges: does any reachable type override `kind`?"""
		memo = self._memo.get((root, kind))
		if memo is not None:
			return not memo.is_default
		seen: Set[TypeId] = set()
		stack = [root]
		while stack:
			ty = stack.pop()
			if ty in seen:
				continue
			seen.add(ty)
			if self._is_erroneous(ty):
				continue
			cached = self._memo.get((ty, kind))
			if cached is not None:
				if not cached.is_default:
					return True
				continue
			if self._override(ty, kind) is not None:
				return True
			for slot in self._edges(ty, kind):
				stack.append(slot.type_id)
		return False

	# -- by-value recursion ----------------------------------------------

	def _is_erroneous(self, ty: TypeId) -> bool:
		if self._is_expansive(ty):
			self._report_expansive(self.type_table.nominal_head(ty) or ty)
			return True
		if ty not in self._scc_index:
			self._tarjan(ty)
		if ty in self._cyclic:
			self._report_recursive(ty)
			return True
		return False

	def _is_expansive(self, ty: TypeId) -> bool:
		"""
		Does the generic head of `ty` instantiate ever deeper copies of itself?

		`W[T] = object { w: seq[W[seq[T]]] }` has no finite set of constituent
		types: every body substitution mints a new instance. The head is
		searched once over all constituent edges; an instance nested deeper
		than `_EXPANSION_LIMIT` marks it. Instances of other heads that expand, or
		are still being searched, are not followed, so the blame lands on the
		head that grows.
		"""
		table = self.type_table
		head = table.nominal_head(ty)
		if head is None or not table.get(head).type_params:
			return False
		cached = self._expansive.get(head)
		if cached is not None:
			return cached
		self._expanding.add(head)
		try:
			grows = self._search_expansion(head)
		finally:
			self._expanding.discard(head)
		self._expansive[head] = grows
		return grows

	def _search_expansion(self, head: TypeId) -> bool:
		table = self.type_table
		seen: Set[TypeId] = set()
		stack = [head]
		while stack:
			cur = stack.pop()
			if cur in seen:
				continue
			seen.add(cur)
			td = table.get(cur)
			if td.kind is TypeKind.INSTANCE:
				other = td.param_types[0]
				if other != head and (other in self._expanding or self._is_expansive(cur)):
					continue
				if table.nesting_depth(cur) > _EXPANSION_LIMIT:
					return True
			stack.extend(s.type_id for s in table.constituents(cur))
		return False

	def _report_expansive(self, head: TypeId) -> None:
		if head in self._reported:
			return
		self._reported.add(head)
		name = self.type_table.type_name(head)
		self.diagnostics.append(
			Diagnostic(
				message=f"recursive generic type '{name}' contains ever larger instances of itself; "
				"its structure never ends",
				code=D.UNRESOLVABLE_RECURSIVE_TYPE,
				phase="resolve",
				span=self.type_table.get(head).span,
			)
		)

	def _by_value_edges(self, ty: TypeId) -> List[TypeId]:
		if self._is_expansive(ty):
			return []
		td = self.type_table.get(ty)
		if td.kind in (TypeKind.OBJECT, TypeKind.INSTANCE, TypeKind.TUPLE, TypeKind.ARRAY, TypeKind.DISTINCT):
			return [s.type_id for s in self.type_table.constituents(ty)]
		return []

	def _tarjan(self, root: TypeId) -> None:
		"""Incremental Tarjan SCC from `root`; marks members of cyclic SCCs."""
		low: Dict[TypeId, int] = {}
		stack: List[TypeId] = []
		on_stack: Set[TypeId] = set()

		def visit(ty: TypeId) -> None:
			idx = len(self._scc_index)
			self._scc_index[ty] = idx
			low[ty] = idx
			stack.append(ty)
			on_stack.add(ty)
			self_loop = False
			for succ in self._by_value_edges(ty):
				if succ == ty:
					self_loop = True
				if succ not in self._scc_index:
					visit(succ)
					low[ty] = min(low[ty], low[succ])
				elif succ in on_stack:
					low[ty] = min(low[ty], self._scc_index[succ])
			if low[ty] == self._scc_index[ty]:
				members: List[TypeId] = []
				while True:
					top = stack.pop()
					on_stack.discard(top)
					members.append(top)
					if top == ty:
						break
				if len(members) > 1 or self_loop:
					self._cyclic.update(members)
					self._sccs_by_member.update({m: tuple(reversed(members)) for m in members})

		visit(root)

	def _report_recursive(self, ty: TypeId) -> None:
		if ty in self._reported:
			return
		members = self._sccs_by_member.get(ty, (ty,))
		self._reported.update(members)
		names = [self.type_table.type_name(m) for m in members]
		head = self.type_table.nominal_head(ty) or ty
		span = self.type_table.get(head).span
		cycle = " -> ".join([*names, names[0]])
		self.diagnostics.append(
			Diagnostic(
				message=f"recursive type '{names[0]}' contains itself by value ({cycle}); "
				"break the cycle with `ref`, `ptr` or `seq`",
				code=D.UNRESOLVABLE_RECURSIVE_TYPE,
				phase="resolve",
				span=span,
			)
		)

	# -- expansion -----------------------------------------------------

	def _expand(self, ty: TypeId, kind: OpKind, place: str, active: Tuple[TypeId, ...]) -> List[PlanNode]:
		op = self.resolve(ty, kind)
		if op.origin is OpOrigin.DEFAULT:
			return []
		if op.origin is OpOrigin.USER_OVERRIDE:
			assert op.entry is not None
			call = HookCall(place=place, type_id=ty, entry=op.entry)
			base = self.type_table.object_body(ty)[1] if kind is OpKind.DESTROY else None
			if base is None or self.resolve(base, kind).is_default:
				return [call]
			if ty in active:
				return [LiftedCall(place=place, type_id=ty, kind=kind)]
			# The hook sees only the derived part; the base is destroyed after it.
			base_place = f"{self.type_table.type_name(base)}({place})"
			return [call, *self._expand(base, kind, base_place, (*active, ty))]
		if ty in active:
			return [LiftedCall(place=place, type_id=ty, kind=kind)]
		inner = (*active, ty)
		out: List[PlanNode] = []
		for slot in op.steps:
			if slot.kind is SlotKind.ELEMENT and slot.count is not None:
				for i in range(slot.count):
					out.extend(self._expand(slot.type_id, kind, f"{place}[{i}]", inner))
			elif slot.kind is SlotKind.ELEMENT:
				body = self._expand(slot.type_id, kind, f"{place}[i]", inner)
				if body:
					out.append(ElementLoop(place=place, elem_type=slot.type_id, body=tuple(body)))
			else:
				out.extend(self._expand(slot.type_id, kind, self._slot_place(place, slot), inner))
		return out

	def _slot_place(self, place: str, slot: Slot) -> str:
		if slot.kind is SlotKind.FIELD:
			return f"{place}.{slot.name}"
		if slot.kind is SlotKind.TUPLE_ELEM:
			return f"{place}[{slot.index}]"
		if slot.kind is SlotKind.POINTEE:
			return f"{place}[]"
		# Base sub-object and distinct underlying value: conversion syntax.
		return f"{self.type_table.type_name(slot.type_id)}({place})"


def _order_steps(steps: List[Slot], kind: OpKind) -> List[Slot]:
	base = [s for s in steps if s.kind is SlotKind.BASE]
	own = [s for s in steps if s.kind is not SlotKind.BASE]
	if kind is OpKind.DESTROY:
		# Element order stays index order; only named/positional slots reverse.
		own = list(reversed(own))
		return own + base
	return base + own


def count_hook_calls(plan: Iterable[PlanNode]) -> int:
	"""Number of statically known hook calls in a plan (loops count their body once)."""
	total = 0
	for node in plan:
		if isinstance(node, ElementLoop):
			total += count_hook_calls(node.body)
		else:
			total += 1
	return total


__all__ = [
	"OpOrigin",
	"EffectiveOperation",
	"HookCall",
	"LiftedCall",
	"ElementLoop",
	"PlanNode",
	"Resolver",
	"ResolverNotReadyError",
	"count_hook_calls",
]
