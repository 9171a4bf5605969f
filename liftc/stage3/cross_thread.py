# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-21
"""
Cross-thread gate: deep-copy every value handed to a spawned task.

At `spawn f(a, b, ...)` each argument is replaced by a deep copy made on the
submitting thread before the task starts, so no mutable heap location is
shared between execution units after the handoff. Per argument type:

  USER_HOOK         the argument is a `ref`/`ptr` whose pointee has a
                    `=deepCopy` bound through that same indirection; call it.
  LIFTED            some constituent has one; copy slot by slot, calling the
                    hook where bound and cloning structurally elsewhere.
  STRUCTURAL_CLONE  nothing is hooked; clone every reachable indirection
                    (`ref`, `ptr`, `seq` buffers) recursively.

Resolution goes through the lifting resolver with OpKind.DEEP_COPY and is
independent of `=` / `=destroy`: a type may hook deep copy alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Mapping, Optional, Tuple, Union

from liftc.core.span import Span
from liftc.core.types_core import INDIRECTION_KINDS, SlotKind, TypeId, TypeKind
from liftc.lifecycle.registry import OpKind
from liftc.lifecycle.resolver import EffectiveOperation, HookCall, OpOrigin, Resolver
from liftc.stage1 import hir_nodes as H


class HandoffStrategy(Enum):
	USER_HOOK = auto()
	LIFTED = auto()
	STRUCTURAL_CLONE = auto()


@dataclass(frozen=True)
class CloneStep:
	"""
	Allocate fresh storage for the indirection or seq buffer at `place`.

	`children` then run on the new storage (`place[]` for a pointee, `place[i]`
	for every sequence element).
	"""

	place: str
	type_id: TypeId
	children: Tuple["CopyNode", ...] = ()


@dataclass(frozen=True)
class RecursiveClone:
	"""Back-edge: deep-copy `place` with the routine already being emitted for `type_id`."""

	place: str
	type_id: TypeId


CopyNode = Union[HookCall, CloneStep, RecursiveClone]


@dataclass(frozen=True)
class DeepCopyHandoff:
	"""Deep-copy annotation for one argument of one spawn."""

	spawn_node: H.NodeId
	callee: str
	arg_index: int
	arg_type: TypeId
	op: EffectiveOperation
	strategy: HandoffStrategy
	plan: Tuple[CopyNode, ...]
	loc: Span = field(default_factory=Span)

	@property
	def is_bitwise(self) -> bool:
		"""No hook and no reachable indirection: a plain copy already owns nothing shared."""
		return self.strategy is HandoffStrategy.STRUCTURAL_CLONE and not self.plan


_STRATEGY = {
	OpOrigin.USER_OVERRIDE: HandoffStrategy.USER_HOOK,
	OpOrigin.LIFTED: HandoffStrategy.LIFTED,
	OpOrigin.DEFAULT: HandoffStrategy.STRUCTURAL_CLONE,
}


@dataclass
class CrossThreadGate:
	resolver: Resolver

	def gate_block(self, block: H.HBlock, *, expr_types: Mapping[H.NodeId, TypeId]) -> List[DeepCopyHandoff]:
		"""Annotate every spawn under `block` (nested scopes included)."""
		out: List[DeepCopyHandoff] = []
		for spawn in _iter_spawns(block):
			arg_types: List[Optional[TypeId]] = [expr_types.get(a.node_id) for a in spawn.call.args]
			out.extend(self.gate_spawn(spawn, arg_types))
		return out

	def gate_spawn(self, spawn: H.HSpawn, arg_types: List[Optional[TypeId]]) -> List[DeepCopyHandoff]:
		out: List[DeepCopyHandoff] = []
		for idx, (arg, ty) in enumerate(zip(spawn.call.args, arg_types)):
			if ty is None:
				continue
			op = self.resolver.resolve(ty, OpKind.DEEP_COPY)
			out.append(
				DeepCopyHandoff(
					spawn_node=spawn.node_id,
					callee=spawn.call.fn,
					arg_index=idx,
					arg_type=ty,
					op=op,
					strategy=_STRATEGY[op.origin],
					plan=tuple(self.copy_plan(ty, _place_of(arg, idx))),
					loc=spawn.loc,
				)
			)
		return out

	def copy_plan(self, ty: TypeId, place: str) -> List[CopyNode]:
		"""Deep-copy plan for a value of type `ty` stored at `place`."""
		return self._plan(ty, place, ())

	def _plan(self, ty: TypeId, place: str, active: Tuple[TypeId, ...]) -> List[CopyNode]:
		if self.resolver.is_unresolvable(ty):
			# Reported by the resolver; an infinite structure has nothing to clone.
			return []
		op = self.resolver.resolve(ty, OpKind.DEEP_COPY)
		if op.origin is OpOrigin.USER_OVERRIDE:
			assert op.entry is not None
			return [HookCall(place=place, type_id=ty, entry=op.entry)]
		table = self.resolver.type_table
		td = table.get(ty)
		if ty in active:
			if td.kind in INDIRECTION_KINDS or td.kind is TypeKind.SEQUENCE or self._owns_indirection(ty):
				return [RecursiveClone(place=place, type_id=ty)]
			return []
		inner = (*active, ty)
		if td.kind in INDIRECTION_KINDS:
			children = self._plan(td.param_types[0], f"{place}[]", inner)
			return [CloneStep(place=place, type_id=ty, children=tuple(children))]
		if td.kind is TypeKind.SEQUENCE:
			children = self._plan(td.param_types[0], f"{place}[i]", inner)
			return [CloneStep(place=place, type_id=ty, children=tuple(children))]
		out: List[CopyNode] = []
		for slot in table.constituents(ty):
			if slot.kind is SlotKind.ELEMENT:
				for i in range(slot.count or 0):
					out.extend(self._plan(slot.type_id, f"{place}[{i}]", inner))
			elif slot.kind is SlotKind.FIELD:
				out.extend(self._plan(slot.type_id, f"{place}.{slot.name}", inner))
			elif slot.kind is SlotKind.TUPLE_ELEM:
				out.extend(self._plan(slot.type_id, f"{place}[{slot.index}]", inner))
			elif slot.kind in (SlotKind.BASE, SlotKind.UNDERLYING):
				out.extend(self._plan(slot.type_id, f"{table.type_name(slot.type_id)}({place})", inner))
		return out

	def _owns_indirection(self, ty: TypeId) -> bool:
		"""Does a value of `ty` reach any `ref`/`ptr`/`seq` storage?"""
		table = self.resolver.type_table
		seen: set[TypeId] = set()
		stack = [ty]
		while stack:
			cur = stack.pop()
			if cur in seen:
				continue
			seen.add(cur)
			if self.resolver.is_unresolvable(cur):
				continue
			kind = table.get(cur).kind
			if kind in INDIRECTION_KINDS or kind is TypeKind.SEQUENCE:
				return True
			stack.extend(s.type_id for s in table.constituents(cur))
		return False


def _place_of(arg: H.HExpr, idx: int) -> str:
	if isinstance(arg, H.HVar):
		return arg.name
	return f"arg{idx}"


def _iter_spawns(stmt: H.HStmt):
	if isinstance(stmt, H.HSpawn):
		yield stmt
	elif isinstance(stmt, H.HBlock):
		for s in stmt.statements:
			yield from _iter_spawns(s)
	elif isinstance(stmt, H.HIf):
		yield from _iter_spawns(stmt.then_block)
		if stmt.else_block is not None:
			yield from _iter_spawns(stmt.else_block)
	elif isinstance(stmt, H.HWhile):
		yield from _iter_spawns(stmt.body)


__all__ = [
	"HandoffStrategy",
	"CloneStep",
	"RecursiveClone",
	"CopyNode",
	"DeepCopyHandoff",
	"CrossThreadGate",
]
