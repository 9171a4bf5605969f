# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-13
"""
Lifecycle hook registry.

Holds at most one bound hook per (nominal type, operation kind). The registry
is populated by the binder and then frozen; after `freeze()` it is read-only,
which is what makes resolver memoization sound for the rest of the unit.

The registry does not validate signatures; the binder owns that policy and
only calls `bind` with entries that already passed validation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, Optional, Tuple

from liftc.core.span import Span
from liftc.core.types_core import TypeId, TypeKind


class OpKind(Enum):
	"""Lifecycle operation kinds that accept a user-supplied hook."""

	ASSIGN = auto()
	DESTROY = auto()
	DEEP_COPY = auto()

	@property
	def hook_name(self) -> str:
		return _HOOK_NAMES[self]

	@staticmethod
	def from_hook_name(name: str) -> Optional["OpKind"]:
		for kind, hook in _HOOK_NAMES.items():
			if hook == name:
				return kind
		return None


_HOOK_NAMES = {
	OpKind.ASSIGN: "=",
	OpKind.DESTROY: "=destroy",
	OpKind.DEEP_COPY: "=deepCopy",
}


@dataclass(frozen=True)
class HookSignature:
	"""Validated parameter/result types of a hook declaration."""

	param_types: Tuple[TypeId, ...]
	result_type: TypeId


@dataclass(frozen=True)
class BoundOperationEntry:
	"""
	A user hook bound to a nominal type.

	`impl` names the user procedure code generation calls. `indirection` is
	only set for DEEP_COPY and records whether the hook was declared over a
	REF or PTR of the target.
	"""

	kind: OpKind
	target: TypeId
	signature: HookSignature
	impl: str
	indirection: Optional[TypeKind] = None
	span: Span = field(default_factory=Span)


class RegistryFrozenError(AssertionError):
	"""Binding after the binder phase completed (driver ordering bug)."""


class TypeRegistry:
	"""Per-unit table of bound lifecycle hooks keyed by (nominal TypeId, OpKind)."""

	def __init__(self) -> None:
		self._entries: Dict[Tuple[TypeId, OpKind], BoundOperationEntry] = {}
		self._frozen = False

	@property
	def frozen(self) -> bool:
		return self._frozen

	def freeze(self) -> None:
		"""Close the binder phase; later `bind` calls are internal errors."""
		self._frozen = True

	def lookup(self, target: TypeId, kind: OpKind) -> Optional[BoundOperationEntry]:
		return self._entries.get((target, kind))

	def bind(self, entry: BoundOperationEntry) -> None:
		if self._frozen:
			raise RegistryFrozenError(f"cannot bind {entry.kind.hook_name} after the binder phase")
		key = (entry.target, entry.kind)
		if key in self._entries:
			raise ValueError(f"duplicate binding for {entry.kind.hook_name} on type id {entry.target}")
		self._entries[key] = entry

	def entries(self) -> Iterator[BoundOperationEntry]:
		return iter(self._entries.values())

	def __len__(self) -> int:
		return len(self._entries)


__all__ = [
	"OpKind",
	"HookSignature",
	"BoundOperationEntry",
	"RegistryFrozenError",
	"TypeRegistry",
]
