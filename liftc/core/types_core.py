# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-12
"""
Type core shared by the binder, resolver and the stage passes.

TypeIds are opaque ints indexing into a TypeTable (an arena of TypeDefs).
Nominal kinds (OBJECT, DISTINCT) get a fresh TypeId per declaration, so their
identity is the declaration site. Structural kinds (ARRAY, SEQUENCE, TUPLE,
REF, PTR, VAR, LENT) and generic INSTANCEs are hash-consed: the same spelling
always yields the same TypeId, which is what lets the resolver memoize per id.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Dict, List, Mapping, Optional, Tuple

from .span import Span


TypeId = int  # opaque handle into the TypeTable


class TypeKind(Enum):
	"""Kinds of types understood by the type core."""

	SCALAR = auto()
	VOID = auto()
	UNKNOWN = auto()
	OBJECT = auto()     # nominal; may be generic (type_params) and may have a base
	DISTINCT = auto()   # nominal wrapper over an underlying type
	INSTANCE = auto()   # generic OBJECT applied to type arguments
	TYPEVAR = auto()    # generic parameter of an OBJECT or proc
	ARRAY = auto()      # fixed-length array[N, T]
	SEQUENCE = auto()   # heap-backed seq[T]
	TUPLE = auto()
	REF = auto()        # managed reference (indirection)
	PTR = auto()        # raw pointer (indirection)
	VAR = auto()        # mutable parameter reference
	LENT = auto()       # const parameter reference


NOMINAL_KINDS = frozenset({TypeKind.OBJECT, TypeKind.DISTINCT, TypeKind.INSTANCE})
INDIRECTION_KINDS = frozenset({TypeKind.REF, TypeKind.PTR})
PARAM_REF_KINDS = frozenset({TypeKind.VAR, TypeKind.LENT})


@dataclass(frozen=True)
class FieldDef:
	"""Named object field; order in the owning TypeDef is declaration order."""

	name: str
	type_id: TypeId


@dataclass(frozen=True)
class TypeDef:
	"""Definition of a type stored in the TypeTable."""

	kind: TypeKind
	name: str
	param_types: Tuple[TypeId, ...] = ()  # element/inner/args, by kind
	length: Optional[int] = None  # ARRAY only
	type_params: Tuple[TypeId, ...] = ()  # generic OBJECT only (TYPEVAR ids)
	fields: Tuple[FieldDef, ...] = ()  # OBJECT only
	base: Optional[TypeId] = None  # OBJECT only (`object of Base`)
	span: Span = field(default_factory=Span)


class SlotKind(Enum):
	"""How a constituent is reached from its owning type."""

	BASE = auto()
	FIELD = auto()
	TUPLE_ELEM = auto()
	ELEMENT = auto()
	UNDERLYING = auto()
	POINTEE = auto()


@dataclass(frozen=True)
class Slot:
	"""One constituent of a compound type (the compound-type descriptor entries)."""

	kind: SlotKind
	type_id: TypeId
	name: Optional[str] = None  # FIELD
	index: Optional[int] = None  # TUPLE_ELEM
	count: Optional[int] = None  # ELEMENT of an ARRAY; None for sequences


class TypeTable:
	"""
	Arena that owns TypeIds.

	Object bodies are filled after declaration (`define_object`) so recursive
	and forward references between declarations resolve to stable ids.
	"""

	def __init__(self) -> None:
		self._defs: Dict[TypeId, TypeDef] = {}
		self._next_id: TypeId = 1  # reserve 0 for "invalid"
		self._structural: Dict[tuple, TypeId] = {}
		self._instance_fields: Dict[TypeId, Tuple[Tuple[FieldDef, ...], Optional[TypeId]]] = {}
		self._depth: Dict[TypeId, int] = {}
		self._int_type: TypeId | None = None
		self._bool_type: TypeId | None = None
		self._void_type: TypeId | None = None
		self._unknown_type: TypeId | None = None

	# -- scalars ---------------------------------------------------------

	def new_scalar(self, name: str) -> TypeId:
		"""Register a scalar type (e.g., Int, Bool) and return its TypeId."""
		return self._add(TypeDef(kind=TypeKind.SCALAR, name=name))

	def ensure_int(self) -> TypeId:
		"""Return a stable Int TypeId, creating it once."""
		if self._int_type is None:
			self._int_type = self.new_scalar("Int")
		return self._int_type

	def ensure_bool(self) -> TypeId:
		"""Return a stable Bool TypeId, creating it once."""
		if self._bool_type is None:
			self._bool_type = self.new_scalar("Bool")
		return self._bool_type

	def ensure_void(self) -> TypeId:
		if self._void_type is None:
			self._void_type = self._add(TypeDef(kind=TypeKind.VOID, name="Void"))
		return self._void_type

	def ensure_unknown(self) -> TypeId:
		"""Return a stable Unknown TypeId (error recovery), creating it once."""
		if self._unknown_type is None:
			self._unknown_type = self._add(TypeDef(kind=TypeKind.UNKNOWN, name="Unknown"))
		return self._unknown_type

	# -- nominal declarations ------------------------------------------

	def declare_object(self, name: str, *, type_params: List[str] | None = None, span: Span | None = None) -> TypeId:
		"""
		Declare a (possibly generic) object type with an empty body.

		Type parameters get TYPEVAR ids owned by the declaration; read them back
		through `get(tid).type_params` when resolving the body.
		"""
		tid = self._add(TypeDef(kind=TypeKind.OBJECT, name=name, span=span or Span()))
		if type_params:
			tvars = tuple(self.new_typevar(p) for p in type_params)
			self._defs[tid] = replace(self._defs[tid], type_params=tvars)
		return tid

	def define_object(self, tid: TypeId, fields: List[FieldDef], *, base: TypeId | None = None) -> None:
		"""Fill the body of a declared object (fields in declaration order)."""
		td = self.get(tid)
		if td.kind is not TypeKind.OBJECT:
			raise ValueError(f"define_object on non-object type {td.name}")
		self._defs[tid] = replace(td, fields=tuple(fields), base=base)
		# Instances cache substituted bodies; a redefinition invalidates them.
		for inst_id in [i for i, d in self._defs.items() if d.kind is TypeKind.INSTANCE and d.param_types and d.param_types[0] == tid]:
			self._instance_fields.pop(inst_id, None)

	def declare_distinct(self, name: str, underlying: TypeId, *, span: Span | None = None) -> TypeId:
		return self._add(TypeDef(kind=TypeKind.DISTINCT, name=name, param_types=(underlying,), span=span or Span()))

	def new_typevar(self, name: str) -> TypeId:
		return self._add(TypeDef(kind=TypeKind.TYPEVAR, name=name))

	# -- structural (hash-consed) --------------------------------------

	def ensure_array(self, length: int, elem: TypeId) -> TypeId:
		return self._ensure(("array", length, elem), lambda: TypeDef(kind=TypeKind.ARRAY, name="array", param_types=(elem,), length=length))

	def ensure_seq(self, elem: TypeId) -> TypeId:
		return self._ensure(("seq", elem), lambda: TypeDef(kind=TypeKind.SEQUENCE, name="seq", param_types=(elem,)))

	def ensure_tuple(self, elems: List[TypeId]) -> TypeId:
		key = ("tuple", tuple(elems))
		return self._ensure(key, lambda: TypeDef(kind=TypeKind.TUPLE, name="tuple", param_types=tuple(elems)))

	def ensure_ref(self, inner: TypeId) -> TypeId:
		return self._ensure(("ref", inner), lambda: TypeDef(kind=TypeKind.REF, name="ref", param_types=(inner,)))

	def ensure_ptr(self, inner: TypeId) -> TypeId:
		return self._ensure(("ptr", inner), lambda: TypeDef(kind=TypeKind.PTR, name="ptr", param_types=(inner,)))

	def ensure_var(self, inner: TypeId) -> TypeId:
		return self._ensure(("var", inner), lambda: TypeDef(kind=TypeKind.VAR, name="var", param_types=(inner,)))

	def ensure_lent(self, inner: TypeId) -> TypeId:
		return self._ensure(("lent", inner), lambda: TypeDef(kind=TypeKind.LENT, name="lent", param_types=(inner,)))

	def ensure_instance(self, head: TypeId, args: List[TypeId]) -> TypeId:
		"""Return the stable TypeId of generic object `head` applied to `args`."""
		head_def = self.get(head)
		if head_def.kind is not TypeKind.OBJECT or not head_def.type_params:
			raise ValueError(f"{head_def.name} is not a generic object type")
		if len(args) != len(head_def.type_params):
			raise ValueError(f"{head_def.name} expects {len(head_def.type_params)} type argument(s), got {len(args)}")
		key = ("instance", head, tuple(args))
		return self._ensure(key, lambda: TypeDef(kind=TypeKind.INSTANCE, name=head_def.name, param_types=(head, *args), span=head_def.span))

	# -- queries -------------------------------------------------------

	def get(self, ty: TypeId) -> TypeDef:
		"""Fetch the TypeDef for a given TypeId."""
		return self._defs[ty]

	def all_type_ids(self) -> List[TypeId]:
		return list(self._defs.keys())

	def is_nominal(self, ty: TypeId) -> bool:
		return self.get(ty).kind in NOMINAL_KINDS

	def nominal_head(self, ty: TypeId) -> Optional[TypeId]:
		"""Declaration-site identity of a nominal type (instances map to their generic head)."""
		td = self.get(ty)
		if td.kind is TypeKind.INSTANCE:
			return td.param_types[0]
		if td.kind in (TypeKind.OBJECT, TypeKind.DISTINCT):
			return ty
		return None

	def pointee(self, ty: TypeId) -> Optional[TypeId]:
		td = self.get(ty)
		if td.kind in INDIRECTION_KINDS or td.kind in PARAM_REF_KINDS:
			return td.param_types[0]
		return None

	def object_body(self, ty: TypeId) -> Tuple[Tuple[FieldDef, ...], Optional[TypeId]]:
		"""Fields and base of an OBJECT or INSTANCE (instances are substituted lazily)."""
		td = self.get(ty)
		if td.kind is TypeKind.OBJECT:
			return td.fields, td.base
		if td.kind is not TypeKind.INSTANCE:
			return (), None
		cached = self._instance_fields.get(ty)
		if cached is None:
			head = self.get(td.param_types[0])
			mapping = dict(zip(head.type_params, td.param_types[1:]))
			fields = tuple(FieldDef(f.name, self.substitute(f.type_id, mapping)) for f in head.fields)
			base = self.substitute(head.base, mapping) if head.base is not None else None
			cached = (fields, base)
			self._instance_fields[ty] = cached
		return cached

	def constituents(self, ty: TypeId) -> List[Slot]:
		"""
		Ordered constituent slots of `ty` (declaration order; base first).

		Scalars, VOID, UNKNOWN and TYPEVARs have no constituents.
		"""
		td = self.get(ty)
		kind = td.kind
		if kind in (TypeKind.OBJECT, TypeKind.INSTANCE):
			fields, base = self.object_body(ty)
			slots: List[Slot] = []
			if base is not None:
				slots.append(Slot(SlotKind.BASE, base))
			slots.extend(Slot(SlotKind.FIELD, f.type_id, name=f.name) for f in fields)
			return slots
		if kind is TypeKind.DISTINCT:
			return [Slot(SlotKind.UNDERLYING, td.param_types[0])]
		if kind is TypeKind.ARRAY:
			return [Slot(SlotKind.ELEMENT, td.param_types[0], count=td.length)]
		if kind is TypeKind.SEQUENCE:
			return [Slot(SlotKind.ELEMENT, td.param_types[0])]
		if kind is TypeKind.TUPLE:
			return [Slot(SlotKind.TUPLE_ELEM, t, index=i) for i, t in enumerate(td.param_types)]
		if kind in INDIRECTION_KINDS or kind in PARAM_REF_KINDS:
			return [Slot(SlotKind.POINTEE, td.param_types[0])]
		return []

	def field_type(self, ty: TypeId, name: str) -> Optional[TypeId]:
		"""Type of field `name` on an object (searching base objects too)."""
		seen: set[TypeId] = set()
		cur: Optional[TypeId] = ty
		while cur is not None and cur not in seen:
			seen.add(cur)
			fields, base = self.object_body(cur)
			for f in fields:
				if f.name == name:
					return f.type_id
			cur = base
		return None

	def has_typevars(self, ty: TypeId) -> bool:
		td = self.get(ty)
		if td.kind is TypeKind.TYPEVAR:
			return True
		if td.kind in (TypeKind.OBJECT, TypeKind.DISTINCT):
			return False
		args = td.param_types[1:] if td.kind is TypeKind.INSTANCE else td.param_types
		return any(self.has_typevars(a) for a in args)

	def nesting_depth(self, ty: TypeId) -> int:
		"""
		How deeply type constructors nest inside `ty` (`seq[seq[Int]]` is 2).

		Nominal types without arguments count as leaves; an INSTANCE counts its
		arguments only, so `Box[Int]` is 1.
		"""
		cached = self._depth.get(ty)
		if cached is not None:
			return cached
		td = self.get(ty)
		args = td.param_types[1:] if td.kind is TypeKind.INSTANCE else td.param_types
		if td.kind in (TypeKind.OBJECT, TypeKind.DISTINCT, TypeKind.TYPEVAR) or not args:
			depth = 0
		else:
			depth = 1 + max(self.nesting_depth(a) for a in args)
		self._depth[ty] = depth
		return depth

	def substitute(self, ty: TypeId, mapping: Mapping[TypeId, TypeId]) -> TypeId:
		"""Replace TYPEVARs in a structural type according to `mapping`."""
		if not mapping:
			return ty
		td = self.get(ty)
		kind = td.kind
		if kind is TypeKind.TYPEVAR:
			return mapping.get(ty, ty)
		if kind is TypeKind.ARRAY:
			return self.ensure_array(td.length or 0, self.substitute(td.param_types[0], mapping))
		if kind is TypeKind.SEQUENCE:
			return self.ensure_seq(self.substitute(td.param_types[0], mapping))
		if kind is TypeKind.TUPLE:
			return self.ensure_tuple([self.substitute(t, mapping) for t in td.param_types])
		if kind is TypeKind.REF:
			return self.ensure_ref(self.substitute(td.param_types[0], mapping))
		if kind is TypeKind.PTR:
			return self.ensure_ptr(self.substitute(td.param_types[0], mapping))
		if kind is TypeKind.VAR:
			return self.ensure_var(self.substitute(td.param_types[0], mapping))
		if kind is TypeKind.LENT:
			return self.ensure_lent(self.substitute(td.param_types[0], mapping))
		if kind is TypeKind.INSTANCE:
			return self.ensure_instance(td.param_types[0], [self.substitute(a, mapping) for a in td.param_types[1:]])
		return ty

	def type_name(self, ty: TypeId) -> str:
		"""Human-readable spelling used in diagnostics and dumps."""
		td = self.get(ty)
		kind = td.kind
		if kind is TypeKind.ARRAY:
			return f"array[{td.length}, {self.type_name(td.param_types[0])}]"
		if kind is TypeKind.SEQUENCE:
			return f"seq[{self.type_name(td.param_types[0])}]"
		if kind is TypeKind.TUPLE:
			return "tuple[" + ", ".join(self.type_name(t) for t in td.param_types) + "]"
		if kind in (TypeKind.REF, TypeKind.PTR, TypeKind.VAR, TypeKind.LENT):
			return f"{td.name} {self.type_name(td.param_types[0])}"
		if kind is TypeKind.INSTANCE:
			return f"{td.name}[" + ", ".join(self.type_name(a) for a in td.param_types[1:]) + "]"
		if kind is TypeKind.OBJECT and td.type_params:
			return f"{td.name}[" + ", ".join(self.get(p).name for p in td.type_params) + "]"
		return td.name

	# -- internals -----------------------------------------------------

	def _ensure(self, key: tuple, make) -> TypeId:
		tid = self._structural.get(key)
		if tid is None:
			tid = self._add(make())
			self._structural[key] = tid
		return tid

	def _add(self, td: TypeDef) -> TypeId:
		ty_id = self._next_id
		self._next_id += 1
		self._defs[ty_id] = td
		return ty_id


__all__ = [
	"TypeId",
	"TypeKind",
	"TypeDef",
	"FieldDef",
	"Slot",
	"SlotKind",
	"TypeTable",
	"NOMINAL_KINDS",
	"INDIRECTION_KINDS",
	"PARAM_REF_KINDS",
]
