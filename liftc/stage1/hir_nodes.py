# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-15
"""
High-level Intermediate Representation (HIR) for procedure bodies.

Pipeline placement:
  fixture AST (liftc/parser) → HIR (this file) → scope graph (stage2)

Guiding rules:
- Nodes are syntactic. Static types, binding identities and context sites
  live in side tables keyed by NodeId (see `node_ids.assign_node_ids`), so
  tests can build HIR by hand and attach only the tables they need.
- Blocks are explicit statements (`HBlock`) and each one is a lexical scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from liftc.core.span import Span
from liftc.core.types_core import TypeId

# Stable identifiers for bindings (locals/params).
BindingId = int
# Stable identifiers for HIR nodes (used by typed side tables).
NodeId = int


class HNode:
	"""Base class for all HIR nodes."""
	node_id: NodeId = 0


class HExpr(HNode):
	"""Base class for all HIR expressions."""
	pass


class HStmt(HNode):
	"""Base class for all HIR statements."""
	pass


# Expressions

@dataclass
class HVar(HExpr):
	"""Reference to a local/param binding."""
	name: str
	binding_id: Optional[BindingId] = None
	loc: Span = field(default_factory=Span)


@dataclass
class HLiteralInt(HExpr):
	value: int
	loc: Span = field(default_factory=Span)


@dataclass
class HLiteralBool(HExpr):
	value: bool
	loc: Span = field(default_factory=Span)


@dataclass
class HCall(HExpr):
	"""Call of a named procedure; the only value-producing expression."""
	fn: str
	args: List[HExpr] = field(default_factory=list)
	loc: Span = field(default_factory=Span)


@dataclass
class HField(HExpr):
	"""Field projection `subject.name`."""
	subject: HExpr
	name: str
	loc: Span = field(default_factory=Span)


# Statements

@dataclass
class HBlock(HStmt):
	"""Statement list forming one lexical scope."""
	statements: List[HStmt] = field(default_factory=list)
	loc: Span = field(default_factory=Span)


@dataclass
class HLet(HStmt):
	"""`var`/`let` declaration. `mutable` distinguishes `var` from `let`."""
	name: str
	value: Optional[HExpr] = None
	declared_type: Optional[TypeId] = None
	mutable: bool = True
	binding_id: Optional[BindingId] = None
	loc: Span = field(default_factory=Span)


@dataclass
class HAssign(HStmt):
	target: HExpr
	value: HExpr
	loc: Span = field(default_factory=Span)


@dataclass
class HExprStmt(HStmt):
	expr: HExpr
	loc: Span = field(default_factory=Span)


@dataclass
class HReturn(HStmt):
	value: Optional[HExpr] = None
	loc: Span = field(default_factory=Span)


@dataclass
class HIf(HStmt):
	cond: HExpr
	then_block: HBlock
	else_block: Optional[HBlock] = None
	loc: Span = field(default_factory=Span)


@dataclass
class HWhile(HStmt):
	cond: HExpr
	body: HBlock
	loc: Span = field(default_factory=Span)


@dataclass
class HBreak(HStmt):
	loc: Span = field(default_factory=Span)


@dataclass
class HContinue(HStmt):
	loc: Span = field(default_factory=Span)


@dataclass
class HSpawn(HStmt):
	"""Task submission: `call` runs on another execution unit."""
	call: HCall
	loc: Span = field(default_factory=Span)


# Procedures

@dataclass
class HParam(HNode):
	name: str
	type_id: TypeId
	binding_id: Optional[BindingId] = None
	loc: Span = field(default_factory=Span)


@dataclass
class HProc(HNode):
	"""
	A lowered procedure body.

	`result_binding` is the implicit `result` local when the procedure has a
	result type; it is returned on every exit and never destroyed.
	"""
	name: str
	params: List[HParam]
	result_type: TypeId
	body: HBlock
	result_binding: Optional[BindingId] = None
	loc: Span = field(default_factory=Span)


__all__ = [
	"BindingId",
	"NodeId",
	"HNode",
	"HExpr",
	"HStmt",
	"HVar",
	"HLiteralInt",
	"HLiteralBool",
	"HCall",
	"HField",
	"HBlock",
	"HLet",
	"HAssign",
	"HExprStmt",
	"HReturn",
	"HIf",
	"HWhile",
	"HBreak",
	"HContinue",
	"HSpawn",
	"HParam",
	"HProc",
]
