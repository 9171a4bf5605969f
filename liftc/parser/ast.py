# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Surface AST produced by the fixture parser (before name/type resolution)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class Located:
	line: Optional[int]
	column: Optional[int]


@dataclass
class TypeExpr:
	"""
	Spelled type. Builtin constructors use their keyword as `name`
	("array", "seq", "tuple", "ref", "ptr", "var", "lent"); `length` is only
	set for arrays.
	"""

	name: str
	args: List["TypeExpr"] = field(default_factory=list)
	length: Optional[int] = None
	loc: Optional[Located] = None


@dataclass
class FieldDecl:
	name: str
	type_expr: TypeExpr
	loc: Located


@dataclass
class ObjectDef:
	name: str
	type_params: List[str]
	base: Optional[TypeExpr]
	fields: List[FieldDecl]
	loc: Located


@dataclass
class DistinctDef:
	name: str
	underlying: TypeExpr
	loc: Located


TypeDecl = Union[ObjectDef, DistinctDef]


@dataclass
class Param:
	name: str
	type_expr: TypeExpr
	loc: Located


class Expr:
	loc: Located


@dataclass
class Name(Expr):
	ident: str
	loc: Located


@dataclass
class IntLit(Expr):
	value: int
	loc: Located


@dataclass
class BoolLit(Expr):
	value: bool
	loc: Located


@dataclass
class Call(Expr):
	fn: str
	args: List[Expr]
	loc: Located


@dataclass
class Field(Expr):
	subject: Expr
	name: str
	loc: Located


class Stmt:
	loc: Located


@dataclass
class Block:
	statements: List[Stmt]
	loc: Located


@dataclass
class VarStmt(Stmt):
	name: str
	type_expr: Optional[TypeExpr]
	value: Optional[Expr]
	mutable: bool
	loc: Located


@dataclass
class AssignStmt(Stmt):
	target: Expr
	value: Expr
	loc: Located


@dataclass
class ExprStmt(Stmt):
	expr: Expr
	loc: Located


@dataclass
class ReturnStmt(Stmt):
	value: Optional[Expr]
	loc: Located


@dataclass
class IfStmt(Stmt):
	cond: Expr
	then_block: Block
	else_block: Optional[Block]
	loc: Located


@dataclass
class WhileStmt(Stmt):
	cond: Expr
	body: Block
	loc: Located


@dataclass
class BreakStmt(Stmt):
	loc: Located


@dataclass
class ContinueStmt(Stmt):
	loc: Located


@dataclass
class BlockStmt(Stmt):
	block: Block
	loc: Located


@dataclass
class SpawnStmt(Stmt):
	call: Call
	loc: Located


@dataclass
class ProcDef:
	name: str
	is_hook: bool
	type_params: List[str]
	params: List[Param]
	result: Optional[TypeExpr]
	body: Block
	loc: Located


@dataclass
class Program:
	types: List[TypeDecl] = field(default_factory=list)
	procs: List[ProcDef] = field(default_factory=list)
