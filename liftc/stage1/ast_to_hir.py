# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-16
"""
Fixture AST → HIR lowering with minimal typing.

Two entry points:

  TypeDeclarer   declares every `type` of a program into a TypeTable (objects
                 first so bodies may refer to each other, then distincts, then
                 object bodies) and resolves spelled types.
  AstToHIR       lowers one `proc` to HIR, allocating binding ids and filling
                 the expression-type and binding-type side tables the later
                 passes consume.

`lower_program` drives both and also turns every backtick-named procedure
into a `HookDecl` for the operation binder. Typing is deliberately shallow:
names, fields and call results get types, nothing is checked for
assignability.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from liftc.core import diagnostics as codes
from liftc.core.diagnostics import Diagnostic
from liftc.core.span import Span
from liftc.core.types_core import INDIRECTION_KINDS, PARAM_REF_KINDS, FieldDef, TypeId, TypeKind, TypeTable
from liftc.lifecycle.binder import HookDecl
from liftc.parser import ast
from liftc.stage1 import hir_nodes as H
from liftc.stage1.node_ids import assign_node_ids


_SCALARS = ("Int", "Bool", "Void")


@dataclass(frozen=True)
class ProcSignature:
	name: str
	param_types: Tuple[TypeId, ...]
	result_type: TypeId
	type_vars: Tuple[TypeId, ...] = ()
	is_hook: bool = False
	span: Span = field(default_factory=Span)


@dataclass
class LoweredProc:
	hir: H.HProc
	signature: ProcSignature
	expr_types: Dict[H.NodeId, TypeId] = field(default_factory=dict)
	binding_types: Dict[H.BindingId, TypeId] = field(default_factory=dict)


@dataclass
class LoweredProgram:
	type_table: TypeTable
	types: Dict[str, TypeId]
	hooks: List[HookDecl]
	procs: List[LoweredProc]
	diagnostics: List[Diagnostic]


class TypeDeclarer:
	"""Declares program types and resolves `TypeExpr`s against them."""

	def __init__(self, table: TypeTable, diagnostics: List[Diagnostic], *, file: Optional[str] = None) -> None:
		self.table = table
		self.diagnostics = diagnostics
		self.file = file
		self.names: Dict[str, TypeId] = {
			"Int": table.ensure_int(),
			"Bool": table.ensure_bool(),
			"Void": table.ensure_void(),
		}

	def declare_all(self, decls: List[ast.TypeDecl]) -> Dict[str, TypeId]:
		objects: List[Tuple[ast.ObjectDef, TypeId]] = []
		for decl in decls:
			if isinstance(decl, ast.ObjectDef) and self._check_fresh(decl.name, decl.loc):
				tid = self.table.declare_object(decl.name, type_params=decl.type_params, span=self._span(decl.loc))
				self.names[decl.name] = tid
				objects.append((decl, tid))
		for decl in decls:
			if isinstance(decl, ast.DistinctDef) and self._check_fresh(decl.name, decl.loc):
				underlying = self.resolve(decl.underlying)
				self.names[decl.name] = self.table.declare_distinct(decl.name, underlying, span=self._span(decl.loc))
		for decl, tid in objects:
			self._define_object(decl, tid)
		return {name: tid for name, tid in self.names.items() if name not in _SCALARS}

	def resolve(self, texpr: ast.TypeExpr, type_vars: Mapping[str, TypeId] | None = None) -> TypeId:
		"""Resolve a spelled type; unknown names are reported and become UNKNOWN."""
		tvars = type_vars or {}
		table = self.table
		args = texpr.args
		if texpr.name == "array":
			return table.ensure_array(texpr.length or 0, self.resolve(args[0], tvars))
		if texpr.name == "seq":
			return table.ensure_seq(self.resolve(args[0], tvars))
		if texpr.name == "tuple":
			return table.ensure_tuple([self.resolve(a, tvars) for a in args])
		if texpr.name == "ref":
			return table.ensure_ref(self.resolve(args[0], tvars))
		if texpr.name == "ptr":
			return table.ensure_ptr(self.resolve(args[0], tvars))
		if texpr.name == "var":
			return table.ensure_var(self.resolve(args[0], tvars))
		if texpr.name == "lent":
			return table.ensure_lent(self.resolve(args[0], tvars))
		if not args and texpr.name in tvars:
			return tvars[texpr.name]
		tid = self.names.get(texpr.name)
		if tid is None:
			self._error(f"unknown type '{texpr.name}'", codes.UNKNOWN_TYPE, texpr.loc)
			return table.ensure_unknown()
		expected = len(table.get(tid).type_params) if table.get(tid).kind is TypeKind.OBJECT else 0
		if len(args) != expected:
			self._error(
				f"type '{texpr.name}' expects {expected} type argument(s), got {len(args)}",
				codes.ARITY_MISMATCH,
				texpr.loc,
			)
			return table.ensure_unknown()
		if not args:
			return tid
		return table.ensure_instance(tid, [self.resolve(a, tvars) for a in args])

	def _define_object(self, decl: ast.ObjectDef, tid: TypeId) -> None:
		td = self.table.get(tid)
		tvars = {name: tv for name, tv in zip(decl.type_params, td.type_params)}
		base: Optional[TypeId] = None
		if decl.base is not None:
			base = self.resolve(decl.base, tvars)
			if self.table.get(base).kind not in (TypeKind.OBJECT, TypeKind.INSTANCE, TypeKind.UNKNOWN):
				self._error(
					f"base of '{decl.name}' must be an object type, got '{self.table.type_name(base)}'",
					codes.UNKNOWN_TYPE,
					decl.base.loc,
				)
				base = None
			elif self.table.get(base).kind is TypeKind.UNKNOWN:
				base = None
		fields: List[FieldDef] = []
		seen: set[str] = set()
		for f in decl.fields:
			if f.name in seen:
				self._error(f"duplicate field '{f.name}' in '{decl.name}'", codes.DUPLICATE_DECLARATION, f.loc)
				continue
			seen.add(f.name)
			fields.append(FieldDef(f.name, self.resolve(f.type_expr, tvars)))
		self.table.define_object(tid, fields, base=base)

	def _check_fresh(self, name: str, loc: ast.Located) -> bool:
		if name in self.names:
			self._error(f"type '{name}' is already declared", codes.DUPLICATE_DECLARATION, loc)
			return False
		return True

	def _span(self, loc: Optional[ast.Located]) -> Span:
		return Span.from_loc(loc, file=self.file)

	def _error(self, message: str, code: str, loc: Optional[ast.Located]) -> None:
		self.diagnostics.append(Diagnostic(message=message, code=code, phase="typecheck", span=self._span(loc)))


class AstToHIR:
	"""
	AST → HIR lowering for one procedure body.

	Entry point is `lower_proc`; helper visitors are `_visit_*` and dispatch on
	the AST node's class name. Locals live in a stack of lexical scopes; each
	declaration gets a fresh BindingId so shadowed names stay distinct.
	"""

	def __init__(
		self,
		declarer: TypeDeclarer,
		signatures: Mapping[str, ProcSignature],
		diagnostics: List[Diagnostic],
	) -> None:
		self.declarer = declarer
		self.table = declarer.table
		self.signatures = signatures
		self.diagnostics = diagnostics
		self._next_binding_id = 1
		self._scope_stack: List[Dict[str, Tuple[H.BindingId, TypeId]]] = []
		self._loop_depth = 0
		self._typed: List[Tuple[H.HExpr, TypeId]] = []
		self._binding_types: Dict[H.BindingId, TypeId] = {}
		self._type_vars: Dict[str, TypeId] = {}

	def lower_proc(self, proc: ast.ProcDef, sig: ProcSignature) -> LoweredProc:
		self._type_vars = {name: tv for name, tv in zip(proc.type_params, sig.type_vars)}
		self._scope_stack = [{}]
		params: List[H.HParam] = []
		for p, ty in zip(proc.params, sig.param_types):
			bid = self._bind(p.name, ty)
			params.append(H.HParam(name=p.name, type_id=ty, binding_id=bid, loc=self._span(p.loc)))
		result_binding: Optional[H.BindingId] = None
		if self.table.get(sig.result_type).kind is not TypeKind.VOID:
			result_binding = self._bind("result", sig.result_type)
		body = self._lower_block(proc.body)
		hir = H.HProc(
			name=proc.name,
			params=params,
			result_type=sig.result_type,
			body=body,
			result_binding=result_binding,
			loc=self._span(proc.loc),
		)
		assign_node_ids(hir)
		expr_types = {expr.node_id: ty for expr, ty in self._typed}
		return LoweredProc(hir=hir, signature=sig, expr_types=expr_types, binding_types=dict(self._binding_types))

	# -- statements ------------------------------------------------------

	def _lower_block(self, block: ast.Block) -> H.HBlock:
		self._scope_stack.append({})
		try:
			statements: List[H.HStmt] = []
			for stmt in block.statements:
				lowered = self._lower_stmt(stmt)
				if lowered is not None:
					statements.append(lowered)
			return H.HBlock(statements=statements, loc=self._span(block.loc))
		finally:
			self._scope_stack.pop()

	def _lower_stmt(self, stmt: ast.Stmt) -> Optional[H.HStmt]:
		method = getattr(self, f"_visit_stmt_{type(stmt).__name__}", None)
		if method is None:
			raise NotImplementedError(f"No HIR lowering for stmt type {type(stmt).__name__}")
		return method(stmt)

	def _visit_stmt_VarStmt(self, stmt: ast.VarStmt) -> H.HStmt:
		value = self._lower_expr(stmt.value) if stmt.value is not None else None
		declared = self.declarer.resolve(stmt.type_expr, self._type_vars) if stmt.type_expr is not None else None
		ty = declared
		if ty is None and value is not None:
			ty = self._type_of(value)
		if ty is None:
			self._error(f"cannot infer a type for '{stmt.name}'", codes.UNKNOWN_TYPE, stmt.loc)
			ty = self.table.ensure_unknown()
		bid = self._bind(stmt.name, ty)
		return H.HLet(
			name=stmt.name,
			value=value,
			declared_type=declared,
			mutable=stmt.mutable,
			binding_id=bid,
			loc=self._span(stmt.loc),
		)

	def _visit_stmt_AssignStmt(self, stmt: ast.AssignStmt) -> H.HStmt:
		return H.HAssign(target=self._lower_expr(stmt.target), value=self._lower_expr(stmt.value), loc=self._span(stmt.loc))

	def _visit_stmt_ExprStmt(self, stmt: ast.ExprStmt) -> H.HStmt:
		return H.HExprStmt(expr=self._lower_expr(stmt.expr), loc=self._span(stmt.loc))

	def _visit_stmt_ReturnStmt(self, stmt: ast.ReturnStmt) -> H.HStmt:
		value = self._lower_expr(stmt.value) if stmt.value is not None else None
		return H.HReturn(value=value, loc=self._span(stmt.loc))

	def _visit_stmt_IfStmt(self, stmt: ast.IfStmt) -> H.HStmt:
		cond = self._lower_expr(stmt.cond)
		then_block = self._lower_block(stmt.then_block)
		else_block = self._lower_block(stmt.else_block) if stmt.else_block is not None else None
		return H.HIf(cond=cond, then_block=then_block, else_block=else_block, loc=self._span(stmt.loc))

	def _visit_stmt_WhileStmt(self, stmt: ast.WhileStmt) -> H.HStmt:
		cond = self._lower_expr(stmt.cond)
		self._loop_depth += 1
		try:
			body = self._lower_block(stmt.body)
		finally:
			self._loop_depth -= 1
		return H.HWhile(cond=cond, body=body, loc=self._span(stmt.loc))

	def _visit_stmt_BreakStmt(self, stmt: ast.BreakStmt) -> Optional[H.HStmt]:
		if not self._loop_depth:
			self._error("'break' outside of a loop", codes.LOOP_CONTROL_OUTSIDE_LOOP, stmt.loc)
			return None
		return H.HBreak(loc=self._span(stmt.loc))

	def _visit_stmt_ContinueStmt(self, stmt: ast.ContinueStmt) -> Optional[H.HStmt]:
		if not self._loop_depth:
			self._error("'continue' outside of a loop", codes.LOOP_CONTROL_OUTSIDE_LOOP, stmt.loc)
			return None
		return H.HContinue(loc=self._span(stmt.loc))

	def _visit_stmt_BlockStmt(self, stmt: ast.BlockStmt) -> H.HStmt:
		return self._lower_block(stmt.block)

	def _visit_stmt_SpawnStmt(self, stmt: ast.SpawnStmt) -> H.HStmt:
		call = self._lower_expr(stmt.call)
		assert isinstance(call, H.HCall)
		return H.HSpawn(call=call, loc=self._span(stmt.loc))

	# -- expressions -----------------------------------------------------

	def _lower_expr(self, expr: ast.Expr) -> H.HExpr:
		method = getattr(self, f"_visit_expr_{type(expr).__name__}", None)
		if method is None:
			raise NotImplementedError(f"No HIR lowering for expr type {type(expr).__name__}")
		lowered, ty = method(expr)
		if ty is not None:
			self._typed.append((lowered, ty))
		return lowered

	def _visit_expr_Name(self, expr: ast.Name) -> Tuple[H.HExpr, Optional[TypeId]]:
		found = self._lookup(expr.ident)
		if found is None:
			self._error(f"unknown name '{expr.ident}'", codes.UNKNOWN_NAME, expr.loc)
			return H.HVar(name=expr.ident, loc=self._span(expr.loc)), self.table.ensure_unknown()
		bid, ty = found
		return H.HVar(name=expr.ident, binding_id=bid, loc=self._span(expr.loc)), ty

	def _visit_expr_IntLit(self, expr: ast.IntLit) -> Tuple[H.HExpr, Optional[TypeId]]:
		return H.HLiteralInt(value=expr.value, loc=self._span(expr.loc)), self.table.ensure_int()

	def _visit_expr_BoolLit(self, expr: ast.BoolLit) -> Tuple[H.HExpr, Optional[TypeId]]:
		return H.HLiteralBool(value=expr.value, loc=self._span(expr.loc)), self.table.ensure_bool()

	def _visit_expr_Call(self, expr: ast.Call) -> Tuple[H.HExpr, Optional[TypeId]]:
		args = [self._lower_expr(a) for a in expr.args]
		call = H.HCall(fn=expr.fn, args=args, loc=self._span(expr.loc))
		sig = self.signatures.get(expr.fn)
		if sig is None or sig.is_hook:
			self._error(f"unknown procedure '{expr.fn}'", codes.UNKNOWN_NAME, expr.loc)
			return call, self.table.ensure_unknown()
		if len(args) != len(sig.param_types):
			self._error(
				f"'{expr.fn}' expects {len(sig.param_types)} argument(s), got {len(args)}",
				codes.ARITY_MISMATCH,
				expr.loc,
			)
			return call, self.table.ensure_unknown()
		mapping: Dict[TypeId, TypeId] = {}
		if sig.type_vars:
			for param_ty, arg in zip(sig.param_types, args):
				arg_ty = self._type_of(arg)
				if arg_ty is not None:
					self._unify(param_ty, arg_ty, mapping)
		return call, self.table.substitute(sig.result_type, mapping)

	def _visit_expr_Field(self, expr: ast.Field) -> Tuple[H.HExpr, Optional[TypeId]]:
		subject = self._lower_expr(expr.subject)
		node = H.HField(subject=subject, name=expr.name, loc=self._span(expr.loc))
		subject_ty = self._type_of(subject)
		if subject_ty is None:
			return node, None
		# Field access reads through references and parameter modes.
		while self.table.get(subject_ty).kind in INDIRECTION_KINDS | PARAM_REF_KINDS:
			subject_ty = self.table.get(subject_ty).param_types[0]
		if self.table.get(subject_ty).kind is TypeKind.UNKNOWN:
			return node, subject_ty
		field_ty = self.table.field_type(subject_ty, expr.name)
		if field_ty is None:
			self._error(
				f"type '{self.table.type_name(subject_ty)}' has no field '{expr.name}'",
				codes.UNKNOWN_NAME,
				expr.loc,
			)
			return node, self.table.ensure_unknown()
		return node, field_ty

	# -- helpers ---------------------------------------------------------

	def _unify(self, param: TypeId, arg: TypeId, mapping: Dict[TypeId, TypeId]) -> None:
		"""Bind type variables in `param` by structural match against `arg`."""
		table = self.table
		pd = table.get(param)
		if pd.kind is TypeKind.TYPEVAR:
			mapping.setdefault(param, arg)
			return
		if pd.kind in PARAM_REF_KINDS and table.get(arg).kind not in PARAM_REF_KINDS:
			self._unify(pd.param_types[0], arg, mapping)
			return
		ad = table.get(arg)
		if pd.kind is not ad.kind or len(pd.param_types) != len(ad.param_types):
			return
		if pd.kind is TypeKind.INSTANCE and pd.param_types[0] != ad.param_types[0]:
			return
		for p, a in zip(pd.param_types, ad.param_types):
			self._unify(p, a, mapping)

	def _type_of(self, expr: H.HExpr) -> Optional[TypeId]:
		for node, ty in reversed(self._typed):
			if node is expr:
				return ty
		return None

	def _bind(self, name: str, ty: TypeId) -> H.BindingId:
		bid = self._next_binding_id
		self._next_binding_id += 1
		self._scope_stack[-1][name] = (bid, ty)
		self._binding_types[bid] = ty
		return bid

	def _lookup(self, name: str) -> Optional[Tuple[H.BindingId, TypeId]]:
		for scope in reversed(self._scope_stack):
			if name in scope:
				return scope[name]
		return None

	def _span(self, loc: Optional[ast.Located]) -> Span:
		return Span.from_loc(loc, file=self.declarer.file)

	def _error(self, message: str, code: str, loc: Optional[ast.Located]) -> None:
		self.diagnostics.append(Diagnostic(message=message, code=code, phase="typecheck", span=self._span(loc)))


def lower_program(
	program: ast.Program,
	*,
	file: Optional[str] = None,
	type_table: Optional[TypeTable] = None,
) -> LoweredProgram:
	"""Declare types, collect hook declarations, and lower every procedure."""
	table = type_table or TypeTable()
	diagnostics: List[Diagnostic] = []
	declarer = TypeDeclarer(table, diagnostics, file=file)
	types = declarer.declare_all(program.types)

	signatures: Dict[str, ProcSignature] = {}
	ordered: List[Tuple[ast.ProcDef, ProcSignature]] = []
	hooks: List[HookDecl] = []
	for proc in program.procs:
		tvars = tuple(table.new_typevar(name) for name in proc.type_params)
		scope = dict(zip(proc.type_params, tvars))
		param_types = tuple(declarer.resolve(p.type_expr, scope) for p in proc.params)
		result_type = declarer.resolve(proc.result, scope) if proc.result is not None else table.ensure_void()
		span = Span.from_loc(proc.loc, file=file)
		sig = ProcSignature(
			name=proc.name,
			param_types=param_types,
			result_type=result_type,
			type_vars=tvars,
			is_hook=proc.is_hook,
			span=span,
		)
		if proc.is_hook:
			impl = f"`{proc.name}`(" + ", ".join(table.type_name(t) for t in param_types) + ")"
			hooks.append(HookDecl(name=proc.name, impl=impl, param_types=param_types, result_type=result_type, span=span))
		elif proc.name in signatures:
			diagnostics.append(
				Diagnostic(
					message=f"procedure '{proc.name}' is already declared",
					code=codes.DUPLICATE_DECLARATION,
					phase="typecheck",
					span=span,
				)
			)
			continue
		else:
			signatures[proc.name] = sig
		ordered.append((proc, sig))

	procs: List[LoweredProc] = []
	for proc, sig in ordered:
		lowerer = AstToHIR(declarer, signatures, diagnostics)
		procs.append(lowerer.lower_proc(proc, sig))
	return LoweredProgram(type_table=table, types=types, hooks=hooks, procs=procs, diagnostics=diagnostics)


__all__ = [
	"AstToHIR",
	"LoweredProc",
	"LoweredProgram",
	"ProcSignature",
	"TypeDeclarer",
	"lower_program",
]
