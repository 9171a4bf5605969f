# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-15
"""
Destructible-context site tagging.

Every expression in a procedure body is tagged with the syntactic position it
occupies. Only the *top-level* expression of a position gets the position's
tag; anything nested (call arguments, field subjects, conditions, spawn
arguments) is OTHER:

  var x = e        e: VAR_INIT
  let x = e        e: LET_INIT
  return e         e: RETURN_VALUE
  result = e       e: RESULT_ASSIGNMENT
  anything else    OTHER

Tagging is purely structural; the context validator decides which tags are
legal for destructible values.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterator, Optional

from liftc.stage1 import hir_nodes as H


class ContextSite(Enum):
	VAR_INIT = "var-init"
	LET_INIT = "let-init"
	RETURN_VALUE = "return-value"
	RESULT_ASSIGNMENT = "result-assignment"
	OTHER = "other"


def is_result_target(target: H.HExpr, result_binding: Optional[H.BindingId]) -> bool:
	"""True when `target` is the implicit `result` variable itself (not a projection)."""
	if not isinstance(target, H.HVar):
		return False
	if result_binding is not None and target.binding_id is not None:
		return target.binding_id == result_binding
	return target.name == "result"


def tag_context_sites(block: H.HBlock, *, result_binding: Optional[H.BindingId] = None) -> Dict[H.NodeId, ContextSite]:
	"""Return NodeId -> ContextSite for every expression under `block`."""
	sites: Dict[H.NodeId, ContextSite] = {}

	def tag(expr: H.HExpr, site: ContextSite) -> None:
		sites[expr.node_id] = site
		for child in iter_subexprs(expr):
			tag(child, ContextSite.OTHER)

	def walk(stmt: H.HStmt) -> None:
		if isinstance(stmt, H.HBlock):
			for s in stmt.statements:
				walk(s)
		elif isinstance(stmt, H.HLet):
			if stmt.value is not None:
				tag(stmt.value, ContextSite.VAR_INIT if stmt.mutable else ContextSite.LET_INIT)
		elif isinstance(stmt, H.HReturn):
			if stmt.value is not None:
				tag(stmt.value, ContextSite.RETURN_VALUE)
		elif isinstance(stmt, H.HAssign):
			tag(stmt.target, ContextSite.OTHER)
			if is_result_target(stmt.target, result_binding):
				tag(stmt.value, ContextSite.RESULT_ASSIGNMENT)
			else:
				tag(stmt.value, ContextSite.OTHER)
		elif isinstance(stmt, H.HExprStmt):
			tag(stmt.expr, ContextSite.OTHER)
		elif isinstance(stmt, H.HIf):
			tag(stmt.cond, ContextSite.OTHER)
			walk(stmt.then_block)
			if stmt.else_block is not None:
				walk(stmt.else_block)
		elif isinstance(stmt, H.HWhile):
			tag(stmt.cond, ContextSite.OTHER)
			walk(stmt.body)
		elif isinstance(stmt, H.HSpawn):
			# The spawned call itself produces no value on this side; its
			# arguments are ordinary nested expressions.
			for arg in stmt.call.args:
				tag(arg, ContextSite.OTHER)

	walk(block)
	return sites


def iter_subexprs(expr: H.HExpr) -> Iterator[H.HExpr]:
	"""Direct child expressions of `expr`."""
	if isinstance(expr, H.HCall):
		yield from expr.args
	elif isinstance(expr, H.HField):
		yield expr.subject


def iter_exprs(block: H.HBlock) -> Iterator[H.HExpr]:
	"""Every expression under `block`, pre-order (spawned calls excluded, args included)."""

	def from_expr(expr: H.HExpr) -> Iterator[H.HExpr]:
		yield expr
		for child in iter_subexprs(expr):
			yield from from_expr(child)

	def from_stmt(stmt: H.HStmt) -> Iterator[H.HExpr]:
		if isinstance(stmt, H.HBlock):
			for s in stmt.statements:
				yield from from_stmt(s)
		elif isinstance(stmt, H.HLet):
			if stmt.value is not None:
				yield from from_expr(stmt.value)
		elif isinstance(stmt, H.HReturn):
			if stmt.value is not None:
				yield from from_expr(stmt.value)
		elif isinstance(stmt, H.HAssign):
			yield from from_expr(stmt.target)
			yield from from_expr(stmt.value)
		elif isinstance(stmt, H.HExprStmt):
			yield from from_expr(stmt.expr)
		elif isinstance(stmt, H.HIf):
			yield from from_expr(stmt.cond)
			yield from from_stmt(stmt.then_block)
			if stmt.else_block is not None:
				yield from from_stmt(stmt.else_block)
		elif isinstance(stmt, H.HWhile):
			yield from from_expr(stmt.cond)
			yield from from_stmt(stmt.body)
		elif isinstance(stmt, H.HSpawn):
			for arg in stmt.call.args:
				yield from from_expr(arg)

	yield from from_stmt(block)


__all__ = ["ContextSite", "tag_context_sites", "is_result_target", "iter_exprs", "iter_subexprs"]
