# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-16
"""
Destructible-context validator.

A value whose type has a non-default effective `=destroy` may only be
*produced* where the compiler can attach its lifetime to a named owner: a
`var`/`let` initializer, a `return` value, or an assignment to `result`.
Anything else (a bare call statement, a call argument, a field subject, a
condition) would create an unowned temporary, which this design does not
destroy, so it is rejected with `E-DESTROY-CONTEXT`.

The check is purely syntactic and independent of control flow. The accepted
positions come from a `ContextPolicy` table so the rule can be widened later
(e.g. once escape analysis can own temporaries) without touching the walker.

Name and field references are not checked: they denote existing storage
already owned by a local or parameter, not a fresh value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Tuple, Type

from liftc.core import diagnostics as D
from liftc.core.diagnostics import Diagnostic
from liftc.core.types_core import TypeId
from liftc.lifecycle.resolver import Resolver
from liftc.stage1 import hir_nodes as H
from liftc.stage1.context_sites import ContextSite, iter_exprs


@dataclass(frozen=True)
class ContextPolicy:
	"""Which sites accept destructible values, and which expression forms are checked."""

	allowed: FrozenSet[ContextSite]
	checked_exprs: Tuple[Type[H.HExpr], ...] = (H.HCall,)

	def accepts(self, site: ContextSite) -> bool:
		return site in self.allowed


DEFAULT_CONTEXT_POLICY = ContextPolicy(
	allowed=frozenset(
		{
			ContextSite.VAR_INIT,
			ContextSite.LET_INIT,
			ContextSite.RETURN_VALUE,
			ContextSite.RESULT_ASSIGNMENT,
		}
	)
)

_SITE_WORDS = {
	ContextSite.OTHER: "an expression position",
	ContextSite.VAR_INIT: "a `var` initializer",
	ContextSite.LET_INIT: "a `let` initializer",
	ContextSite.RETURN_VALUE: "a `return` value",
	ContextSite.RESULT_ASSIGNMENT: "an assignment to `result`",
}


@dataclass
class ContextValidator:
	resolver: Resolver
	policy: ContextPolicy = DEFAULT_CONTEXT_POLICY
	diagnostics: List[Diagnostic] = field(default_factory=list)

	def validate(
		self,
		block: H.HBlock,
		*,
		expr_types: Mapping[H.NodeId, TypeId],
		sites: Mapping[H.NodeId, ContextSite],
	) -> List[Diagnostic]:
		"""Check every value-producing expression under `block`; returns new diagnostics."""
		out: List[Diagnostic] = []
		for expr in iter_exprs(block):
			if not isinstance(expr, self.policy.checked_exprs):
				continue
			ty = expr_types.get(expr.node_id)
			if ty is None or not self.resolver.is_destructible(ty):
				continue
			site = sites.get(expr.node_id, ContextSite.OTHER)
			if self.policy.accepts(site):
				continue
			ty_name = self.resolver.type_table.type_name(ty)
			out.append(
				Diagnostic(
					message=f"value of destructible type '{ty_name}' used in {_SITE_WORDS[site]}; "
					"bind it with `var`/`let`, return it, or assign it to `result`",
					code=D.ILLEGAL_DESTRUCTIBLE_USAGE,
					phase="context",
					span=getattr(expr, "loc", None),
					notes=[f"'{ty_name}' has a `=destroy` (declared or lifted)"],
				)
			)
		self.diagnostics.extend(out)
		return out


__all__ = ["ContextPolicy", "DEFAULT_CONTEXT_POLICY", "ContextValidator"]
