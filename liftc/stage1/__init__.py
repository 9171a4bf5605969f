# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 1: HIR definitions, AST → HIR lowering, NodeId assignment and
destructible-context site tagging.
"""

from . import hir_nodes
from .ast_to_hir import AstToHIR, LoweredProc, LoweredProgram, ProcSignature, TypeDeclarer, lower_program
from .context_sites import ContextSite, is_result_target, iter_exprs, iter_subexprs, tag_context_sites
from .node_ids import assign_node_ids

__all__ = [
	"hir_nodes",
	"AstToHIR",
	"LoweredProc",
	"LoweredProgram",
	"ProcSignature",
	"TypeDeclarer",
	"lower_program",
	"ContextSite",
	"is_result_target",
	"iter_exprs",
	"iter_subexprs",
	"tag_context_sites",
	"assign_node_ids",
]
