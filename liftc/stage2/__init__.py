# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 2: scope graph construction and scope-exit destroy scheduling.
"""

from .scope_graph import (
	ExitEdge,
	ExitKind,
	LocalVariable,
	LoopControlOutsideLoop,
	Scope,
	ScopeGraph,
	build_scope_graph,
)
from .scope_exit import (
	MissingScopeExitEdge,
	ScheduledDestroy,
	ScopeExitInserter,
	ScopeExitSchedule,
	verify_exit_edges,
)

__all__ = [
	"ExitEdge",
	"ExitKind",
	"LocalVariable",
	"LoopControlOutsideLoop",
	"Scope",
	"ScopeGraph",
	"build_scope_graph",
	"MissingScopeExitEdge",
	"ScheduledDestroy",
	"ScopeExitInserter",
	"ScopeExitSchedule",
	"verify_exit_edges",
]
