# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-13
"""
Lifecycle hooks: registry, binder, lifting resolver.

Ordering contract: `OperationBinder.bind_all` must run (and freeze the
registry) before the first `Resolver.resolve` query for the unit.
"""

from .registry import BoundOperationEntry, HookSignature, OpKind, RegistryFrozenError, TypeRegistry
from .binder import HookDecl, OperationBinder
from .resolver import (
	EffectiveOperation,
	ElementLoop,
	HookCall,
	LiftedCall,
	OpOrigin,
	PlanNode,
	Resolver,
	ResolverNotReadyError,
	count_hook_calls,
)

__all__ = [
	"BoundOperationEntry",
	"HookSignature",
	"OpKind",
	"RegistryFrozenError",
	"TypeRegistry",
	"HookDecl",
	"OperationBinder",
	"EffectiveOperation",
	"ElementLoop",
	"HookCall",
	"LiftedCall",
	"OpOrigin",
	"PlanNode",
	"Resolver",
	"ResolverNotReadyError",
	"count_hook_calls",
]
