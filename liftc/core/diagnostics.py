# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-12
"""
Common diagnostic structure for the lifecycle passes.

Every pass appends `Diagnostic` objects to a list it owns and returns; the
driver renders them. Codes are pinned strings so tests and JSON consumers can
match on them without parsing messages.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .span import Span


# Pinned diagnostic codes (one per error kind).
DUPLICATE_BINDING = "E-HOOK-DUPLICATE"
INVALID_SIGNATURE = "E-HOOK-SIGNATURE"
NON_NOMINAL_RECEIVER = "E-HOOK-RECEIVER"
CONFLICTING_INDIRECTION_BINDING = "E-HOOK-INDIRECTION"
UNRESOLVABLE_RECURSIVE_TYPE = "E-LIFT-RECURSIVE"
ILLEGAL_DESTRUCTIBLE_USAGE = "E-DESTROY-CONTEXT"
MISSING_SCOPE_EXIT_EDGE = "E-ICE-SCOPE-EXIT"

# Front-end codes (fixture parser / minimal typing).
SYNTAX_ERROR = "E-PARSE"
UNKNOWN_NAME = "E-UNKNOWN-NAME"
UNKNOWN_TYPE = "E-UNKNOWN-TYPE"
ARITY_MISMATCH = "E-ARITY"
DUPLICATE_DECLARATION = "E-DUPLICATE-DECL"
LOOP_CONTROL_OUTSIDE_LOOP = "E-LOOP-CONTROL"


@dataclass
class Diagnostic:
	"""Represents a compiler diagnostic (error/warning/etc.)."""

	message: str
	code: str | None = None
	# Phase label: "parser", "typecheck", "bind", "resolve", "context",
	# "scope-exit", "gate". The driver falls back to its own phase name when
	# a pass leaves this unset.
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)  # Span() denotes unknown.
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	@property
	def is_error(self) -> bool:
		return self.severity == "error"


def has_errors(diagnostics: list[Diagnostic]) -> bool:
	return any(d.is_error for d in diagnostics)


__all__ = [
	"Diagnostic",
	"has_errors",
	"DUPLICATE_BINDING",
	"INVALID_SIGNATURE",
	"NON_NOMINAL_RECEIVER",
	"CONFLICTING_INDIRECTION_BINDING",
	"UNRESOLVABLE_RECURSIVE_TYPE",
	"ILLEGAL_DESTRUCTIBLE_USAGE",
	"MISSING_SCOPE_EXIT_EDGE",
	"SYNTAX_ERROR",
	"UNKNOWN_NAME",
	"UNKNOWN_TYPE",
	"ARITY_MISMATCH",
	"DUPLICATE_DECLARATION",
	"LOOP_CONTROL_OUTSIDE_LOOP",
]
