"""
liftc.core: shared core types/diagnostics used across stages.

Modules:
  - span: best-effort source locations
  - diagnostics: Diagnostic + pinned diagnostic codes
  - types_core: TypeId/TypeTable primitives
"""

__all__ = [
	"span",
	"diagnostics",
	"types_core",
]
