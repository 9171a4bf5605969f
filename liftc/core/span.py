# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-12
"""
Source span representation used by diagnostics and annotations.

A Span carries best-effort file/line/column info. The fixture front end fills
it from lark node metadata; tests that build HIR by hand leave it as `Span()`,
the explicit "unknown location" sentinel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (file/line/column, all optional)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None

	@classmethod
	def from_loc(cls, loc: Any, *, file: Optional[str] = None) -> "Span":
		"""
		Construct a Span from a parser location object.

		Accepts an existing Span (returned unchanged unless `file` fills a gap),
		a lark `Meta`/`Token`, or any object exposing line/column attributes.
		"""
		if loc is None:
			return cls(file=file)
		if isinstance(loc, cls):
			if file is not None and loc.file is None:
				return cls(file, loc.line, loc.column, loc.end_line, loc.end_column)
			return loc
		return cls(
			file=file or getattr(loc, "file", None),
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			end_line=getattr(loc, "end_line", None),
			end_column=getattr(loc, "end_column", None),
		)

	def is_known(self) -> bool:
		return self.line is not None

	def render(self) -> str:
		"""`line:col` (with `?` placeholders for unknown parts)."""
		line = "?" if self.line is None else str(self.line)
		col = "?" if self.column is None else str(self.column)
		return f"{line}:{col}"


__all__ = ["Span"]
