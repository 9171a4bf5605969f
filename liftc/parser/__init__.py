"""
Fixture-language parser: lark grammar plus an AST builder.

`parse_source` is the driver-facing entry point; it converts lark's
`UnexpectedInput` (and builder-level shape errors) into pinned parser-phase
diagnostics instead of letting them escape as raw exceptions.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from lark.exceptions import UnexpectedInput

from . import ast as parser_ast
from . import parser as _parser
from liftc.core.diagnostics import SYNTAX_ERROR, Diagnostic
from liftc.core.span import Span


def parse_source(source: str, *, file: Optional[str] = None) -> Tuple[Optional[parser_ast.Program], List[Diagnostic]]:
	"""Parse one compilation unit; returns (program or None, diagnostics)."""
	try:
		return _parser.parse_program(source), []
	except UnexpectedInput as err:
		line = getattr(err, "line", None)
		# UnexpectedEOF reports line -1.
		if line is not None and line < 1:
			line = None
		span = Span(file=file, line=line, column=getattr(err, "column", None) if line is not None else None)
		message = str(err).strip().splitlines()[0] if str(err).strip() else "syntax error"
		return None, [Diagnostic(message=message, code=SYNTAX_ERROR, phase="parser", span=span)]
	except _parser.ProgramBuildError as err:
		span = Span.from_loc(err.loc, file=file)
		return None, [Diagnostic(message=str(err), code=SYNTAX_ERROR, phase="parser", span=span)]


__all__ = ["parse_source", "parser_ast"]
