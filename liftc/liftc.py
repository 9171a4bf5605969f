# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-22
"""
liftc driver: lifecycle-hook binding, lifting and scope-exit analysis.

Pipeline for one compilation unit:

  source -> fixture AST (parser)
         -> type declarations + HIR (stage1.ast_to_hir)
         -> hook binding; registry frozen (lifecycle.binder)
         -> per-type operation table (lifecycle.resolver)
         -> per procedure:
              context-site tagging + destructible-context validation
              scope graph + scope-exit destroy schedule
              cross-thread deep-copy handoffs at `spawn`

Every pass contributes diagnostics; only an internal scope-exit invariant
failure aborts the unit early.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from liftc.checker import DEFAULT_CONTEXT_POLICY, ContextPolicy, ContextValidator
from liftc.core import diagnostics as codes
from liftc.core.diagnostics import Diagnostic, has_errors
from liftc.core.span import Span
from liftc.lifecycle import (
	ElementLoop,
	HookCall,
	LiftedCall,
	OperationBinder,
	PlanNode,
	Resolver,
	TypeRegistry,
)
from liftc.parser import parse_source
from liftc.parser.ast import Program
from liftc.stage1 import ContextSite, LoweredProc, LoweredProgram, lower_program, tag_context_sites
from liftc.stage1 import hir_nodes as H
from liftc.stage2 import MissingScopeExitEdge, ScopeExitInserter, ScopeExitSchedule, ScopeGraph, build_scope_graph
from liftc.stage3 import CloneStep, CopyNode, CrossThreadGate, DeepCopyHandoff, RecursiveClone


@dataclass
class AnalysisOptions:
	"""Knobs shared by the CLI and tests."""

	context_policy: ContextPolicy = DEFAULT_CONTEXT_POLICY
	dump_table: bool = False
	dump_schedule: bool = False


@dataclass
class ProcAnalysis:
	name: str
	lowered: LoweredProc
	sites: Dict[H.NodeId, ContextSite]
	graph: ScopeGraph
	schedule: ScopeExitSchedule
	handoffs: List[DeepCopyHandoff] = field(default_factory=list)


@dataclass
class AnalysisResult:
	file: Optional[str]
	program: Optional[LoweredProgram] = None
	registry: Optional[TypeRegistry] = None
	resolver: Optional[Resolver] = None
	procs: List[ProcAnalysis] = field(default_factory=list)
	diagnostics: List[Diagnostic] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return not has_errors(self.diagnostics)

	def proc(self, name: str) -> ProcAnalysis:
		for p in self.procs:
			if p.name == name:
				return p
		raise KeyError(name)

	def diagnostic_codes(self) -> List[str]:
		return [d.code for d in self.diagnostics if d.code is not None]


def analyze_source(source: str, *, file: Optional[str] = None, options: Optional[AnalysisOptions] = None) -> AnalysisResult:
	"""Parse and analyze one compilation unit."""
	program, diagnostics = parse_source(source, file=file)
	if program is None:
		return AnalysisResult(file=file, diagnostics=diagnostics)
	return analyze_program(program, file=file, options=options)


def analyze_program(program: Program, *, file: Optional[str] = None, options: Optional[AnalysisOptions] = None) -> AnalysisResult:
	opts = options or AnalysisOptions()
	lowered = lower_program(program, file=file)
	result = AnalysisResult(file=file, program=lowered)
	result.diagnostics.extend(lowered.diagnostics)

	table = lowered.type_table
	registry = TypeRegistry()
	binder = OperationBinder(type_table=table, registry=registry)
	result.diagnostics.extend(binder.bind_all(lowered.hooks))
	resolver = Resolver(type_table=table, registry=registry)
	result.registry = registry
	result.resolver = resolver

	# Resolve every declared type up front so recursive-type errors surface
	# even for types no procedure mentions.
	resolver.operation_table(lowered.types.values())

	validator = ContextValidator(resolver=resolver, policy=opts.context_policy)
	inserter = ScopeExitInserter(resolver=resolver)
	gate = CrossThreadGate(resolver=resolver)
	for proc in lowered.procs:
		hir = proc.hir
		sites = tag_context_sites(hir.body, result_binding=hir.result_binding)
		result.diagnostics.extend(validator.validate(hir.body, expr_types=proc.expr_types, sites=sites))
		graph = build_scope_graph(hir, proc.binding_types)
		try:
			schedule = inserter.schedule(graph)
		except MissingScopeExitEdge as err:
			result.diagnostics.extend(resolver.diagnostics)
			result.diagnostics.append(
				Diagnostic(
					message=f"internal error: {err}",
					code=codes.MISSING_SCOPE_EXIT_EDGE,
					phase="scope-exit",
					span=hir.loc,
				)
			)
			return result
		handoffs = gate.gate_block(hir.body, expr_types=proc.expr_types)
		result.procs.append(
			ProcAnalysis(name=hir.name, lowered=proc, sites=sites, graph=graph, schedule=schedule, handoffs=handoffs)
		)
	result.diagnostics.extend(resolver.diagnostics)
	return result


# -- rendering -------------------------------------------------------------


def render_plan(nodes: Iterable[PlanNode | CopyNode]) -> List[str]:
	"""One line per emitted call, e.g. `=destroy(x.b)` or `for x[i]: =(x[i])`."""
	out: List[str] = []
	for node in nodes:
		if isinstance(node, HookCall):
			out.append(f"{node.entry.kind.hook_name}({node.place})")
		elif isinstance(node, LiftedCall):
			out.append(f"lifted {node.kind.hook_name}({node.place})")
		elif isinstance(node, ElementLoop):
			inner = ", ".join(render_plan(node.body))
			out.append(f"for {node.place}[i]: {inner}")
		elif isinstance(node, CloneStep):
			out.append(f"clone({node.place})")
			out.extend(render_plan(node.children))
		elif isinstance(node, RecursiveClone):
			out.append(f"recursive clone({node.place})")
	return out


def operation_table_json(result: AnalysisResult) -> Dict[str, Dict[str, str]]:
	if result.program is None or result.resolver is None:
		return {}
	table = result.program.type_table
	rows = result.resolver.operation_table(result.program.types.values())
	return {
		table.type_name(ty): {kind.hook_name: op.origin.name.lower() for kind, op in ops.items()}
		for ty, ops in rows.items()
	}


def schedule_json(result: AnalysisResult) -> Dict[str, List[Dict[str, Any]]]:
	out: Dict[str, List[Dict[str, Any]]] = {}
	for proc in result.procs:
		edges: List[Dict[str, Any]] = []
		for edge_id, calls in sorted(proc.schedule.by_edge.items()):
			edge = proc.graph.edges[edge_id]
			edges.append(
				{
					"edge": edge_id,
					"kind": edge.kind.name.lower(),
					"line": edge.loc.line,
					"destroy": [d.local.name for d in calls],
					"calls": [line for d in calls for line in render_plan(d.plan)],
				}
			)
		handoffs = [
			{
				"callee": h.callee,
				"arg": h.arg_index,
				"strategy": h.strategy.name.lower(),
				"calls": render_plan(h.plan),
			}
			for h in proc.handoffs
		]
		out[proc.name] = edges
		if handoffs:
			out[f"{proc.name}:spawn"] = handoffs
	return out


def _diag_to_json(diag: Diagnostic, phase: str, source: Path) -> dict:
	"""Render a Diagnostic to a structured JSON-friendly dict."""
	line = getattr(diag.span, "line", None) if diag.span is not None else None
	column = getattr(diag.span, "column", None) if diag.span is not None else None
	file = None
	if diag.span is not None:
		file = getattr(diag.span, "file", None)
	if file is None:
		file = str(source)
	phase = getattr(diag, "phase", None) or phase
	notes = list(getattr(diag, "notes", []) or [])
	return {
		"phase": phase,
		"code": diag.code,
		"message": diag.message,
		"severity": diag.severity,
		"file": file,
		"line": line,
		"column": column,
		"notes": notes,
	}


def _print_text(result: AnalysisResult, source: Path, opts: AnalysisOptions) -> None:
	for d in result.diagnostics:
		span = d.span or Span()
		code = f" [{d.code}]" if d.code else ""
		where = str(span.file or source)
		if span.is_known():
			where += f":{span.render()}"
		print(f"{where}: {d.severity}: {d.message}{code}", file=sys.stderr)
		for note in d.notes:
			print(f"  note: {note}", file=sys.stderr)
	if opts.dump_table:
		for name, ops in operation_table_json(result).items():
			cells = "  ".join(f"{hook}={origin}" for hook, origin in ops.items())
			print(f"{name}: {cells}")
	if opts.dump_schedule:
		for proc, entries in schedule_json(result).items():
			print(f"{proc}:")
			for entry in entries:
				if "edge" in entry:
					print(f"  edge {entry['edge']} ({entry['kind']}): {', '.join(entry['calls']) or '-'}")
				else:
					print(f"  {entry['callee']} arg {entry['arg']} ({entry['strategy']}): {', '.join(entry['calls']) or '-'}")


def main(argv: list[str] | None = None) -> int:
	"""
	CLI: analyze each fixture file independently.

	With --json, prints one JSON object per run with the exit code, all
	diagnostics and (when requested) the operation table and schedules;
	otherwise prints `file:line:col: severity: message` lines to stderr.
	"""
	parser = argparse.ArgumentParser(prog="liftc", description="lifecycle hook binding and lifting analysis")
	parser.add_argument("source", type=Path, nargs="+", help="Path(s) to fixture source file(s)")
	parser.add_argument("--json", action="store_true", help="Emit diagnostics as JSON to stdout")
	parser.add_argument("--dump-table", action="store_true", help="Print the effective operation table of every declared type")
	parser.add_argument("--dump-schedule", action="store_true", help="Print scope-exit destroy schedules and spawn handoffs")
	args = parser.parse_args(argv)

	opts = AnalysisOptions(dump_table=args.dump_table, dump_schedule=args.dump_schedule)
	exit_code = 0
	payload: Dict[str, Any] = {"diagnostics": []}
	for source in args.source:
		try:
			text = source.read_text()
		except OSError as err:
			diag = Diagnostic(message=f"cannot read source: {err.strerror}", phase="driver", span=Span(file=str(source)))
			result = AnalysisResult(file=str(source), diagnostics=[diag])
		else:
			result = analyze_source(text, file=str(source), options=opts)
		if not result.ok:
			exit_code = 1
		if args.json:
			payload["diagnostics"].extend(_diag_to_json(d, "analysis", source) for d in result.diagnostics)
			if opts.dump_table:
				payload.setdefault("operation_table", {})[str(source)] = operation_table_json(result)
			if opts.dump_schedule:
				payload.setdefault("schedule", {})[str(source)] = schedule_json(result)
		else:
			_print_text(result, source, opts)
	if args.json:
		payload["exit_code"] = exit_code
		print(json.dumps(payload))
	return exit_code


__all__ = [
	"AnalysisOptions",
	"AnalysisResult",
	"ProcAnalysis",
	"analyze_program",
	"analyze_source",
	"render_plan",
	"operation_table_json",
	"schedule_json",
	"main",
]


if __name__ == "__main__":
	sys.exit(main())
