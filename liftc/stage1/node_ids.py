# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-15
"""
NodeId assignment for HIR nodes.

Typed side tables (expression types, context sites, schedule anchors) key off
NodeIds rather than Python object identity; this pass numbers every node of a
procedure in pre-order so ids are stable for a given tree shape.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass

from liftc.stage1 import hir_nodes as H


def assign_node_ids(root: H.HNode, *, start: int = 1) -> int:
	"""
	Assign NodeIds to all HIR nodes reachable from `root`.

	Returns the next available NodeId after traversal.
	"""
	next_id = start
	seen: set[int] = set()

	def walk(obj: object) -> None:
		nonlocal next_id
		if id(obj) in seen:
			return
		seen.add(id(obj))
		if not isinstance(obj, H.HNode):
			return
		obj.node_id = next_id
		next_id += 1
		if not is_dataclass(obj):
			return
		for f in fields(obj):
			walk_value(getattr(obj, f.name))

	def walk_value(val: object) -> None:
		if isinstance(val, list):
			for item in val:
				walk_value(item)
			return
		if isinstance(val, H.HNode):
			walk(val)

	walk(root)
	return next_id


__all__ = ["assign_node_ids"]
