# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-12
"""
liftc: lifecycle-hook binding and lifting passes.

Stages:
  parser: fixture front end (lark) producing the AST
  stage1: HIR, AST→HIR lowering, destructible-context site tagging
  stage2: scope graph with explicit exit edges + scope-exit destroy scheduling
  stage3: cross-thread deep-copy gate

The CLI entrypoint is `liftc.liftc:main`.
"""

__all__ = ["core", "lifecycle", "parser", "stage1", "checker", "stage2", "stage3"]
