# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Checks over typed HIR that consume lifting-resolver results."""

from .context_validator import DEFAULT_CONTEXT_POLICY, ContextPolicy, ContextValidator

__all__ = ["DEFAULT_CONTEXT_POLICY", "ContextPolicy", "ContextValidator"]
