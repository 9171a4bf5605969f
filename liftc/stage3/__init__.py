# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 3: cross-thread deep-copy gate at task-submission boundaries.
"""

from .cross_thread import CloneStep, CopyNode, CrossThreadGate, DeepCopyHandoff, HandoffStrategy, RecursiveClone

__all__ = ["CloneStep", "CopyNode", "CrossThreadGate", "DeepCopyHandoff", "HandoffStrategy", "RecursiveClone"]
