# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-01-12
"""
CLI entrypoint for `python -m liftc`.
"""

from .liftc import main

if __name__ == "__main__":
	import sys
	sys.exit(main())
