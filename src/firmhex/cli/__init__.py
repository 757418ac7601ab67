"""
firmhex Command-Line Interface
==============================

This package provides the ``firmhex`` command-line tool, a Click-based
application for encoding binaries to Intel HEX / S-record text and for
inspecting, validating and coalescing existing record files.
"""

__all__ = ["main"]

from firmhex.cli.main import main
