"""Command-line interface for jsemit.

Provides ``jsemit bundle`` and ``jsemit transpile``.
"""

from __future__ import annotations
