"""Widget library for the Textual UI."""

from __future__ import annotations

from .explorer_tree import ExplorerTree
from .query_pad import QueryPad
from .status_bar import StatusBar

__all__ = ["ExplorerTree", "QueryPad", "StatusBar"]
