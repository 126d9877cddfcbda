"""
Source text helpers: ast positions to character columns and locations.
"""

import ast
import io
from typing import List, Tuple

from ..core.models import Location


class SourceText:
    """
    Source of one module, indexed by line.

    ast columns count UTF-8 bytes; everything handed out here counts
    characters.
    """

    def __init__(self, source: str):
        self.source = source
        self.lines: List[str] = io.StringIO(source, newline="").readlines()

    def column(self, lineno: int, byte_col: int) -> int:
        """Character column of a byte column on a 1-based line"""
        if lineno > len(self.lines):
            return 0
        encoded = self.lines[lineno - 1].encode("utf-8")
        return len(encoded[:byte_col].decode("utf-8", errors="replace"))

    def position(self, node: ast.AST) -> Tuple[int, int]:
        """Start of a node as (line, character column)"""
        return (node.lineno, self.column(node.lineno, node.col_offset))

    def location(self, node: ast.AST) -> Location:
        return Location(
            line=node.lineno,
            column=self.column(node.lineno, node.col_offset),
            end_line=node.end_lineno,
            end_column=self.column(node.end_lineno, node.end_col_offset)
        )
