"""
Parser to locate function-like declarations in Python source.
"""

import ast
from typing import List, Optional, Tuple, Union

from .core.models import BodyShape, DeclarationSite


class SourceParseError(ValueError):
    """Raised when the source cannot be parsed"""

    def __init__(self, filename: str, error: SyntaxError):
        self.filename = filename
        self.lineno = error.lineno
        self.offset = error.offset
        super().__init__(f"{filename}:{error.lineno}: {error.msg}")


FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda]


class _SiteCollector(ast.NodeVisitor):
    """Walks a module assigning __qualname__-style names to every function-like node"""

    def __init__(self):
        self.sites: List[DeclarationSite] = []
        # ("class", qualname) or ("function", DeclarationSite)
        self._scopes: List[Tuple[str, object]] = []

    def visit_ClassDef(self, node: ast.ClassDef):
        self._scopes.append(("class", self._qualify(node.name)))
        self.generic_visit(node)
        self._scopes.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef):
        self._visit_function(node, node.name)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef):
        self._visit_function(node, node.name)

    def visit_Lambda(self, node: ast.Lambda):
        self._visit_function(node, "<lambda>")

    def _visit_function(self, node: FunctionNode, name: str):
        enclosing = self._enclosing_function()

        if isinstance(node, ast.Lambda):
            shape = BodyShape.ANONYMOUS
        elif self._scopes and self._scopes[-1][0] == "function":
            shape = BodyShape.LOCAL
        else:
            shape = BodyShape.NAMED

        if self._scopes and self._scopes[-1][0] == "class":
            owner_class = self._scopes[-1][1]
        else:
            owner_class = enclosing.owner_class if enclosing else None

        site = DeclarationSite(
            body_id=len(self.sites),
            node=node,
            shape=shape,
            qualname=self._qualify(name),
            owner_class=owner_class,
            enclosing_id=enclosing.body_id if enclosing else None
        )
        self.sites.append(site)

        self._scopes.append(("function", site))
        self.generic_visit(node)
        self._scopes.pop()

    def _enclosing_function(self) -> Optional[DeclarationSite]:
        for kind, value in reversed(self._scopes):
            if kind == "function":
                return value
        return None

    def _qualify(self, name: str) -> str:
        if not self._scopes:
            return name
        kind, value = self._scopes[-1]
        if kind == "class":
            return f"{value}.{name}"
        return f"{value.qualname}.<locals>.{name}"


def collect_declaration_sites(tree: ast.AST) -> List[DeclarationSite]:
    """Return every def, async def and lambda in the tree, outermost first."""
    collector = _SiteCollector()
    collector.visit(tree)
    return collector.sites


def parse_source(source: str, filename: str = "<unknown>") -> ast.Module:
    """
    Parse Python source.

    Raises:
        SourceParseError: If the source has a syntax error
    """
    try:
        return ast.parse(source, filename=filename)
    except SyntaxError as e:
        raise SourceParseError(filename, e) from e
