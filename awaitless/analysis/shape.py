"""
Function-like body extraction and candidacy.
"""

import ast
from typing import List, Optional

from ..core.config import AnalyzerSettings
from ..core.models import DeclarationSite, FunctionLikeBody, ResultKind, SuspensionPoint
from .flow import iter_own_nodes


def extract_body(site: DeclarationSite, resolver) -> FunctionLikeBody:
    """
    Build the FunctionLikeBody for a def, async def or lambda.

    A node without a usable body gets neither a statement nor an expression
    body and is never a candidate.
    """
    node = site.node
    statement_body = None
    expression_body = None

    if isinstance(node, ast.Lambda):
        expression_body = node.body
    else:
        body = getattr(node, "body", None)
        if isinstance(body, list) and body:
            statement_body = tuple(body)

    return FunctionLikeBody(
        body_id=site.body_id,
        shape=site.shape,
        node=node,
        qualname=site.qualname,
        owner_class=site.owner_class,
        enclosing_id=site.enclosing_id,
        is_async=isinstance(node, ast.AsyncFunctionDef),
        declared_type=resolver.declared_result_type(node),
        statement_body=statement_body,
        expression_body=expression_body
    )


def _has_yield(body: FunctionLikeBody) -> bool:
    roots = body.statement_body or ()
    return any(isinstance(n, (ast.Yield, ast.YieldFrom)) for n in iter_own_nodes(roots))


def candidate_rejection(body: FunctionLikeBody, points: List[SuspensionPoint], resolver,
                        settings: Optional[AnalyzerSettings] = None) -> Optional[str]:
    """
    Check whether a body is worth judging.

    Returns:
        None for a candidate, otherwise the reason it is not one
    """
    settings = settings or AnalyzerSettings()

    if body.statement_body is None and body.expression_body is None:
        return "no body"
    if not body.is_async:
        return "not a coroutine function"
    if body.declared_type is None:
        return "declared result type unknown"
    if body.declared_type.kind is ResultKind.VOID:
        return "declared result type is None"
    if not points:
        return "no suspension points"
    if _has_yield(body):
        return "async generator"

    # Decorators are evaluated in the enclosing scope; only module-level
    # names are looked up for them.
    for decorator in getattr(body.node, "decorator_list", []):
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        qualname = resolver.qualified_name(target, None)
        if qualname not in settings.transparent_decorators:
            return f"decorated with {qualname or ast.unparse(target)}"

    return None


def is_candidate(body: FunctionLikeBody, points: List[SuspensionPoint], resolver,
                 settings: Optional[AnalyzerSettings] = None) -> bool:
    return candidate_rejection(body, points, resolver, settings) is None
