"""
Control-flow facts about a single function-like body.

Finds the suspension points of a body, the guard scopes around them and
their position relative to the exits of the body. Nested function, lambda
and class bodies are never part of the enclosing body; only the parts of
them evaluated by the enclosing scope (decorators, defaults, bases) are.
"""

import ast
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from ..core.models import (
    FunctionLikeBody, GuardKind, GuardScope, PositionRole, SuspensionPoint
)

NESTED_BODY_TYPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda, ast.ClassDef)

TRY_TYPES = tuple(t for t in (ast.Try, getattr(ast, "TryStar", None)) if t is not None)

WITH_TYPES = (ast.With, ast.AsyncWith)


def _evaluated_by_enclosing(node: ast.AST) -> List[ast.AST]:
    """Parts of a nested definition that run in the enclosing scope"""
    parts: List[ast.AST] = list(getattr(node, "decorator_list", []))
    args = getattr(node, "args", None)
    if isinstance(args, ast.arguments):
        parts.extend(args.defaults)
        parts.extend(d for d in args.kw_defaults if d is not None)
    if isinstance(node, ast.ClassDef):
        parts.extend(node.bases)
        parts.extend(node.keywords)
    return parts


def _walk_guarded(nodes: Iterable[ast.AST],
                  guards: Tuple[GuardScope, ...]) -> Iterator[Tuple[ast.AST, Tuple[GuardScope, ...]]]:
    for node in nodes:
        if isinstance(node, NESTED_BODY_TYPES):
            yield from _walk_guarded(_evaluated_by_enclosing(node), guards)
            continue

        yield node, guards

        if isinstance(node, WITH_TYPES):
            # The context managers are entered before the scope exists
            yield from _walk_guarded(node.items, guards)
            scope = GuardScope(GuardKind.RESOURCE_SCOPE, node)
            yield from _walk_guarded(node.body, guards + (scope,))
        elif isinstance(node, TRY_TYPES):
            scope = GuardScope(GuardKind.FAULT_BARRIER, node)
            yield from _walk_guarded(ast.iter_child_nodes(node), guards + (scope,))
        else:
            yield from _walk_guarded(ast.iter_child_nodes(node), guards)


def iter_own_nodes(nodes: Iterable[ast.AST]) -> Iterator[ast.AST]:
    """Yield the given nodes and their descendants, skipping nested bodies."""
    for node, _ in _walk_guarded(nodes, ()):
        yield node


def _body_roots(body: FunctionLikeBody) -> Sequence[ast.AST]:
    if body.statement_body is not None:
        return body.statement_body
    if body.expression_body is not None:
        return (body.expression_body,)
    return ()


@dataclass
class FlowSummary:
    """Exit structure of a body"""
    roles: Dict[ast.Await, PositionRole] = field(default_factory=dict)
    carriers: Dict[ast.Await, ast.stmt] = field(default_factory=dict)
    followers: Dict[ast.Await, ast.Return] = field(default_factory=dict)
    returns: List[ast.Return] = field(default_factory=list)
    completes_normally: bool = False


def _statement_blocks(top: Sequence[ast.stmt]) -> Iterator[Tuple[Sequence[ast.stmt], bool]]:
    """Yield (block, is_top_level) for every statement list of the body"""
    yield top, True
    for node in iter_own_nodes(top):
        for name in ("body", "orelse", "finalbody"):
            block = getattr(node, name, None)
            if isinstance(block, list) and block and isinstance(block[0], ast.stmt):
                yield block, False


def _is_bare_return(stmt: ast.stmt) -> bool:
    return isinstance(stmt, ast.Return) and stmt.value is None


def _completes_normally(block: Sequence[ast.stmt], tail_exit: bool = False) -> bool:
    """Whether control can reach the end of the block"""
    if not block:
        return True
    last = block[-1]
    if isinstance(last, (ast.Return, ast.Raise)):
        return False
    if tail_exit and isinstance(last, ast.Expr) and isinstance(last.value, ast.Await):
        return False
    if isinstance(last, ast.If):
        return _completes_normally(last.body) or _completes_normally(last.orelse)
    return True


def summarize_flow(body: FunctionLikeBody) -> FlowSummary:
    """
    Compute position roles for the awaits of a body.

    Args:
        body: Body to summarize

    Returns:
        FlowSummary; awaits without an entry in roles have role OTHER
    """
    summary = FlowSummary()

    if body.expression_body is not None:
        if isinstance(body.expression_body, ast.Await):
            summary.roles[body.expression_body] = PositionRole.TAIL_OF_VALUE_RETURN
        return summary

    if body.statement_body is None:
        return summary

    for block, top_level in _statement_blocks(body.statement_body):
        for index, stmt in enumerate(block):
            if isinstance(stmt, ast.Return) and isinstance(stmt.value, ast.Await):
                summary.roles[stmt.value] = PositionRole.TAIL_OF_VALUE_RETURN
                summary.carriers[stmt.value] = stmt
                continue

            if not (isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Await)):
                continue

            following = block[index + 1] if index + 1 < len(block) else None
            if following is not None and _is_bare_return(following):
                summary.roles[stmt.value] = PositionRole.TAIL_OF_BARE_RETURN
                summary.carriers[stmt.value] = stmt
                summary.followers[stmt.value] = following
            elif following is None and top_level:
                summary.roles[stmt.value] = PositionRole.TAIL_EXPRESSION_STATEMENT
                summary.carriers[stmt.value] = stmt

    summary.returns = [n for n in iter_own_nodes(body.statement_body) if isinstance(n, ast.Return)]
    summary.completes_normally = _completes_normally(body.statement_body, tail_exit=True)
    return summary


def _position(node: ast.AST) -> Tuple[int, int]:
    anchor = node.target if isinstance(node, ast.comprehension) else node
    return anchor.lineno, anchor.col_offset


def find_suspension_points(body: FunctionLikeBody, flow: FlowSummary = None) -> List[SuspensionPoint]:
    """
    Find every place where the body may suspend, in source order.

    async with, async for and async comprehensions suspend without an await
    keyword; they are reported as implicit points with role OTHER.
    """
    if flow is None:
        flow = summarize_flow(body)

    points = []
    for node, guards in _walk_guarded(_body_roots(body), ()):
        if isinstance(node, ast.Await):
            points.append(SuspensionPoint(
                node=node,
                inner_expr=node.value,
                role=flow.roles.get(node, PositionRole.OTHER),
                guards=guards,
                statement=flow.carriers.get(node),
                follower=flow.followers.get(node)
            ))
        elif isinstance(node, (ast.AsyncWith, ast.AsyncFor)) or (
                isinstance(node, ast.comprehension) and node.is_async):
            points.append(SuspensionPoint(
                node=node,
                inner_expr=None,
                role=PositionRole.OTHER,
                guards=guards,
                implicit=True
            ))

    points.sort(key=lambda p: _position(p.node))
    return points
