"""
Per-point safety predicate.

A suspension point is safe when removing it cannot change behavior:
nothing runs after it inside a with/try, it sits in tail position, and the
awaitable it consumes has exactly the declared result type of the body.
"""

import ast
import logging
from typing import NamedTuple, Optional

from ..core.config import AnalyzerSettings
from ..core.models import (
    FunctionLikeBody, GuardKind, PositionRole, SafetyResult, SuspensionPoint, TypeRef
)

logger = logging.getLogger(__name__)


class ProducedType(NamedTuple):
    """Type produced by an awaited expression"""
    resolved: bool
    type_ref: Optional[TypeRef]
    expr: Optional[ast.expr]


def produced_type(expr: ast.expr, body: FunctionLikeBody, resolver,
                  settings: AnalyzerSettings) -> ProducedType:
    """
    Find the type produced by the operand of an await.

    Non-call operands (await task, await self.future) produce no type of
    their own. Pass-through wrappers are unwrapped and the wrapped
    expression is judged instead.
    """
    if not isinstance(expr, ast.Call):
        return ProducedType(True, None, expr)

    target = resolver.resolve_call(expr, body)
    if target is None:
        return ProducedType(False, None, expr)

    index = settings.passthrough_wrappers.get(target.qualified_name)
    if index is not None:
        if len(expr.args) <= index or isinstance(expr.args[index], ast.Starred):
            return ProducedType(False, None, expr)
        return produced_type(expr.args[index], body, resolver, settings)

    if target.result_type is None:
        return ProducedType(False, None, expr)

    return ProducedType(True, target.result_type, expr)


def judge_point(point: SuspensionPoint, body: FunctionLikeBody, resolver,
                settings: Optional[AnalyzerSettings] = None) -> SafetyResult:
    """
    Judge one suspension point.

    Args:
        point: Point to judge
        body: Body the point belongs to
        resolver: SemanticResolver
        settings: Analyzer settings

    Returns:
        SafetyResult with the reason when unsafe
    """
    settings = settings or AnalyzerSettings()

    if point.guards:
        kind = point.guards[-1].kind
        where = "with block" if kind is GuardKind.RESOURCE_SCOPE else "try statement"
        return SafetyResult(point, False, f"awaited inside a {where}")

    if point.role is PositionRole.OTHER:
        if point.implicit:
            return SafetyResult(point, False, "implicit suspension")
        return SafetyResult(point, False, "await is not in tail position")

    produced = produced_type(point.inner_expr, body, resolver, settings)
    if not produced.resolved:
        logger.debug("%s: unresolved awaitable at line %d", body.qualname, point.node.lineno)
        if settings.assume_unresolved_safe:
            return SafetyResult(point, True, pending_expr=produced.expr)
        return SafetyResult(point, False, "awaited callable could not be resolved")

    if produced.type_ref is not None and produced.type_ref != body.declared_type:
        return SafetyResult(
            point, False,
            f"awaitable type {produced.type_ref} differs from declared {body.declared_type}"
        )

    return SafetyResult(point, True, pending_expr=produced.expr)
