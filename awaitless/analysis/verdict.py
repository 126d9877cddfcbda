"""
Whole-body verdict: a body qualifies only when every suspension point is
redundant and its exits are all-or-nothing on suspension.
"""

import ast
import logging
from typing import List, Optional

from ..core.config import AnalyzerSettings
from ..core.models import FunctionLikeBody, PositionRole, ResultKind, SafetyResult, Verdict
from .flow import FlowSummary, find_suspension_points, summarize_flow
from .safety import judge_point
from .shape import candidate_rejection

logger = logging.getLogger(__name__)

BARE_TAIL_ROLES = (PositionRole.TAIL_EXPRESSION_STATEMENT, PositionRole.TAIL_OF_BARE_RETURN)


def _exit_problem(body: FunctionLikeBody, kind: ResultKind, flow: FlowSummary,
                  results: List[SafetyResult]) -> Optional[str]:
    if body.expression_body is not None:
        if any(r.point.node is not body.expression_body for r in results):
            return "expression body awaits more than its result"
        return None

    if kind is ResultKind.PENDING:
        if any(r.point.role not in BARE_TAIL_ROLES for r in results):
            return "returns the awaited value"
        covered = set(flow.followers.values())
        for ret in flow.returns:
            if ret.value is not None:
                return f"returns a value at line {ret.lineno}"
            if ret not in covered:
                return f"returns without awaiting at line {ret.lineno}"
    else:
        if any(r.point.role is not PositionRole.TAIL_OF_VALUE_RETURN for r in results):
            return "awaits without returning the result"
        for ret in flow.returns:
            if not isinstance(ret.value, ast.Await):
                return f"returns without awaiting at line {ret.lineno}"

    if flow.completes_normally:
        return "control can reach the end of the body"
    return None


def judge_body(body: FunctionLikeBody, resolver,
               settings: Optional[AnalyzerSettings] = None) -> Verdict:
    """
    Decide whether a body qualifies for the return-awaitable rewrite.

    Every point is judged even after one fails, so the verdict lists all of
    them in source order.
    """
    settings = settings or AnalyzerSettings()
    flow = summarize_flow(body)
    points = find_suspension_points(body, flow)

    rejection = candidate_rejection(body, points, resolver, settings)
    if rejection is not None:
        logger.debug("%s: not a candidate (%s)", body.qualname, rejection)
        return Verdict(body, False, reason=rejection)

    kind = body.declared_type.kind
    if kind not in (ResultKind.PENDING, ResultKind.PENDING_OF):
        reason = f"declared result type {body.declared_type} is not awaitable"
        logger.debug("%s: %s", body.qualname, reason)
        return Verdict(body, False, reason=reason)

    results = tuple(judge_point(point, body, resolver, settings) for point in points)

    unsafe = [r for r in results if not r.safe]
    if unsafe:
        logger.debug("%s: %d unsafe suspension point(s), first: %s",
                     body.qualname, len(unsafe), unsafe[0].reason)
        return Verdict(body, False, results, unsafe[0].reason)

    problem = _exit_problem(body, kind, flow, list(results))
    if problem is not None:
        logger.debug("%s: %s", body.qualname, problem)
        return Verdict(body, False, results, problem)

    return Verdict(body, True, results)
