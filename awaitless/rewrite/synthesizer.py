"""
Rewrite planning for qualifying bodies.

A plan is an ordered list of actions on nodes of the original tree. The
same plan is interpreted structurally here (a new declaration tree) and
on the concrete syntax tree by rewrite.transformer, which keeps comments
and formatting.
"""

import ast
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..core.models import FunctionLikeBody, PositionRole, Verdict

DEFAULT_COROUTINE_TEMPLATE = "Coroutine[Any, Any, {}]"


class ActionKind(str, Enum):
    DROP_ASYNC = "drop_async"
    RETYPE = "retype"
    RETURN_INNER = "return_inner"
    DROP_RETURN = "drop_return"
    UNWRAP_AWAIT = "unwrap_await"


@dataclass(frozen=True)
class RewriteAction:
    """
    One step of a rewrite.

    node: the node acted on (declaration, annotation, statement or await)
    pending: the awaitable expression that is returned instead of awaited
    anchor: for DROP_RETURN, the statement the return is collapsed into
    """
    kind: ActionKind
    node: ast.AST
    pending: Optional[ast.expr] = None
    anchor: Optional[ast.stmt] = None


@dataclass
class RewritePlan:
    body: FunctionLikeBody
    actions: List[RewriteAction] = field(default_factory=list)

    def has(self, kind: ActionKind) -> bool:
        return any(action.kind is kind for action in self.actions)


def plan_rewrite(verdict: Verdict) -> RewritePlan:
    """
    Plan the rewrite of a qualifying body.

    Raises:
        ValueError: If the verdict does not qualify
    """
    if not verdict.qualifies:
        raise ValueError(f"{verdict.body.qualname} does not qualify: {verdict.reason}")

    body = verdict.body
    plan = RewritePlan(body)

    if isinstance(body.node, ast.AsyncFunctionDef):
        plan.actions.append(RewriteAction(ActionKind.DROP_ASYNC, body.node))
        if body.node.returns is not None:
            plan.actions.append(RewriteAction(ActionKind.RETYPE, body.node.returns))

    for result in verdict.results:
        point = result.point
        if point.role is PositionRole.TAIL_EXPRESSION_STATEMENT:
            plan.actions.append(RewriteAction(ActionKind.RETURN_INNER, point.statement,
                                              pending=point.inner_expr))
        elif point.role is PositionRole.TAIL_OF_BARE_RETURN:
            plan.actions.append(RewriteAction(ActionKind.RETURN_INNER, point.statement,
                                              pending=point.inner_expr))
            plan.actions.append(RewriteAction(ActionKind.DROP_RETURN, point.follower,
                                              anchor=point.statement))
        elif point.role is PositionRole.TAIL_OF_VALUE_RETURN:
            plan.actions.append(RewriteAction(ActionKind.UNWRAP_AWAIT, point.node,
                                              pending=point.inner_expr))

    return plan


class _PlanApplier(ast.NodeTransformer):
    """Applies actions to a copy of the declaration, keyed by copied node"""

    def __init__(self, actions: Dict[int, RewriteAction], template: str):
        self.actions = actions
        self.template = template

    def visit(self, node):
        node = self.generic_visit(node)
        action = self.actions.get(id(node))
        if action is None:
            return node

        if action.kind is ActionKind.DROP_ASYNC:
            fields = {name: getattr(node, name) for name in node._fields if hasattr(node, name)}
            return ast.copy_location(ast.FunctionDef(**fields), node)

        if action.kind is ActionKind.RETYPE:
            retyped = ast.parse(self.template.format(ast.unparse(node)), mode="eval").body
            return ast.copy_location(retyped, node)

        if action.kind is ActionKind.RETURN_INNER:
            return ast.copy_location(ast.Return(value=node.value.value), node)

        if action.kind is ActionKind.DROP_RETURN:
            return None

        if action.kind is ActionKind.UNWRAP_AWAIT:
            return node.value

        return node


def rewrite_declaration(plan: RewritePlan, coroutine_template: str = DEFAULT_COROUTINE_TEMPLATE) -> ast.AST:
    """
    Build the replacement declaration for a plan.

    The original tree is left untouched. Nested bodies are copied as they
    are; their own plans are independent.

    Args:
        plan: Plan from plan_rewrite
        coroutine_template: Spelling of the retyped annotation, {} is the payload

    Returns:
        New FunctionDef (or Lambda) node
    """
    original = plan.body.node
    clone = copy.deepcopy(original)
    mirror = {id(a): b for a, b in zip(ast.walk(original), ast.walk(clone))}

    actions = {id(mirror[id(action.node)]): action for action in plan.actions}
    rewritten = _PlanApplier(actions, coroutine_template).visit(clone)
    return ast.fix_missing_locations(rewritten)
