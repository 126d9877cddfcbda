"""
Applies rewrite plans to the concrete syntax tree of a module.

Plans are built from ast nodes. Their targets are found again in the libcst
tree by start position, so whitespace and comments around every rewritten
statement are kept as they were written.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

import libcst as cst
from libcst.codemod import CodemodContext
from libcst.codemod.visitors import AddImportsVisitor
from libcst.metadata import MetadataWrapper, PositionProvider

from ..core.config import ANY_QUALNAMES, COROUTINE_QUALNAMES
from ..utils.source import SourceText
from .synthesizer import DEFAULT_COROUTINE_TEMPLATE, ActionKind, RewritePlan

logger = logging.getLogger(__name__)

Position = Tuple[int, int]


@dataclass(frozen=True)
class CoroutineSpelling:
    """How the retyped annotation is written and what it needs imported"""
    template: str
    imports: Tuple[Tuple[str, Optional[str]], ...] = ()

    def import_lines(self) -> List[str]:
        lines = [f"import {module}" for module, obj in self.imports if obj is None]
        names: Dict[str, List[str]] = {}
        for module, obj in self.imports:
            if obj is not None:
                names.setdefault(module, []).append(obj)
        lines.extend(f"from {module} import {', '.join(objs)}" for module, objs in names.items())
        return lines


def coroutine_spelling(resolver) -> CoroutineSpelling:
    """
    Choose the spelling of Coroutine[Any, Any, T] for a module.

    Uses the bare names when they are unbound or already bound to the typing
    names, otherwise falls back to typing.Coroutine / typing.Any.
    """
    coroutine = resolver.binding_of("Coroutine")
    any_ = resolver.binding_of("Any")

    if coroutine in (None,) + COROUTINE_QUALNAMES and any_ in (None,) + ANY_QUALNAMES:
        missing = tuple(("typing", name) for name, bound in (("Any", any_), ("Coroutine", coroutine))
                        if bound is None)
        return CoroutineSpelling(DEFAULT_COROUTINE_TEMPLATE, missing)

    imports = () if resolver.binding_of("typing") == "typing" else (("typing", None),)
    return CoroutineSpelling("typing.Coroutine[typing.Any, typing.Any, {}]", imports)


def _released(await_node: cst.Await) -> cst.BaseExpression:
    """The awaited operand, keeping the parentheses the await was written in"""
    operand = await_node.expression
    if await_node.lpar and not operand.lpar:
        return operand.with_changes(lpar=await_node.lpar, rpar=await_node.rpar)
    return operand


def _comment_lines(line: cst.SimpleStatementLine):
    """Comments written on and above a statement line"""
    kept = [empty for empty in line.leading_lines if empty.comment is not None]
    comment = line.trailing_whitespace.comment
    if comment is not None:
        kept.append(cst.EmptyLine(comment=comment))
    return kept


class PlanTransformer(cst.CSTTransformer):
    """
    Rewrites the declarations of several plans in one pass.

    Every action is keyed by the (line, character column) its node starts at.
    Declarations are matched at their async keyword, awaits at their await
    keyword and bare returns at their return keyword.
    """

    METADATA_DEPENDENCIES = (PositionProvider,)

    def __init__(self, module: cst.Module, plans: Sequence[RewritePlan], text: SourceText,
                 spelling: CoroutineSpelling):
        super().__init__()
        self.module = module
        self.spelling = spelling
        self.targets: Dict[ActionKind, Set[Position]] = defaultdict(set)
        self.applied: Dict[ActionKind, Set[Position]] = defaultdict(set)

        for plan in plans:
            for action in plan.actions:
                if action.kind in (ActionKind.DROP_ASYNC, ActionKind.RETYPE):
                    anchor = plan.body.node
                elif action.kind is ActionKind.RETURN_INNER:
                    anchor = action.node.value
                else:
                    anchor = action.node
                self.targets[action.kind].add(text.position(anchor))

    def _position(self, node: cst.CSTNode) -> Position:
        start = self.get_metadata(PositionProvider, node).start
        return (start.line, start.column)

    def _take(self, kind: ActionKind, node: cst.CSTNode) -> bool:
        position = self._position(node)
        if position not in self.targets[kind]:
            return False
        self.applied[kind].add(position)
        return True

    def unapplied(self) -> Dict[ActionKind, Set[Position]]:
        return {kind: targets - self.applied[kind]
                for kind, targets in self.targets.items() if targets - self.applied[kind]}

    def leave_FunctionDef(self, original_node: cst.FunctionDef,
                          updated_node: cst.FunctionDef) -> cst.FunctionDef:
        if self._take(ActionKind.RETYPE, original_node):
            payload = self.module.code_for_node(original_node.returns.annotation)
            retyped = cst.parse_expression(self.spelling.template.format(payload),
                                           config=self.module.config_for_parsing)
            updated_node = updated_node.with_changes(
                returns=updated_node.returns.with_changes(annotation=retyped)
            )
        if self._take(ActionKind.DROP_ASYNC, original_node):
            updated_node = updated_node.with_changes(asynchronous=None)
        return updated_node

    def leave_Await(self, original_node: cst.Await, updated_node: cst.Await) -> cst.BaseExpression:
        if self._take(ActionKind.UNWRAP_AWAIT, original_node):
            return _released(updated_node)
        return updated_node

    def leave_Expr(self, original_node: cst.Expr, updated_node: cst.Expr):
        if isinstance(original_node.value, cst.Await) \
                and self._take(ActionKind.RETURN_INNER, original_node.value):
            return cst.Return(value=_released(updated_node.value), semicolon=updated_node.semicolon)
        return updated_node

    def _drops(self, statement: cst.BaseSmallStatement) -> bool:
        return isinstance(statement, cst.Return) and statement.value is None \
            and self._take(ActionKind.DROP_RETURN, statement)

    def _dropped_line(self, line: cst.CSTNode) -> bool:
        return isinstance(line, cst.SimpleStatementLine) \
            and all([self._drops(statement) for statement in line.body])

    def _without_drops(self, original_node, updated_node):
        dropped = [self._drops(statement) for statement in original_node.body]
        if not any(dropped):
            return updated_node
        kept = [statement for statement, drop in zip(updated_node.body, dropped) if not drop]
        if dropped[-1]:
            kept[-1] = kept[-1].with_changes(semicolon=cst.MaybeSentinel.DEFAULT)
        return updated_node.with_changes(body=kept)

    def leave_SimpleStatementLine(self, original_node: cst.SimpleStatementLine,
                                  updated_node: cst.SimpleStatementLine) -> cst.SimpleStatementLine:
        # whole lines are removed by the enclosing block
        if self._dropped_line(original_node):
            return updated_node
        return self._without_drops(original_node, updated_node)

    def leave_SimpleStatementSuite(self, original_node: cst.SimpleStatementSuite,
                                   updated_node: cst.SimpleStatementSuite) -> cst.SimpleStatementSuite:
        return self._without_drops(original_node, updated_node)

    def leave_IndentedBlock(self, original_node: cst.IndentedBlock,
                            updated_node: cst.IndentedBlock) -> cst.IndentedBlock:
        body = []
        carried = []
        for original, updated in zip(original_node.body, updated_node.body):
            if self._dropped_line(original):
                carried.extend(_comment_lines(updated))
                continue
            if carried:
                updated = updated.with_changes(leading_lines=[*carried, *updated.leading_lines])
                carried = []
            body.append(updated)

        if len(body) == len(updated_node.body):
            return updated_node
        return updated_node.with_changes(body=body, footer=[*carried, *updated_node.footer])


def apply_plans(source: str, plans: Sequence[RewritePlan], text: Optional[SourceText] = None,
                spelling: Optional[CoroutineSpelling] = None) -> str:
    """
    Rewrite the declarations of several plans in a module's source.

    Args:
        source: Source the plans' nodes were parsed from
        plans: Plans from plan_rewrite
        text: SourceText of source, built when not given
        spelling: Annotation spelling; defaults to Coroutine[Any, Any, T] with no imports

    Returns:
        The rewritten source, with any typing imports the spelling needs

    Raises:
        ValueError: If an action's node is not found in the source
    """
    text = text or SourceText(source)
    spelling = spelling or CoroutineSpelling(DEFAULT_COROUTINE_TEMPLATE)

    wrapper = MetadataWrapper(cst.parse_module(source))
    transformer = PlanTransformer(wrapper.module, plans, text, spelling)
    module = wrapper.visit(transformer)

    missing = transformer.unapplied()
    if missing:
        kind, positions = next(iter(missing.items()))
        line, column = min(positions)
        raise ValueError(f"no node for {kind.value} at line {line}, column {column}")

    if spelling.imports and any(plan.has(ActionKind.RETYPE) for plan in plans):
        context = CodemodContext()
        for module_name, obj in spelling.imports:
            AddImportsVisitor.add_needed_import(context, module_name, obj)
        module = AddImportsVisitor(context).transform_module(module)
        logger.debug("added imports: %s", ", ".join(spelling.import_lines()))

    return module.code
