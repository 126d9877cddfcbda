"""
Tests for rewrite planning, the structural rewrite and the syntax tree transformer
"""

import ast

import pytest

from awaitless import analyze_source, fix_source
from awaitless.core.models import BodyShape, FunctionLikeBody, TypeRef
from awaitless.analysis.verdict import judge_body
from awaitless.rewrite import (
    ActionKind, CoroutineSpelling, apply_plans, plan_rewrite, rewrite_declaration
)
from awaitless.semantics import StaticResolver


def test_single_await_statement_fix():
    """Test the fix for a single tail await statement"""
    source = '''
async def do_something() -> None:
    pass


async def run() -> None:
    await do_something()
'''
    expected = '''
from typing import Any, Coroutine

async def do_something() -> None:
    pass


def run() -> Coroutine[Any, Any, None]:
    return do_something()
'''
    result = fix_source(source)

    assert result.fixed_source == expected
    assert [f.function for f in result.findings] == ["run"]


def test_branch_returns_fix():
    """Test the fix for awaits returned from both branches"""
    source = '''
from typing import Any, Coroutine


async def x() -> int:
    return 1


async def y() -> int:
    return 2


async def pick(flag: bool) -> int:
    if flag:
        return await x()
    else:
        return await y()
'''
    expected = '''
from typing import Any, Coroutine


async def x() -> int:
    return 1


async def y() -> int:
    return 2


def pick(flag: bool) -> Coroutine[Any, Any, int]:
    if flag:
        return x()
    else:
        return y()
'''
    assert fix_source(source).fixed_source == expected


def test_bare_return_collapsed_and_comments_kept():
    """Test that a bare return is folded into the returned awaitable"""
    source = '''
from typing import Any, Coroutine


async def do_something() -> None:
    pass


async def run(flag: bool) -> None:
    # dispatch
    if flag:
        await do_something()  # early
        return
    await do_something()
'''
    expected = '''
from typing import Any, Coroutine


async def do_something() -> None:
    pass


def run(flag: bool) -> Coroutine[Any, Any, None]:
    # dispatch
    if flag:
        return do_something()  # early
    return do_something()
'''
    assert fix_source(source).fixed_source == expected


def test_bare_return_on_same_line():
    """Test a bare return sharing the line of the await"""
    source = '''
async def do_something():
    pass


async def run(flag: bool):
    if flag:
        await do_something(); return
    await do_something()
'''
    expected = '''
async def do_something():
    pass


def run(flag: bool):
    if flag:
        return do_something()
    return do_something()
'''
    assert fix_source(source).fixed_source == expected


def test_multiline_operand_keeps_its_layout():
    """Test that a multi-line awaitable is returned as it was written"""
    source = '''
from typing import Any, Coroutine


async def compute(a: int, b: int) -> int:
    return a + b


async def run() -> int:
    return await compute(
        1,
        2,
    )
'''
    fixed = fix_source(source).fixed_source

    assert "    return compute(\n        1,\n        2,\n    )\n" in fixed
    ast.parse(fixed)


def test_shadowed_coroutine_name_uses_typing_module():
    """Test the annotation spelling when Coroutine means something else"""
    source = '''
Coroutine = object


async def do_something() -> None:
    pass


async def run() -> None:
    await do_something()
'''
    fixed = fix_source(source).fixed_source

    assert fixed.startswith("\nimport typing\n\nCoroutine = object\n")
    assert "def run() -> typing.Coroutine[typing.Any, typing.Any, None]:" in fixed


def test_imports_go_after_existing_imports():
    """Test where the typing import is inserted"""
    source = '''"""Module docstring."""
from __future__ import annotations

import asyncio


async def pause() -> None:
    await asyncio.sleep(1)
'''
    expected = '''"""Module docstring."""
from __future__ import annotations

import asyncio
from typing import Any, Coroutine


def pause() -> Coroutine[Any, Any, None]:
    return asyncio.sleep(1)
'''
    result = fix_source(source)

    assert result.fixed_source == expected
    assert result.imports == ["from typing import Any, Coroutine"]


def test_missing_name_merged_into_typing_import():
    """Test that a missing typing name joins the existing typing import"""
    source = '''from typing import Any


async def pause() -> None:
    await sleep()


async def sleep() -> None:
    pass
'''
    fixed = fix_source(source).fixed_source

    assert fixed.startswith("from typing import Coroutine, Any\n")
    assert "def pause() -> Coroutine[Any, Any, None]:\n    return sleep()\n" in fixed


def test_unannotated_fix_needs_no_import():
    """Test that an unannotated coroutine is rewritten without retyping"""
    source = '''
async def do_something():
    pass


async def run():
    await do_something()
'''
    expected = '''
async def do_something():
    pass


def run():
    return do_something()
'''
    result = fix_source(source)

    assert result.fixed_source == expected
    assert result.imports == []


def test_method_fix():
    """Test the fix for a method awaiting another method"""
    source = '''
from typing import Any, Coroutine


class Service:
    async def fetch(self) -> int:
        return 1

    async def get(self) -> int:
        return await self.fetch()
'''
    fixed = fix_source(source).fixed_source

    assert "    def get(self) -> Coroutine[Any, Any, int]:\n        return self.fetch()\n" in fixed
    assert "    async def fetch(self) -> int:" in fixed


NESTED = '''
async def fetch() -> int:
    return 1


async def outer() -> int:
    async def inner() -> int:
        return await fetch()
    return await inner()
'''


def test_nested_bodies_fixed_independently():
    """Test that an enclosing function and its local function are both fixed"""
    expected = '''
from typing import Any, Coroutine

async def fetch() -> int:
    return 1


def outer() -> Coroutine[Any, Any, int]:
    def inner() -> Coroutine[Any, Any, int]:
        return fetch()
    return inner()
'''
    assert fix_source(NESTED).fixed_source == expected


def test_fix_limited_to_selected_functions():
    """Test fixing only some of the flagged functions"""
    result = fix_source(NESTED, functions=["outer.<locals>.inner"])

    assert "async def outer() -> int:" in result.fixed_source
    assert "    def inner() -> Coroutine[Any, Any, int]:" in result.fixed_source
    assert [f.function for f in result.findings] == ["outer.<locals>.inner"]


@pytest.mark.parametrize("source", [
    NESTED,
    '''
async def do_something() -> None:
    pass


async def run(flag: bool) -> None:
    if flag:
        await do_something()
        return
    await do_something()
''',
])
def test_fix_is_idempotent(source):
    """Test that fixed source has nothing left to fix"""
    fixed = fix_source(source).fixed_source

    assert analyze_source(fixed).findings == []
    assert fix_source(fixed).fixed_source == fixed


def test_structural_rewrite_leaves_nested_body_alone():
    """Test the replacement declaration built from a plan"""
    analysis = analyze_source(NESTED)
    plan = plan_rewrite(analysis.verdict_for("outer"))
    original = plan.body.node

    rewritten = rewrite_declaration(plan)
    text = ast.unparse(rewritten)

    assert isinstance(rewritten, ast.FunctionDef)
    assert text.startswith("def outer() -> Coroutine[Any, Any, int]:")
    assert "async def inner() -> int:" in text
    assert "return await fetch()" in text
    assert text.rstrip().endswith("return inner()")
    assert isinstance(original, ast.AsyncFunctionDef)
    assert "return await inner()" in ast.unparse(original)


def test_plan_actions_for_bare_return():
    """Test the actions planned for a collapsed bare return"""
    source = '''
async def do_something() -> None:
    pass


async def run(flag: bool) -> None:
    if flag:
        await do_something()
        return
    await do_something()
'''
    plan = plan_rewrite(analyze_source(source).verdict_for("run"))

    assert [a.kind for a in plan.actions] == [
        ActionKind.DROP_ASYNC,
        ActionKind.RETYPE,
        ActionKind.RETURN_INNER,
        ActionKind.DROP_RETURN,
        ActionKind.RETURN_INNER,
    ]
    drop = plan.actions[3]
    assert drop.anchor is plan.actions[2].node


def test_plan_rejects_non_qualifying_verdict():
    """Test that only qualifying bodies can be planned"""
    source = '''
async def run() -> int:
    value = await fetch()
    return value
'''
    verdict = analyze_source(source).verdict_for("run")

    with pytest.raises(ValueError):
        plan_rewrite(verdict)


def test_expression_body_unwrapped():
    """Test the rewrite of an expression body"""
    lam = ast.parse("lambda: fetch()", mode="eval").body
    call = lam.body
    lam.body = ast.copy_location(ast.Await(value=call), call)

    body = FunctionLikeBody(
        body_id=0,
        shape=BodyShape.ANONYMOUS,
        node=lam,
        qualname="<lambda>",
        owner_class=None,
        enclosing_id=None,
        is_async=True,
        declared_type=TypeRef("Coroutine", "int"),
        expression_body=lam.body
    )
    verdict = judge_body(body, StaticResolver({"fetch": "Coroutine[int]"}))

    assert verdict.qualifies
    plan = plan_rewrite(verdict)
    assert [a.kind for a in plan.actions] == [ActionKind.UNWRAP_AWAIT]
    assert ast.unparse(rewrite_declaration(plan)) == "lambda: fetch()"




def test_comments_of_collapsed_return_survive():
    """Test that comments on the await and on the dropped return are both kept"""
    source = '''
async def g() -> None:
    pass


async def run(flag: bool) -> None:
    if flag:
        await g()  # first
        return  # done
    await g()
'''
    fixed = fix_source(source).fixed_source

    assert "    if flag:\n        return g()  # first\n        # done\n    return g()\n" in fixed
    assert "# first" in fixed and "# done" in fixed


def test_comment_above_dropped_return_moves_to_next_statement():
    """Test that a comment line above a dropped return stays in the block"""
    source = '''
async def g():
    pass


async def run(flag: bool):
    if flag:
        await g()
        # nothing left to do
        return
    # fall through
    await g()
'''
    expected = '''
async def g():
    pass


def run(flag: bool):
    if flag:
        return g()
        # nothing left to do
    # fall through
    return g()
'''
    assert fix_source(source).fixed_source == expected


def test_parenthesized_await_keeps_parentheses():
    """Test that the parentheses around an await stay around the awaitable"""
    source = '''
async def fetch():
    return 1


async def get():
    return (await fetch())
'''
    assert "def get():\n    return (fetch())\n" in fix_source(source).fixed_source


SIMPLE = '''async def do_something() -> None:
    pass


async def run() -> None:
    await do_something()
'''


def test_apply_plans_with_custom_spelling():
    """Test a retype spelling that needs no imports"""
    analysis = analyze_source(SIMPLE)
    plan = plan_rewrite(analysis.verdict_for("run"))

    fixed = apply_plans(SIMPLE, [plan], spelling=CoroutineSpelling("Awaitable[{}]"))

    assert fixed == '''async def do_something() -> None:
    pass


def run() -> Awaitable[None]:
    return do_something()
'''


def test_apply_plans_rejects_source_it_was_not_planned_on():
    """Test that plans do not apply to source whose lines moved"""
    plan = plan_rewrite(analyze_source(SIMPLE).verdict_for("run"))
    moved = "# header\n" * 10 + SIMPLE

    with pytest.raises(ValueError):
        apply_plans(moved, [plan])


def test_non_ascii_columns_match():
    """Test that awaits after non-ASCII text on the same line are found"""
    source = '''
async def ping():
    pass


async def run(flag: bool):
    if flag:
        s = "é"; await ping(); return
    await ping()
'''
    fixed = fix_source(source).fixed_source

    assert '        s = "é"; return ping()\n' in fixed
