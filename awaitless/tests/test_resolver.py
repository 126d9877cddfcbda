"""
Tests for module-level semantic resolution
"""

import ast
from concurrent.futures import ThreadPoolExecutor

from awaitless.analysis import extract_body
from awaitless.core.config import AnalyzerSettings
from awaitless.core.models import CallTarget, TypeRef
from awaitless.parser import collect_declaration_sites
from awaitless.semantics import ModuleResolver, StaticResolver, dotted_name
from awaitless.semantics.resolver import annotation_result_type


SOURCE = '''
import asyncio as aio
import os.path
from asyncio import sleep as nap
from typing import Awaitable, Coroutine


client = object()


class Service:
    async def fetch(self) -> int:
        return 1

    def pending(self) -> Awaitable[int]:
        return self.fetch()


async def top(callback) -> None:
    def helper():
        pass

    async def nested():
        helper()
        callback()

    from json import dumps
    dumps({})
'''


def build():
    tree = ast.parse(SOURCE)
    sites = collect_declaration_sites(tree)
    resolver = ModuleResolver(tree, sites, AnalyzerSettings())
    bodies = {b.qualname: b for b in (extract_body(site, resolver) for site in sites)}
    return resolver, bodies


def name_in(resolver, scope, expr_source):
    return resolver.qualified_name(ast.parse(expr_source, mode="eval").body, scope)


def test_import_aliases():
    """Test qualified names through module imports"""
    resolver, bodies = build()
    scope = bodies["top"]

    assert name_in(resolver, scope, "aio.sleep") == "asyncio.sleep"
    assert name_in(resolver, scope, "nap") == "asyncio.sleep"
    assert name_in(resolver, scope, "os.path.join") == "os.path.join"
    assert name_in(resolver, None, "Coroutine") == "typing.Coroutine"


def test_builtins_and_unknown_names():
    """Test the fallback to builtins"""
    resolver, bodies = build()

    assert name_in(resolver, None, "print") == "builtins.print"
    assert name_in(resolver, None, "staticmethod") == "builtins.staticmethod"
    assert name_in(resolver, None, "undefined_thing") is None
    assert name_in(resolver, None, "client.get") == "client.get"


def test_local_scopes():
    """Test nested definitions, parameters and local imports"""
    resolver, bodies = build()
    nested = bodies["top.<locals>.nested"]
    top = bodies["top"]

    assert name_in(resolver, nested, "helper") == "top.<locals>.helper"
    assert name_in(resolver, nested, "callback") is None
    assert name_in(resolver, top, "dumps") == "json.dumps"
    assert name_in(resolver, None, "helper") is None


def test_local_scopes_built_before_concurrent_lookups():
    """Test that lookups from many threads read the scope table without changing it"""
    resolver, bodies = build()
    nested = bodies["top.<locals>.nested"]
    scopes = dict(resolver._local_scopes)

    assert len(scopes) == len(bodies)

    with ThreadPoolExecutor(max_workers=8) as pool:
        names = list(pool.map(lambda _: name_in(resolver, nested, "helper"), range(50)))

    assert names == ["top.<locals>.helper"] * 50
    assert resolver._local_scopes == scopes


def test_self_resolves_through_owner_class():
    """Test method lookup through self"""
    resolver, bodies = build()
    pending = bodies["Service.pending"]

    assert name_in(resolver, pending, "self.fetch") == "Service.fetch"
    assert name_in(resolver, pending, "self.missing") is None


def test_resolve_call_result_types():
    """Test result types of resolved calls"""
    resolver, bodies = build()
    pending = bodies["Service.pending"]

    def call(expr_source, scope=pending):
        return resolver.resolve_call(ast.parse(expr_source, mode="eval").body, scope)

    assert call("self.fetch()") == CallTarget("Service.fetch", TypeRef("Coroutine", "int"))
    assert call("self.pending()") == CallTarget("Service.pending", TypeRef("Awaitable", "int"))
    assert call("aio.sleep(1)") == CallTarget("asyncio.sleep", TypeRef("Coroutine", "None"))
    assert call("Service()") == CallTarget("Service", TypeRef("Service"))
    assert call("client.get()") == CallTarget("client.get", None)
    assert call("unknown()") is None
    assert call("factory()()") is None


def test_declared_result_types():
    """Test declared types read from annotations"""
    def declared(source):
        return annotation_result_type(ast.parse(source).body[0])

    assert declared("async def f() -> int: ...") == TypeRef("Coroutine", "int")
    assert declared("async def f() -> 'Dict[str, int]': ...") == TypeRef("Coroutine", "Dict[str, int]")
    assert declared("async def f():\n    return 1\n") == TypeRef("Coroutine", "Any")
    assert declared("async def f():\n    return None\n") == TypeRef("Coroutine", "None")
    assert declared("def f() -> Coroutine[Any, Any, str]: ...") == TypeRef("Coroutine", "str")
    assert declared("def f() -> typing.Awaitable[int]: ...") == TypeRef("Awaitable", "int")
    assert declared("def f() -> 'asyncio.Task[int]': ...") == TypeRef("Task", "int")
    assert declared("def f() -> asyncio.Future: ...") == TypeRef("Future")
    assert declared("def f() -> None: ...") == TypeRef("None")
    assert declared("def f(): ...") is None


def test_bindings():
    """Test module-level bindings used to spell rewritten annotations"""
    resolver, _ = build()

    assert resolver.binding_of("Coroutine") == "typing.Coroutine"
    assert resolver.binding_of("Any") is None
    assert resolver.binding_of("client") == "client"
    assert resolver.binding_of("Service") == "Service"
    assert resolver.binding_of("os") == "os"


def test_static_resolver():
    """Test the literal-token resolver"""
    resolver = StaticResolver(
        {"fetch": "Coroutine[int]", "typing.cast": "Any"},
        declared={"run": "Task[int]"},
        aliases={"cast": "typing.cast"}
    )
    run = ast.parse("def run(): ...").body[0]
    call = ast.parse("fetch()", mode="eval").body

    assert resolver.declared_result_type(run) == TypeRef("Task", "int")
    assert resolver.resolve_call(call, None) == CallTarget("fetch", TypeRef("Coroutine", "int"))
    assert resolver.qualified_name(ast.parse("cast", mode="eval").body, None) == "typing.cast"
    assert resolver.binding_of("cast") == "typing.cast"
    assert dotted_name(ast.parse("a.b.c", mode="eval").body) == "a.b.c"
    assert dotted_name(ast.parse("a().b", mode="eval").body) is None
