"""
Semantic resolution of call targets and declared result types.

The analysis only talks to a SemanticResolver. ModuleResolver answers from
what a single module declares; StaticResolver answers from literal type
tokens for hosts that already know the types.
"""

import ast
import builtins
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from ..analysis.flow import iter_own_nodes
from ..core.config import AnalyzerSettings, PENDING_TYPE_NAMES
from ..core.models import CallTarget, DeclarationSite, TypeRef

logger = logging.getLogger(__name__)

LOCALS_MARKER = ".<locals>."


class SemanticResolver(Protocol):
    """Capability interface answering type questions for the analysis"""

    def declared_result_type(self, node: ast.AST) -> Optional[TypeRef]:
        """Declared result type of a function-like node, None when unknown"""

    def resolve_call(self, call: ast.Call, scope) -> Optional[CallTarget]:
        """Target of an invocation made inside scope, None when unresolvable"""

    def qualified_name(self, expr: ast.expr, scope) -> Optional[str]:
        """Qualified name an expression refers to inside scope (None: module level)"""

    def binding_of(self, name: str) -> Optional[str]:
        """Qualified name bound to a module-level name, None when unbound"""


def dotted_name(expr: ast.AST) -> Optional[str]:
    """Render a Name/Attribute chain as a dotted name"""
    if isinstance(expr, ast.Name):
        return expr.id
    if isinstance(expr, ast.Attribute):
        base = dotted_name(expr.value)
        return f"{base}.{expr.attr}" if base else None
    return None


def annotation_expr(annotation: Optional[ast.expr]) -> Optional[ast.expr]:
    """Annotation expression, with string annotations parsed"""
    if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
        try:
            return ast.parse(annotation.value.strip(), mode="eval").body
        except SyntaxError:
            return None
    return annotation


def returns_value(node: ast.AST) -> bool:
    """Whether a def has a return with a value other than None"""
    for child in iter_own_nodes(node.body):
        if isinstance(child, ast.Return) and child.value is not None:
            if not (isinstance(child.value, ast.Constant) and child.value.value is None):
                return True
    return False


def annotation_result_type(node: ast.AST) -> Optional[TypeRef]:
    """
    Declared result type read from a def's return annotation.

    async def f() -> T            Coroutine[T]
    async def f()                 Coroutine[None] or Coroutine[Any]
    def f() -> Coroutine[A, B, T] Coroutine[T]
    def f() -> Awaitable[T]       Awaitable[T]
    def f()                       unknown
    """
    if isinstance(node, ast.AsyncFunctionDef):
        if node.returns is None:
            return TypeRef("Coroutine", "Any" if returns_value(node) else "None")
        expr = annotation_expr(node.returns)
        if expr is None:
            return None
        return TypeRef("Coroutine", ast.unparse(expr))

    if not isinstance(node, ast.FunctionDef):
        return None

    expr = annotation_expr(node.returns)
    if expr is None:
        return None

    if isinstance(expr, ast.Subscript):
        base = dotted_name(expr.value)
        short = base.rsplit(".", 1)[-1] if base else None
        if short in PENDING_TYPE_NAMES:
            items = expr.slice.elts if isinstance(expr.slice, ast.Tuple) else [expr.slice]
            return TypeRef(short, ast.unparse(items[-1]))

    base = dotted_name(expr)
    if base and base.rsplit(".", 1)[-1] in PENDING_TYPE_NAMES:
        return TypeRef(base.rsplit(".", 1)[-1])

    return TypeRef.parse(ast.unparse(expr))


def _import_bindings(statements: Iterable[ast.AST]) -> Dict[str, str]:
    bindings = {}
    for stmt in statements:
        if isinstance(stmt, ast.Import):
            for alias in stmt.names:
                if alias.asname:
                    bindings[alias.asname] = alias.name
                else:
                    root = alias.name.split(".", 1)[0]
                    bindings[root] = root
        elif isinstance(stmt, ast.ImportFrom):
            module = "." * stmt.level + (stmt.module or "")
            for alias in stmt.names:
                if alias.name == "*":
                    continue
                prefix = module if module.endswith(".") else f"{module}."
                bindings[alias.asname or alias.name] = f"{prefix}{alias.name}"
    return bindings


def _target_names(target: ast.AST) -> Iterable[str]:
    for node in ast.walk(target):
        if isinstance(node, ast.Name):
            yield node.id


def _index_classes(nodes: Iterable[ast.AST], prefix: str, out: Dict[str, ast.ClassDef]):
    for node in nodes:
        if isinstance(node, ast.ClassDef):
            qualname = f"{prefix}{node.name}"
            out[qualname] = node
            _index_classes(node.body, f"{qualname}.", out)
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            _index_classes(node.body, f"{prefix}{node.name}{LOCALS_MARKER}", out)
        else:
            _index_classes(ast.iter_child_nodes(node), prefix, out)


def _scan_local_scope(node: ast.AST) -> Tuple[Dict[str, str], Set[str]]:
    """Imports and other bindings made inside a function-like node"""
    body = node.body if isinstance(node.body, list) else [node.body]
    own = list(iter_own_nodes(body))
    imports = _import_bindings(own)

    declared_global = set()
    bindings = set()
    args = node.args
    for arg in args.posonlyargs + args.args + args.kwonlyargs + [args.vararg, args.kwarg]:
        if arg is not None:
            bindings.add(arg.arg)
    for child in own:
        if isinstance(child, (ast.Global, ast.Nonlocal)):
            declared_global.update(child.names)
        elif isinstance(child, ast.Name) and isinstance(child.ctx, (ast.Store, ast.Del)):
            bindings.add(child.id)
        elif isinstance(child, ast.ExceptHandler) and child.name:
            bindings.add(child.name)

    return imports, bindings - declared_global - set(imports)


class ModuleResolver:
    """
    Resolve names against one module.

    Knows the module's own definitions (by __qualname__), its module-level
    imports and assignments, builtins, and the known_signatures table of the
    settings. Anything else is unresolvable.
    """

    def __init__(self, tree: ast.Module, sites: List[DeclarationSite],
                 settings: Optional[AnalyzerSettings] = None):
        self.settings = settings or AnalyzerSettings()
        self._sites = {}
        self._definitions: Dict[str, ast.AST] = {}
        for site in sites:
            self._sites.setdefault(site.qualname, site)
            if isinstance(site.node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self._definitions[site.qualname] = site.node

        self._classes: Dict[str, ast.ClassDef] = {}
        _index_classes(tree.body, "", self._classes)

        self._imports = _import_bindings(tree.body)
        self._module_names: Set[str] = set()
        for stmt in tree.body:
            if isinstance(stmt, ast.Assign):
                for target in stmt.targets:
                    self._module_names.update(_target_names(target))
            elif isinstance(stmt, (ast.AnnAssign, ast.AugAssign)):
                self._module_names.update(_target_names(stmt.target))

        # filled once here; analysis threads only read it
        self._local_scopes: Dict[ast.AST, Tuple[Dict[str, str], Set[str]]] = {
            site.node: _scan_local_scope(site.node) for site in sites
        }

    # Type questions

    def declared_result_type(self, node: ast.AST) -> Optional[TypeRef]:
        return annotation_result_type(node)

    def resolve_call(self, call: ast.Call, scope) -> Optional[CallTarget]:
        qualname = self.qualified_name(call.func, scope)
        if qualname is None:
            logger.debug("Unresolved call target: %s", ast.unparse(call.func))
            return None

        if qualname in self._definitions:
            return CallTarget(qualname, self.declared_result_type(self._definitions[qualname]))
        if qualname in self._classes:
            return CallTarget(qualname, TypeRef(self._classes[qualname].name))

        signature = self.settings.known_signatures.get(qualname)
        if signature is not None:
            return CallTarget(qualname, TypeRef.parse(signature))

        return CallTarget(qualname, None)

    # Name questions

    def qualified_name(self, expr: ast.expr, scope) -> Optional[str]:
        if isinstance(expr, ast.Name):
            return self._resolve_name(expr.id, scope)

        if isinstance(expr, ast.Attribute):
            owner = getattr(scope, "owner_class", None)
            if owner and isinstance(expr.value, ast.Name) and expr.value.id in ("self", "cls"):
                candidate = f"{owner}.{expr.attr}"
                return candidate if candidate in self._definitions else None

            base = self.qualified_name(expr.value, scope)
            return f"{base}.{expr.attr}" if base else None

        return None

    def binding_of(self, name: str) -> Optional[str]:
        if name in self._imports:
            return self._imports[name]
        if name in self._definitions or name in self._classes or name in self._module_names:
            return name
        return None

    def _resolve_name(self, name: str, scope) -> Optional[str]:
        qualname = getattr(scope, "qualname", None)
        node = getattr(scope, "node", None)

        while qualname is not None:
            candidate = f"{qualname}{LOCALS_MARKER}{name}"
            if candidate in self._definitions or candidate in self._classes:
                return candidate

            if node is not None:
                scope_names = self._local_scopes.get(node)
                if scope_names is None:
                    scope_names = _scan_local_scope(node)
                imports, bindings = scope_names
                if name in imports:
                    return imports[name]
                if name in bindings:
                    return None

            if LOCALS_MARKER not in qualname:
                break
            qualname = qualname.rsplit(LOCALS_MARKER, 1)[0]
            site = self._sites.get(qualname)
            node = site.node if site is not None else None

        binding = self.binding_of(name)
        if binding is not None:
            return binding
        if hasattr(builtins, name):
            return f"builtins.{name}"
        return None


class StaticResolver:
    """
    Resolver fed with literal type tokens.

    Args:
        signatures: Dotted call name -> result type token, e.g.
            {"do_something": "Coroutine[None]"}
        declared: Function name -> declared result type token; functions not
            listed fall back to their annotations
        aliases: Name -> qualified name, e.g. {"cast": "typing.cast"}
    """

    def __init__(self, signatures: Dict[str, str], declared: Optional[Dict[str, str]] = None,
                 aliases: Optional[Dict[str, str]] = None):
        self.signatures = dict(signatures)
        self.declared = dict(declared or {})
        self.aliases = dict(aliases or {})

    def declared_result_type(self, node: ast.AST) -> Optional[TypeRef]:
        name = getattr(node, "name", "<lambda>")
        if name in self.declared:
            return TypeRef.parse(self.declared[name])
        return annotation_result_type(node)

    def resolve_call(self, call: ast.Call, scope) -> Optional[CallTarget]:
        qualname = self.qualified_name(call.func, scope)
        if qualname is None:
            return None
        signature = self.signatures.get(qualname)
        return CallTarget(qualname, TypeRef.parse(signature) if signature else None)

    def qualified_name(self, expr: ast.expr, scope) -> Optional[str]:
        name = dotted_name(expr)
        if name is None:
            return None
        head, dot, rest = name.partition(".")
        if head in self.aliases:
            return self.aliases[head] + dot + rest
        return name

    def binding_of(self, name: str) -> Optional[str]:
        return self.aliases.get(name)
