"""
Data models for function-like bodies, suspension points and findings
"""

import ast
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import PENDING_TYPE_NAMES


class BodyShape(str, Enum):
    """Syntactic shape of a function-like body"""
    NAMED = "named"
    LOCAL = "local"
    ANONYMOUS = "anonymous"


class ResultKind(str, Enum):
    """Classification of a declared result type"""
    VOID = "void"
    PENDING = "pending"
    PENDING_OF = "pending_of"
    OTHER = "other"


class PositionRole(str, Enum):
    """Where a suspension point sits relative to the exits of its body"""
    TAIL_EXPRESSION_STATEMENT = "tail_expression_statement"
    TAIL_OF_BARE_RETURN = "tail_of_bare_return"
    TAIL_OF_VALUE_RETURN = "tail_of_value_return"
    OTHER = "other"


class GuardKind(str, Enum):
    """Scopes that run code when control leaves them"""
    RESOURCE_SCOPE = "resource_scope"
    FAULT_BARRIER = "fault_barrier"


def _split_arguments(text: str) -> List[str]:
    """Split subscript arguments at commas outside brackets"""
    items, depth, start = [], 0, 0
    for index, char in enumerate(text):
        if char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        elif char == "," and depth == 0:
            items.append(text[start:index].strip())
            start = index + 1
    items.append(text[start:].strip())
    return items


@dataclass(frozen=True)
class TypeRef:
    """A literal type token such as Coroutine[int] or None"""
    name: str
    payload: Optional[str] = None

    @property
    def kind(self) -> ResultKind:
        if self.name == "None":
            return ResultKind.VOID
        if self.name in PENDING_TYPE_NAMES:
            if self.payload is None or self.payload == "None":
                return ResultKind.PENDING
            return ResultKind.PENDING_OF
        return ResultKind.OTHER

    @classmethod
    def parse(cls, token: str) -> "TypeRef":
        """
        Parse a literal token.

        Examples:
            "None"              -> TypeRef("None")
            "Coroutine[int]"    -> TypeRef("Coroutine", "int")
            "Task[Dict[str,int]]" -> TypeRef("Task", "Dict[str, int]")
            "typing.Coroutine[Any, Any, int]" -> TypeRef("Coroutine", "int")
        """
        token = re.sub(r"\s*,\s*", ", ", token.strip())
        if token.endswith("]") and "[" in token:
            name, _, rest = token.partition("[")
            name, payload = name.strip(), rest[:-1].strip()
            short = name.rsplit(".", 1)[-1]
            if short in PENDING_TYPE_NAMES:
                # Coroutine[YieldT, SendT, ReturnT] carries its result last
                return cls(short, _split_arguments(payload)[-1])
            return cls(name, payload)
        return cls(token)

    def __str__(self) -> str:
        if self.payload is None:
            return self.name
        return f"{self.name}[{self.payload}]"


@dataclass(frozen=True)
class CallTarget:
    """Resolved target of an invocation"""
    qualified_name: str
    result_type: Optional[TypeRef]


@dataclass(frozen=True)
class DeclarationSite:
    """A function-like node located in a module, before semantic resolution"""
    body_id: int
    node: ast.AST
    shape: BodyShape
    qualname: str
    owner_class: Optional[str]
    enclosing_id: Optional[int]


@dataclass(frozen=True)
class FunctionLikeBody:
    """One named function, local function or lambda, judged on its own"""
    body_id: int
    shape: BodyShape
    node: ast.AST
    qualname: str
    owner_class: Optional[str]
    enclosing_id: Optional[int]
    is_async: bool
    declared_type: Optional[TypeRef]
    statement_body: Optional[Tuple[ast.stmt, ...]] = None
    expression_body: Optional[ast.expr] = None

    @property
    def name(self) -> str:
        return getattr(self.node, "name", "<lambda>")

    @property
    def lineno(self) -> int:
        return self.node.lineno


@dataclass(frozen=True)
class GuardScope:
    """A with/try construct enclosing a suspension point"""
    kind: GuardKind
    node: ast.AST


@dataclass(frozen=True)
class SuspensionPoint:
    """One place where a body may suspend"""
    node: ast.AST
    inner_expr: Optional[ast.expr]
    role: PositionRole
    guards: Tuple[GuardScope, ...] = ()
    statement: Optional[ast.stmt] = None
    follower: Optional[ast.Return] = None
    implicit: bool = False


@dataclass(frozen=True)
class SafetyResult:
    """Outcome of the safety predicate for one suspension point"""
    point: SuspensionPoint
    safe: bool
    reason: str = ""
    pending_expr: Optional[ast.expr] = None


@dataclass(frozen=True)
class Verdict:
    """Whole-body decision"""
    body: FunctionLikeBody
    qualifies: bool
    results: Tuple[SafetyResult, ...] = ()
    reason: str = ""

    @property
    def primary(self) -> Optional[SafetyResult]:
        return self.results[0] if self.results else None

    @property
    def secondary(self) -> Tuple[SafetyResult, ...]:
        return self.results[1:]


@dataclass(frozen=True)
class Location:
    """Source range: 1-based lines, 0-based character columns"""
    line: int
    column: int
    end_line: int
    end_column: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column
        }


@dataclass
class Finding:
    """A reported diagnostic for one qualifying body"""
    rule_id: str
    message: str
    function: str
    severity: str
    primary_location: Location
    secondary_locations: List[Location] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "message": self.message,
            "function": self.function,
            "severity": self.severity,
            "primary_location": self.primary_location.to_dict(),
            "secondary_locations": [loc.to_dict() for loc in self.secondary_locations]
        }
