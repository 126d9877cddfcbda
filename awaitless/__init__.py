"""
awaitless: finds coroutines that only await and return, and rewrites them
to return the awaitable directly
"""

from .core.analyzer import (
    AnalysisResult, FixResult, analyze_file, analyze_source, analyze_tree, fix_source, parse_source
)
from .core.config import AnalyzerSettings, RULE_ID, VERSION
from .core.models import (
    BodyShape, Finding, FunctionLikeBody, Location, PositionRole, ResultKind, SuspensionPoint,
    TypeRef, Verdict
)
from .check import check_file, check_source
from .parser import SourceParseError

__version__ = VERSION
__all__ = [
    "analyze_source",
    "analyze_file",
    "analyze_tree",
    "fix_source",
    "parse_source",
    "check_file",
    "check_source",
    "AnalysisResult",
    "FixResult",
    "AnalyzerSettings",
    "SourceParseError",
    "RULE_ID",
    "BodyShape",
    "Finding",
    "FunctionLikeBody",
    "Location",
    "PositionRole",
    "ResultKind",
    "SuspensionPoint",
    "TypeRef",
    "Verdict"
]
