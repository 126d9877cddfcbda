"""
Data models for the awaitless API
"""
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


@dataclass
class FunctionReport:
    """Analysis outcome for one function-like body"""
    name: str
    line: int
    flagged: bool
    reason: str
    finding: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "line": self.line,
            "flagged": self.flagged,
            "reason": self.reason,
            "finding": self.finding
        }


@dataclass
class AnalysisReport:
    """Analysis outcome for one module"""
    filename: str
    source_hash: str
    functions: List[FunctionReport] = field(default_factory=list)

    @property
    def findings(self) -> List[Dict[str, Any]]:
        return [f.finding for f in self.functions if f.finding is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "source_hash": self.source_hash,
            "functions": [f.to_dict() for f in self.functions],
            "findings": self.findings
        }


@dataclass
class FixReport:
    """Outcome of applying fixes to a module"""
    filename: str
    source_hash: str
    fixed_hash: str
    fixed_source: str
    fixed_functions: List[str] = field(default_factory=list)
    added_imports: List[str] = field(default_factory=list)
    written_to: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "source_hash": self.source_hash,
            "fixed_hash": self.fixed_hash,
            "fixed_source": self.fixed_source,
            "fixed_functions": self.fixed_functions,
            "added_imports": self.added_imports,
            "written_to": self.written_to
        }
