"""
Diagnostic descriptor, finding construction and the finding registry.
"""

import threading
from dataclasses import dataclass
from typing import List

from .core.config import RULE_CATEGORY, RULE_DESCRIPTION, RULE_ID, RULE_MESSAGE, RULE_SEVERITY, RULE_TITLE
from .core.models import Finding, Verdict
from .utils.source import SourceText


@dataclass(frozen=True)
class DiagnosticDescriptor:
    """Static description of a rule"""
    rule_id: str
    title: str
    message: str
    category: str
    severity: str
    description: str
    enabled_by_default: bool = True

    def to_dict(self):
        return {
            "rule_id": self.rule_id,
            "title": self.title,
            "message": self.message,
            "category": self.category,
            "severity": self.severity,
            "description": self.description,
            "enabled_by_default": self.enabled_by_default
        }


RETURN_AWAITABLE_DIRECTLY = DiagnosticDescriptor(
    rule_id=RULE_ID,
    title=RULE_TITLE,
    message=RULE_MESSAGE,
    category=RULE_CATEGORY,
    severity=RULE_SEVERITY,
    description=RULE_DESCRIPTION
)


def build_finding(verdict: Verdict, text: SourceText,
                  descriptor: DiagnosticDescriptor = RETURN_AWAITABLE_DIRECTLY) -> Finding:
    """
    Package a qualifying verdict as a finding.

    The first suspension point is the primary location; the others are
    secondary locations.

    Raises:
        ValueError: If the verdict does not qualify
    """
    if not verdict.qualifies or verdict.primary is None:
        raise ValueError(f"{verdict.body.qualname} does not qualify: {verdict.reason}")

    return Finding(
        rule_id=descriptor.rule_id,
        message=descriptor.message,
        function=verdict.body.qualname,
        severity=descriptor.severity,
        primary_location=text.location(verdict.primary.point.node),
        secondary_locations=[text.location(r.point.node) for r in verdict.secondary]
    )


class DiagnosticRegistry:
    """Collects findings; safe to report into from several threads"""

    def __init__(self):
        self._lock = threading.Lock()
        self._findings: List[Finding] = []

    def report(self, finding: Finding):
        with self._lock:
            self._findings.append(finding)

    def findings(self) -> List[Finding]:
        with self._lock:
            return list(self._findings)

    def clear(self):
        with self._lock:
            self._findings.clear()

    def __len__(self):
        with self._lock:
            return len(self._findings)
