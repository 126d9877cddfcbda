"""
Rule metadata and analyzer configuration constants
"""

import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional

VERSION = "0.1.0"

# Rule metadata
RULE_ID = "RTD001"
RULE_TITLE = "Return awaitable directly instead of awaiting it"
RULE_MESSAGE = "Return awaitable directly instead of awaiting it"
RULE_CATEGORY = "Performance"
RULE_SEVERITY = "warning"
RULE_DESCRIPTION = (
    "Awaiting an awaitable only to hand its result back creates an extra "
    "coroutine frame for every call. Return the awaitable and let the caller "
    "await it."
)

# Type names that denote a pending computation
PENDING_TYPE_NAMES = frozenset({"Coroutine", "Awaitable", "Task", "Future"})

# Result types of library callables, as literal type tokens
KNOWN_SIGNATURES = {
    "asyncio.sleep": "Coroutine[None]",
}

# Calls that hand back one of their arguments unchanged: name -> argument index
PASSTHROUGH_WRAPPERS = {
    "typing.cast": 1,
}

# Decorators that leave the decorated coroutine function untouched
TRANSPARENT_DECORATORS = frozenset({
    "builtins.staticmethod",
    "builtins.classmethod",
    "typing.override",
    "typing_extensions.override",
})

# Qualified names under which the rewritten annotation's names may be bound
COROUTINE_QUALNAMES = ("typing.Coroutine", "collections.abc.Coroutine")
ANY_QUALNAMES = ("typing.Any",)

# Environment overrides
ENV_ASSUME_UNRESOLVED_SAFE = "AWAITLESS_ASSUME_UNRESOLVED_SAFE"
ENV_TRANSPARENT_DECORATORS = "AWAITLESS_TRANSPARENT_DECORATORS"

TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class AnalyzerSettings:
    """Per-run analyzer settings"""
    assume_unresolved_safe: bool = False
    known_signatures: Dict[str, str] = field(default_factory=lambda: dict(KNOWN_SIGNATURES))
    passthrough_wrappers: Dict[str, int] = field(default_factory=lambda: dict(PASSTHROUGH_WRAPPERS))
    transparent_decorators: FrozenSet[str] = TRANSPARENT_DECORATORS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AnalyzerSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            AnalyzerSettings with overrides applied
        """
        env = os.environ if environ is None else environ
        settings = cls()

        flag = env.get(ENV_ASSUME_UNRESOLVED_SAFE)
        if flag is not None:
            settings.assume_unresolved_safe = flag.strip().lower() in TRUTHY

        extra = env.get(ENV_TRANSPARENT_DECORATORS)
        if extra:
            names = {name.strip() for name in extra.split(",") if name.strip()}
            settings.transparent_decorators = settings.transparent_decorators | names

        return settings

    def to_dict(self) -> Dict[str, object]:
        return {
            "assume_unresolved_safe": self.assume_unresolved_safe,
            "known_signatures": dict(self.known_signatures),
            "passthrough_wrappers": dict(self.passthrough_wrappers),
            "transparent_decorators": sorted(self.transparent_decorators)
        }
