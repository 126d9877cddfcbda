"""
awaitless API - Unified interface for analysis and fixes
"""
import ast
from typing import Iterable, Optional

from awaitless.core.analyzer import AnalysisResult, analyze_source, fix_analysis, plan_fixes
from awaitless.core.config import AnalyzerSettings
from awaitless.diagnostics import RETURN_AWAITABLE_DIRECTLY
from awaitless.rewrite.transformer import coroutine_spelling
from awaitless.rewrite.synthesizer import rewrite_declaration
from awaitless.server.models import AnalysisReport, FixReport, FunctionReport
from awaitless.utils.files import read_source, write_source
from awaitless.utils.hashing import ArtifactHasher


class StaleSourceError(ValueError):
    """Raised when a fix is requested for source that changed since it was analyzed"""


class AwaitlessClient:
    """
    Unified API for awaitless analysis and fixes.

    Example usage:
        client = AwaitlessClient()

        # Analyze
        report = client.analyze_file("service.py")

        # Fix what was reported, refusing if the file changed meanwhile
        fix = client.fix_file("service.py", source_hash=report.source_hash, write=True)
    """

    def __init__(self, settings: Optional[AnalyzerSettings] = None):
        """
        Initialize the client.

        Args:
            settings: Analyzer settings (read from the environment if not provided)
        """
        self.settings = settings or AnalyzerSettings.from_env()

    def describe_rule(self) -> dict:
        return RETURN_AWAITABLE_DIRECTLY.to_dict()

    def _analyze(self, source: str, filename: str) -> AnalysisResult:
        return analyze_source(source, filename, self.settings)

    def analyze_source(self, source: str, filename: str = "<unknown>") -> AnalysisReport:
        """
        Analyze Python source.

        Raises:
            SourceParseError: If the source has a syntax error
        """
        analysis = self._analyze(source, filename)
        findings = {f.function: f for f in analysis.findings}

        report = AnalysisReport(filename, ArtifactHasher.hash_string(source))
        for verdict in analysis.verdicts:
            finding = findings.get(verdict.body.qualname) if verdict.qualifies else None
            report.functions.append(FunctionReport(
                name=verdict.body.qualname,
                line=verdict.body.lineno,
                flagged=verdict.qualifies,
                reason=verdict.reason,
                finding=finding.to_dict() if finding else None
            ))
        return report

    def analyze_file(self, file_path: str) -> AnalysisReport:
        return self.analyze_source(read_source(file_path), file_path)

    def fix_source(self, source: str, filename: str = "<unknown>",
                   functions: Optional[Iterable[str]] = None,
                   source_hash: Optional[str] = None) -> FixReport:
        """
        Rewrite flagged functions.

        Args:
            source: Python source
            filename: Name used in the report
            functions: Qualified names to fix; every flagged function when None
            source_hash: Hash from an earlier analysis report of this source

        Returns:
            FixReport

        Raises:
            StaleSourceError: If source_hash does not match the source
            SourceParseError: If the source has a syntax error
        """
        current_hash = ArtifactHasher.hash_string(source)
        if source_hash is not None and source_hash != current_hash:
            raise StaleSourceError(f"{filename} changed since it was analyzed")

        result = fix_analysis(self._analyze(source, filename), functions)
        return FixReport(
            filename=filename,
            source_hash=current_hash,
            fixed_hash=ArtifactHasher.hash_string(result.fixed_source),
            fixed_source=result.fixed_source,
            fixed_functions=[f.function for f in result.findings],
            added_imports=result.imports
        )

    def fix_file(self, file_path: str, functions: Optional[Iterable[str]] = None,
                 source_hash: Optional[str] = None, write: bool = False) -> FixReport:
        """
        Fix a file, optionally writing the result back in place.

        Raises:
            StaleSourceError: If the file changed before the fix could be written
        """
        report = self.fix_source(read_source(file_path), file_path, functions, source_hash)
        if write and report.fixed_functions:
            if ArtifactHasher.hash_file(file_path) != report.source_hash:
                raise StaleSourceError(f"{file_path} changed while it was being fixed")
            report.written_to = write_source(file_path, report.fixed_source)
        return report

    def preview(self, source: str, function: str, filename: str = "<unknown>") -> Optional[str]:
        """
        Show the rewritten declaration of one flagged function.

        Returns:
            Unparsed replacement declaration, or None if the function is not flagged
        """
        analysis = self._analyze(source, filename)
        plans = plan_fixes(analysis, [function])
        if not plans:
            return None
        spelling = coroutine_spelling(analysis.resolver)
        return ast.unparse(rewrite_declaration(plans[0], spelling.template))
