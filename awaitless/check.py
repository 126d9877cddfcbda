"""
awaitless check library.
Main API for checking files for coroutines that only await and return.
"""

import time
from typing import List, Optional

from awaitless.core.analyzer import AnalysisResult, analyze_source, fix_analysis
from awaitless.core.config import AnalyzerSettings
from awaitless.core.models import Finding
from awaitless.output.json_formatter import FindingsJSONFormatter
from awaitless.utils.files import read_source, write_source


class CheckResult:
    """Result of checking a single function-like body"""

    def __init__(self, name: str, lineno: int):
        self.name = name
        self.lineno = lineno
        self.flagged = False
        self.reason = ""
        self.fixed = False
        self.finding: Optional[Finding] = None

    def __repr__(self):
        status = "⚠️  FLAG" if self.flagged else "✅ OK  "
        detail = self.finding.message if self.finding else self.reason
        return f"{status} {self.name}:{self.lineno} - {detail}"


class CheckSummary:
    """Summary of check results for a file"""

    def __init__(self, filename: str):
        self.filename = filename
        self.results: List[CheckResult] = []
        self.fixed_source: Optional[str] = None
        self.duration = 0.0

    def add_result(self, result: CheckResult):
        self.results.append(result)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def flagged(self) -> int:
        return sum(1 for r in self.results if r.flagged)

    @property
    def fixed(self) -> int:
        return sum(1 for r in self.results if r.fixed)

    @property
    def findings(self) -> List[Finding]:
        return [r.finding for r in self.results if r.finding is not None]

    def print_summary(self):
        """Print formatted summary"""
        print("\n" + "=" * 80)
        print(f"AWAITLESS SUMMARY: {self.filename}")
        print("=" * 80)

        if not self.results:
            print("⚠️  No functions found")
            return

        print(f"\nTotal functions analyzed: {self.total}")
        print(f"⚠️  Flagged: {self.flagged}")
        print(f"✅ Clean: {self.total - self.flagged}")
        if self.fixed:
            print(f"🔧 Fixed: {self.fixed}")

        flagged = [r for r in self.results if r.flagged]
        if flagged:
            print("\n" + "-" * 80)
            print("FINDINGS")
            print("-" * 80)

            for result in flagged:
                print(f"\n{result}")
                loc = result.finding.primary_location
                print(f"   📍 {self.filename}:{loc.line}:{loc.column + 1}")
                for extra in result.finding.secondary_locations:
                    print(f"   📍 {self.filename}:{extra.line}:{extra.column + 1}")

        print("\n" + "=" * 80)


def _summarize(analysis: AnalysisResult) -> CheckSummary:
    summary = CheckSummary(analysis.filename)
    findings = {f.function: f for f in analysis.findings}

    for verdict in analysis.verdicts:
        result = CheckResult(verdict.body.qualname, verdict.body.lineno)
        result.flagged = verdict.qualifies
        result.reason = verdict.reason
        result.finding = findings.get(verdict.body.qualname) if verdict.qualifies else None
        summary.add_result(result)

    return summary


def check_source(source: str, filename: str = "<unknown>", verbose: bool = False,
                 fix: bool = False, settings: Optional[AnalyzerSettings] = None) -> CheckSummary:
    """
    Check Python source held in memory.

    Args:
        source: Python source
        filename: Name used in messages
        verbose: Print per-function output
        fix: Compute the fixed source (summary.fixed_source)
        settings: Analyzer settings; read from the environment when None

    Returns:
        CheckSummary

    Raises:
        SourceParseError: If the source has a syntax error
    """
    settings = settings or AnalyzerSettings.from_env()
    start_time = time.time()

    analysis = analyze_source(source, filename, settings)
    summary = _summarize(analysis)

    if verbose:
        print(f"\n🔍 Found {summary.total} functions, {summary.flagged} flagged")
        for result in summary.results:
            print(f"   {result}")

    if fix and summary.flagged:
        fix_result = fix_analysis(analysis)
        summary.fixed_source = fix_result.fixed_source
        fixed_names = {f.function for f in fix_result.findings}
        for result in summary.results:
            result.fixed = result.name in fixed_names
        if verbose:
            print(f"\n🔧 Rewrote {len(fixed_names)} functions")
            for line in fix_result.imports:
                print(f"   + {line}")

    summary.duration = time.time() - start_time
    return summary


def check_file(file_path: str, verbose: bool = False, json_output: Optional[str] = None,
               fix: bool = False, output_dir: Optional[str] = None,
               settings: Optional[AnalyzerSettings] = None) -> CheckSummary:
    """
    Check all functions in a file.

    Args:
        file_path: Path to Python file
        verbose: Print verbose output
        json_output: Optional path to save JSON output
        fix: Rewrite flagged functions and write the result
        output_dir: With fix, write the fixed file here instead of in place
        settings: Analyzer settings; read from the environment when None

    Returns:
        CheckSummary
    """
    settings = settings or AnalyzerSettings.from_env()
    source = read_source(file_path)

    summary = check_source(source, file_path, verbose=verbose, fix=fix, settings=settings)

    if fix and summary.fixed_source is not None:
        written = write_source(file_path, summary.fixed_source, output_dir)
        if verbose:
            print(f"\n💾 Fixed source written to: {written}")

    if json_output:
        formatter = FindingsJSONFormatter(file_path, source, settings.to_dict())

        for result in summary.results:
            formatter.add_result(
                function_name=result.name,
                line_number=result.lineno,
                flagged=result.flagged,
                reason=result.reason,
                finding=result.finding.to_dict() if result.finding else None,
                fixed=result.fixed
            )
        if summary.fixed_source is not None:
            formatter.set_fixed_source(summary.fixed_source)

        formatter.save_to_file(json_output)

        if verbose:
            print(f"\n💾 JSON output saved to: {json_output}")

    return summary
