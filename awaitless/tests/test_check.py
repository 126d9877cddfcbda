"""
Tests for the check library, JSON reports, integrity hashes and the finding registry
"""

import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from awaitless import AnalyzerSettings, analyze_source, check_file, check_source
from awaitless.diagnostics import DiagnosticRegistry, RETURN_AWAITABLE_DIRECTLY, build_finding
from awaitless.output import FindingsJSONFormatter
from awaitless.parser import SourceParseError
from awaitless.utils.hashing import ArtifactHasher
from awaitless.utils.source import SourceText


SOURCE = '''
async def do_something() -> None:
    pass


async def run() -> None:
    await do_something()


async def busy() -> None:
    await do_something()
    print("done")
'''


def test_check_source_summary():
    """Test per-function results of a check"""
    summary = check_source(SOURCE, "service.py", settings=AnalyzerSettings())

    assert summary.total == 3
    assert summary.flagged == 1
    assert summary.fixed == 0
    assert summary.fixed_source is None
    assert [r.name for r in summary.results if r.flagged] == ["run"]
    assert [f.function for f in summary.findings] == ["run"]

    busy = summary.results[2]
    assert busy.name == "busy"
    assert busy.lineno == 10
    assert busy.reason == "await is not in tail position"
    assert repr(busy).startswith("✅ OK")
    assert repr(summary.results[1]).startswith("⚠️  FLAG run:6")


def test_check_source_fix():
    """Test that a check with fix computes the fixed source"""
    summary = check_source(SOURCE, fix=True, settings=AnalyzerSettings())

    assert summary.fixed == 1
    assert "def run() -> Coroutine[Any, Any, None]:\n    return do_something()\n" in summary.fixed_source
    assert "async def busy() -> None:" in summary.fixed_source


def test_check_source_syntax_error():
    """Test that a syntax error names the file and line"""
    with pytest.raises(SourceParseError) as exc_info:
        check_source("async def broken(:\n", "broken.py", settings=AnalyzerSettings())

    assert exc_info.value.filename == "broken.py"
    assert exc_info.value.lineno == 1
    assert str(exc_info.value).startswith("broken.py:1:")


def test_print_summary(capsys):
    """Test the printed summary"""
    summary = check_source(SOURCE, "service.py", settings=AnalyzerSettings())
    summary.print_summary()

    out = capsys.readouterr().out
    assert "AWAITLESS SUMMARY: service.py" in out
    assert "Total functions analyzed: 3" in out
    assert "📍 service.py:7:5" in out


def test_check_file_writes_json_and_fix(tmp_path):
    """Test a file check that saves a report and a fixed copy"""
    path = tmp_path / "service.py"
    path.write_text(SOURCE, encoding="utf-8")
    report_path = tmp_path / "reports" / "service.json"
    out_dir = tmp_path / "fixed"

    summary = check_file(str(path), json_output=str(report_path), fix=True,
                         output_dir=str(out_dir), settings=AnalyzerSettings())

    assert path.read_text(encoding="utf-8") == SOURCE
    fixed_path = out_dir / "service.py"
    assert fixed_path.read_text(encoding="utf-8") == summary.fixed_source

    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["schema_version"] == "1.0.0"
    assert report["metadata"]["rule_id"] == "RTD001"
    assert report["metadata"]["analyzer_version"] == "awaitless-0.1.0"
    assert report["metadata"]["settings"]["assume_unresolved_safe"] is False
    assert report["summary"] == {"total_functions": 3, "flagged": 1, "clean": 2, "fixed": 1}

    run = report["results"][1]
    assert run["function"] == {"name": "run", "line": 6}
    assert run["analysis"]["status"] == "flagged"
    assert run["finding"]["primary_location"]["line"] == 7
    assert "finding" not in report["results"][0]

    integrity = ArtifactHasher.verify_integrity(report, SOURCE, summary.fixed_source)
    assert integrity == {"valid": True, "source_match": True, "fixed_match": True}


def test_check_file_fixes_in_place(tmp_path):
    """Test a file check that rewrites the file itself"""
    path = tmp_path / "service.py"
    path.write_text(SOURCE, encoding="utf-8")

    summary = check_file(str(path), fix=True, settings=AnalyzerSettings())

    assert path.read_text(encoding="utf-8") == summary.fixed_source
    assert check_file(str(path), settings=AnalyzerSettings()).flagged == 0


def test_verify_integrity_detects_edits():
    """Test that a report does not match edited source"""
    formatter = FindingsJSONFormatter("service.py", SOURCE)
    report = formatter.generate()

    assert "fixed_hash" not in report["artifacts"]
    assert ArtifactHasher.verify_integrity(report, SOURCE)["valid"]

    result = ArtifactHasher.verify_integrity(report, SOURCE + "# edited\n")
    assert result == {"valid": False, "source_match": False, "fixed_match": None}


def test_combined_hash():
    """Test the combined hash of source and fixed source"""
    formatter = FindingsJSONFormatter("service.py", SOURCE)
    formatter.set_fixed_source("fixed")
    artifacts = formatter.generate()["artifacts"]

    assert artifacts["combined_hash"] == ArtifactHasher.compute_combined_hash(
        ArtifactHasher.hash_string(SOURCE), ArtifactHasher.hash_string("fixed")
    )
    assert ArtifactHasher.hash_file("/nonexistent/service.py") is None


def test_build_finding_requires_qualifying_verdict():
    """Test that only qualifying verdicts become findings"""
    analysis = analyze_source(SOURCE)
    text = SourceText(SOURCE)

    finding = build_finding(analysis.verdict_for("run"), text)
    assert finding.rule_id == RETURN_AWAITABLE_DIRECTLY.rule_id
    assert finding.function == "run"

    with pytest.raises(ValueError):
        build_finding(analysis.verdict_for("busy"), text)


def test_registry_collects_from_threads():
    """Test that findings reported from several threads are all kept"""
    analysis = analyze_source(SOURCE)
    finding = analysis.findings[0]
    registry = DiagnosticRegistry()

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda _: registry.report(finding), range(50)))

    assert len(registry) == 50
    assert all(f is finding for f in registry.findings())
    registry.clear()
    assert len(registry) == 0


def test_analysis_reports_into_given_registry():
    """Test that an analysis reports its findings into a shared registry"""
    registry = DiagnosticRegistry()

    analyze_source(SOURCE, registry=registry)
    analyze_source(SOURCE, filename="other.py", registry=registry)

    assert [f.function for f in registry.findings()] == ["run", "run"]
