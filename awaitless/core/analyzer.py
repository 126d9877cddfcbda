"""
Main analysis pipeline
"""

import ast
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..analysis.shape import extract_body
from ..analysis.verdict import judge_body
from ..diagnostics import DiagnosticRegistry, build_finding
from ..parser import collect_declaration_sites, parse_source
from ..rewrite.transformer import apply_plans, coroutine_spelling
from ..rewrite.synthesizer import ActionKind, RewritePlan, plan_rewrite
from ..semantics.resolver import ModuleResolver
from ..utils.files import read_source
from ..utils.source import SourceText
from .config import AnalyzerSettings
from .models import Finding, Verdict

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Verdicts and findings for one module"""
    filename: str
    source: str
    tree: ast.Module
    resolver: object
    verdicts: List[Verdict] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)

    @property
    def qualifying(self) -> List[Verdict]:
        return [v for v in self.verdicts if v.qualifies]

    def verdict_for(self, qualname: str) -> Optional[Verdict]:
        for verdict in self.verdicts:
            if verdict.body.qualname == qualname:
                return verdict
        return None


@dataclass
class FixResult:
    """Fixed source plus what was changed"""
    fixed_source: str
    imports: List[str]
    findings: List[Finding]

    @property
    def changed(self) -> bool:
        return bool(self.findings)


def analyze_tree(tree: ast.Module,
                 source: str,
                 filename: str = "<unknown>",
                 settings: Optional[AnalyzerSettings] = None,
                 resolver=None,
                 max_workers: Optional[int] = None,
                 registry: Optional[DiagnosticRegistry] = None) -> AnalysisResult:
    """
    Judge every function-like body of a parsed module.

    Args:
        tree: Module parsed from source
        source: Source text the tree was parsed from
        filename: Name used in reports
        settings: Analyzer settings (defaults to AnalyzerSettings())
        resolver: SemanticResolver; defaults to a ModuleResolver for the tree
        max_workers: Judge bodies on a thread pool of this size when > 1
        registry: Registry to report findings into

    Returns:
        AnalysisResult with one verdict per body, in source order
    """
    settings = settings or AnalyzerSettings()
    sites = collect_declaration_sites(tree)
    if resolver is None:
        resolver = ModuleResolver(tree, sites, settings)

    bodies = [extract_body(site, resolver) for site in sites]

    def judge(body):
        return judge_body(body, resolver, settings)

    if max_workers and max_workers > 1 and len(bodies) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            verdicts = list(pool.map(judge, bodies))
    else:
        verdicts = [judge(body) for body in bodies]

    text = SourceText(source)
    findings = []
    for verdict in verdicts:
        if verdict.qualifies:
            finding = build_finding(verdict, text)
            findings.append(finding)
            if registry is not None:
                registry.report(finding)

    logger.debug("%s: %d bodies, %d findings", filename, len(bodies), len(findings))

    return AnalysisResult(
        filename=filename,
        source=source,
        tree=tree,
        resolver=resolver,
        verdicts=verdicts,
        findings=findings
    )


def analyze_source(source: str,
                   filename: str = "<unknown>",
                   settings: Optional[AnalyzerSettings] = None,
                   resolver=None,
                   max_workers: Optional[int] = None,
                   registry: Optional[DiagnosticRegistry] = None) -> AnalysisResult:
    """
    Analyze Python source.

    Raises:
        SourceParseError: If the source has a syntax error
    """
    tree = parse_source(source, filename)
    return analyze_tree(tree, source, filename, settings, resolver, max_workers, registry)


def analyze_file(file_path: str,
                 settings: Optional[AnalyzerSettings] = None,
                 max_workers: Optional[int] = None) -> AnalysisResult:
    """Analyze a Python file"""
    source = read_source(file_path)
    return analyze_source(source, file_path, settings, max_workers=max_workers)


def plan_fixes(analysis: AnalysisResult, functions: Optional[Iterable[str]] = None) -> List[RewritePlan]:
    """Rewrite plans for the qualifying bodies, optionally limited to some qualnames"""
    wanted = set(functions) if functions is not None else None
    return [
        plan_rewrite(verdict)
        for verdict in analysis.qualifying
        if wanted is None or verdict.body.qualname in wanted
    ]


def fix_analysis(analysis: AnalysisResult, functions: Optional[Iterable[str]] = None) -> FixResult:
    """
    Apply the rewrite of every qualifying body to the analyzed source.

    Args:
        analysis: Result of analyze_source / analyze_tree
        functions: Qualified names to fix; all qualifying bodies when None

    Returns:
        FixResult
    """
    plans = plan_fixes(analysis, functions)
    if not plans:
        return FixResult(analysis.source, [], [])

    spelling = coroutine_spelling(analysis.resolver)
    fixed_source = apply_plans(analysis.source, plans, SourceText(analysis.source), spelling)

    imports = []
    if any(plan.has(ActionKind.RETYPE) for plan in plans):
        imports = spelling.import_lines()

    fixed_names = {plan.body.qualname for plan in plans}
    return FixResult(
        fixed_source=fixed_source,
        imports=imports,
        findings=[f for f in analysis.findings if f.function in fixed_names]
    )


def fix_source(source: str,
               filename: str = "<unknown>",
               settings: Optional[AnalyzerSettings] = None,
               resolver=None,
               functions: Optional[Iterable[str]] = None) -> FixResult:
    """
    Analyze source and return it with every qualifying body rewritten.

    Raises:
        SourceParseError: If the source has a syntax error
    """
    analysis = analyze_source(source, filename, settings, resolver)
    return fix_analysis(analysis, functions)
