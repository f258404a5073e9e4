"""Orchestrator: collect → analyze → annotate → render → write."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from cluster_health.analysis import Findings, NamePatternClassifier, analyze
from cluster_health.analysis.resources import collect_pod_resources, namespaces_missing_resources
from cluster_health.config import Settings, get_settings
from cluster_health.insights import AIInsights, InsightAnnotator, ResourceSuggestion
from cluster_health.observation import ClusterCollector, ClusterSnapshot
from cluster_health.report.markdown import render_markdown

logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    """Result of a full report run."""

    snapshot: ClusterSnapshot
    findings: Findings
    insights: AIInsights | None = None
    suggestions: dict[str, dict[str, ResourceSuggestion]] = field(default_factory=dict)
    report: str = ""
    report_path: Path | None = None


def report_basename(cluster_name: str, timestamp: datetime) -> str:
    """<cluster>-<YYYYmmdd-HHMMSS> with path separators removed from the cluster name."""
    sanitized = cluster_name.replace("/", "-").replace(":", "-")
    return f"{sanitized}-{timestamp.strftime('%Y%m%d-%H%M%S')}"


def annotate(
    snapshot: ClusterSnapshot,
    findings: Findings,
    annotator: InsightAnnotator,
) -> tuple[AIInsights | None, dict[str, dict[str, ResourceSuggestion]]]:
    """Insights plus per-namespace resource suggestions for namespaces with missing resources."""
    insights = annotator.annotate(findings)
    suggestions: dict[str, dict[str, ResourceSuggestion]] = {}
    namespaces = namespaces_missing_resources(snapshot.pods)
    logger.info("Requesting resource suggestions for %d namespaces", len(namespaces))
    for ns in namespaces:
        pods = collect_pod_resources(snapshot.pods, snapshot.pod_metrics, namespace=ns)
        ns_suggestions = annotator.suggest_resources(pods, ns)
        if ns_suggestions:
            suggestions[ns] = ns_suggestions
    return insights, suggestions


def write_report(report: str, output_dir: Path, basename: str) -> Path:
    directory = output_dir / basename
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{basename}.md"
    path.write_text(report, encoding="utf-8")
    return path


def run_report(
    settings: Settings | None = None,
    snapshot: ClusterSnapshot | None = None,
    annotator: InsightAnnotator | None = None,
    write: bool = True,
) -> ReportResult:
    """
    Run the full pipeline. A pre-built snapshot or annotator may be supplied;
    otherwise they are built from settings. AI annotation is skipped when not configured.
    """
    opts = settings or get_settings()

    # Observe
    if snapshot is None:
        collector = ClusterCollector(
            kubeconfig=str(opts.kubeconfig) if opts.kubeconfig else None,
            context=opts.context,
        )
        snapshot = collector.collect()

    # Analyze
    findings = analyze(snapshot, workload_classifier=NamePatternClassifier(opts.workload_pattern))

    # Annotate
    insights = None
    suggestions: dict[str, dict[str, ResourceSuggestion]] = {}
    if annotator is None and opts.ai_configured:
        annotator = InsightAnnotator(opts)
    if annotator is not None:
        insights, suggestions = annotate(snapshot, findings, annotator)
    else:
        logger.warning("No AI API key configured; skipping AI-enhanced analysis")

    # Render and persist
    report = render_markdown(findings, insights, suggestions)
    path = None
    if write:
        basename = report_basename(findings.cluster_name, findings.generated_at)
        path = write_report(report, opts.output_dir, basename)
        logger.info("Markdown report saved to %s", path)

    return ReportResult(
        snapshot=snapshot,
        findings=findings,
        insights=insights,
        suggestions=suggestions,
        report=report,
        report_path=path,
    )


def print_result(result: ReportResult, console: Console | None = None) -> None:
    """Print a report summary to console using Rich."""
    c = console or Console()
    f = result.findings
    summary = "\n".join(f"- **{i.title}**: {i.description}" for i in f.critical_issues) or "No critical issues detected."
    style = {"healthy": "green", "degraded": "yellow", "critical": "red"}[f.cluster_health.value]
    c.print(
        Panel(
            Markdown(summary),
            title=f"{f.cluster_name}: {f.cluster_health.value.upper()}",
            border_style=style,
        )
    )
    if result.report_path:
        c.print(f"\n[bold]Report:[/bold] {result.report_path}")
