"""Report: render findings and orchestrate collect → analyze → annotate → write."""

from cluster_health.report.markdown import render_markdown
from cluster_health.report.orchestrator import ReportResult, print_result, run_report

__all__ = [
    "render_markdown",
    "ReportResult",
    "print_result",
    "run_report",
]
