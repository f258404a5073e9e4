"""Tests for markdown rendering and the report pipeline."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

from rich.console import Console

from cluster_health.analysis import analyze
from cluster_health.config import Settings
from cluster_health.insights import AIInsights, ResourceSuggestion
from cluster_health.observation.models import (
    ClusterSnapshot,
    ContainerSpec,
    ContainerStatus,
    EventDescriptor,
    NamespaceDescriptor,
    NodeDescriptor,
    OwnerReference,
    PodDescriptor,
    ResourceSpec,
    TerminationRecord,
)
from cluster_health.report import print_result, render_markdown, run_report
from cluster_health.report.markdown import _duration
from cluster_health.report.orchestrator import report_basename

_NOW = datetime(2026, 2, 18, 12, 0, 0, tzinfo=timezone.utc)


def _make_snapshot() -> ClusterSnapshot:
    return ClusterSnapshot(
        now=_NOW,
        cluster_name="prod-eu",
        pods=(
            PodDescriptor(
                namespace="abc",
                name="web-1",
                phase="Running",
                node_name="node-1",
                containers=(ContainerSpec(name="app", limits=ResourceSpec(cpu="1", memory="1Gi")),),
            ),
            PodDescriptor(
                namespace="xyz",
                name="api-1",
                phase="Running",
                node_name="node-1",
                containers=(
                    ContainerSpec(
                        name="api",
                        requests=ResourceSpec(cpu="100m", memory="128Mi"),
                        limits=ResourceSpec(cpu="500m", memory="512Mi"),
                    ),
                ),
            ),
        ),
        nodes=(NodeDescriptor(name="node-1", allocatable_cpu_millicores=4000, allocatable_memory_bytes=8 * 1024**3),),
        events=(
            EventDescriptor(
                type="Warning",
                reason="OOMKilled",
                namespace="abc",
                involved_kind="Pod",
                involved_name="web-1",
                involved_namespace="abc",
                last_seen=_NOW - timedelta(hours=2),
            ),
        ),
        namespaces=(NamespaceDescriptor(name="abc"), NamespaceDescriptor(name="xyz")),
        backups=(
            {
                "metadata": {"name": "nightly", "namespace": "velero"},
                "status": {"phase": "InProgress", "startTimestamp": "2026-02-18T11:00:00Z"},
            },
        ),
    )


def _make_annotator(suggestions: dict[str, ResourceSuggestion] | None = None) -> MagicMock:
    annotator = MagicMock()
    annotator.annotate.return_value = AIInsights(summary="Fix the web tier", recommendations=["Set requests"])
    annotator.suggest_resources.return_value = suggestions or {}
    return annotator


class TestRenderMarkdown:
    def test_empty_cluster(self) -> None:
        report = render_markdown(analyze(ClusterSnapshot(now=_NOW)))
        assert report.startswith("# Kubernetes Cluster Analysis Report")
        assert "**Overall Health**: HEALTHY" in report
        assert "No critical issues detected." in report
        assert "No OOMKilled events found." in report
        assert "AI-Powered Insights" not in report
        assert "metrics-server is not available" in report

    def test_sections_for_findings(self) -> None:
        report = render_markdown(analyze(_make_snapshot()))
        assert "**Overall Health**: DEGRADED" in report
        assert "### Issue #1: Missing Resource Requests and Limits" in report
        assert "### Issue #2: OOMKilled Events Detected" in report
        assert "| abc | web-1 | app | ❌ | ✓ |" in report
        assert "| nightly | velero | InProgress | 2026-02-18 11:00:00 | In Progress | 0 | 0 |" in report
        assert "#### Namespace: `abc`" in report
        assert "#### Namespace: `xyz`" in report

    def test_insights_rendered(self) -> None:
        insights = AIInsights(summary="Summary text", risk_assessment="Medium", recommendations=["One"])
        report = render_markdown(analyze(_make_snapshot()), insights)
        assert "## 11. AI-Powered Insights" in report
        assert "Summary text" in report
        assert "- One" in report

    def test_suggestions_respect_keep(self) -> None:
        suggestions = {"abc": {"web-1/app": ResourceSuggestion(cpu_request="50m", memory_request="256Mi")}}
        report = render_markdown(analyze(_make_snapshot()), suggestions=suggestions)
        assert "| web-1 | app | 50m | 1 | 256Mi | 1Gi | N/A | N/A |" in report
        assert "| api-1 | api | 100m | 500m | 128Mi | 512Mi | N/A | N/A |" in report

    def test_short_jobs_shown_without_resource_gaps(self) -> None:
        configured = ResourceSpec(cpu="100m", memory="128Mi")
        started = _NOW - timedelta(hours=1)
        job_pod = PodDescriptor(
            namespace="ops",
            name="cleanup-abc12",
            phase="Succeeded",
            start_time=started,
            containers=(ContainerSpec(name="job", requests=configured, limits=configured),),
            container_statuses=(
                ContainerStatus(
                    name="job",
                    terminated=TerminationRecord(reason="Completed", finished_at=started + timedelta(minutes=1)),
                ),
            ),
            owner_references=(OwnerReference(kind="Job", name="cleanup"),),
        )
        findings = analyze(ClusterSnapshot(now=_NOW, pods=(job_pod,)))
        assert findings.resource_gaps == ()
        report = render_markdown(findings)
        assert "All containers have resource requests and limits configured." in report
        assert "**Short-lived Jobs**: 1 of 1 job pods completed in under 2 minutes" in report

    def test_no_jobs_note_without_jobs(self) -> None:
        assert "Short-lived Jobs" not in render_markdown(analyze(ClusterSnapshot(now=_NOW)))

    def test_table_cells_escape_pipes(self) -> None:
        snapshot = ClusterSnapshot(
            now=_NOW,
            events=(
                EventDescriptor(
                    type="Warning",
                    reason="Failed",
                    message="a|b",
                    involved_kind="Pod",
                    involved_name="x",
                    last_seen=_NOW - timedelta(hours=1),
                ),
            ),
        )
        assert "a\\|b" in render_markdown(analyze(snapshot))


class TestHelpers:
    def test_duration(self) -> None:
        assert _duration(None) == "In Progress"
        assert _duration(timedelta(minutes=3, seconds=7)) == "3m07s"

    def test_report_basename(self) -> None:
        assert report_basename("arn:aws/prod", _NOW) == "arn-aws-prod-20260218-120000"


class TestRunReport:
    def test_writes_report_with_annotations(self, tmp_path: Path) -> None:
        suggestions = {"web-1/app": ResourceSuggestion(cpu_request="50m")}
        annotator = _make_annotator(suggestions)
        settings = Settings(output_dir=tmp_path, openai_api_key=None)

        result = run_report(settings=settings, snapshot=_make_snapshot(), annotator=annotator)

        assert result.report_path == tmp_path / "prod-eu-20260218-120000" / "prod-eu-20260218-120000.md"
        assert result.report_path.read_text(encoding="utf-8") == result.report
        assert result.insights.summary == "Fix the web tier"
        # only the namespace with a missing request/limit key is sent for suggestions
        annotator.suggest_resources.assert_called_once()
        assert annotator.suggest_resources.call_args.args[1] == "abc"
        assert result.suggestions == {"abc": suggestions}
        assert "| web-1 | app | 50m |" in result.report

    def test_skips_ai_when_not_configured(self, tmp_path: Path) -> None:
        settings = Settings(output_dir=tmp_path, openai_api_key=None)
        result = run_report(settings=settings, snapshot=_make_snapshot(), write=False)
        assert result.insights is None
        assert result.suggestions == {}
        assert result.report_path is None
        assert list(tmp_path.iterdir()) == []

    def test_workload_pattern_from_settings(self, tmp_path: Path) -> None:
        settings = Settings(output_dir=tmp_path, openai_api_key=None, workload_pattern="api")
        result = run_report(settings=settings, snapshot=_make_snapshot(), write=False)
        assert result.findings.workload.identified_pods == ("xyz/api-1",)


class TestPrintResult:
    def test_panel_shows_health(self, tmp_path: Path) -> None:
        settings = Settings(output_dir=tmp_path, openai_api_key=None)
        result = run_report(settings=settings, snapshot=_make_snapshot())
        console = Console(record=True, width=120)
        print_result(result, console)
        text = console.export_text()
        assert "prod-eu: DEGRADED" in text
        assert "Report:" in text
