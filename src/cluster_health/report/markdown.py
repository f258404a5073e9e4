"""Render analysis findings as a markdown report."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from itertools import groupby

from cluster_health.analysis.models import EventRecord, Findings, PodRestart
from cluster_health.insights.models import AIInsights, ResourceSuggestion
from cluster_health.quantities import GIB
from cluster_health.report.templates import (
    HEALTH_EMOJI,
    REPORT_HEADER,
    REPORT_ISSUE,
    REPORT_NO_ISSUES,
    REPORT_NO_METRICS,
    REPORT_SECTION_HEALTH,
    REPORT_WORKLOAD_AT_RISK,
    TIER_EMOJI,
)

MAX_ISSUES = 5
MAX_ROWS = 20

Suggestions = Mapping[str, Mapping[str, ResourceSuggestion]]


def _cell(value: object) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def _ts(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "N/A"


def _duration(value: timedelta | None) -> str:
    if value is None:
        return "In Progress"
    minutes, seconds = divmod(int(value.total_seconds()), 60)
    return f"{minutes}m{seconds:02d}s"


def _table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    lines = ["| " + " | ".join(headers) + " |", "|" + "|".join("---" for _ in headers) + "|"]
    lines.extend("| " + " | ".join(_cell(v) for v in row) + " |" for row in rows)
    return "\n".join(lines) + "\n"


def _truncated(total: int) -> str:
    return f"\n_Showing {MAX_ROWS} of {total}._\n" if total > MAX_ROWS else ""


def _health_section(f: Findings) -> str:
    out = REPORT_SECTION_HEALTH.format(
        emoji=HEALTH_EMOJI[f.cluster_health.value],
        health=f.cluster_health.value.upper(),
        total_pods=f.total_pods,
        total_nodes=f.total_nodes,
        gaps=len(f.resource_gaps),
        ooms=len(f.oom.events),
        restarts_24h=f.restarts.pods_24h,
        restarts_7d=f.restarts.pods_7d,
        node_issues=len(f.node_issues),
        namespaces_at_risk=f.high_risk_namespaces,
    )
    if f.critical_issues:
        out += "\n### ⚠️ Potential Issues Identified\n\n"
        out += "".join(f"- **{i.title}**: {i.description}\n" for i in f.critical_issues)
    return out


def _issues_section(f: Findings) -> str:
    out = "\n## 2. Critical Issues (Top 5)\n"
    if not f.critical_issues:
        return out + REPORT_NO_ISSUES
    for index, issue in enumerate(f.critical_issues[:MAX_ISSUES], 1):
        out += REPORT_ISSUE.format(index=index, **issue.model_dump(exclude={"examples"}))
        if issue.examples:
            out += "\n**Examples**:\n\n" + "".join(f"- `{e}`\n" for e in issue.examples)
        out += "\n---\n"
    return out


def _jobs_note(f: Findings) -> str:
    if not f.jobs.total_jobs:
        return ""
    return (
        f"\n**Short-lived Jobs**: {f.jobs.short_jobs} of {f.jobs.total_jobs} job pods completed in under "
        "2 minutes; frequent short jobs churn the scheduler and node memory.\n"
    )


def _resources_section(f: Findings) -> str:
    out = "\n## 3. Resource Management\n\n"
    if not f.resource_gaps:
        return out + "✅ All containers have resource requests and limits configured.\n" + _jobs_note(f)
    out += f"**{len(f.resource_gaps)} containers** are missing resource requests or limits.\n\n"
    out += _table(
        ["Namespace", "Pod", "Container", "Missing Requests", "Missing Limits"],
        [
            (g.namespace, g.pod, g.container, "❌" if g.missing_requests else "✓", "❌" if g.missing_limits else "✓")
            for g in f.resource_gaps[:MAX_ROWS]
        ],
    )
    return out + _truncated(len(f.resource_gaps)) + _jobs_note(f)


def _nodes_section(f: Findings) -> str:
    out = "\n## 4. Node Analysis\n\n"
    if f.node_issues:
        out += _table(
            ["Node", "Issue", "CPU Requested", "CPU Allocatable", "Memory Requested", "Memory Allocatable", "Utilized"],
            [
                (
                    n.node,
                    n.kind.value,
                    f"{n.requested_cpu_millicores / 1000:.2f} cores",
                    f"{n.allocatable_cpu_millicores / 1000:.2f} cores",
                    f"{n.requested_memory_bytes / GIB:.2f} GiB",
                    f"{n.allocatable_memory_bytes / GIB:.2f} GiB",
                    f"{n.percent:.1f}%" if n.percent is not None else "N/A",
                )
                for n in f.node_issues
            ],
        )
    else:
        out += "✅ No nodes with high resource requests.\n"

    out += "\n### OOMKilled Events\n\n"
    if not f.oom.events:
        return out + "✅ No OOMKilled events found.\n"
    out += f"**Last 24h**: {len(f.oom.last_24h)} | **Last 48h**: {len(f.oom.last_48h)} | **Total**: {len(f.oom.events)}\n\n"
    out += _table(
        ["Timestamp", "Namespace", "Pod", "Node", "Container"],
        [(_ts(o.timestamp), o.namespace, o.pod, o.node or "N/A", o.container or "N/A") for o in f.oom.events[:MAX_ROWS]],
    )
    return out + _truncated(len(f.oom.events))


def _restart_table(restarts: Sequence[PodRestart]) -> str:
    return _table(
        ["Namespace", "Pod", "Container", "Restarts", "Last Restart", "Reason"],
        [(r.namespace, r.pod, r.container, r.restart_count, _ts(r.last_restart_time), r.reason) for r in restarts[:MAX_ROWS]],
    ) + _truncated(len(restarts))


def _restarts_section(f: Findings) -> str:
    r = f.restarts
    out = "\n## 5. Pod Restarts\n\n"
    if not r.last_7d:
        return out + "✅ No container restarts in the last 7 days.\n"
    out += f"**Pods affected**: {r.pods_24h} (24h), {r.pods_48h} (48h), {r.pods_7d} (7d)\n\n"
    out += "### Last 24 Hours\n\n"
    out += _restart_table(r.last_24h) if r.last_24h else "✅ No restarts in the last 24 hours.\n"
    out += "\n### Last 7 Days\n\n" + _restart_table(r.last_7d)
    return out


def _event_table(events: Sequence[EventRecord]) -> str:
    return _table(
        ["Last Seen", "Type", "Reason", "Object", "Namespace", "Count", "Message"],
        [(_ts(e.last_seen), e.type, e.reason, e.involved_object, e.namespace, e.count, e.message[:120]) for e in events[:MAX_ROWS]],
    ) + _truncated(len(events))


def _flux_section(f: Findings) -> str:
    e = f.reconciliation_events
    out = "\n## 6. Flux Reconciliation Events\n\n"
    if not e.last_48h:
        return out + "✅ No Flux events in the last 48 hours.\n"
    out += _table(
        ["Window", "Events", "Warnings", "Errors"],
        [("24h", len(e.last_24h), e.warnings_24h, e.errors_24h), ("48h", len(e.last_48h), e.warnings_48h, e.errors_48h)],
    )
    out += "\n### Last 48 Hours\n\n" + _event_table(e.last_48h)
    return out


def _warnings_section(f: Findings) -> str:
    e = f.warning_events
    out = "\n## 7. Warning Events (non-Flux)\n\n"
    if not e.last_48h:
        return out + "✅ No warning events in the last 48 hours.\n"
    out += f"**Warnings**: {e.warnings_24h} (24h), {e.warnings_48h} (48h)\n\n"
    return out + "### Last 24 Hours\n\n" + (_event_table(e.last_24h) if e.last_24h else "✅ None.\n")


def _backups_section(f: Findings) -> str:
    b = f.backups
    out = "\n## 8. Backups\n\n"
    if not b.last_48h:
        return out + "ℹ️ No backups found in the last 48 hours (backup operator may not be installed).\n"
    out += _table(
        ["Window", "Total", "Failed"],
        [("24h", b.total_24h, b.failed_24h), ("48h", b.total_48h, b.failed_48h)],
    )
    out += "\n" + _table(
        ["Name", "Namespace", "Phase", "Started", "Duration", "Errors", "Warnings"],
        [
            (x.name, x.namespace, ("❌ " if x.failed else "") + x.phase, _ts(x.start_time), _duration(x.duration), x.errors, x.warnings)
            for x in b.last_48h[:MAX_ROWS]
        ],
    )
    return out + _truncated(len(b.last_48h))


def _workload_section(f: Findings) -> str:
    w = f.workload
    out = f"\n## 9. Critical Workload Stability ({w.workload})\n\n"
    if not w.identified_pods:
        return out + f"ℹ️ No {w.workload} pods detected in the cluster.\n"
    out += f"**Pods Found**: {len(w.identified_pods)}\n\n" + "".join(f"- `{p}`\n" for p in w.identified_pods)
    out += "\n### Current Configuration\n\n"
    out += f"- Priority Class Configured: {w.has_priority_class}\n"
    out += f"- Memory Limits Set: {w.has_resource_limits}\n"
    out += f"- OOM Events (7d): {w.recent_oom_count}\n"
    if w.recent_ooms:
        out += "\n" + _table(
            ["Timestamp", "Pod", "Namespace", "Node", "Container"],
            [(_ts(o.timestamp), o.pod, o.namespace, o.node or "N/A", o.container or "N/A") for o in w.recent_ooms],
        )
    if w.at_risk:
        out += REPORT_WORKLOAD_AT_RISK.format(workload=w.workload)
    return out


def _namespaces_section(f: Findings) -> str:
    out = "\n## 10. Namespace Risk Analysis\n\n"
    if not f.namespace_risks:
        return out + "ℹ️ No application namespaces with pods found.\n"
    out += _table(
        ["Namespace", "Risk", "Pods", "Without Requests", "Without Limits", "Gap %"],
        [
            (
                ns.namespace,
                f"{TIER_EMOJI[ns.tier.value]} {ns.tier.value}",
                ns.total_pods,
                ns.pods_without_requests,
                ns.pods_without_limits,
                f"{ns.gap_percent:.0f}%",
            )
            for ns in f.namespace_risks
        ],
    )
    return out


def _insights_section(insights: AIInsights) -> str:
    out = "\n## 11. AI-Powered Insights\n\n" + insights.summary.strip() + "\n"
    if insights.risk_assessment:
        out += "\n### Risk Assessment\n\n" + insights.risk_assessment.strip() + "\n"
    if insights.recommendations:
        out += "\n### Recommendations\n\n" + "".join(f"- {r}\n" for r in insights.recommendations)
    if insights.automation_suggestions:
        out += "\n### Automation Suggestions\n\n" + "".join(f"- {s}\n" for s in insights.automation_suggestions)
    return out


def _appendix(f: Findings, suggestions: Suggestions) -> str:
    out = "\n## Appendix\n\n### A. Data Collection Summary\n\n"
    out += f"- **Collection Time**: {f.generated_at.isoformat()}\n"
    out += f"- **Total Pods Analyzed**: {f.total_pods}\n"
    out += f"- **Total Nodes Analyzed**: {f.total_nodes}\n"
    out += f"- **Events Processed**: {f.total_events}\n"
    out += f"- **Metrics Available**: {'✅ Yes' if f.metrics_available else '⚠️ No'}\n"

    out += "\n### B. Running Pods - Resource Configuration\n"
    if not f.metrics_available:
        out += REPORT_NO_METRICS
    for namespace, group in groupby(f.pod_resources, key=lambda p: p.namespace):
        ns_suggestions = suggestions.get(namespace, {})
        rows = []
        for p in group:
            s = ns_suggestions.get(f"{p.pod}/{p.container}") or ResourceSuggestion()
            rows.append(
                (
                    p.pod,
                    p.container,
                    ResourceSuggestion.resolve(s.cpu_request, p.cpu_request),
                    ResourceSuggestion.resolve(s.cpu_limit, p.cpu_limit),
                    ResourceSuggestion.resolve(s.memory_request, p.memory_request),
                    ResourceSuggestion.resolve(s.memory_limit, p.memory_limit),
                    p.current_cpu,
                    p.current_memory,
                )
            )
        out += f"\n#### Namespace: `{namespace}`\n\n"
        if ns_suggestions:
            out += "_Values include AI suggestions where resources were missing._\n\n"
        out += _table(
            ["Pod", "Container", "CPU Request", "CPU Limit", "Memory Request", "Memory Limit", "CPU Usage", "Memory Usage"],
            rows,
        )
    return out


def render_markdown(
    findings: Findings,
    insights: AIInsights | None = None,
    suggestions: Suggestions | None = None,
) -> str:
    """Render the full report. Insights and suggestions are optional additions."""
    parts = [
        REPORT_HEADER.format(cluster_name=findings.cluster_name, generated_at=findings.generated_at.isoformat()),
        _health_section(findings),
        _issues_section(findings),
        _resources_section(findings),
        _nodes_section(findings),
        _restarts_section(findings),
        _flux_section(findings),
        _warnings_section(findings),
        _backups_section(findings),
        _workload_section(findings),
        _namespaces_section(findings),
    ]
    if insights is not None:
        parts.append(_insights_section(insights))
    parts.append(_appendix(findings, suggestions or {}))
    return "".join(parts)
