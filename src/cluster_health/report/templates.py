"""Markdown templates for the cluster health report."""

REPORT_HEADER = """# Kubernetes Cluster Analysis Report

**Cluster:** `{cluster_name}`

**Generated:** {generated_at}

---
"""

REPORT_SECTION_HEALTH = """
## 1. Cluster Health Summary

{emoji} **Overall Health**: {health}

### Key Metrics

| Metric | Value |
|--------|-------|
| Total Pods | {total_pods} |
| Total Nodes | {total_nodes} |
| Containers Missing Resources | {gaps} |
| OOM Events (Recent) | {ooms} |
| Pods with Restarts (24h) | {restarts_24h} |
| Pods with Restarts (7d) | {restarts_7d} |
| Node Issues | {node_issues} |
| Namespaces at Risk | {namespaces_at_risk} |
"""

REPORT_ISSUE = """
### Issue #{index}: {title}

**Priority**: {priority} (1=Highest)

**Description**: {description}

**Impact**: {impact}

**Recommendation**: {recommendation}
"""

REPORT_NO_ISSUES = "\n✅ No critical issues detected.\n"

REPORT_WORKLOAD_AT_RISK = (
    "\n⚠️ **Action Required**: {workload} pods are not fully protected. Assign a high PriorityClass, "
    "set memory limits equal to requests, and review OOM kills so they are the last workload evicted.\n"
)

REPORT_NO_METRICS = (
    "\n⚠️ **Note**: Current CPU/Memory usage shows 'N/A' because metrics-server is not available. "
    "Install metrics-server to see real-time usage data.\n"
)

HEALTH_EMOJI = {
    "healthy": "🟢",
    "degraded": "🟡",
    "critical": "🔴",
}

TIER_EMOJI = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🟢",
}
