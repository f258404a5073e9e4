"""LLM-based insights and resource suggestions over analysis findings."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from openai import AzureOpenAI, OpenAI, OpenAIError

from cluster_health.analysis.models import Findings, PodResourceInfo
from cluster_health.config import Settings
from cluster_health.insights.models import AIInsights, ResourceSuggestion

logger = logging.getLogger(__name__)

INSIGHTS_SYSTEM_PROMPT = """You are an expert Kubernetes Site Reliability Engineer (SRE) analyzing production cluster data.
You will receive a structured summary of health findings computed from a cluster snapshot.

Output MUST be valid JSON matching this schema (no markdown code fence, no extra text):
{
  "summary": "Markdown overview of cluster health and the top 3-5 most critical issues with actionable recommendations",
  "risk_assessment": "Risk assessment with specific remediation priorities",
  "recommendations": ["strategic recommendation 1", "strategic recommendation 2"],
  "automation_suggestions": ["automation or preventive measure 1"]
}

Cover:
1. Resource gaps (missing requests/limits) and how setting them helps backups, system pods and stability.
2. Node pressure, OOMKilled events and poorly balanced nodes.
3. Stability of the critical workload: priority classes, resource allocation, making it the last workload evicted.
4. Application namespaces grouped by risk level (critical, high, medium, low).
5. The impact of short-lived jobs on overall stability.
"""

SUGGESTIONS_SYSTEM_PROMPT = """You are an expert Kubernetes SRE recommending container resource requests and limits.
You will receive the running containers of one namespace with their configured values ("Not Set" when missing)
and current usage ("N/A" when metrics are unavailable).

Output MUST be valid JSON (no markdown code fence, no extra text) mapping "pod/container" to a suggestion:
{
  "<pod>/<container>": {
    "cpu_request": "100m",
    "cpu_limit": "500m",
    "memory_request": "128Mi",
    "memory_limit": "512Mi",
    "reasoning": "Why these values"
  }
}

Only suggest values for fields that are "Not Set" or clearly wrong; use "KEEP" for fields that should stay as configured.
Size requests from observed usage with headroom; omit containers that need no change.
"""


def _openai_client(settings: Settings) -> OpenAI:
    """Build OpenAI client from settings (supports OpenAI, compatible endpoints and Azure)."""
    if settings.llm_provider == "azure" and settings.azure_endpoint:
        return AzureOpenAI(
            azure_endpoint=settings.azure_endpoint,
            api_key=settings.openai_api_key or "",
            api_version=settings.azure_api_version,
        )
    if settings.llm_provider == "openai_compatible" and settings.openai_base_url:
        return OpenAI(
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key or "not-needed",
        )
    return OpenAI(api_key=settings.openai_api_key or "")


def _parse_llm_json(raw: str) -> Any:
    """Extract JSON from model output, tolerating markdown code blocks."""
    text = raw.strip()
    # Remove optional markdown code block
    if text.startswith("```"):
        match = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
        if match:
            text = match.group(1).strip()
        else:
            text = text.lstrip("`").strip()
    return json.loads(text)


def _pod_table(pods: list[PodResourceInfo]) -> str:
    lines = ["| Pod | Container | CPU Req | CPU Limit | Mem Req | Mem Limit | CPU Usage | Mem Usage |"]
    for p in pods:
        lines.append(
            f"| {p.pod} | {p.container} | {p.cpu_request} | {p.cpu_limit} | {p.memory_request} "
            f"| {p.memory_limit} | {p.current_cpu} | {p.current_memory} |"
        )
    return "\n".join(lines)


class InsightAnnotator:
    """Annotates findings with LLM insight. Every failure degrades to 'no annotation'."""

    def __init__(self, settings: Settings, client: OpenAI | None = None) -> None:
        self.settings = settings
        self._client = client or _openai_client(settings)

    def _complete(self, system_prompt: str, user_content: str) -> str:
        response = self._client.chat.completions.create(
            model=self.settings.model,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        )
        if not response.choices:
            raise ValueError("no completion choices returned")
        return response.choices[0].message.content or ""

    def annotate(self, findings: Findings) -> AIInsights | None:
        """Return AI insights for the findings, or None when the model is unavailable."""
        try:
            raw = self._complete(INSIGHTS_SYSTEM_PROMPT, findings.to_summary_text())
        except (OpenAIError, ValueError) as e:
            logger.warning("AI analysis failed: %s", e)
            return None
        try:
            data = _parse_llm_json(raw)
        except json.JSONDecodeError:
            # Free text is still a useful summary
            return AIInsights(summary=raw.strip()) if raw.strip() else None
        if not isinstance(data, dict):
            return AIInsights(summary=raw.strip())
        return AIInsights(
            summary=str(data.get("summary", "")),
            risk_assessment=str(data.get("risk_assessment", "")),
            recommendations=[str(x) for x in (data.get("recommendations") or [])],
            automation_suggestions=[str(x) for x in (data.get("automation_suggestions") or [])],
        )

    def suggest_resources(self, pods: list[PodResourceInfo], namespace: str) -> dict[str, ResourceSuggestion]:
        """Return suggestions keyed by "pod/container"; empty when unavailable."""
        if not pods:
            return {}
        user_content = f"# Namespace: {namespace}\n\n{_pod_table(pods)}"
        try:
            data = _parse_llm_json(self._complete(SUGGESTIONS_SYSTEM_PROMPT, user_content))
        except (OpenAIError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("AI resource suggestion failed for namespace %s: %s", namespace, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("AI resource suggestion for namespace %s was not a JSON object", namespace)
            return {}

        suggestions: dict[str, ResourceSuggestion] = {}
        for key, value in data.items():
            if not isinstance(value, dict) or "/" not in str(key):
                continue
            suggestions[str(key)] = ResourceSuggestion(
                cpu_request=str(value.get("cpu_request") or "KEEP"),
                cpu_limit=str(value.get("cpu_limit") or "KEEP"),
                memory_request=str(value.get("memory_request") or "KEEP"),
                memory_limit=str(value.get("memory_limit") or "KEEP"),
                reasoning=str(value.get("reasoning", "")),
            )
        return suggestions
