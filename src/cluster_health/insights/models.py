"""Structured outputs from the insights layer."""

from __future__ import annotations

from pydantic import BaseModel, Field

# Suggestion value meaning "keep the configured value"
KEEP = "KEEP"


class AIInsights(BaseModel):
    """Free-text assessment returned by the annotator."""

    summary: str = Field(..., description="Markdown analysis of the cluster findings")
    risk_assessment: str = Field(default="", description="Risk assessment with remediation priorities")
    recommendations: list[str] = Field(default_factory=list, description="Strategic recommendations")
    automation_suggestions: list[str] = Field(
        default_factory=list,
        description="Preventive measures and automation ideas",
    )


class ResourceSuggestion(BaseModel):
    """Suggested resource values for one container; KEEP means do not override."""

    cpu_request: str = KEEP
    cpu_limit: str = KEEP
    memory_request: str = KEEP
    memory_limit: str = KEEP
    reasoning: str = ""

    @staticmethod
    def resolve(suggested: str, current: str) -> str:
        """Return the suggested value unless it is the KEEP sentinel (or empty)."""
        if not suggested or suggested.strip().upper() == KEEP:
            return current
        return suggested
