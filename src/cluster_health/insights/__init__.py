"""Insights layer: optional LLM annotation of analysis findings."""

from cluster_health.insights.annotator import InsightAnnotator
from cluster_health.insights.models import KEEP, AIInsights, ResourceSuggestion

__all__ = [
    "InsightAnnotator",
    "AIInsights",
    "KEEP",
    "ResourceSuggestion",
]
