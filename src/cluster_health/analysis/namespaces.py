"""Per-namespace resource-configuration risk tiers."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import reduce
from typing import NamedTuple

from cluster_health.analysis.models import NamespaceRisk, RiskTier
from cluster_health.analysis.resources import is_missing
from cluster_health.observation.models import NamespaceDescriptor, PodDescriptor

NamespacePolicy = Callable[[str], bool]


def is_application_namespace(name: str) -> bool:
    """Application namespaces use three-letter codes (e.g. "abc")."""
    return len(name) == 3 and not name.startswith("kube-")


def risk_tier(gap_percent: float) -> RiskTier:
    if gap_percent > 75:
        return RiskTier.CRITICAL
    if gap_percent > 50:
        return RiskTier.HIGH
    if gap_percent > 25:
        return RiskTier.MEDIUM
    return RiskTier.LOW


class _Tally(NamedTuple):
    total: int = 0
    without_requests: int = 0
    without_limits: int = 0
    critical_pods: tuple[str, ...] = ()


def _add(tally: _Tally, pod: PodDescriptor) -> _Tally:
    has_requests = any(not is_missing(c.requests) for c in pod.containers)
    has_limits = any(not is_missing(c.limits) for c in pod.containers)
    return _Tally(
        total=tally.total + 1,
        without_requests=tally.without_requests + (not has_requests),
        without_limits=tally.without_limits + (not has_limits),
        critical_pods=tally.critical_pods if has_requests else tally.critical_pods + (pod.name,),
    )


def score_namespaces(
    pods: Iterable[PodDescriptor],
    namespaces: Iterable[NamespaceDescriptor],
    policy: NamespacePolicy | None = None,
) -> list[NamespaceRisk]:
    """Tier each in-scope namespace by the share of pods without any requests.

    Namespaces without pods are omitted. Results are ordered critical first;
    namespaces of the same tier keep their listing order.
    """
    policy = policy or is_application_namespace
    scoped = [ns.name for ns in namespaces if policy(ns.name)]
    pods = list(pods)
    tallies = {
        name: reduce(_add, (p for p in pods if p.namespace == name), _Tally()) for name in dict.fromkeys(scoped)
    }

    risks = []
    for name, tally in tallies.items():
        if tally.total == 0:
            continue
        risks.append(
            NamespaceRisk(
                namespace=name,
                total_pods=tally.total,
                pods_without_requests=tally.without_requests,
                pods_without_limits=tally.without_limits,
                tier=risk_tier(tally.without_requests / tally.total * 100),
                critical_pods=tally.critical_pods,
            )
        )
    risks.sort(key=lambda r: r.tier.rank)
    return risks
