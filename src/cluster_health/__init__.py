"""Cluster health: turn a Kubernetes cluster snapshot into prioritized health findings."""

__version__ = "0.1.0"
