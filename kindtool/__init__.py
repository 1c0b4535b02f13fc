"""Cluster configuration, node helpers, command running, file and CNI config utilities for local container-node Kubernetes clusters."""

__version__ = "0.6.0"