"""Well-known names and labels for cluster nodes."""

from __future__ import annotations

from enum import Enum

__all__ = [
    "DEFAULT_CLUSTER_NAME",
    "CLUSTER_LABEL_KEY",
    "NODE_ROLE_KEY",
    "NodeRoleValue",
]

DEFAULT_CLUSTER_NAME = "kind"
"""The default cluster context name."""

CLUSTER_LABEL_KEY = "io.k8s.sigs.kind.cluster"
"""Label applied to each node container to identify its cluster."""

NODE_ROLE_KEY = "io.k8s.sigs.kind.role"
"""Label applied to each node container to record its role."""


class NodeRoleValue(str, Enum):
    """Values of the node role label."""

    # in single node clusters, control-plane nodes also act as workers
    CONTROL_PLANE = "control-plane"
    WORKER = "worker"
    # hosts the API server load balancer in HA setups; not a Kubernetes node
    EXTERNAL_LOAD_BALANCER = "external-load-balancer"
    # hosts an external etcd; not yet implemented and not a Kubernetes node
    EXTERNAL_ETCD = "external-etcd"

    def __str__(self) -> str:
        return self.value