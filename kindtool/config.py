"""Cluster configuration types, YAML decoding and defaulting."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, TypeVar

import yaml

__all__ = [
    "DEFAULT_IMAGE",
    "NodeRole",
    "ClusterIPFamily",
    "MountPropagation",
    "PortMappingProtocol",
    "MOUNT_PROPAGATION_VALUE_TO_NAME",
    "MOUNT_PROPAGATION_NAME_TO_VALUE",
    "PORT_MAPPING_PROTOCOL_VALUE_TO_NAME",
    "PORT_MAPPING_PROTOCOL_NAME_TO_VALUE",
    "Mount",
    "PortMapping",
    "Node",
    "Networking",
    "PatchJSON6902",
    "Cluster",
    "load_cluster_yaml",
    "set_defaults_cluster",
    "set_defaults_node",
]

DEFAULT_IMAGE = (
    "kindest/node:v1.16.2@sha256:"
    "5fe6c8886189577e5f8955306b57240b056c6e8e6d74c905f0e99de6a9ec0094"
)
"""The default node image."""

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1

T = TypeVar("T")


class NodeRole(str, Enum):
    """The role of a node in the cluster."""

    CONTROL_PLANE = "control-plane"
    WORKER = "worker"

    def __str__(self) -> str:
        return self.value


class ClusterIPFamily(str, Enum):
    """The IP family of the cluster network."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"

    def __str__(self) -> str:
        return self.value


class MountPropagation(IntEnum):
    """Mount propagation modes."""

    NONE = 0
    HOST_TO_CONTAINER = 1
    BIDIRECTIONAL = 2


class PortMappingProtocol(IntEnum):
    """Protocols of a port mapping."""

    TCP = 0
    UDP = 1
    SCTP = 2


MOUNT_PROPAGATION_VALUE_TO_NAME = {
    MountPropagation.NONE: "None",
    MountPropagation.HOST_TO_CONTAINER: "HostToContainer",
    MountPropagation.BIDIRECTIONAL: "Bidirectional",
}
MOUNT_PROPAGATION_NAME_TO_VALUE = {
    name: value for value, name in MOUNT_PROPAGATION_VALUE_TO_NAME.items()
}

PORT_MAPPING_PROTOCOL_VALUE_TO_NAME = {
    PortMappingProtocol.TCP: "TCP",
    PortMappingProtocol.UDP: "UDP",
    PortMappingProtocol.SCTP: "SCTP",
}
PORT_MAPPING_PROTOCOL_NAME_TO_VALUE = {
    name: value for value, name in PORT_MAPPING_PROTOCOL_VALUE_TO_NAME.items()
}


def _mapping(data: Any, what: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def _str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key} must be a string, got {value!r}")
    return value


def _bool(data: dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key} must be a boolean, got {value!r}")
    return value


def _int32(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key} must be an integer, got {value!r}")
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"field {key} out of range: {value}")
    return value


def _list(data: dict[str, Any], key: str, item: Callable[[Any], T]) -> list[T]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key} must be a list, got {value!r}")
    return [item(entry) for entry in value]


def _string_item(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {value!r}")
    return value


def _role(value: str) -> NodeRole | str:
    try:
        return NodeRole(value)
    except ValueError:
        return value


def _ip_family(value: str) -> ClusterIPFamily | str:
    try:
        return ClusterIPFamily(value)
    except ValueError:
        return value


@dataclass
class Mount:
    """A host path mounted into a node container."""

    container_path: str = ""
    host_path: str = ""
    readonly: bool = False
    selinux_relabel: bool = False
    propagation: MountPropagation = MountPropagation.NONE

    @classmethod
    def from_dict(cls, data: Any) -> "Mount":
        """Decode a mount; propagation is given by name."""
        data = _mapping(data, "mount")
        mount = cls(
            container_path=_str(data, "containerPath"),
            host_path=_str(data, "hostPath"),
            readonly=_bool(data, "readOnly"),
            selinux_relabel=_bool(data, "selinuxRelabel"),
        )
        name = _str(data, "propagation")
        if name:
            try:
                mount.propagation = MOUNT_PROPAGATION_NAME_TO_VALUE[name]
            except KeyError:
                raise ValueError(f"unknown propagation value: {name}") from None
        return mount


@dataclass
class PortMapping:
    """A host port mapped into a node container."""

    container_port: int = 0
    host_port: int = 0
    listen_address: str = ""
    protocol: PortMappingProtocol = PortMappingProtocol.TCP

    @classmethod
    def from_dict(cls, data: Any) -> "PortMapping":
        """Decode a port mapping; the protocol name is case-insensitive."""
        data = _mapping(data, "port mapping")
        mapping = cls(
            container_port=_int32(data, "containerPort"),
            host_port=_int32(data, "hostPort"),
            listen_address=_str(data, "listenAddress"),
        )
        name = _str(data, "protocol")
        if name:
            try:
                mapping.protocol = PORT_MAPPING_PROTOCOL_NAME_TO_VALUE[name.upper()]
            except KeyError:
                raise ValueError(f"unknown protocol value: {name}") from None
        return mapping


@dataclass
class Node:
    """Settings for one node container of the cluster."""

    role: NodeRole | str = ""
    image: str = ""
    extra_mounts: list[Mount] = field(default_factory=list)
    extra_port_mappings: list[PortMapping] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Node":
        """Decode a node entry."""
        data = _mapping(data, "node")
        return cls(
            role=_role(_str(data, "role")),
            image=_str(data, "image"),
            extra_mounts=_list(data, "extraMounts", Mount.from_dict),
            extra_port_mappings=_list(data, "extraPortMappings", PortMapping.from_dict),
        )


@dataclass
class Networking:
    """Cluster-wide network settings."""

    ip_family: ClusterIPFamily | str = ""
    api_server_port: int = 0
    api_server_address: str = ""
    pod_subnet: str = ""
    service_subnet: str = ""
    disable_default_cni: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "Networking":
        """Decode the networking section."""
        data = _mapping(data, "networking")
        return cls(
            ip_family=_ip_family(_str(data, "ipFamily")),
            api_server_port=_int32(data, "apiServerPort"),
            api_server_address=_str(data, "apiServerAddress"),
            pod_subnet=_str(data, "podSubnet"),
            service_subnet=_str(data, "serviceSubnet"),
            disable_default_cni=_bool(data, "disableDefaultCNI"),
        )


@dataclass
class PatchJSON6902:
    """An inline JSON 6902 patch and the resource it targets."""

    group: str = ""
    version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""
    patch: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "PatchJSON6902":
        """Decode a JSON 6902 patch entry."""
        data = _mapping(data, "patch")
        return cls(
            group=_str(data, "group"),
            version=_str(data, "version"),
            kind=_str(data, "kind"),
            name=_str(data, "name"),
            namespace=_str(data, "namespace"),
            patch=_str(data, "patch"),
        )


@dataclass
class Cluster:
    """The cluster configuration."""

    kind: str = ""
    api_version: str = ""
    nodes: list[Node] = field(default_factory=list)
    networking: Networking = field(default_factory=Networking)
    kubeadm_config_patches: list[str] = field(default_factory=list)
    kubeadm_config_patches_json6902: list[PatchJSON6902] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Cluster":
        """Decode a whole cluster configuration document."""
        data = _mapping(data, "cluster")
        return cls(
            kind=_str(data, "kind"),
            api_version=_str(data, "apiVersion"),
            nodes=_list(data, "nodes", Node.from_dict),
            networking=Networking.from_dict(data.get("networking")),
            kubeadm_config_patches=_list(data, "kubeadmConfigPatches", _string_item),
            kubeadm_config_patches_json6902=_list(
                data, "kubeadmConfigPatchesJson6902", PatchJSON6902.from_dict
            ),
        )


def load_cluster_yaml(text: str) -> Cluster:
    """Parse a cluster configuration from YAML text, without defaulting."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid cluster config: {exc}") from exc
    return Cluster.from_dict(data)


def set_defaults_node(node: Node) -> None:
    """Fill in the node's unset image and role."""
    if not node.image:
        node.image = DEFAULT_IMAGE
    if not node.role:
        node.role = NodeRole.CONTROL_PLANE


def set_defaults_cluster(cluster: Cluster) -> None:
    """Fill in the cluster's unset fields with their defaults, in place."""
    if not cluster.nodes:
        cluster.nodes = [Node(role=NodeRole.CONTROL_PLANE, image=DEFAULT_IMAGE)]
    for node in cluster.nodes:
        set_defaults_node(node)
    net = cluster.networking
    if not net.ip_family:
        net.ip_family = ClusterIPFamily.IPV4
    ipv6 = net.ip_family == ClusterIPFamily.IPV6
    if not net.api_server_address:
        net.api_server_address = "::1" if ipv6 else "127.0.0.1"
    if not net.pod_subnet:
        net.pod_subnet = "fd00:10:244::/64" if ipv6 else "10.244.0.0/16"
    if not net.service_subnet:
        net.service_subnet = "fd00:10:96::/112" if ipv6 else "10.96.0.0/12"