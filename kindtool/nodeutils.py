"""Cluster nodes and helpers for selecting and operating on them."""

from __future__ import annotations

import io
import json
import posixpath
from typing import IO, Any, Protocol, Sequence, Union, runtime_checkable

from kindtool.constants import NodeRoleValue
from kindtool.errors import new, wrap
from kindtool.exec import combined_output_lines

__all__ = [
    "Node",
    "select_nodes_by_role",
    "external_load_balancer_node",
    "api_server_endpoint_node",
    "control_plane_nodes",
    "bootstrap_control_plane_node",
    "secondary_control_plane_nodes",
    "kube_version",
    "write_file",
    "copy_node_to_node",
    "load_image_archive",
    "image_id",
]


@runtime_checkable
class Node(Protocol):
    """A cluster node that commands can be run against.

    ``str(node)`` gives the node's name.
    """

    def command(self, name: str, *args: str) -> Any:
        """Return a command that runs name with args on the node."""

    def role(self) -> str:
        """Return the node's role, one of the NodeRoleValue values."""

    def ip(self) -> tuple[str, str]:
        """Return the node's IPv4 and IPv6 addresses."""


def _node_dir(path: str) -> str:
    return posixpath.dirname(posixpath.normpath(path)) or "."


def select_nodes_by_role(all_nodes: Sequence[Node], role: str) -> list[Node]:
    """Return the nodes whose role equals role, in their original order."""
    return [node for node in all_nodes if node.role() == role]


def external_load_balancer_node(all_nodes: Sequence[Node]) -> Node | None:
    """Return the external load balancer node, or None if there is none."""
    role = NodeRoleValue.EXTERNAL_LOAD_BALANCER.value
    balancers = select_nodes_by_role(all_nodes, role)
    if not balancers:
        return None
    if len(balancers) > 1:
        raise new(f"unexpected number of {role} nodes {len(balancers)}")
    return balancers[0]


def api_server_endpoint_node(all_nodes: Sequence[Node]) -> Node:
    """Return the node serving the API server endpoint.

    That is the external load balancer if there is one, otherwise the
    only control plane node.
    """
    try:
        balancer = external_load_balancer_node(all_nodes)
    except Exception as exc:
        raise wrap(exc, "failed to find api-server endpoint node") from exc
    if balancer is not None:
        return balancer
    try:
        control_planes = control_plane_nodes(all_nodes)
    except Exception as exc:
        raise wrap(exc, "failed to find api-server endpoint node") from exc
    if len(control_planes) != 1:
        raise new(
            "expected one control plane node or a load balancer, "
            f"not {len(control_planes)} and none"
        )
    return control_planes[0]


def control_plane_nodes(all_nodes: Sequence[Node]) -> list[Node]:
    """Return the control plane nodes sorted by name.

    The first entry is the bootstrap control plane node.
    """
    nodes = select_nodes_by_role(all_nodes, NodeRoleValue.CONTROL_PLANE.value)
    return sorted(nodes, key=str)


def _require_control_planes(all_nodes: Sequence[Node]) -> list[Node]:
    nodes = control_plane_nodes(all_nodes)
    if not nodes:
        raise new(f"expected at least one {NodeRoleValue.CONTROL_PLANE.value} node")
    return nodes


def bootstrap_control_plane_node(all_nodes: Sequence[Node]) -> Node:
    """Return the bootstrap control plane node."""
    return _require_control_planes(all_nodes)[0]


def secondary_control_plane_nodes(all_nodes: Sequence[Node]) -> list[Node]:
    """Return the control plane nodes other than the bootstrap one."""
    return _require_control_planes(all_nodes)[1:]


def kube_version(node: Node) -> str:
    """Return the Kubernetes version installed on the node."""
    try:
        lines = combined_output_lines(node.command("cat", "/kind/version"))
    except Exception as exc:
        raise wrap(exc, "failed to get file") from exc
    if len(lines) != 1:
        raise new(f"file should only be one line, got {len(lines)} lines")
    return lines[0]


def write_file(node: Node, dest: str, content: str) -> None:
    """Write content to the path dest on the node."""
    try:
        node.command("mkdir", "-p", _node_dir(dest)).run()
    except Exception as exc:
        raise wrap(exc, f"failed to create directory {dest}") from exc
    node.command("cp", "/dev/stdin", dest).set_stdin(content).run()


def copy_node_to_node(a: Node, b: Node, file: str) -> None:
    """Copy the file at path file from node a to the same path on node b."""
    directory = _node_dir(file)
    try:
        b.command("mkdir", "-p", directory).run()
    except Exception as exc:
        raise wrap(exc, f"failed to create directory {directory!r}") from exc
    buffer = io.BytesIO()
    try:
        a.command("cat", file).set_stdout(buffer).run()
    except Exception as exc:
        raise wrap(exc, f"failed to read {file!r} from node") from exc
    try:
        b.command("cp", "/dev/stdin", file).set_stdin(buffer.getvalue()).run()
    except Exception as exc:
        raise wrap(exc, f"failed to write {file!r} to node") from exc


def load_image_archive(node: Node, image: Union[IO[bytes], bytes]) -> None:
    """Import an image archive read from image into the node's image store."""
    cmd = node.command("ctr", "--namespace=k8s.io", "images", "import", "-").set_stdin(image)
    try:
        cmd.run()
    except Exception as exc:
        raise wrap(exc, "failed to load image") from exc


def image_id(node: Node, image: str) -> str:
    """Return the ID of image as known to the node's container runtime."""
    out = io.BytesIO()
    node.command("crictl", "inspecti", image).set_stdout(out).run()
    data = json.loads(out.getvalue())
    if not isinstance(data, dict):
        raise new("unexpected image inspection output")
    status = data.get("status") or {}
    if not isinstance(status, dict):
        raise new("unexpected image inspection output")
    found = status.get("id") or ""
    if not isinstance(found, str):
        raise new("unexpected image inspection output")
    return found