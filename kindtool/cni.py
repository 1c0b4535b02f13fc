"""CNI configuration for the node networking daemon."""

from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass, field
from string import Template
from typing import Any, Iterable, Mapping

__all__ = [
    "CNI_CONFIG_PATH",
    "CNIConfigInputs",
    "CNIConfigWriter",
    "compute_cni_config_inputs",
    "render_cni_config",
    "internal_ip",
]

CNI_CONFIG_PATH = "/etc/cni/net.d/10-kindnet.conflist"
"""Where the daemon writes the computed CNI config."""

_IPV4_DEFAULT_ROUTE = "0.0.0.0/0"
_IPV6_DEFAULT_ROUTE = "::/0"

_CNI_CONFIG_TEMPLATE = Template(
    "\n".join(
        [
            "",
            "{",
            '\t"cniVersion": "0.3.1",',
            '\t"name": "kindnet",',
            '\t"plugins": [',
            "\t{",
            '\t\t"type": "ptp",',
            '\t\t"ipMasq": false,',
            '\t\t"ipam": {',
            '\t\t\t"type": "host-local",',
            '\t\t\t"dataDir": "/run/cni-ipam-state",',
            '\t\t\t"routes": [',
            "\t\t\t\t{",
            '\t\t\t\t\t"dst": "${default_route}"',
            "\t\t\t\t}",
            "\t\t\t],",
            '\t\t\t"ranges": [',
            "\t\t\t[",
            "\t\t\t\t{",
            '\t\t\t\t\t"subnet": "${pod_cidr}"',
            "\t\t\t\t}",
            "\t\t\t]",
            "\t\t]",
            "\t\t}",
            "\t},",
            "\t{",
            '\t\t"type": "portmap",',
            '\t\t"capabilities": {',
            '\t\t\t"portMappings": true',
            "\t\t}",
            "\t}",
            "\t]",
            "}",
            "",
        ]
    )
)


@dataclass(frozen=True)
class CNIConfigInputs:
    """The values filled into the CNI config template."""

    pod_cidr: str = ""
    default_route: str = ""


def _is_ipv6_cidr(cidr: str) -> bool:
    if "/" not in cidr:
        return False
    try:
        interface = ipaddress.ip_interface(cidr)
    except ValueError:
        return False
    if interface.version != 6:
        return False
    return interface.ip.ipv4_mapped is None


def compute_cni_config_inputs(pod_cidr: str) -> CNIConfigInputs:
    """Return the template inputs for a node with the given pod CIDR."""
    route = _IPV6_DEFAULT_ROUTE if _is_ipv6_cidr(pod_cidr) else _IPV4_DEFAULT_ROUTE
    return CNIConfigInputs(pod_cidr=pod_cidr, default_route=route)


def render_cni_config(inputs: CNIConfigInputs) -> str:
    """Return the CNI config list text for inputs."""
    return _CNI_CONFIG_TEMPLATE.substitute(
        default_route=inputs.default_route, pod_cidr=inputs.pod_cidr
    )


@dataclass
class CNIConfigWriter:
    """Writes the CNI config, skipping writes whose inputs have not changed.

    Not safe for use from several threads at once.
    """

    path: str = CNI_CONFIG_PATH
    last_inputs: CNIConfigInputs = field(default_factory=CNIConfigInputs)

    def write(self, inputs: CNIConfigInputs) -> None:
        """Write the config for inputs unless it was last written with them."""
        if inputs == self.last_inputs:
            return
        # an extension CNI ignores, so the file only appears once complete
        temp_path = self.path + ".temp"
        with open(temp_path, "w", encoding="utf-8") as out:
            try:
                out.write(render_cni_config(inputs))
                out.flush()
                os.fsync(out.fileno())
            except BaseException:
                out.close()
                os.remove(temp_path)
                raise
        os.replace(temp_path, self.path)
        self.last_inputs = inputs


def _field(address: Any, name: str) -> Any:
    if isinstance(address, Mapping):
        return address.get(name)
    return getattr(address, name, None)


def internal_ip(addresses: Iterable[Any]) -> str:
    """Return the first InternalIP among a node's status addresses, or ""."""
    for address in addresses:
        if _field(address, "type") == "InternalIP":
            return _field(address, "address") or ""
    return ""