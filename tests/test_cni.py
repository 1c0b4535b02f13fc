import json
import os
from types import SimpleNamespace

import pytest

from kindtool.cni import (
    CNI_CONFIG_PATH,
    CNIConfigInputs,
    CNIConfigWriter,
    compute_cni_config_inputs,
    internal_ip,
    render_cni_config,
)


def test_compute_inputs_ipv4():
    inputs = compute_cni_config_inputs("10.244.0.0/16")
    assert inputs == CNIConfigInputs(pod_cidr="10.244.0.0/16", default_route="0.0.0.0/0")


def test_compute_inputs_ipv6():
    inputs = compute_cni_config_inputs("fd00:10:244::/64")
    assert inputs.default_route == "::/0"
    assert inputs.pod_cidr == "fd00:10:244::/64"


@pytest.mark.parametrize("cidr", ["", "not-a-cidr", "fd00:10:244::"])
def test_compute_inputs_unparseable_defaults_to_ipv4(cidr):
    assert compute_cni_config_inputs(cidr).default_route == "0.0.0.0/0"


def test_render_is_valid_json_with_inputs():
    inputs = compute_cni_config_inputs("10.244.0.0/16")
    text = render_cni_config(inputs)
    config = json.loads(text)
    assert config["cniVersion"] == "0.3.1"
    assert config["name"] == "kindnet"
    ptp, portmap = config["plugins"]
    assert ptp["type"] == "ptp"
    assert ptp["ipMasq"] is False
    assert ptp["ipam"]["type"] == "host-local"
    assert ptp["ipam"]["dataDir"] == "/run/cni-ipam-state"
    assert ptp["ipam"]["routes"] == [{"dst": inputs.default_route}]
    assert ptp["ipam"]["ranges"] == [[{"subnet": inputs.pod_cidr}]]
    assert portmap == {"type": "portmap", "capabilities": {"portMappings": True}}


def test_render_layout():
    text = render_cni_config(CNIConfigInputs("10.244.0.0/16", "0.0.0.0/0"))
    assert text.startswith("\n{\n\t\"cniVersion\"")
    assert text.endswith("\n}\n")


def test_default_path():
    assert CNIConfigWriter().path == CNI_CONFIG_PATH == "/etc/cni/net.d/10-kindnet.conflist"


def test_writer_writes_config(tmp_path):
    path = tmp_path / "10-kindnet.conflist"
    writer = CNIConfigWriter(path=str(path))
    inputs = compute_cni_config_inputs("10.244.0.0/16")
    writer.write(inputs)
    assert path.read_text(encoding="utf-8") == render_cni_config(inputs)
    assert writer.last_inputs == inputs
    assert not os.path.exists(str(path) + ".temp")


def test_writer_skips_unchanged_inputs(tmp_path):
    path = tmp_path / "conf"
    writer = CNIConfigWriter(path=str(path))
    inputs = compute_cni_config_inputs("10.244.0.0/16")
    writer.write(inputs)
    path.write_text("changed", encoding="utf-8")
    writer.write(inputs)
    assert path.read_text(encoding="utf-8") == "changed"


def test_writer_rewrites_on_new_inputs(tmp_path):
    path = tmp_path / "conf"
    writer = CNIConfigWriter(path=str(path))
    writer.write(compute_cni_config_inputs("10.244.0.0/16"))
    second = compute_cni_config_inputs("fd00:10:244::/64")
    writer.write(second)
    config = json.loads(path.read_text(encoding="utf-8"))
    assert config["plugins"][0]["ipam"]["ranges"] == [[{"subnet": "fd00:10:244::/64"}]]
    assert writer.last_inputs == second


def test_writer_zero_inputs_is_noop(tmp_path):
    path = tmp_path / "conf"
    writer = CNIConfigWriter(path=str(path))
    writer.write(CNIConfigInputs())
    assert not path.exists()


def test_writer_error_keeps_last_inputs(tmp_path):
    path = tmp_path / "missing" / "conf"
    writer = CNIConfigWriter(path=str(path))
    with pytest.raises(FileNotFoundError):
        writer.write(compute_cni_config_inputs("10.244.0.0/16"))
    assert writer.last_inputs == CNIConfigInputs()


def test_internal_ip_from_mappings():
    addresses = [
        {"type": "Hostname", "address": "node-a"},
        {"type": "InternalIP", "address": "172.17.0.2"},
        {"type": "InternalIP", "address": "172.17.0.3"},
    ]
    assert internal_ip(addresses) == "172.17.0.2"


def test_internal_ip_from_objects():
    addresses = [SimpleNamespace(type="InternalIP", address="172.17.0.4")]
    assert internal_ip(addresses) == "172.17.0.4"


def test_internal_ip_missing():
    assert internal_ip([{"type": "Hostname", "address": "node-a"}]) == ""
    assert internal_ip([]) == ""