import pytest

from kindtool.constants import NodeRoleValue


@pytest.mark.parametrize(
    "label,member",
    [
        ("control-plane", NodeRoleValue.CONTROL_PLANE),
        ("worker", NodeRoleValue.WORKER),
        ("external-load-balancer", NodeRoleValue.EXTERNAL_LOAD_BALANCER),
        ("external-etcd", NodeRoleValue.EXTERNAL_ETCD),
    ],
)
def test_lookup_by_label(label, member):
    assert NodeRoleValue(label) is member
    assert str(member) == label
    assert member == label


def test_unknown_label_raises():
    with pytest.raises(ValueError):
        NodeRoleValue("gateway")


def test_formats_as_plain_label():
    role = NodeRoleValue("external-load-balancer")
    assert f"unexpected number of {role} nodes" == (
        "unexpected number of external-load-balancer nodes"
    )


def test_all_roles_distinct():
    labels = ["control-plane", "worker", "external-load-balancer", "external-etcd"]
    members = {NodeRoleValue(label) for label in labels}
    assert len(members) == 4
    assert members == set(NodeRoleValue)