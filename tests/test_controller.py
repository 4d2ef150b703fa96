import pytest

from cstorcsi.controller import (
    Node,
    TopologyRequirement,
    accessibility_node,
    select_node,
    snapshot_id,
    split_snapshot_id,
    volume_context,
)
from cstorcsi.validation import CSIError, StatusCode

ZONE = "openebs.io/zone"
HOST = "kubernetes.io/hostname"


@pytest.fixture
def nodes():
    return [
        Node("alpha", {ZONE: "z1", HOST: "alpha"}),
        Node("beta", {ZONE: "z2", HOST: "beta"}),
        Node("gamma", {ZONE: "z2", HOST: "gamma"}),
    ]


def test_select_node_first_matching(nodes):
    req = TopologyRequirement(preferred=[{ZONE: "z2"}])
    assert select_node(req, nodes) == "beta"


def test_select_node_all_segments_must_match(nodes):
    req = TopologyRequirement(preferred=[{ZONE: "z2", HOST: "gamma"}])
    assert select_node(req, nodes) == "gamma"


def test_select_node_preferred_order_wins(nodes):
    req = TopologyRequirement(preferred=[{HOST: "gamma"}, {ZONE: "z1"}])
    assert select_node(req, nodes) == "gamma"


def test_select_node_falls_back_to_later_preference(nodes):
    req = TopologyRequirement(preferred=[{HOST: "missing"}, {ZONE: "z1"}])
    assert select_node(req, nodes) == "alpha"


def test_select_node_no_match_is_empty(nodes):
    req = TopologyRequirement(preferred=[{ZONE: "z9"}])
    assert select_node(req, nodes) == ""


def test_select_node_no_preferred_is_empty(nodes):
    assert select_node(TopologyRequirement(), nodes) == ""


def test_select_node_missing_label_matches_empty_value(nodes):
    req = TopologyRequirement(preferred=[{"absent": ""}])
    assert select_node(req, nodes) == "alpha"


def test_accessibility_node_returns_match(nodes):
    req = TopologyRequirement(preferred=[{HOST: "beta"}])
    assert accessibility_node(req, nodes) == "beta"


def test_accessibility_node_none_requirement(nodes):
    with pytest.raises(CSIError) as info:
        accessibility_node(None, nodes)
    assert info.value.code is StatusCode.INTERNAL
    assert info.value.message == "accessibility_requirements not found"


def test_accessibility_node_no_node(nodes):
    req = TopologyRequirement(preferred=[{ZONE: "z9"}])
    with pytest.raises(CSIError) as info:
        accessibility_node(req, nodes)
    assert info.value.code is StatusCode.INTERNAL
    assert info.value.message == "can not find any node"


def test_snapshot_id_round_trip():
    sid = snapshot_id("pvc-1", "snap-a")
    assert sid == "pvc-1@snap-a"
    assert split_snapshot_id(sid) == ("pvc-1", "snap-a")


@pytest.mark.parametrize("bad", ["novolume", "a@b@c", ""])
def test_split_snapshot_id_rejects_malformed(bad):
    with pytest.raises(CSIError) as info:
        split_snapshot_id(bad)
    assert info.value.code is StatusCode.INTERNAL
    assert "Manual intervention required" in info.value.message


def test_volume_context_copies_cas_type():
    ctx = volume_context({"cas-type": "cstor", "replicaCount": "3"})
    assert ctx == {"openebs.io/cas-type": "cstor"}


def test_volume_context_missing_parameters():
    assert volume_context(None) == {"openebs.io/cas-type": ""}