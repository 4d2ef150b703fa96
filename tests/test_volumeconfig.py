import json

import pytest

from cstorcsi.apis import (
    BuildError,
    CStorVolumeConfig,
    CStorVolumeConfigCondition,
    parse_quantity,
)
from cstorcsi.volumeconfig import (
    Builder,
    ListBuilder,
    build_from,
    create_merge_patch,
    cvc_key,
)


def test_builder_sets_identity_fields():
    cvc = (
        Builder()
        .with_name("pvc-1")
        .with_generate_name("pvc-")
        .with_namespace("openebs")
        .with_node_id("node-a")
        .build()
    )
    assert cvc.metadata.name == "pvc-1"
    assert cvc.metadata.generate_name == "pvc-"
    assert cvc.metadata.namespace == "openebs"
    assert cvc.publish.node_id == "node-a"


@pytest.mark.parametrize(
    "call, message",
    [
        (lambda b: b.with_name(""), "failed to build cstorvolumeclaim object: missing name"),
        (lambda b: b.with_namespace(""), "failed to build cstorvolumeclaim object: missing namespace"),
        (lambda b: b.with_status_phase(""), "failed to build cstorvolumeclaim object: missing phase"),
        (lambda b: b.with_finalizers([]), "failed to build cstorvolumeclaim object: missing finalizers"),
        (lambda b: b.with_labels_new({}), "failed to build cstorvolumeclaim object: no new labels"),
        (lambda b: b.with_node_id(""), "failed to build cstorvolumeconfig object: missing nodeID"),
        (lambda b: b.with_new_version(""), "failed to build cstorvolume object: version can't be empty"),
    ],
)
def test_builder_errors(call, message):
    with pytest.raises(BuildError) as info:
        call(Builder()).build()
    assert info.value.errors == [message]


def test_errors_accumulate():
    with pytest.raises(BuildError) as info:
        Builder().with_name("").with_namespace("").build()
    assert len(info.value.errors) == 2


def test_build_from_none():
    with pytest.raises(BuildError) as info:
        build_from(None).build()
    assert info.value.errors == ["failed to build cstorvolumeclaim object: nil cvc"]


def test_build_from_edits_in_place():
    original = CStorVolumeConfig()
    result = build_from(original).with_name("vol").build()
    assert result is original
    assert original.metadata.name == "vol"


def test_labels_merge_and_reset():
    builder = Builder().with_labels({"a": "1"}).with_labels({"b": "2"})
    assert builder.build().metadata.labels == {"a": "1", "b": "2"}
    builder.with_labels_new({"c": "3"})
    assert builder.build().metadata.labels == {"c": "3"}


def test_labels_are_copied():
    labels = {"a": "1"}
    cvc = Builder().with_labels(labels).build()
    labels["z"] = "9"
    assert cvc.metadata.labels == {"a": "1"}


def test_annotations_merge_and_reset():
    builder = Builder().with_annotations({"x": "1"}).with_annotations({"y": "2"})
    assert builder.build().metadata.annotations == {"x": "1", "y": "2"}
    builder.with_annotations_new({"z": "3"})
    assert builder.build().metadata.annotations == {"z": "3"}


def test_finalizers_append_and_reset():
    builder = Builder().with_finalizers(["f1"]).with_finalizers(["f2"])
    assert builder.build().metadata.finalizers == ["f1", "f2"]
    builder.with_finalizers_new(["f3"])
    assert builder.build().metadata.finalizers == ["f3"]


def test_status_conditions():
    first = CStorVolumeConfigCondition(type="Resizing")
    second = CStorVolumeConfigCondition(type="Other")
    builder = Builder().with_status_conditions([first]).with_status_conditions([second])
    assert builder.build().status.conditions == [first, second]
    builder.with_status_conditions_new([second])
    assert builder.build().status.conditions == [second]
    with pytest.raises(BuildError):
        Builder().with_status_conditions_new([]).build()


def test_status_phase():
    assert Builder().with_status_phase("Bound").build().status.phase == "Bound"


def test_capacity_parsing():
    cvc = Builder().with_capacity("5G").build()
    assert cvc.spec.capacity == {"storage": parse_quantity("5G")}


def test_invalid_capacity():
    with pytest.raises(BuildError) as info:
        Builder().with_capacity("lots").build()
    assert info.value.errors[0].startswith(
        "failed to build CStorVolumeConfig object: failed to parse capacity {lots}"
    )


def test_provision_capacity_and_source():
    quantity = parse_quantity("1Gi")
    cvc = Builder().with_provision_capacity_qty(quantity).with_source("vol@snap").build()
    assert cvc.spec.provision.capacity == {"storage": quantity}
    assert cvc.spec.cstor_volume_source == "vol@snap"


def test_replica_count():
    assert Builder().with_replica_count("3").build().spec.provision.replica_count == 3
    with pytest.raises(BuildError):
        Builder().with_replica_count("three").build()
    with pytest.raises(BuildError):
        Builder().with_replica_count(" 3").build()


def test_version_and_dependents():
    cvc = Builder().with_new_version("2.4.0").with_dependents_upgraded().build()
    assert cvc.version_details.current == "2.4.0"
    assert cvc.version_details.desired == "2.4.0"
    assert cvc.version_details.dependents_upgraded is True


def _cvc(name, phase):
    return Builder().with_name(name).with_status_phase(phase).build()


def test_list_builder_without_filters():
    items = [_cvc("a", "Bound"), _cvc("b", "Pending")]
    listed = ListBuilder().with_api_list(items).list()
    assert [item.obj.metadata.name for item in listed] == ["a", "b"]


def test_list_builder_filters():
    items = [_cvc("a", "Bound"), _cvc("b", "Pending"), _cvc("c", "Bound")]
    listed = (
        ListBuilder()
        .with_api_list(items)
        .with_filter(lambda v: v.obj.status.phase == "Bound")
        .with_filter(lambda v: v.obj.metadata.name != "c")
        .list()
    )
    assert [item.obj.metadata.name for item in listed] == ["a"]


def test_list_builder_none():
    assert ListBuilder().with_api_list(None).list() == []


def test_cvc_key():
    cvc = Builder().with_name("pvc-1").with_namespace("openebs").build()
    assert cvc_key(cvc) == "openebs/pvc-1"


def test_merge_patch_changes_only():
    old = Builder().with_name("v").with_labels({"a": "1"}).build()
    new = Builder().with_name("v").with_labels({"a": "2"}).build()
    patch = json.loads(create_merge_patch(old, new))
    assert patch == {"metadata": {"labels": {"a": "2"}}}


def test_merge_patch_removal_is_null():
    old = {"metadata": {"labels": {"a": "1", "b": "2"}}}
    new = {"metadata": {"labels": {"a": "1"}}}
    assert json.loads(create_merge_patch(old, new)) == {
        "metadata": {"labels": {"b": None}}
    }


def test_merge_patch_identical_is_empty():
    cvc = Builder().with_name("v").build()
    assert create_merge_patch(cvc, cvc) == b"{}"


def test_merge_patch_rejects_non_objects():
    with pytest.raises(TypeError):
        create_merge_patch([1], [2])