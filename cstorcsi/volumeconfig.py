"""Builders, wrappers and helpers for CStorVolumeConfig objects."""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from .apis import (
    BuildError,
    CStorVolumeConfig,
    CStorVolumeConfigCondition,
    Quantity,
    parse_quantity,
    to_dict,
)

_PREFIX = "failed to build cstorvolumeclaim object"
_STORAGE = "storage"
_INTEGER = re.compile(r"[+-]?[0-9]+")


class Builder:
    """Builds a CStorVolumeConfig, collecting errors until ``build``."""

    def __init__(self, cvc: Optional[CStorVolumeConfig] = None) -> None:
        self._cvc = cvc if cvc is not None else CStorVolumeConfig()
        self._errors: list[str] = []

    def _fail(self, message: str) -> "Builder":
        self._errors.append(message)
        return self

    def with_name(self, name: str) -> "Builder":
        if not name:
            return self._fail(f"{_PREFIX}: missing name")
        self._cvc.metadata.name = name
        return self

    def with_generate_name(self, name: str) -> "Builder":
        if not name:
            return self._fail(f"{_PREFIX}: missing generateName")
        self._cvc.metadata.generate_name = name
        return self

    def with_namespace(self, namespace: str) -> "Builder":
        if not namespace:
            return self._fail(f"{_PREFIX}: missing namespace")
        self._cvc.metadata.namespace = namespace
        return self

    def with_status_phase(self, phase: str) -> "Builder":
        if not phase:
            return self._fail(f"{_PREFIX}: missing phase")
        self._cvc.status.phase = phase
        return self

    def with_status_conditions(
        self, conditions: Iterable[CStorVolumeConfigCondition]
    ) -> "Builder":
        """Append the given conditions to the existing ones."""
        items = list(conditions or ())
        if not items:
            return self._fail(f"{_PREFIX}: missing conditions")
        if self._cvc.status.conditions is None:
            self._cvc.status.conditions = []
        self._cvc.status.conditions.extend(items)
        return self

    def with_status_conditions_new(
        self, conditions: Iterable[CStorVolumeConfigCondition]
    ) -> "Builder":
        """Replace the existing conditions with the given ones."""
        items = list(conditions or ())
        if not items:
            return self._fail(f"{_PREFIX}: missing conditions")
        self._cvc.status.conditions = items
        return self

    def with_annotations(self, annotations: Mapping[str, str]) -> "Builder":
        """Merge the given annotations into the existing ones."""
        if not annotations:
            return self._fail(f"{_PREFIX}: missing annotations")
        if self._cvc.metadata.annotations is None:
            return self.with_annotations_new(annotations)
        self._cvc.metadata.annotations.update(annotations)
        return self

    def with_annotations_new(self, annotations: Mapping[str, str]) -> "Builder":
        """Replace existing annotations with a copy of the given ones."""
        if not annotations:
            return self._fail(f"{_PREFIX}: no new annotations")
        self._cvc.metadata.annotations = dict(annotations)
        return self

    def with_labels(self, labels: Mapping[str, str]) -> "Builder":
        """Merge the given labels into the existing ones."""
        if not labels:
            return self._fail(f"{_PREFIX}: missing labels")
        if self._cvc.metadata.labels is None:
            return self.with_labels_new(labels)
        self._cvc.metadata.labels.update(labels)
        return self

    def with_labels_new(self, labels: Mapping[str, str]) -> "Builder":
        """Replace existing labels with a copy of the given ones."""
        if not labels:
            return self._fail(f"{_PREFIX}: no new labels")
        self._cvc.metadata.labels = dict(labels)
        return self

    def with_finalizers(self, finalizers: Iterable[str]) -> "Builder":
        """Append the given finalizers to the existing ones."""
        items = list(finalizers or ())
        if not items:
            return self._fail(f"{_PREFIX}: missing finalizers")
        if self._cvc.metadata.finalizers is None:
            return self.with_finalizers_new(items)
        self._cvc.metadata.finalizers.extend(items)
        return self

    def with_finalizers_new(self, finalizers: Iterable[str]) -> "Builder":
        """Replace the existing finalizers with the given ones."""
        items = list(finalizers or ())
        if not items:
            return self._fail(f"{_PREFIX}: no new finalizers")
        self._cvc.metadata.finalizers = items
        return self

    def with_capacity(self, capacity: str) -> "Builder":
        """Parse ``capacity`` as a quantity and set it as the storage size."""
        try:
            quantity = parse_quantity(capacity)
        except ValueError as exc:
            return self._fail(
                "failed to build CStorVolumeConfig object: "
                f"failed to parse capacity {{{capacity}}}: {exc}"
            )
        return self.with_capacity_qty(quantity)

    def with_source(self, volume_source: str) -> "Builder":
        self._cvc.spec.cstor_volume_source = volume_source
        return self

    def with_capacity_qty(self, quantity: Quantity) -> "Builder":
        self._cvc.spec.capacity = {_STORAGE: quantity}
        return self

    def with_provision_capacity_qty(self, quantity: Quantity) -> "Builder":
        """Set the capacity requested at provisioning time."""
        self._cvc.spec.provision.capacity = {_STORAGE: quantity}
        return self

    def with_replica_count(self, count: str) -> "Builder":
        if not _INTEGER.fullmatch(count or ""):
            return self._fail(f"{_PREFIX} {{{count}}}: invalid replica count")
        self._cvc.spec.provision.replica_count = int(count)
        return self

    def with_node_id(self, node_id: str) -> "Builder":
        if not node_id:
            return self._fail("failed to build cstorvolumeconfig object: missing nodeID")
        self._cvc.publish.node_id = node_id
        return self

    def with_new_version(self, version: str) -> "Builder":
        """Set both the current and the desired version."""
        if not version:
            return self._fail(
                "failed to build cstorvolume object: version can't be empty"
            )
        self._cvc.version_details.current = version
        self._cvc.version_details.desired = version
        return self

    def with_dependents_upgraded(self) -> "Builder":
        self._cvc.version_details.dependents_upgraded = True
        return self

    def build(self) -> CStorVolumeConfig:
        """Return the config, or raise BuildError if any setter failed."""
        if self._errors:
            raise BuildError(self._errors)
        return self._cvc


def build_from(cvc: Optional[CStorVolumeConfig]) -> Builder:
    """Return a builder that edits the given config in place."""
    if cvc is None:
        return Builder()._fail(f"{_PREFIX}: nil cvc")
    return Builder(cvc)


@dataclass
class VolumeConfig:
    """Wrapper over a CStorVolumeConfig API object."""

    obj: CStorVolumeConfig


Predicate = Callable[[VolumeConfig], bool]


class ListBuilder:
    """Collects volume configs and filters them by predicates."""

    def __init__(self) -> None:
        self._items: list[VolumeConfig] = []
        self._filters: list[Predicate] = []

    def with_api_list(
        self, items: Optional[Iterable[CStorVolumeConfig]]
    ) -> "ListBuilder":
        """Add a copy of each given API object to the list."""
        if items is not None:
            self._items.extend(VolumeConfig(copy.copy(item)) for item in items)
        return self

    def with_filter(self, *args: Predicate) -> "ListBuilder":
        """Add predicates that every listed config must satisfy."""
        self._filters.extend(args)
        return self

    def list(self) -> list[VolumeConfig]:
        """Return the configs that pass every filter."""
        return [
            item
            for item in self._items
            if all(check(item) for check in self._filters)
        ]


def cvc_key(cvc: CStorVolumeConfig) -> str:
    """Return the unique ``namespace/name`` key of a config."""
    return f"{cvc.metadata.namespace}/{cvc.metadata.name}"


def _diff(old: Any, new: Any) -> Any:
    patch: dict[str, Any] = {key: None for key in old if key not in new}
    for key, value in new.items():
        if key not in old:
            patch[key] = value
        elif old[key] != value:
            if isinstance(old[key], dict) and isinstance(value, dict):
                patch[key] = _diff(old[key], value)
            else:
                patch[key] = value
    return patch


def create_merge_patch(old: Any, new: Any) -> bytes:
    """Return the JSON merge patch that turns ``old`` into ``new``.

    Both arguments may be API objects or plain JSON-like data.
    """
    old_data = to_dict(old)
    new_data = to_dict(new)
    if not isinstance(old_data, dict) or not isinstance(new_data, dict):
        raise TypeError("merge patches can only be made between objects")
    patch = _diff(old_data, new_data)
    return json.dumps(patch, separators=(",", ":"), sort_keys=True).encode()