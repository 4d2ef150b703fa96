"""Builder for CStorVolume API objects."""

from __future__ import annotations

from typing import Mapping

from .apis import BuildError, CStorVolume, parse_quantity

_PREFIX = "failed to build cstorvolume object"


class Builder:
    """Builds a CStorVolume, collecting errors until ``build`` is called."""

    def __init__(self) -> None:
        self._volume = CStorVolume()
        self._errors: list[str] = []

    def _fail(self, reason: str) -> "Builder":
        self._errors.append(f"{_PREFIX}: {reason}")
        return self

    def with_name(self, name: str) -> "Builder":
        if not name:
            return self._fail("missing name")
        self._volume.metadata.name = name
        return self

    def with_generate_name(self, name: str) -> "Builder":
        if not name:
            return self._fail("missing generateName")
        self._volume.metadata.generate_name = name
        return self

    def with_namespace(self, namespace: str) -> "Builder":
        if not namespace:
            return self._fail("missing namespace")
        self._volume.metadata.namespace = namespace
        return self

    def with_annotations(self, annotations: Mapping[str, str]) -> "Builder":
        """Merge the given annotations into the existing ones."""
        if not annotations:
            return self._fail("missing annotations")
        if self._volume.metadata.annotations is None:
            return self.with_annotations_new(annotations)
        self._volume.metadata.annotations.update(annotations)
        return self

    def with_annotations_new(self, annotations: Mapping[str, str]) -> "Builder":
        """Replace existing annotations with a copy of the given ones."""
        if not annotations:
            return self._fail("no new annotations")
        self._volume.metadata.annotations = dict(annotations)
        return self

    def with_labels(self, labels: Mapping[str, str]) -> "Builder":
        """Merge the given labels into the existing ones."""
        if not labels:
            return self._fail("missing labels")
        if self._volume.metadata.labels is None:
            return self.with_labels_new(labels)
        self._volume.metadata.labels.update(labels)
        return self

    def with_labels_new(self, labels: Mapping[str, str]) -> "Builder":
        """Replace existing labels with a copy of the given ones."""
        if not labels:
            return self._fail("no new labels")
        self._volume.metadata.labels = dict(labels)
        return self

    def with_target_ip(self, target_ip: str) -> "Builder":
        if not target_ip:
            return self._fail("missing targetip")
        self._volume.spec.target_ip = target_ip
        return self

    def with_capacity(self, capacity: str) -> "Builder":
        if not capacity:
            return self._fail("missing capacity")
        try:
            self._volume.spec.capacity = parse_quantity(capacity)
        except ValueError as exc:
            return self._fail(f"failed to parse capacity {{{capacity}}}: {exc}")
        return self

    def with_iqn(self, iqn: str) -> "Builder":
        if not iqn:
            return self._fail("missing iqn")
        self._volume.spec.iqn = iqn
        return self

    def with_target_port(self, target_port: str) -> "Builder":
        if not target_port:
            return self._fail("missing targetport")
        self._volume.spec.target_port = target_port
        return self

    def with_target_portal(self, target_portal: str) -> "Builder":
        if not target_portal:
            return self._fail("missing targetportal")
        self._volume.spec.target_portal = target_portal
        return self

    def with_replication_factor(self, replication_factor: int) -> "Builder":
        if replication_factor <= 0:
            return self._fail(f"invalid replicationfactor {{{replication_factor}}}")
        self._volume.spec.replication_factor = replication_factor
        return self

    def with_consistency_factor(self, consistency_factor: int) -> "Builder":
        if consistency_factor <= 0:
            return self._fail(f"invalid consistencyfactor {{{consistency_factor}}}")
        self._volume.spec.consistency_factor = consistency_factor
        return self

    def build(self) -> CStorVolume:
        """Return the volume, or raise BuildError if any setter failed."""
        if self._errors:
            raise BuildError(self._errors)
        return self._volume