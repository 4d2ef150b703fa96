"""Builders, wrappers and list filtering for CStorVolumeAttachment objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional

from .apis import BuildError, CStorVolumeAttachment

_PREFIX = "failed to build csi volume object"


class Builder:
    """Builds a CStorVolumeAttachment, collecting errors until ``build``."""

    def __init__(self, attachment: Optional[CStorVolumeAttachment] = None) -> None:
        self._attachment = attachment if attachment is not None else CStorVolumeAttachment()
        self._errors: list[str] = []

    def _fail(self, reason: str) -> "Builder":
        self._errors.append(f"{_PREFIX}: {reason}")
        return self

    def with_namespace(self, namespace: str) -> "Builder":
        if not namespace:
            return self._fail("missing namespace")
        self._attachment.metadata.namespace = namespace
        return self

    def with_name(self, name: str) -> "Builder":
        if not name:
            return self._fail("missing name")
        self._attachment.metadata.name = name
        return self

    def with_vol_name(self, vol_name: str) -> "Builder":
        if not vol_name:
            return self._fail("missing volume name")
        self._attachment.spec.volume.name = vol_name
        return self

    def with_access_type(self, access_type: str) -> "Builder":
        """Set the access type, either ``block`` or ``mount``."""
        if not access_type:
            return self._fail("missing accessType")
        self._attachment.spec.volume.access_type = access_type
        return self

    def with_capacity(self, capacity: str) -> "Builder":
        if not capacity:
            return self._fail("missing capacity")
        self._attachment.spec.volume.capacity = capacity
        return self

    def with_fs_type(self, fs_type: str) -> "Builder":
        """Set the filesystem type; it is required for mount access."""
        if not fs_type and self._attachment.spec.volume.access_type == "mount":
            return self._fail("missing fstype")
        self._attachment.spec.volume.fs_type = fs_type
        return self

    def with_staging_target_path(self, staging_target_path: str) -> "Builder":
        if not staging_target_path:
            return self._fail("missing mountPath")
        self._attachment.spec.volume.staging_target_path = staging_target_path
        return self

    def with_mount_options(self, mount_options: Iterable[str]) -> "Builder":
        """Append mount options to the existing ones; empty input is ignored."""
        options = list(mount_options or ())
        if not options:
            return self
        volume = self._attachment.spec.volume
        if volume.mount_options is None:
            return self.with_mount_options_new(options)
        volume.mount_options.extend(options)
        return self

    def with_mount_options_new(self, mount_options: Iterable[str]) -> "Builder":
        """Replace the mount options; empty input is ignored."""
        options = list(mount_options or ())
        if not options:
            return self
        self._attachment.spec.volume.mount_options = options
        return self

    def with_device_path(self, device_path: str) -> "Builder":
        if not device_path:
            return self._fail("missing devicePath")
        self._attachment.spec.volume.device_path = device_path
        return self

    def with_owner_node_id(self, owner_node_id: str) -> "Builder":
        if not owner_node_id:
            return self._fail("missing ownerNodeID")
        self._attachment.spec.volume.owner_node_id = owner_node_id
        return self

    def with_iqn(self, iqn: str) -> "Builder":
        if not iqn:
            return self._fail("missing IQN")
        self._attachment.spec.iscsi.iqn = iqn
        return self

    def with_target_portal(self, target_portal: str) -> "Builder":
        if not target_portal:
            return self._fail("missing targetPortal")
        self._attachment.spec.iscsi.target_portal = target_portal
        return self

    def with_iscsi_interface(self, iscsi_interface: str) -> "Builder":
        if not iscsi_interface:
            return self._fail("missing iscsiInterface")
        self._attachment.spec.iscsi.iscsi_interface = iscsi_interface
        return self

    def with_lun(self, lun: str) -> "Builder":
        if not lun:
            return self._fail("missing lun")
        self._attachment.spec.iscsi.lun = lun
        return self

    def with_read_only(self, read_only: bool) -> "Builder":
        self._attachment.spec.volume.read_only = read_only
        return self

    def with_labels(self, labels: Mapping[str, str]) -> "Builder":
        """Merge the given labels into the existing ones."""
        if not labels:
            return self._fail("missing labels")
        if self._attachment.metadata.labels is None:
            return self.with_labels_new(labels)
        self._attachment.metadata.labels.update(labels)
        return self

    def with_labels_new(self, labels: Mapping[str, str]) -> "Builder":
        """Replace existing labels with a copy of the given ones."""
        if not labels:
            return self._fail("no new labels")
        self._attachment.metadata.labels = dict(labels)
        return self

    def build(self) -> CStorVolumeAttachment:
        """Return the attachment, or raise BuildError if any setter failed."""
        if self._errors:
            raise BuildError(self._errors)
        return self._attachment


def build_from(volume: Optional[CStorVolumeAttachment]) -> Builder:
    """Return a builder that edits the given attachment in place."""
    if volume is None:
        builder = Builder()
        builder._errors.append("failed to build volume object: nil volume")
        return builder
    return Builder(volume)


@dataclass
class Attachment:
    """Wrapper over a CStorVolumeAttachment API object."""

    obj: Optional[CStorVolumeAttachment]

    def has_label(self, key: str, value: str) -> bool:
        """Return True if the label ``key`` is present with ``value``."""
        if self.obj is None:
            return False
        labels = self.obj.metadata.labels or {}
        return key in labels and labels[key] == value

    def is_nil(self) -> bool:
        """Return True if no API object is wrapped."""
        return self.obj is None


Predicate = Callable[[Attachment], bool]


def has_labels(key_value_pairs: Mapping[str, str]) -> Predicate:
    """Return a predicate that keeps attachments carrying all given labels."""
    pairs = dict(key_value_pairs)
    return lambda attachment: all(
        attachment.has_label(key, value) for key, value in pairs.items()
    )


def has_label(key: str, value: str) -> Predicate:
    """Return a predicate that keeps attachments carrying the given label."""
    return lambda attachment: attachment.has_label(key, value)


def is_nil() -> Predicate:
    """Return a predicate that keeps wrappers without an API object."""
    return lambda attachment: attachment.is_nil()


class ListBuilder:
    """Collects attachments and filters them by predicates."""

    def __init__(self) -> None:
        self._items: list[CStorVolumeAttachment] = []
        self._filters: list[Predicate] = []

    def with_filter(self, *args: Predicate) -> "ListBuilder":
        """Add predicates that every listed attachment must satisfy."""
        self._filters.extend(args)
        return self

    def list(self) -> list[CStorVolumeAttachment]:
        """Return the attachments that pass every filter."""
        return [
            item
            for item in self._items
            if all(check(Attachment(item)) for check in self._filters)
        ]


def list_builder_from(items: Optional[Iterable[CStorVolumeAttachment]]) -> ListBuilder:
    """Return a list builder holding the given attachments."""
    builder = ListBuilder()
    if items:
        builder._items.extend(items)
    return builder