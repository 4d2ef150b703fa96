"""Request validation, capabilities and volume-state helpers for the driver."""

from __future__ import annotations

import os
import stat
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable, Iterator, Mapping, Optional, Sequence

from .apis import (
    CStorVolume,
    CStorVolumeAttachmentStatus,
    CStorVolumeConfig,
    CStorVolumePhase,
)

FS_TYPE_EXT2 = "ext2"
FS_TYPE_EXT3 = "ext3"
FS_TYPE_EXT4 = "ext4"
FS_TYPE_XFS = "xfs"
DEFAULT_FS_TYPE = FS_TYPE_EXT4

VALID_FS_TYPES: tuple[str, ...] = (FS_TYPE_EXT4, FS_TYPE_XFS)
"""Filesystems supported for provisioning and resize operations."""

MAX_RETRY_COUNT = 10

DEFAULT_ISCSI_LUN = 0
DEFAULT_ISCSI_INTERFACE = "default"

TOPOLOGY_NODE_KEY = "topology.cstor.openebs.io/nodeName"
PVC_NAME_KEY = "csi.storage.k8s.io/pvc/name"
PVC_NAMESPACE_KEY = "csi.storage.k8s.io/pvc/namespace"
PV_NAME_KEY = "csi.storage.k8s.io/pv/name"

RESOURCE_STORAGE = "storage"


class StatusCode(Enum):
    """Status codes carried by errors returned to CSI callers."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    @property
    def label(self) -> str:
        """Return the conventional CamelCase name of the code."""
        if self is StatusCode.OK:
            return "OK"
        return "".join(part.capitalize() for part in self.name.split("_"))


class CSIError(Exception):
    """An error carrying a status code for the CSI caller."""

    def __init__(self, code: StatusCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"rpc error: code = {self.code.label} desc = {self.message}"


class AccessMode(IntEnum):
    """Volume access modes defined by the CSI specification."""

    UNKNOWN = 0
    SINGLE_NODE_WRITER = 1
    SINGLE_NODE_READER_ONLY = 2
    MULTI_NODE_READER_ONLY = 3
    MULTI_NODE_SINGLE_WRITER = 4
    MULTI_NODE_MULTI_WRITER = 5


class ControllerCapability(IntEnum):
    """Controller service RPC capabilities defined by the CSI specification."""

    UNKNOWN = 0
    CREATE_DELETE_VOLUME = 1
    PUBLISH_UNPUBLISH_VOLUME = 2
    LIST_VOLUMES = 3
    GET_CAPACITY = 4
    CREATE_DELETE_SNAPSHOT = 5
    LIST_SNAPSHOTS = 6
    CLONE_VOLUME = 7
    PUBLISH_READONLY = 8
    EXPAND_VOLUME = 9
    LIST_VOLUMES_PUBLISHED_NODES = 10
    VOLUME_CONDITION = 11
    GET_VOLUME = 12


SUPPORTED_ACCESS_MODES: tuple[AccessMode, ...] = (AccessMode.SINGLE_NODE_WRITER,)


@dataclass
class VolumeCapability:
    """How a volume is to be accessed: as a block device or a mounted filesystem."""

    access_mode: Optional[AccessMode] = None
    block: bool = False
    fs_type: str = ""
    mount_flags: list[str] = field(default_factory=list)

    @property
    def is_mount(self) -> bool:
        """Return True when the volume is consumed through a filesystem mount."""
        return not self.block


@dataclass
class CreateVolumeRequest:
    """The parts of a create-volume request that the driver looks at."""

    name: str = ""
    required_bytes: int = 0
    parameters: dict[str, str] = field(default_factory=dict)
    volume_capabilities: Optional[list[VolumeCapability]] = None
    snapshot_id: Optional[str] = None


@dataclass(frozen=True)
class VolumeCondition:
    """Health of a volume as reported to the container orchestrator."""

    abnormal: bool
    message: str


class TransitionList:
    """Thread-safe record of volumes that have an operation in progress."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._volumes: dict[str, CStorVolumeAttachmentStatus] = {}

    def add(self, volume_id: str, status: CStorVolumeAttachmentStatus) -> None:
        """Mark a volume busy; raise CSIError if it already is."""
        with self._lock:
            if volume_id in self._volumes:
                current = self._volumes[volume_id]
                raise CSIError(
                    StatusCode.INTERNAL,
                    f"Volume {volume_id} Busy, status: {current.value}",
                )
            self._volumes[volume_id] = status

    def remove(self, volume_id: str) -> None:
        """Forget a volume; nothing happens if it is not present."""
        with self._lock:
            self._volumes.pop(volume_id, None)

    def set(self, volume_id: str, status: CStorVolumeAttachmentStatus) -> None:
        """Record a new status for a volume."""
        with self._lock:
            self._volumes[volume_id] = status

    @contextmanager
    def track(
        self, volume_id: str, status: CStorVolumeAttachmentStatus
    ) -> Iterator[None]:
        """Hold a volume busy for the duration of the ``with`` block."""
        self.add(volume_id, status)
        try:
            yield
        finally:
            self.remove(volume_id)

    def __contains__(self, volume_id: object) -> bool:
        with self._lock:
            return volume_id in self._volumes

    def __getitem__(self, volume_id: str) -> CStorVolumeAttachmentStatus:
        with self._lock:
            return self._volumes[volume_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._volumes)


def controller_capabilities() -> list[ControllerCapability]:
    """Return the capabilities served by this controller."""
    return [
        ControllerCapability.CREATE_DELETE_VOLUME,
        ControllerCapability.EXPAND_VOLUME,
        ControllerCapability.CREATE_DELETE_SNAPSHOT,
        ControllerCapability.CLONE_VOLUME,
        ControllerCapability.GET_VOLUME,
        ControllerCapability.VOLUME_CONDITION,
    ]


def is_supported_access_mode(mode: Optional[AccessMode]) -> bool:
    """Return True if the access mode is supported by the driver."""
    return mode in SUPPORTED_ACCESS_MODES


def validate_capabilities(capabilities: Iterable[VolumeCapability]) -> bool:
    """Return True if every capability asks for a supported access mode."""
    return all(is_supported_access_mode(cap.access_mode) for cap in capabilities)


def validate_request(
    capability: ControllerCapability,
    supported: Optional[Sequence[ControllerCapability]] = None,
) -> None:
    """Raise CSIError unless the capability is among the supported ones."""
    if supported is None:
        supported = controller_capabilities()
    if capability not in supported:
        raise CSIError(
            StatusCode.INVALID_ARGUMENT,
            f"failed to validate request: {{{capability.name}}} is not supported",
        )


def _invalid(message: str) -> CSIError:
    return CSIError(StatusCode.INVALID_ARGUMENT, message)


def validate_create_volume_request(
    request: CreateVolumeRequest,
    supported: Optional[Sequence[ControllerCapability]] = None,
) -> None:
    """Raise CSIError if the create-volume request cannot be served."""
    try:
        validate_request(ControllerCapability.CREATE_DELETE_VOLUME, supported)
    except CSIError as exc:
        raise CSIError(
            exc.code,
            f"failed to handle create volume request for {{{request.name}}}: "
            f"{exc.message}",
        ) from exc

    prefix = "failed to handle create volume request"
    if not request.name:
        raise _invalid(f"{prefix}: missing volume name")

    parameters: Mapping[str, str] = request.parameters or {}
    for key in ("cstorPoolCluster", "replicaCount", "cas-type"):
        if not parameters.get(key):
            raise _invalid(f"{prefix}: missing storage class parameter {key}")

    if request.volume_capabilities is None:
        raise _invalid(f"{prefix}: missing volume capabilities")

    for capability in request.volume_capabilities:
        if capability.is_mount and not is_valid_fs_type(capability.fs_type):
            raise _invalid(
                f"{prefix}, invalid fsType : {parameters.get('fsType', '')}"
            )
        mode = capability.access_mode
        if mode is not None and mode != AccessMode.SINGLE_NODE_WRITER:
            raise _invalid(
                "only SINGLE_NODE_WRITER supported, unsupported access mode "
                f"requested: {mode.name}"
            )


def validate_delete_volume_request(
    volume_id: str,
    supported: Optional[Sequence[ControllerCapability]] = None,
) -> None:
    """Raise CSIError if the delete-volume request cannot be served."""
    if not volume_id:
        raise _invalid("failed to handle delete volume request: missing volume id")
    try:
        validate_request(ControllerCapability.CREATE_DELETE_VOLUME, supported)
    except CSIError as exc:
        raise CSIError(
            exc.code,
            f"failed to handle delete volume request for {{{volume_id}}}: "
            f"{exc.message}",
        ) from exc


def is_valid_fs_type(fs_type: str) -> bool:
    """Return True if the filesystem type can be provisioned."""
    return fs_type in VALID_FS_TYPES


def is_block_device(path: str | os.PathLike[str]) -> bool:
    """Return True if the path is a block device; raise OSError if absent."""
    return stat.S_ISBLK(os.stat(path).st_mode)


_CONDITION_MESSAGES = {
    CStorVolumePhase.HEALTHY.value: "Volume status is Healthy",
    CStorVolumePhase.INIT.value: (
        "Volume is getting initialized, quorum no. of replicas are not yet "
        "connected to the target"
    ),
    CStorVolumePhase.OFFLINE.value: (
        "Volume status is offline, No replicas are connected to target"
    ),
    CStorVolumePhase.DEGRADED.value: (
        "Volume status is degraded, quorum no. of replicas are not in healthy state"
    ),
}


def volume_condition(volume: CStorVolume) -> VolumeCondition:
    """Describe the health of a volume from its reported phase."""
    phase = str(getattr(volume.status.phase, "value", volume.status.phase))
    return VolumeCondition(
        abnormal=phase != CStorVolumePhase.HEALTHY.value,
        message=_CONDITION_MESSAGES.get(phase, "Volume status is unknown"),
    )


def volume_capacity(cvc: CStorVolumeConfig) -> str:
    """Return the storage capacity of a volume config as text."""
    capacity = (cvc.spec.capacity or {}).get(RESOURCE_STORAGE)
    return "0" if capacity is None else str(capacity)