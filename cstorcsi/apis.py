"""API object types for cStor volumes, attachments and volume configs."""

from __future__ import annotations

import copy
import dataclasses
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Any, Callable, Iterable, Optional


class BuildError(ValueError):
    """Raised by a builder whose setters recorded one or more errors."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors = list(errors)
        super().__init__("[" + " ".join(self.errors) + "]")


# ---------------------------------------------------------------- quantities

_BINARY_SUFFIXES = {
    "Ki": Fraction(2**10),
    "Mi": Fraction(2**20),
    "Gi": Fraction(2**30),
    "Ti": Fraction(2**40),
    "Pi": Fraction(2**50),
    "Ei": Fraction(2**60),
}

_DECIMAL_SUFFIXES = {
    "n": Fraction(1, 10**9),
    "u": Fraction(1, 10**6),
    "m": Fraction(1, 10**3),
    "": Fraction(1),
    "k": Fraction(10**3),
    "M": Fraction(10**6),
    "G": Fraction(10**9),
    "T": Fraction(10**12),
    "P": Fraction(10**15),
    "E": Fraction(10**18),
}

_NUMBER = re.compile(r"([+-]?(?:\d+\.?\d*|\.\d+))(.*)", re.DOTALL)
_EXPONENT = re.compile(r"[eE]([+-]?\d+)")
_FORMAT_ERROR = (
    "quantities must match the regular expression "
    "'^([+-]?[0-9.]+)([eEinumkKMGTP]*[-+]?[0-9]*)$'"
)


def _round_away_from_zero(amount: Fraction) -> int:
    return math.ceil(amount) if amount >= 0 else math.floor(amount)


@dataclass(frozen=True)
class Quantity:
    """An exact resource amount such as ``5G`` or ``500m``."""

    amount: Fraction
    text: str = field(default="", compare=False)

    def value(self) -> int:
        """Return the amount rounded to an integer away from zero."""
        return _round_away_from_zero(self.amount)

    def milli_value(self) -> int:
        """Return the amount in thousandths, rounded away from zero."""
        return _round_away_from_zero(self.amount * 1000)

    def __str__(self) -> str:
        return self.text or str(self.value())


def parse_quantity(text: str) -> Quantity:
    """Parse a resource quantity; raise ValueError when it is malformed."""
    match = _NUMBER.fullmatch(text)
    if match is None:
        raise ValueError(_FORMAT_ERROR)
    number, suffix = match.groups()
    if suffix in _BINARY_SUFFIXES:
        multiplier = _BINARY_SUFFIXES[suffix]
    elif suffix in _DECIMAL_SUFFIXES:
        multiplier = _DECIMAL_SUFFIXES[suffix]
    else:
        exponent = _EXPONENT.fullmatch(suffix)
        if exponent is None:
            raise ValueError("unable to parse quantity's suffix")
        multiplier = Fraction(10) ** int(exponent.group(1))
    return Quantity(Fraction(number) * multiplier, text)


# -------------------------------------------------------------- object meta


@dataclass
class ObjectMeta:
    """Identity and bookkeeping fields shared by all API objects."""

    name: str = ""
    generate_name: str = ""
    namespace: str = ""
    labels: Optional[dict[str, str]] = None
    annotations: Optional[dict[str, str]] = None
    finalizers: Optional[list[str]] = None
    deletion_timestamp: Optional[str] = None


# ------------------------------------------------------------- cStor volume


class CStorVolumePhase(str, Enum):
    """Phases reported by a cStor volume target."""

    INIT = "Init"
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    OFFLINE = "Offline"
    ERROR = "Error"
    INVALID = "Invalid"


@dataclass
class CStorVolumeSpec:
    capacity: Optional[Quantity] = None
    target_ip: str = ""
    target_port: str = ""
    iqn: str = ""
    target_portal: str = ""
    replication_factor: int = 0
    consistency_factor: int = 0


@dataclass
class CStorVolumeStatus:
    phase: str = ""
    capacity: Optional[Quantity] = None


@dataclass
class CStorVolume:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: CStorVolumeSpec = field(default_factory=CStorVolumeSpec)
    status: CStorVolumeStatus = field(default_factory=CStorVolumeStatus)


# --------------------------------------------------- cStor volume attachment


class CStorVolumeAttachmentStatus(str, Enum):
    """States a volume passes through while it is staged on a node."""

    UNINITIALIZED = ""
    MOUNT_UNDER_PROGRESS = "MountUnderProgress"
    MOUNTED = "Mounted"
    UNMOUNT_UNDER_PROGRESS = "UnmountUnderProgress"
    UNMOUNTED = "Unmounted"
    WAITING_FOR_CVC_BOUND = "WaitingForCVCBound"
    RESIZE_IN_PROGRESS = "ResizeInProgress"


@dataclass
class VolumeInfo:
    name: str = ""
    capacity: str = ""
    owner_node_id: str = ""
    fs_type: str = ""
    read_only: bool = False
    mount_options: Optional[list[str]] = None
    staging_target_path: str = ""
    target_path: str = ""
    device_path: str = ""
    access_type: str = ""


@dataclass
class ISCSIInfo:
    iqn: str = ""
    target_portal: str = ""
    iscsi_interface: str = ""
    lun: str = ""


@dataclass
class CStorVolumeAttachmentSpec:
    volume: VolumeInfo = field(default_factory=VolumeInfo)
    iscsi: ISCSIInfo = field(default_factory=ISCSIInfo)


@dataclass
class CStorVolumeAttachment:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: CStorVolumeAttachmentSpec = field(default_factory=CStorVolumeAttachmentSpec)


# ------------------------------------------------------ cStor volume config


@dataclass
class CStorVolumeConfigCondition:
    type: str = ""
    status: str = ""
    reason: str = ""
    message: str = ""


@dataclass
class CStorVolumeConfigProvision:
    capacity: Optional[dict[str, Quantity]] = None
    replica_count: int = 0


@dataclass
class CStorVolumeConfigSpec:
    capacity: Optional[dict[str, Quantity]] = None
    cstor_volume_source: str = ""
    provision: CStorVolumeConfigProvision = field(
        default_factory=CStorVolumeConfigProvision
    )


@dataclass
class CStorVolumeConfigPublish:
    node_id: str = ""


@dataclass
class CStorVolumeConfigStatus:
    phase: str = ""
    conditions: Optional[list[CStorVolumeConfigCondition]] = None


@dataclass
class VersionDetails:
    desired: str = ""
    current: str = ""
    dependents_upgraded: bool = False


@dataclass
class CStorVolumeConfig:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: CStorVolumeConfigSpec = field(default_factory=CStorVolumeConfigSpec)
    publish: CStorVolumeConfigPublish = field(default_factory=CStorVolumeConfigPublish)
    status: CStorVolumeConfigStatus = field(default_factory=CStorVolumeConfigStatus)
    version_details: VersionDetails = field(default_factory=VersionDetails)


# ------------------------------------------------------------ serialisation


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_dict(obj: Any) -> Any:
    """Turn an API object into plain JSON-ready data with camelCase keys.

    Fields that are None are left out.
    """
    if isinstance(obj, Quantity):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            _camel(f.name): to_dict(value)
            for f in dataclasses.fields(obj)
            if (value := getattr(obj, f.name)) is not None
        }
    if isinstance(obj, dict):
        return {str(key): to_dict(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_dict(item) for item in obj]
    return obj


# ----------------------------------------------------- volume list building


@dataclass
class Volume:
    """Wrapper over a CStorVolume API object."""

    obj: CStorVolume

    def is_healthy(self) -> bool:
        """Return True if the volume reports the Healthy phase."""
        return self.obj.status.phase == CStorVolumePhase.HEALTHY


VolumePredicate = Callable[[Volume], bool]


def is_healthy() -> VolumePredicate:
    """Return a predicate that keeps healthy volumes."""
    return lambda volume: volume.is_healthy()


class VolumeListBuilder:
    """Collects volumes and filters them by predicates."""

    def __init__(self) -> None:
        self._items: list[Volume] = []
        self._filters: list[VolumePredicate] = []

    def with_api_list(
        self, items: Optional[Iterable[CStorVolume]]
    ) -> "VolumeListBuilder":
        """Add a copy of each given API object to the list."""
        if items is not None:
            self._items.extend(Volume(copy.copy(item)) for item in items)
        return self

    def with_filter(self, *args: VolumePredicate) -> "VolumeListBuilder":
        """Add predicates that every listed volume must satisfy."""
        self._filters.extend(args)
        return self

    def list(self) -> list[Volume]:
        """Return the volumes that pass every filter."""
        return [
            volume
            for volume in self._items
            if all(check(volume) for check in self._filters)
        ]