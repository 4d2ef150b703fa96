"""Controller-side helpers: topology node selection, snapshot ids and volume context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from .validation import CSIError, StatusCode

CAS_TYPE_CONTEXT_KEY = "openebs.io/cas-type"
SNAPSHOT_SEPARATOR = "@"


@dataclass
class Node:
    """A cluster node as seen by topology matching."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class TopologyRequirement:
    """Accessibility requirements of a create-volume request.

    Each entry of ``preferred`` and ``requisite`` is a mapping of topology
    segment keys to the values a node must carry.
    """

    preferred: list[dict[str, str]] = field(default_factory=list)
    requisite: list[dict[str, str]] = field(default_factory=list)


def _matches(node: Node, segments: Mapping[str, str]) -> bool:
    labels = node.labels or {}
    return all(labels.get(key, "") == value for key, value in segments.items())


def select_node(requirement: TopologyRequirement, nodes: Iterable[Node]) -> str:
    """Return the name of the first node matching a preferred topology.

    Preferred topologies are tried in order; for each one the nodes are
    scanned in order. An empty string is returned when nothing matches.
    """
    candidates = list(nodes)
    for segments in requirement.preferred:
        for node in candidates:
            if _matches(node, segments):
                return node.name
    return ""


def accessibility_node(
    requirement: Optional[TopologyRequirement], nodes: Iterable[Node]
) -> str:
    """Return the node that satisfies the requirement; raise CSIError otherwise."""
    if requirement is None:
        raise CSIError(StatusCode.INTERNAL, "accessibility_requirements not found")
    node = select_node(requirement, nodes)
    if not node:
        raise CSIError(StatusCode.INTERNAL, "can not find any node")
    return node


def snapshot_id(volume_id: str, name: str) -> str:
    """Return the snapshot id that joins a volume id and a snapshot name."""
    return f"{volume_id}{SNAPSHOT_SEPARATOR}{name}"


def split_snapshot_id(snapshot_id: str) -> tuple[str, str]:
    """Split a snapshot id into volume id and snapshot name.

    Raise CSIError when the id does not hold exactly one separator.
    """
    parts = snapshot_id.split(SNAPSHOT_SEPARATOR)
    if len(parts) != 2:
        raise CSIError(
            StatusCode.INTERNAL,
            f"failed to handle DeleteSnapshotRequest for {snapshot_id}, "
            "{Manual intervention required}",
        )
    volume_id, name = parts
    return volume_id, name


def volume_context(parameters: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Return the volume context published with a newly created volume."""
    return {CAS_TYPE_CONTEXT_KEY: (parameters or {}).get("cas-type", "")}