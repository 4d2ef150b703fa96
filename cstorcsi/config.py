"""Runtime configuration of the CSI driver."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Config:
    """Parameters that come from the command line or the environment."""

    driver_name: str = ""
    """Name registered with the CSI system."""

    plugin_type: str = ""
    """Whether the driver runs as the node or the controller plugin."""

    version: str = ""
    """Version of the controller or node driver."""

    endpoint: str = ""
    """Unix socket on which the plugin listens for requests."""

    node_id: str = ""
    """Identifies the node that runs this driver."""

    rest_url: str = ""
    """URL of the REST server used for internal and day-2 operations."""


def default() -> Config:
    """Return a fresh, empty configuration."""
    return Config()