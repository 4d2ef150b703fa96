"""Resource builders, request validation and controller helpers for a cStor CSI driver."""

__version__ = "0.1.0"

__all__ = [
    "apis",
    "config",
    "controller",
    "validation",
    "volume",
    "volumeattachment",
    "volumeconfig",
]