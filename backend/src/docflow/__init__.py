"""DocFlow - MT transmittal lifecycle and branch-scoped access control."""

__version__ = "0.1.0"
