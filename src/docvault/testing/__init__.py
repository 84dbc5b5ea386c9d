"""DocVault testing utilities."""

from docvault.testing.recording_store import RecordingObjectStore

__all__ = ["RecordingObjectStore"]
