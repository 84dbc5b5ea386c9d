"""Tenant-guarded single-key file operations."""

from docvault.services.files.service import DocumentDeletion, FileService

__all__ = ["DocumentDeletion", "FileService"]
