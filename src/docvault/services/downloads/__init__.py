"""Download credential issuance and role access resolution."""

from docvault.services.downloads.access import (
    DEFAULT_RESOLVERS,
    DefaultAllowResolver,
    DocumentRolesResolver,
    FolderRolesResolver,
    resolve_access,
)
from docvault.services.downloads.service import (
    DownloadCredential,
    DownloadService,
    NotFoundOrForbiddenError,
)

__all__ = [
    "DEFAULT_RESOLVERS",
    "DefaultAllowResolver",
    "DocumentRolesResolver",
    "DownloadCredential",
    "DownloadService",
    "FolderRolesResolver",
    "NotFoundOrForbiddenError",
    "resolve_access",
]
