"""Role-based document access as an ordered resolver chain.

Each resolver returns True/False for a definite answer or None to defer to
the next one. The first definite answer wins:

1. Document allowed roles (non-empty list)
2. Folder allowed roles (non-empty list)
3. Default allow
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from docvault.persistence.records import DocumentRecord


class AccessResolver(Protocol):
    """One link of the role access chain."""

    def resolve(self, document: DocumentRecord, user_roles: Sequence[str]) -> bool | None: ...


def _any_role(user_roles: Iterable[str], allowed_roles: Iterable[str]) -> bool:
    allowed = set(allowed_roles)
    return any(role in allowed for role in user_roles)


class DocumentRolesResolver:
    """Decides when the document carries its own allow-list."""

    def resolve(self, document: DocumentRecord, user_roles: Sequence[str]) -> bool | None:
        if not document.allowed_roles:
            return None
        return _any_role(user_roles, document.allowed_roles)


class FolderRolesResolver:
    """Decides when the document's folder carries an allow-list."""

    def resolve(self, document: DocumentRecord, user_roles: Sequence[str]) -> bool | None:
        folder = document.folder
        if folder is None or not folder.allowed_roles:
            return None
        return _any_role(user_roles, folder.allowed_roles)


class DefaultAllowResolver:
    """Terminal resolver: no restriction configured means access."""

    def resolve(self, document: DocumentRecord, user_roles: Sequence[str]) -> bool | None:
        return True


DEFAULT_RESOLVERS: tuple[AccessResolver, ...] = (
    DocumentRolesResolver(),
    FolderRolesResolver(),
    DefaultAllowResolver(),
)


def resolve_access(
    document: DocumentRecord,
    user_roles: Sequence[str] | None,
    resolvers: Sequence[AccessResolver] = DEFAULT_RESOLVERS,
) -> bool:
    """Run the chain; deny if no resolver gives a definite answer."""
    roles = list(user_roles or ())
    for resolver in resolvers:
        decision = resolver.resolve(document, roles)
        if decision is not None:
            return decision
    return False
