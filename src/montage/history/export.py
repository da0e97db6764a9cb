"""Bulk payload of recorded changes for an upload client."""

from __future__ import annotations

from typing import Any

from montage.db.store import ChangeLogStore
from montage.errors import InvalidInputError


def export_changes(
    store: ChangeLogStore, repo_id: int, since: str | None = None
) -> dict[str, Any]:
    """Build ``{"repository", "since", "changes": [...]}`` for *repo_id*.

    Changes are ordered by creation time, oldest first, and carry their
    element sequence decoded, so a corrupt row fails the export instead of
    being uploaded.

    Raises:
        InvalidInputError: If *repo_id* is not registered.
        CorruptHistoryError: If a stored change cannot be decoded.
    """
    repo = store.get_repository(repo_id)
    if repo is None:
        raise InvalidInputError(f"Unknown repository id {repo_id}")

    paths = {d.id: d.relative_path for d in store.list_documents(repo_id)}
    changes = []
    for change in store.changes_since(repo_id, since):
        changes.append(
            {
                "id": change.id,
                "document_id": change.document_id,
                "event_id": change.event_id,
                "path": paths.get(change.document_id),
                "created_at": change.created_at,
                "elements": [e.to_dict() for e in change.elements],
            }
        )
    return {"repository": repo.absolute_path, "since": since, "changes": changes}
