"""Change log store: every montage database operation behind one interface.

Writes run in their own short transaction (``with conn:``), so a failure
or an interrupt mid-write rolls back and leaves no partial rows. Reads
return None or an empty list when nothing matches. Any sqlite failure,
read or write, surfaces as StorageError.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from montage.db.models import Change, Document, Event, RepoStatus, Repository
from montage.errors import StorageError
from montage.history.elements import ChangeElement, encode_elements
from montage.history.snapshot import current_text

_CHANGE_COLUMNS = "c.id, c.document_id, c.event_id, c.change_elements, c.created_at"


class ChangeLogStore:
    """Data access layer for repositories, documents, events and changes.

    Wraps an open sqlite3.Connection with the schema initialised (see
    montage.db.schema.initialize). The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        try:
            with self._conn:
                yield self._conn
        except sqlite3.Error as exc:
            raise StorageError(f"Could not {action}: {exc}") from exc

    def _fetch_one(self, action: str, sql: str, params: tuple | list = ()) -> sqlite3.Row | None:
        try:
            return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not {action}: {exc}") from exc

    def _fetch_all(self, action: str, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not {action}: {exc}") from exc

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def add_repository(
        self, absolute_path: str, status: RepoStatus = RepoStatus.STARTING
    ) -> tuple[int, bool]:
        """Register a watched root. Returns (id, created).

        Idempotent: an already-registered path returns its id with
        ``created=False``.
        """
        existing = self.get_repository_by_path(absolute_path)
        if existing is not None:
            return existing.id, False
        with self._transaction("add repository") as conn:
            cur = conn.execute(
                "INSERT INTO repositories (absolute_path, status) VALUES (?, ?)",
                (absolute_path, int(status)),
            )
        return cur.lastrowid, True

    def get_repository(self, repo_id: int) -> Repository | None:
        row = self._fetch_one(
            "read repository", "SELECT * FROM repositories WHERE id = ?", (repo_id,)
        )
        return _row_to_repository(row) if row else None

    def get_repository_by_path(self, absolute_path: str) -> Repository | None:
        row = self._fetch_one(
            "read repository",
            "SELECT * FROM repositories WHERE absolute_path = ?",
            (absolute_path,),
        )
        return _row_to_repository(row) if row else None

    def list_repositories(self) -> list[Repository]:
        """Return all registered repositories (oldest first)."""
        rows = self._fetch_all("list repositories", "SELECT * FROM repositories ORDER BY id")
        return [_row_to_repository(r) for r in rows]

    def set_repository_status(self, repo_id: int, status: RepoStatus) -> None:
        with self._transaction("update repository status") as conn:
            conn.execute(
                "UPDATE repositories SET status = ? WHERE id = ?", (int(status), repo_id)
            )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def start_event(self, repo_id: int, parent_event_id: int | None) -> int:
        """Create an event and point the repository's current event at it.

        Both writes share one transaction, so the pointer never references
        an event that was not committed.
        """
        with self._transaction("start event") as conn:
            cur = conn.execute(
                "INSERT INTO events (repository_id, parent_event) VALUES (?, ?)",
                (repo_id, parent_event_id),
            )
            event_id = cur.lastrowid
            updated = conn.execute(
                "UPDATE repositories SET current_event = ? WHERE id = ?",
                (event_id, repo_id),
            ).rowcount
            if updated != 1:
                raise sqlite3.IntegrityError(f"unknown repository {repo_id}")
        return event_id

    def get_event(self, event_id: int) -> Event | None:
        row = self._fetch_one("read event", "SELECT * FROM events WHERE id = ?", (event_id,))
        return _row_to_event(row) if row else None

    def event_chain(self, repo_id: int) -> list[Event]:
        """Follow parent pointers from the repository's current event (newest first)."""
        repo = self.get_repository(repo_id)
        chain: list[Event] = []
        event_id = repo.current_event if repo else None
        while event_id is not None:
            event = self.get_event(event_id)
            if event is None:
                break
            chain.append(event)
            event_id = event.parent_event
        return chain

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def upsert_document(
        self,
        repo_id: int,
        relative_path: str,
        canonical_path: str,
        content: str | None = None,
    ) -> int:
        """Insert a document if its canonical path is new. Returns the document id.

        An already-known path is left untouched (its stored baseline is not
        replaced by *content*).
        """
        with self._transaction("insert document") as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO documents
                    (repository_id, relative_path, canonical_path, content)
                VALUES (?, ?, ?, ?)
                """,
                (repo_id, relative_path, canonical_path, content),
            )
            row = conn.execute(
                "SELECT id FROM documents WHERE repository_id = ? AND canonical_path = ?",
                (repo_id, canonical_path),
            ).fetchone()
        return row["id"]

    def get_document(self, document_id: int) -> Document | None:
        row = self._fetch_one(
            "read document", "SELECT * FROM documents WHERE id = ?", (document_id,)
        )
        return _row_to_document(row) if row else None

    def get_document_by_path(
        self, canonical_path: str, repo_id: int | None = None
    ) -> Document | None:
        """Return the document for *canonical_path* (first registered wins)."""
        if repo_id is None:
            row = self._fetch_one(
                "read document",
                "SELECT * FROM documents WHERE canonical_path = ? ORDER BY id LIMIT 1",
                (canonical_path,),
            )
        else:
            row = self._fetch_one(
                "read document",
                "SELECT * FROM documents WHERE repository_id = ? AND canonical_path = ?",
                (repo_id, canonical_path),
            )
        return _row_to_document(row) if row else None

    def get_document_baseline(self, repo_id: int, canonical_path: str) -> str | None:
        """Return the last recorded content of a document, or None if unknown."""
        row = self._fetch_one(
            "read document baseline",
            "SELECT content FROM documents WHERE repository_id = ? AND canonical_path = ?",
            (repo_id, canonical_path),
        )
        return row["content"] if row else None

    def list_documents(self, repo_id: int) -> list[Document]:
        rows = self._fetch_all(
            "list documents",
            "SELECT * FROM documents WHERE repository_id = ? ORDER BY relative_path",
            (repo_id,),
        )
        return [_row_to_document(r) for r in rows]

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    def append_change(
        self, document_id: int, event_id: int, elements: list[ChangeElement]
    ) -> int:
        """Append one diff record and advance the document's stored baseline.

        Raises:
            StorageError: If the document or event does not exist, or the
                write fails. Nothing is written in that case.
        """
        with self._transaction("append change") as conn:
            cur = conn.execute(
                "INSERT INTO changes (document_id, event_id, change_elements) VALUES (?, ?, ?)",
                (document_id, event_id, encode_elements(elements)),
            )
            conn.execute(
                "UPDATE documents SET content = ? WHERE id = ?",
                (current_text(elements), document_id),
            )
        return cur.lastrowid

    def latest_changes(self, document_id: int, limit: int = 100) -> list[Change]:
        """Return up to *limit* changes for a document, most recent first."""
        rows = self._fetch_all(
            "read changes",
            f"""
            SELECT {_CHANGE_COLUMNS} FROM changes c
            WHERE c.document_id = ?
            ORDER BY c.created_at DESC, c.id DESC
            LIMIT ?
            """,
            (document_id, limit),
        )
        return [_row_to_change(r) for r in rows]

    def count_changes(self, document_id: int) -> int:
        return self._fetch_one(
            "count changes", "SELECT COUNT(*) FROM changes WHERE document_id = ?", (document_id,)
        )[0]

    def changes_since(self, repo_id: int, since: str | None = None) -> list[Change]:
        """Return a repository's changes created after *since*, oldest first.

        Args:
            repo_id: Repository whose documents are enumerated.
            since: Timestamp in the stored ``YYYY-MM-DD HH:MM:SS.fff`` form;
                None returns the full history.
        """
        query = f"""
            SELECT {_CHANGE_COLUMNS} FROM changes c
            JOIN documents d ON c.document_id = d.id
            WHERE d.repository_id = ?
        """
        params: list = [repo_id]
        if since is not None:
            query += " AND c.created_at > ?"
            params.append(since)
        query += " ORDER BY c.created_at, c.id"
        rows = self._fetch_all("read changes", query, params)
        return [_row_to_change(r) for r in rows]


# ---------------------------------------------------------------------------
# Row converters
# ---------------------------------------------------------------------------


def _row_to_repository(row: sqlite3.Row) -> Repository:
    return Repository(
        id=row["id"],
        absolute_path=row["absolute_path"],
        status=RepoStatus(row["status"]),
        current_event=row["current_event"],
        created_at=row["created_at"],
    )


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        repository_id=row["repository_id"],
        relative_path=row["relative_path"],
        canonical_path=row["canonical_path"],
        content=row["content"],
        created_at=row["created_at"],
    )


def _row_to_event(row: sqlite3.Row) -> Event:
    return Event(
        id=row["id"],
        repository_id=row["repository_id"],
        parent_event=row["parent_event"],
        created_at=row["created_at"],
    )


def _row_to_change(row: sqlite3.Row) -> Change:
    return Change(
        id=row["id"],
        document_id=row["document_id"],
        event_id=row["event_id"],
        change_elements=row["change_elements"],
        created_at=row["created_at"],
    )
