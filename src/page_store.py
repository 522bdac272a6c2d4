"""
Page Store - persistence collaborator for committed visual edits.

One commit writes the edited page, appends a record to
changes/<page>.json and commits both files with git. If any step fails the
files are restored to what they were before, so a retried commit does not
log the same changes twice.

Change log format (JSON list, oldest first):
[
  {
    "timestamp": "2026-01-14T12:00:00Z",
    "message": "Edit 2 elements",
    "changes": [
      {"element_id": "element-k3j9x0q2a", "kind": "text", "text": "Hello"},
      {"element_id": "hero", "kind": "style", "styles": {"width": "320px"}}
    ]
  }
]
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.git_manager import GitError, GitManager
from src.overlay.changes import change_kind, changes_to_dict, text_of
from src.overlay.staging import StagedEntry
from src.page_manager import get_changes_path, get_page_path, get_pages_dir

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when staged changes cannot be persisted."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def validate_entries(entries: List[StagedEntry]) -> None:
    if not entries:
        raise PersistenceError("Nothing to commit")
    for entry in entries:
        text = text_of(entry.changes)
        if text is not None and not text.strip():
            raise PersistenceError(f"Text for {entry.element_id} cannot be empty")


def entry_to_record(entry: StagedEntry) -> Dict[str, Any]:
    record = {'element_id': entry.element_id, 'kind': change_kind(entry.changes)}
    record.update(changes_to_dict(entry.changes))
    return record


class PageStore:

    def __init__(self, git_manager: GitManager, sites_dir: Optional[Path] = None, auto_push: bool = False):
        self._git = git_manager
        self._sites_dir = get_pages_dir(sites_dir)
        self.auto_push = auto_push

    @property
    def sites_dir(self) -> Path:
        return self._sites_dir

    def load_changes(self, page: str) -> List[Dict[str, Any]]:
        path = get_changes_path(page, self._sites_dir)
        if not path.exists():
            return []
        try:
            with path.open('r', encoding='utf-8') as fh:
                data = json.load(fh)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Unreadable change log {path}: {e}")
            return []
        return data if isinstance(data, list) else []

    def commit(self, page: str, entries: List[StagedEntry], html: str, message: str) -> Optional[str]:
        """
        Persist one batch of staged changes together with the page HTML.
        Returns the commit hash (None if git found nothing to commit).
        Raises PersistenceError.
        """
        validate_entries(entries)
        message = (message or '').strip()
        if not message:
            raise PersistenceError("A commit message is required")

        page_path = get_page_path(page, self._sites_dir)
        changes_path = get_changes_path(page, self._sites_dir)
        previous = {path: path.read_text(encoding='utf-8') if path.exists() else None
                    for path in (page_path, changes_path)}

        log = self.load_changes(page)
        record = {
            'timestamp': _now_iso(),
            'message': message,
            'changes': [entry_to_record(e) for e in entries],
        }
        log.append(record)

        try:
            page_path.write_text(html, encoding='utf-8')
            changes_path.parent.mkdir(parents=True, exist_ok=True)
            self._write_log(changes_path, log)
            commit_hash = self._git.commit_paths(
                [page_path.relative_to(self._sites_dir).as_posix(),
                 changes_path.relative_to(self._sites_dir).as_posix()],
                message,
            )
        except (GitError, OSError) as e:
            self._restore(previous)
            raise PersistenceError(f"Could not save {page}: {e}") from e

        if self.auto_push and commit_hash:
            try:
                self._git.push()
            except GitError as e:
                # The commit stands; the next push will carry it
                logger.warning(f"Committed {page} locally but push failed: {e}")

        logger.info(f"Committed {len(entries)} change(s) to {page} ({commit_hash or 'no new commit'})")
        return commit_hash

    def history(self, page: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Committed change records for a page, newest first."""
        return list(reversed(self.load_changes(page)))[:limit]

    def commit_log(self, limit: int = 20) -> List[Dict[str, str]]:
        return self._git.get_commit_history(limit)

    @staticmethod
    def _write_log(path: Path, log: List[Dict[str, Any]]) -> None:
        with path.open('w', encoding='utf-8') as fh:
            json.dump(log, fh, indent=2, ensure_ascii=False)

    @staticmethod
    def _restore(previous: Dict[Path, Optional[str]]) -> None:
        for path, content in previous.items():
            try:
                if content is None:
                    if path.exists():
                        path.unlink()
                else:
                    path.write_text(content, encoding='utf-8')
            except OSError as e:
                logger.error(f"Could not restore {path}: {e}")
