"""
Change Staging Store - pending element changes awaiting a commit.

Staging the same element twice keeps a single entry whose fields are the
union of both changes; the entry keeps the position of its first staging.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional

from src.overlay.changes import ElementChanges, change_kind, describe_changes, merge_changes
from src.overlay.constants import HISTORY_LIMIT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedEntry:
    element_id: str
    changes: ElementChanges


class ChangeStagingStore:

    def __init__(self):
        # dicts keep insertion order, so re-staging never moves an entry
        self._entries: Dict[str, ElementChanges] = {}

    @property
    def count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, element_id: str) -> bool:
        return element_id in self._entries

    def get(self, element_id: str) -> Optional[ElementChanges]:
        return self._entries.get(element_id)

    def stage(self, element_id: str, changes: ElementChanges) -> ElementChanges:
        """Record changes for an element, merging with anything already staged."""
        existing = self._entries.get(element_id)
        merged = changes if existing is None else merge_changes(existing, changes)
        self._entries[element_id] = merged
        logger.debug(f"Staged {change_kind(merged)} change for {element_id} ({self.count} pending)")
        return merged

    def all(self) -> List[StagedEntry]:
        return [StagedEntry(element_id, changes) for element_id, changes in self._entries.items()]

    def remove(self, element_id: str) -> bool:
        return self._entries.pop(element_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: datetime
    element_id: str
    tag: str
    kind: str
    summary: str

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'element_id': self.element_id,
            'tag': self.tag,
            'kind': self.kind,
            'summary': self.summary,
        }


class ChangeHistory:
    """Bounded log of every staging event, newest last."""

    def __init__(self, limit: int = HISTORY_LIMIT):
        self._entries: Deque[HistoryEntry] = deque(maxlen=limit)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, element_id: str, changes: ElementChanges, tag: str = '') -> HistoryEntry:
        entry = HistoryEntry(
            timestamp=datetime.now(timezone.utc),
            element_id=element_id,
            tag=tag,
            kind=change_kind(changes),
            summary=describe_changes(changes),
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
