"""Per-learner review ledger: missed words, miss counts and recency.

A key ``(word, type)`` is either absent (never missed, or mastered) or
tracked with ``missed_count >= 1``.  Only a correct answer given in review
mode removes a tracked key; ordinary practice answers never do.
"""
from __future__ import annotations

from datetime import datetime, timezone

from verbal_trainer.models import ALL, ReviewEntry


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ReviewLedger:
    def __init__(self, entries: list[ReviewEntry] | None = None):
        self._entries: dict[tuple[str, str], ReviewEntry] = {}
        for e in entries or []:
            self._entries[e.key] = e

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._entries

    def get(self, word: str, question_type: str) -> ReviewEntry | None:
        return self._entries.get((word, question_type))

    def record_miss(
        self,
        word: str,
        question_type: str,
        level: str,
        sentence: str | None = None,
        now: datetime | None = None,
    ) -> ReviewEntry:
        now = now or _now()
        entry = self._entries.get((word, question_type))
        if entry is None:
            entry = ReviewEntry(
                word=word,
                question_type=question_type,
                level=level,
                missed_count=1,
                last_missed=now,
                sentence=sentence,
            )
            self._entries[entry.key] = entry
        else:
            entry.missed_count += 1
            entry.last_missed = now
        return entry

    def record_mastery(self, word: str, question_type: str) -> bool:
        """Drop the key; returns False if it was not tracked."""
        return self._entries.pop((word, question_type), None) is not None

    def query(self, level: str | None = None, question_type: str | None = None) -> list[ReviewEntry]:
        """Matching entries, most-missed first, then most recently missed."""
        out = [
            e for e in self._entries.values()
            if (level in (None, ALL) or e.level == level)
            and (question_type in (None, ALL) or e.question_type == question_type)
        ]
        out.sort(key=lambda e: (e.missed_count, e.last_missed), reverse=True)
        return out

    def to_list(self) -> list[dict]:
        return [e.to_dict() for e in self._entries.values()]

    @classmethod
    def from_list(cls, rows: list[dict]) -> ReviewLedger:
        return cls([ReviewEntry.from_dict(r) for r in rows])
