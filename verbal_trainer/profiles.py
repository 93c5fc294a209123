"""Learner profiles: review ledger, flashcard known-set and quiz history.

Every mutation goes through :meth:`ProfileStore.update`, which reads,
modifies and writes the whole profile in one transaction.  Operations on
an unknown profile id are no-ops that return None or an empty result.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from verbal_trainer.db import ProfileStore
from verbal_trainer.ledger import ReviewLedger
from verbal_trainer.models import ALL, QuizRecord, ReviewEntry

_log = logging.getLogger("verbal_trainer.profiles")

Clock = Callable[[], datetime]


class DuplicateProfileName(ValueError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Profile:
    id: str
    name: str
    created_at: str
    total_quizzes: int = 0
    total_questions: int = 0
    total_correct: int = 0
    quiz_history: list[QuizRecord] = field(default_factory=list)
    review_words: ReviewLedger = field(default_factory=ReviewLedger)
    known_words: list[str] = field(default_factory=list)
    last_studied: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at,
            "stats": {
                "total_quizzes": self.total_quizzes,
                "total_questions": self.total_questions,
                "total_correct": self.total_correct,
                "quiz_history": [r.to_dict() for r in self.quiz_history],
            },
            "review_words": self.review_words.to_list(),
            "flashcard_progress": {
                "known": list(self.known_words),
                "last_studied": self.last_studied,
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> Profile:
        stats = d.get("stats", {})
        flash = d.get("flashcard_progress", {})
        return cls(
            id=d["id"],
            name=d["name"],
            created_at=d["created_at"],
            total_quizzes=stats.get("total_quizzes", 0),
            total_questions=stats.get("total_questions", 0),
            total_correct=stats.get("total_correct", 0),
            quiz_history=[QuizRecord.from_dict(r) for r in stats.get("quiz_history", [])],
            review_words=ReviewLedger.from_list(d.get("review_words", [])),
            known_words=list(flash.get("known", [])),
            last_studied=flash.get("last_studied"),
        )


def _percent(correct: int, total: int) -> int:
    return round(correct / total * 100) if total > 0 else 0


class ProfileService:
    def __init__(
        self,
        store: ProfileStore,
        history_limit: int = 50,
        recent_window: int = 5,
        clock: Clock = _utcnow,
    ):
        self.store = store
        self.history_limit = history_limit
        self.recent_window = recent_window
        self.clock = clock

    def _mutate(self, profile_id: str | None, fn: Callable[[Profile], None]) -> Profile | None:
        if not profile_id:
            return None

        def apply(raw: dict) -> dict:
            profile = Profile.from_dict(raw)
            fn(profile)
            return profile.to_dict()

        saved = self.store.update(profile_id, apply)
        return Profile.from_dict(saved) if saved is not None else None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def create_profile(self, name: str) -> Profile:
        name = name.strip()
        if not name:
            raise ValueError("Profile name must not be empty")
        if any(p["name"].lower() == name.lower() for p in self.store.list_profiles()):
            raise DuplicateProfileName("A profile with this name already exists")
        profile = Profile(
            id=uuid.uuid4().hex,
            name=name,
            created_at=self.clock().isoformat(),
        )
        try:
            self.store.save(profile.to_dict())
        except sqlite3.IntegrityError as e:
            raise DuplicateProfileName("A profile with this name already exists") from e
        self.store.set_active_profile_id(profile.id)
        _log.info("Created profile %r (%s)", name, profile.id)
        return profile

    def get_profile(self, profile_id: str | None) -> Profile | None:
        if not profile_id:
            return None
        raw = self.store.load(profile_id)
        return Profile.from_dict(raw) if raw is not None else None

    def list_profiles(self) -> list[Profile]:
        return [Profile.from_dict(p) for p in self.store.list_profiles()]

    def delete_profile(self, profile_id: str) -> bool:
        deleted = self.store.delete(profile_id)
        if self.store.get_active_profile_id() == profile_id:
            self.store.set_active_profile_id(None)
        return deleted

    def set_active(self, profile_id: str | None) -> Profile | None:
        if profile_id is None:
            self.store.set_active_profile_id(None)
            return None
        profile = self.get_profile(profile_id)
        if profile is not None:
            self.store.set_active_profile_id(profile_id)
        return profile

    def get_active(self) -> Profile | None:
        return self.get_profile(self.store.get_active_profile_id())

    # ── Review ledger ─────────────────────────────────────────────────────

    def record_miss(
        self,
        profile_id: str | None,
        word: str,
        question_type: str,
        level: str,
        sentence: str | None = None,
    ) -> Profile | None:
        now = self.clock()
        _log.debug("Miss: %s/%s for %s", word, question_type, profile_id)
        return self._mutate(
            profile_id,
            lambda p: p.review_words.record_miss(word, question_type, level, sentence, now=now),
        )

    def record_mastery(self, profile_id: str | None, word: str, question_type: str) -> Profile | None:
        _log.debug("Mastered: %s/%s for %s", word, question_type, profile_id)
        return self._mutate(profile_id, lambda p: p.review_words.record_mastery(word, question_type))

    def review_queue(
        self,
        profile_id: str | None,
        level: str = ALL,
        question_type: str = ALL,
    ) -> list[ReviewEntry]:
        profile = self.get_profile(profile_id)
        if profile is None:
            return []
        return profile.review_words.query(level, question_type)

    # ── Flashcards ────────────────────────────────────────────────────────

    def mark_known(self, profile_id: str | None, word: str) -> Profile | None:
        def apply(p: Profile) -> None:
            if word not in p.known_words:
                p.known_words.append(word)
            p.last_studied = self.clock().isoformat()

        return self._mutate(profile_id, apply)

    def unmark_known(self, profile_id: str | None, word: str) -> Profile | None:
        def apply(p: Profile) -> None:
            p.known_words = [w for w in p.known_words if w != word]

        return self._mutate(profile_id, apply)

    def is_known(self, profile_id: str | None, word: str) -> bool:
        profile = self.get_profile(profile_id)
        return profile is not None and word in profile.known_words

    # ── Quiz history ──────────────────────────────────────────────────────

    def record_quiz_result(
        self,
        profile_id: str | None,
        score: int,
        total: int,
        level: str,
        question_type: str,
        time_used: int | None = None,
    ) -> Profile | None:
        record = QuizRecord(
            date=self.clock().isoformat(),
            level=level,
            question_type=question_type,
            score=score,
            total=total,
            time_used=time_used,
        )

        def apply(p: Profile) -> None:
            p.total_quizzes += 1
            p.total_questions += total
            p.total_correct += score
            p.quiz_history = [record, *p.quiz_history][: self.history_limit]

        return self._mutate(profile_id, apply)

    def get_stats(self, profile_id: str | None) -> dict | None:
        profile = self.get_profile(profile_id)
        if profile is None:
            return None
        recent = profile.quiz_history[: self.recent_window]
        return {
            "total_quizzes": profile.total_quizzes,
            "total_questions": profile.total_questions,
            "total_correct": profile.total_correct,
            "accuracy": _percent(profile.total_correct, profile.total_questions),
            "recent_accuracy": _percent(
                sum(r.score for r in recent), sum(r.total for r in recent)
            ),
            "words_to_review": len(profile.review_words),
            "quiz_history": [r.to_dict() for r in profile.quiz_history],
            "member_since": profile.created_at,
        }
