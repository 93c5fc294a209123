"""Tests for the profile service (ledger, flashcards, history)."""
from __future__ import annotations

import pytest

from verbal_trainer.models import SENTENCE, SYNONYM
from verbal_trainer.profiles import DuplicateProfileName, Profile, ProfileService


class TestLifecycle:
    def test_create_sets_active(self, profiles, memory_store):
        p = profiles.create_profile("  Ada  ")
        assert p.name == "Ada"
        assert memory_store.get_active_profile_id() == p.id
        assert profiles.get_active().id == p.id

    def test_duplicate_name_case_insensitive(self, profiles):
        profiles.create_profile("Ada")
        with pytest.raises(DuplicateProfileName):
            profiles.create_profile("ada")

    def test_empty_name(self, profiles):
        with pytest.raises(ValueError):
            profiles.create_profile("   ")

    def test_delete_clears_active(self, profiles, learner, memory_store):
        assert profiles.delete_profile(learner.id) is True
        assert memory_store.get_active_profile_id() is None
        assert profiles.get_profile(learner.id) is None

    def test_delete_other_keeps_active(self, profiles, learner, memory_store):
        other = profiles.create_profile("Grace")
        profiles.set_active(learner.id)
        profiles.delete_profile(other.id)
        assert memory_store.get_active_profile_id() == learner.id

    def test_set_active_unknown(self, profiles, learner):
        assert profiles.set_active("nope") is None
        assert profiles.get_active().id == learner.id

    def test_dict_round_trip(self, profiles, learner):
        profiles.record_miss(learner.id, "terse", SYNONYM, "upper")
        profiles.mark_known(learner.id, "happy")
        p = profiles.get_profile(learner.id)
        again = Profile.from_dict(p.to_dict())
        assert again.to_dict() == p.to_dict()


class TestLedgerThroughProfile:
    def test_miss_twice(self, profiles, learner):
        profiles.record_miss(learner.id, "terse", SYNONYM, "upper")
        profiles.record_miss(learner.id, "terse", SYNONYM, "upper")
        queue = profiles.review_queue(learner.id)
        assert len(queue) == 1
        assert queue[0].missed_count == 2

    def test_mastery_removes(self, profiles, learner):
        profiles.record_miss(learner.id, "gentle", SENTENCE, "lower", "Be ___.")
        profiles.record_mastery(learner.id, "gentle", SENTENCE)
        assert profiles.review_queue(learner.id) == []

    def test_queue_order_and_filter(self, profiles, learner):
        for word, n in [("a", 1), ("b", 3), ("c", 2)]:
            for _ in range(n):
                profiles.record_miss(learner.id, word, SYNONYM, "lower")
        profiles.record_miss(learner.id, "d", SENTENCE, "upper")
        assert [e.word for e in profiles.review_queue(learner.id, "lower", SYNONYM)] == ["b", "c", "a"]
        assert [e.word for e in profiles.review_queue(learner.id, "all", SENTENCE)] == ["d"]

    def test_unknown_profile_is_noop(self, profiles):
        assert profiles.record_miss(None, "terse", SYNONYM, "upper") is None
        assert profiles.record_miss("ghost", "terse", SYNONYM, "upper") is None
        assert profiles.record_mastery("ghost", "terse", SYNONYM) is None
        assert profiles.review_queue("ghost") == []
        assert profiles.get_stats("ghost") is None
        assert profiles.mark_known(None, "happy") is None
        assert profiles.is_known("ghost", "happy") is False

    def test_profiles_are_isolated(self, profiles, learner):
        other = profiles.create_profile("Grace")
        profiles.record_miss(learner.id, "terse", SYNONYM, "upper")
        assert profiles.review_queue(other.id) == []

    def test_other_fields_preserved(self, profiles, learner):
        profiles.mark_known(learner.id, "happy")
        profiles.record_quiz_result(learner.id, 3, 5, "lower", "mixed")
        profiles.record_miss(learner.id, "terse", SYNONYM, "upper")
        p = profiles.get_profile(learner.id)
        assert p.known_words == ["happy"]
        assert p.total_quizzes == 1
        assert len(p.review_words) == 1


class TestFlashcards:
    def test_mark_known_idempotent(self, profiles, learner):
        profiles.mark_known(learner.id, "happy")
        p = profiles.mark_known(learner.id, "happy")
        assert p.known_words == ["happy"]
        assert p.last_studied is not None
        assert profiles.is_known(learner.id, "happy")

    def test_unmark(self, profiles, learner):
        profiles.mark_known(learner.id, "happy")
        profiles.unmark_known(learner.id, "happy")
        assert not profiles.is_known(learner.id, "happy")

    def test_known_set_separate_from_ledger(self, profiles, learner):
        profiles.record_miss(learner.id, "happy", SYNONYM, "lower")
        profiles.mark_known(learner.id, "happy")
        assert len(profiles.review_queue(learner.id)) == 1


class TestQuizHistory:
    def test_totals(self, profiles, learner):
        profiles.record_quiz_result(learner.id, 8, 10, "lower", "mixed", 95)
        profiles.record_quiz_result(learner.id, 5, 10, "upper", "synonyms")
        stats = profiles.get_stats(learner.id)
        assert stats["total_quizzes"] == 2
        assert stats["total_questions"] == 20
        assert stats["total_correct"] == 13
        assert stats["accuracy"] == 65
        assert stats["quiz_history"][0]["level"] == "upper"
        assert stats["quiz_history"][1]["time_used"] == 95

    def test_history_limit(self, memory_store, clock):
        service = ProfileService(memory_store, history_limit=3, clock=clock)
        p = service.create_profile("Ada")
        for i in range(5):
            service.record_quiz_result(p.id, i, 5, "lower", "mixed")
        history = service.get_stats(p.id)["quiz_history"]
        assert [h["score"] for h in history] == [4, 3, 2]

    def test_recent_accuracy(self, memory_store, clock):
        service = ProfileService(memory_store, recent_window=2, clock=clock)
        p = service.create_profile("Ada")
        service.record_quiz_result(p.id, 0, 10, "lower", "mixed")
        service.record_quiz_result(p.id, 10, 10, "lower", "mixed")
        service.record_quiz_result(p.id, 5, 10, "lower", "mixed")
        stats = service.get_stats(p.id)
        assert stats["recent_accuracy"] == 75
        assert stats["accuracy"] == 50

    def test_empty_stats(self, profiles, learner):
        stats = profiles.get_stats(learner.id)
        assert stats["accuracy"] == 0
        assert stats["recent_accuracy"] == 0
        assert stats["words_to_review"] == 0
        assert stats["member_since"] == learner.created_at
