"""Shared test fixtures."""
from __future__ import annotations

import json
import random
from datetime import datetime, timedelta, timezone

import pytest

from verbal_trainer.corpus import Corpus
from verbal_trainer.db import Database, MemoryStore
from verbal_trainer.models import SentenceEntry, SynonymEntry
from verbal_trainer.profiles import ProfileService


class FakeClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def synonym_entries():
    return [
        SynonymEntry("happy", "joyful", "lower"),
        SynonymEntry("big", "large", "lower"),
        SynonymEntry("quick", "fast", "lower"),
        SynonymEntry("angry", "mad", "lower"),
        SynonymEntry("tired", "weary", "lower"),
        SynonymEntry("brave", "bold", "lower"),
        SynonymEntry("ancient", "old", "middle"),
        SynonymEntry("humble", "modest", "middle"),
        SynonymEntry("vacant", "empty", "middle"),
        SynonymEntry("fragile", "delicate", "middle"),
        SynonymEntry("eager", "keen", "middle"),
        SynonymEntry("terse", "concise", "upper"),
        SynonymEntry("arid", "dry", "upper"),
        SynonymEntry("candid", "frank", "upper"),
        SynonymEntry("frugal", "thrifty", "upper"),
        SynonymEntry("lucid", "clear", "upper"),
    ]


@pytest.fixture
def sentence_entries():
    return [
        SentenceEntry("gentle", "lower", ("Be ___ with the bird.", "A ___ breeze blew.", "She spoke in a ___ voice.")),
        SentenceEntry("hungry", "lower", ("The ___ puppy waited.",)),
        SentenceEntry("loud", "lower", ("The ___ music rattled the windows.",)),
        SentenceEntry("shiny", "lower", ("A ___ coin lay in the fountain.",)),
        SentenceEntry("careful", "lower", ("Be ___ crossing the street.",)),
        SentenceEntry("reluctant", "middle", ("He was ___ to share.",)),
        SentenceEntry("abundant", "middle", ("Wildflowers were ___.",)),
        SentenceEntry("curious", "middle", ("The ___ cat peered in.",)),
        SentenceEntry("rigid", "middle", ("The ___ schedule left no time.",)),
        SentenceEntry("vivid", "middle", ("The sky was ___.",)),
        SentenceEntry("meticulous", "upper", ("The ___ editor checked every comma.",)),
        SentenceEntry("ephemeral", "upper", ("Fame is often ___.",)),
        SentenceEntry("benevolent", "upper", ("The ___ donor paid for it.",)),
        SentenceEntry("ambiguous", "upper", ("The ___ instructions confused us.",)),
        SentenceEntry("tenacious", "upper", ("The ___ reporter kept digging.",)),
    ]


@pytest.fixture
def corpus(synonym_entries, sentence_entries):
    return Corpus(synonyms=tuple(synonym_entries), sentences=tuple(sentence_entries))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def profiles(memory_store, clock):
    return ProfileService(memory_store, clock=clock)


@pytest.fixture
def learner(profiles):
    return profiles.create_profile("Ada")


@pytest.fixture
def corpus_files(tmp_path, synonym_entries, sentence_entries):
    """Write the fixture corpus to JSON files and return their paths."""
    syn_path = tmp_path / "synonyms.json"
    sent_path = tmp_path / "sentences.json"
    syn_path.write_text(json.dumps([
        {"word": e.word, "synonym": e.synonym, "level": e.level} for e in synonym_entries
    ]))
    sent_path.write_text(json.dumps([
        {"word": e.word, "level": e.level, "sentences": list(e.sentences)} for e in sentence_entries
    ]))
    return syn_path, sent_path
