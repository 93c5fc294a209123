"""Load the synonym and sentence collections and answer read-only queries."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from verbal_trainer.models import (
    ALL,
    LEVELS,
    SENTENCE,
    SYNONYM,
    SentenceEntry,
    SynonymEntry,
)

_log = logging.getLogger("verbal_trainer.corpus")

FETCH_TIMEOUT = 30.0


class DataUnavailable(RuntimeError):
    """Raised when the corpus cannot be loaded; no quiz may be built."""


@dataclass(frozen=True)
class Corpus:
    synonyms: tuple[SynonymEntry, ...]
    sentences: tuple[SentenceEntry, ...]

    def entries(self, kind: str) -> tuple:
        if kind == SYNONYM:
            return self.synonyms
        if kind == SENTENCE:
            return self.sentences
        raise ValueError(f"Unknown question type: {kind}")

    def filter(self, kind: str, level: str = ALL) -> list:
        entries = self.entries(kind)
        if level == ALL:
            return list(entries)
        return [e for e in entries if e.level == level]

    def find(self, kind: str, word: str, level: str | None = None):
        """Look up an entry by headword, preferring one at *level*."""
        matches = [e for e in self.entries(kind) if e.word == word]
        if not matches:
            return None
        if level is not None:
            for e in matches:
                if e.level == level:
                    return e
        return matches[0]

    def levels(self) -> list[str]:
        found = {e.level for e in self.synonyms} | {e.level for e in self.sentences}
        return sorted(found)

    def counts(self, level: str = ALL) -> dict:
        return {
            "synonyms": len(self.filter(SYNONYM, level)),
            "sentences": len(self.filter(SENTENCE, level)),
        }


def _check_level(record: dict, source: str) -> str:
    level = record.get("level")
    if level not in LEVELS:
        raise DataUnavailable(f"{source}: unknown level {level!r} for {record.get('word')!r}")
    return level


def _text(record: dict, key: str) -> str | None:
    value = record.get(key)
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def parse_synonyms(raw: list, source: str = "synonyms") -> tuple[SynonymEntry, ...]:
    if not isinstance(raw, list):
        raise DataUnavailable(f"{source}: expected a list of records")
    out: list[SynonymEntry] = []
    for i, rec in enumerate(raw):
        if not isinstance(rec, dict):
            raise DataUnavailable(f"{source}: record {i} is not an object")
        word, synonym = _text(rec, "word"), _text(rec, "synonym")
        if word is None or synonym is None:
            raise DataUnavailable(f"{source}: record {i} missing word/synonym")
        out.append(SynonymEntry(word=word, synonym=synonym, level=_check_level(rec, source)))
    return tuple(out)


def parse_sentences(raw: list, source: str = "sentences") -> tuple[SentenceEntry, ...]:
    if not isinstance(raw, list):
        raise DataUnavailable(f"{source}: expected a list of records")
    out: list[SentenceEntry] = []
    for i, rec in enumerate(raw):
        if not isinstance(rec, dict):
            raise DataUnavailable(f"{source}: record {i} is not an object")
        word = _text(rec, "word")
        if word is None:
            raise DataUnavailable(f"{source}: record {i} missing word")
        sentences = rec.get("sentences")
        if not isinstance(sentences, list) or not sentences:
            raise DataUnavailable(f"{source}: record {i} ({word}) has no sentences")
        if not all(isinstance(s, str) and s.strip() for s in sentences):
            raise DataUnavailable(f"{source}: record {i} ({word}) has a non-text sentence")
        out.append(SentenceEntry(word=word, level=_check_level(rec, source), sentences=tuple(sentences)))
    return tuple(out)


async def _fetch_json(source: str) -> list:
    if source.startswith(("http://", "https://")):
        async with httpx.AsyncClient(timeout=FETCH_TIMEOUT) as client:
            resp = await client.get(source)
            resp.raise_for_status()
            return resp.json()
    return json.loads(Path(source).read_text())


class CorpusLoader:
    """Fetch both collections once; later calls return the cached corpus."""

    def __init__(self, synonyms_source: str, sentences_source: str):
        self.synonyms_source = synonyms_source
        self.sentences_source = sentences_source
        self._corpus: Corpus | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._corpus is not None

    @property
    def corpus(self) -> Corpus:
        if self._corpus is None:
            raise DataUnavailable("Corpus has not been loaded")
        return self._corpus

    async def load(self) -> Corpus:
        if self._corpus is not None:
            return self._corpus
        async with self._lock:
            if self._corpus is not None:
                return self._corpus
            try:
                raw_syn, raw_sent = await asyncio.gather(
                    _fetch_json(self.synonyms_source),
                    _fetch_json(self.sentences_source),
                )
            except (OSError, ValueError, httpx.HTTPError) as e:
                _log.warning("Corpus load failed: %s", e)
                raise DataUnavailable(f"Failed to load corpus: {e}") from e
            try:
                corpus = Corpus(
                    synonyms=parse_synonyms(raw_syn, self.synonyms_source),
                    sentences=parse_sentences(raw_sent, self.sentences_source),
                )
            except DataUnavailable as e:
                _log.warning("Corpus rejected: %s", e)
                raise
            _log.info("Loaded %d synonym entries", len(corpus.synonyms))
            _log.info("Loaded %d sentence entries", len(corpus.sentences))
            self._corpus = corpus
            return corpus
