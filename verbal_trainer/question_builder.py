"""Build four-option multiple-choice questions from corpus entries."""
from __future__ import annotations

import random
from collections.abc import Sequence

from verbal_trainer.models import (
    SENTENCE,
    SYNONYM,
    Question,
    SentenceEntry,
    SynonymEntry,
)
from verbal_trainer.sampler import shuffle, take_random

DISTRACTOR_COUNT = 3


def _distinct(values: list[str], exclude: set[str]) -> list[str]:
    seen = set(exclude)
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def synonym_distractors(
    entry: SynonymEntry,
    corpus: Sequence[SynonymEntry],
    rng: random.Random | None = None,
) -> list[str]:
    """Up to three wrong synonyms drawn from *entry*'s level.

    Entries for the same headword are skipped, as are entries whose synonym
    equals the headword or the correct synonym.
    """
    candidates = [
        e.synonym for e in corpus
        if e.level == entry.level
        and e.word != entry.word
        and e.synonym != entry.word
    ]
    pool = _distinct(candidates, exclude={entry.synonym})
    return take_random(pool, DISTRACTOR_COUNT, rng)


def sentence_distractors(
    entry: SentenceEntry,
    corpus: Sequence[SentenceEntry],
    rng: random.Random | None = None,
) -> list[str]:
    candidates = [e.word for e in corpus if e.level == entry.level and e.word != entry.word]
    pool = _distinct(candidates, exclude={entry.word})
    return take_random(pool, DISTRACTOR_COUNT, rng)


def build_synonym_question(
    entry: SynonymEntry,
    corpus: Sequence[SynonymEntry],
    rng: random.Random | None = None,
) -> Question:
    distractors = synonym_distractors(entry, corpus, rng)
    return Question(
        question_type=SYNONYM,
        prompt=entry.word,
        correct_answer=entry.synonym,
        options=tuple(shuffle([entry.synonym, *distractors], rng)),
        level=entry.level,
    )


def build_sentence_question(
    entry: SentenceEntry,
    corpus: Sequence[SentenceEntry],
    rng: random.Random | None = None,
) -> Question:
    # A different sentence may be chosen on each call for the same entry.
    sentence = (rng or random).choice(entry.sentences)
    distractors = sentence_distractors(entry, corpus, rng)
    return Question(
        question_type=SENTENCE,
        prompt=sentence,
        correct_answer=entry.word,
        options=tuple(shuffle([entry.word, *distractors], rng)),
        level=entry.level,
    )


def build_question(
    entry: SynonymEntry | SentenceEntry,
    corpus: Sequence[SynonymEntry] | Sequence[SentenceEntry],
    rng: random.Random | None = None,
) -> Question:
    if isinstance(entry, SynonymEntry):
        return build_synonym_question(entry, corpus, rng)
    return build_sentence_question(entry, corpus, rng)
