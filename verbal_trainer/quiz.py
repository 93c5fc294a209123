"""Assemble quizzes from the corpus or from a learner's review ledger."""
from __future__ import annotations

import logging
import math
import random
from collections.abc import Collection

from verbal_trainer.corpus import Corpus
from verbal_trainer.ledger import ReviewLedger
from verbal_trainer.models import (
    ALL,
    LEVELS,
    MIXED,
    QUESTION_TYPES,
    SENTENCE,
    SENTENCES_ONLY,
    SYNONYM,
    SYNONYMS_ONLY,
    TYPE_MIXES,
    Question,
    SynonymEntry,
)
from verbal_trainer.question_builder import build_question
from verbal_trainer.sampler import shuffle, take_random

_log = logging.getLogger("verbal_trainer.quiz")

Quiz = tuple[Question, ...]

FLASHCARD_MODES = ("all", "learning", "review")


def _check_level(level: str) -> None:
    if level != ALL and level not in LEVELS:
        raise ValueError(f"Unknown level: {level}")


def _check_count(count: int) -> None:
    if count < 1:
        raise ValueError(f"Question count must be positive (got {count})")


def _questions_for(
    corpus: Corpus, kind: str, level: str, n: int, rng: random.Random | None,
) -> list[Question]:
    picked = take_random(corpus.filter(kind, level), n, rng)
    pool = corpus.entries(kind)
    return [build_question(e, pool, rng) for e in picked]


def assemble(
    corpus: Corpus,
    level: str,
    type_mix: str,
    count: int,
    rng: random.Random | None = None,
) -> Quiz:
    """Build a practice quiz of at most *count* questions.

    A mixed quiz takes ceil(count/2) synonym and floor(count/2) sentence
    questions.  When the corpus holds fewer entries than requested the quiz
    is simply shorter, possibly empty.
    """
    _check_level(level)
    _check_count(count)
    if type_mix not in TYPE_MIXES:
        raise ValueError(f"Unknown question type: {type_mix}")

    questions: list[Question] = []
    if type_mix in (SYNONYMS_ONLY, MIXED):
        n = math.ceil(count / 2) if type_mix == MIXED else count
        questions.extend(_questions_for(corpus, SYNONYM, level, n, rng))
    if type_mix in (SENTENCES_ONLY, MIXED):
        n = count // 2 if type_mix == MIXED else count
        questions.extend(_questions_for(corpus, SENTENCE, level, n, rng))

    quiz = tuple(shuffle(questions, rng)[:count])
    if len(quiz) < count:
        _log.info("Requested %d %s questions at %s level, only %d available",
                  count, type_mix, level, len(quiz))
    return quiz


def assemble_from_review(
    corpus: Corpus,
    ledger: ReviewLedger | None,
    level: str,
    question_type: str,
    count: int,
    rng: random.Random | None = None,
    reshuffle: bool = True,
) -> Quiz:
    """Build a review quiz from the ledger, most-missed words first.

    Ledger words no longer present in the corpus are skipped.  Without a
    ledger (no active learner) the quiz is empty.
    """
    _check_level(level)
    _check_count(count)
    if question_type != ALL and question_type not in QUESTION_TYPES:
        raise ValueError(f"Unknown question type: {question_type}")
    if ledger is None:
        return ()

    questions: list[Question] = []
    for entry in ledger.query(level, question_type):
        record = corpus.find(entry.question_type, entry.word, entry.level)
        if record is None:
            _log.debug("Skipping stale review word %r (%s)", entry.word, entry.question_type)
            continue
        questions.append(build_question(record, corpus.entries(entry.question_type), rng))
        if len(questions) >= count:
            break

    if reshuffle:
        return tuple(shuffle(questions, rng))
    return tuple(questions)


def retry_quiz(quiz: Quiz, rng: random.Random | None = None) -> Quiz:
    """Same questions in a fresh order, each with freshly ordered options."""
    return tuple(q.with_options(shuffle(q.options, rng)) for q in shuffle(quiz, rng))


def build_flashcard_deck(
    corpus: Corpus,
    level: str,
    mode: str = "all",
    count: int | None = None,
    shuffle_cards: bool = True,
    known: Collection[str] | None = None,
    review_words: Collection[str] | None = None,
    rng: random.Random | None = None,
) -> list[SynonymEntry]:
    """Select synonym cards for a flashcard run.

    ``known`` and ``review_words`` come from the learner's profile; when
    they are None the ``learning``/``review`` filters are not applied.
    """
    _check_level(level)
    if mode not in FLASHCARD_MODES:
        raise ValueError(f"Unknown flashcard mode: {mode}")

    cards: list[SynonymEntry] = corpus.filter(SYNONYM, level)
    if mode == "review" and review_words is not None:
        wanted = set(review_words)
        cards = [c for c in cards if c.word in wanted]
    elif mode == "learning" and known is not None:
        skip = set(known)
        cards = [c for c in cards if c.word not in skip]

    if shuffle_cards:
        cards = shuffle(cards, rng)
    if count is not None:
        cards = cards[:max(count, 0)]
    return cards
