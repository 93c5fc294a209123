from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

LEVELS = ("lower", "middle", "upper")
ALL = "all"

SYNONYM = "synonym"
SENTENCE = "sentence"
QUESTION_TYPES = (SYNONYM, SENTENCE)

# Quiz type mixes
SYNONYMS_ONLY = "synonyms"
SENTENCES_ONLY = "sentences"
MIXED = "mixed"
TYPE_MIXES = (SYNONYMS_ONLY, SENTENCES_ONLY, MIXED)

LEVEL_LABELS = {
    "lower": "Lower Level",
    "middle": "Middle Level",
    "upper": "Upper Level",
    ALL: "All Levels",
}


def format_level(level: str) -> str:
    return LEVEL_LABELS.get(level, level)


@dataclass(frozen=True)
class SynonymEntry:
    word: str
    synonym: str
    level: str


@dataclass(frozen=True)
class SentenceEntry:
    word: str
    level: str
    sentences: tuple[str, ...]


@dataclass(frozen=True)
class Question:
    question_type: str  # synonym | sentence
    prompt: str
    correct_answer: str
    options: tuple[str, ...]
    level: str

    @property
    def word(self) -> str:
        """Headword the question tests (the ledger key)."""
        if self.question_type == SYNONYM:
            return self.prompt
        return self.correct_answer

    def with_options(self, options: tuple[str, ...] | list[str]) -> Question:
        return replace(self, options=tuple(options))

    def to_dict(self, reveal: bool = False) -> dict:
        d = {
            "type": self.question_type,
            "prompt": self.prompt,
            "options": list(self.options),
            "level": self.level,
        }
        if reveal:
            d["correct_answer"] = self.correct_answer
        return d


@dataclass
class ReviewEntry:
    word: str
    question_type: str
    level: str
    missed_count: int
    last_missed: datetime
    sentence: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.word, self.question_type)

    def to_dict(self) -> dict:
        return {
            "word": self.word,
            "type": self.question_type,
            "level": self.level,
            "sentence": self.sentence,
            "missed_count": self.missed_count,
            "last_missed": self.last_missed.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> ReviewEntry:
        last_missed = datetime.fromisoformat(d["last_missed"])
        if last_missed.tzinfo is None:
            last_missed = last_missed.replace(tzinfo=timezone.utc)
        return cls(
            word=d["word"],
            question_type=d["type"],
            level=d["level"],
            missed_count=int(d["missed_count"]),
            last_missed=last_missed,
            sentence=d.get("sentence"),
        )


@dataclass
class QuizRecord:
    date: str
    level: str
    question_type: str
    score: int
    total: int
    time_used: int | None = None

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "level": self.level,
            "type": self.question_type,
            "score": self.score,
            "total": self.total,
            "time_used": self.time_used,
        }

    @classmethod
    def from_dict(cls, d: dict) -> QuizRecord:
        return cls(
            date=d["date"],
            level=d["level"],
            question_type=d["type"],
            score=d["score"],
            total=d["total"],
            time_used=d.get("time_used"),
        )


@dataclass
class MissedQuestion:
    question: Question
    selected_answer: str

    def to_dict(self) -> dict:
        d = self.question.to_dict(reveal=True)
        d["selected_answer"] = self.selected_answer
        return d


@dataclass
class QuizSummary:
    score: int
    total: int
    missed: list[MissedQuestion] = field(default_factory=list)
    time_used: int | None = None

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.score / self.total * 100)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "time_used": self.time_used,
            "missed": [m.to_dict() for m in self.missed],
        }
