from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "synonyms_source": "data/synonyms.json",
    "sentences_source": "data/sentences.json",
    "db_path": "profiles.db",
    "default_question_count": 10,
    "timer_seconds": 0,
    "quiz_history_limit": 50,
    "recent_quiz_window": 5,
    "flashcard_count": 20,
}


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


@dataclass
class Settings:
    synonyms_source: str = DEFAULTS["synonyms_source"]
    sentences_source: str = DEFAULTS["sentences_source"]
    db_path: str = DEFAULTS["db_path"]
    default_question_count: int = DEFAULTS["default_question_count"]
    timer_seconds: int = DEFAULTS["timer_seconds"]
    quiz_history_limit: int = DEFAULTS["quiz_history_limit"]
    recent_quiz_window: int = DEFAULTS["recent_quiz_window"]
    flashcard_count: int = DEFAULTS["flashcard_count"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    def resolved_source(self, source: str) -> str:
        """URLs pass through; file paths are resolved against the project root."""
        if _is_url(source):
            return source
        return str(self.project_root / source)

    def to_dict(self) -> dict:
        return {
            "synonyms_source": self.synonyms_source,
            "sentences_source": self.sentences_source,
            "db_path": self.db_path,
            "default_question_count": self.default_question_count,
            "timer_seconds": self.timer_seconds,
            "quiz_history_limit": self.quiz_history_limit,
            "recent_quiz_window": self.recent_quiz_window,
            "flashcard_count": self.flashcard_count,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
