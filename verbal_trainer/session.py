"""Quiz-taking session: the current quiz, position and score for one run."""
from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from verbal_trainer.models import SENTENCE, MissedQuestion, Question, QuizSummary
from verbal_trainer.profiles import ProfileService
from verbal_trainer.quiz import Quiz, retry_quiz
from verbal_trainer.timer import Countdown, start_countdown

_log = logging.getLogger("verbal_trainer.session")

TIME_EXPIRED = "(time expired)"

CountdownFactory = Callable[..., Countdown]


@dataclass(frozen=True)
class AnswerOutcome:
    correct: bool
    correct_answer: str
    selected_answer: str
    timed_out: bool = False

    def to_dict(self) -> dict:
        return {
            "correct": self.correct,
            "correct_answer": self.correct_answer,
            "selected_answer": self.selected_answer,
            "timed_out": self.timed_out,
        }


class Session:
    def __init__(
        self,
        quiz: Quiz,
        profiles: ProfileService | None = None,
        profile_id: str | None = None,
        review_mode: bool = False,
        level: str = "all",
        type_mix: str = "mixed",
        timer_seconds: int = 0,
        countdown_factory: CountdownFactory = start_countdown,
        on_tick: Callable[[int], None] | None = None,
    ):
        self.id = uuid.uuid4().hex
        self.quiz = quiz
        self.profiles = profiles
        self.profile_id = profile_id
        self.review_mode = review_mode
        self.level = level
        self.type_mix = type_mix
        self.timer_seconds = timer_seconds
        self.countdown_factory = countdown_factory
        self.on_tick = on_tick

        self.index = 0
        self.score = 0
        self.missed: list[MissedQuestion] = []
        self.total_time_used = 0
        self.countdown: Countdown | None = None
        self._resolved: set[int] = set()
        self.closed = False
        self.outcomes: dict[int, AnswerOutcome] = {}
        self._summary: QuizSummary | None = None

    @property
    def current_question(self) -> Question | None:
        if self.index < len(self.quiz):
            return self.quiz[self.index]
        return None

    @property
    def complete(self) -> bool:
        return self.index >= len(self.quiz)

    @property
    def resolved(self) -> bool:
        return self.index in self._resolved

    # ── Timer ─────────────────────────────────────────────────────────────

    def start(self) -> Question | None:
        """Begin the current question, starting its countdown if timed."""
        self._cancel_countdown()
        if self.timer_seconds > 0 and not (self.complete or self.closed):
            self.countdown = self.countdown_factory(
                self.timer_seconds, self.on_tick, self.time_out,
            )
        return self.current_question

    def _cancel_countdown(self) -> None:
        if self.countdown is not None:
            self.countdown.cancel()
            self.countdown = None

    # ── Outcomes ──────────────────────────────────────────────────────────

    def _resolve(self) -> Question | None:
        """Claim the current question; None if it already has an outcome."""
        q = self.current_question
        if q is None or self.closed or self.index in self._resolved:
            _log.debug("Suppressed duplicate outcome for question %d", self.index)
            return None
        self._resolved.add(self.index)
        self._cancel_countdown()
        return q

    def _record_miss(self, q: Question, selected: str) -> None:
        self.missed.append(MissedQuestion(question=q, selected_answer=selected))
        if self.profiles is not None:
            self.profiles.record_miss(
                self.profile_id,
                q.word,
                q.question_type,
                q.level,
                q.prompt if q.question_type == SENTENCE else None,
            )

    def answer(self, choice: str, time_seconds: float | None = None) -> AnswerOutcome | None:
        q = self._resolve()
        if q is None:
            return None
        if time_seconds is not None:
            self.total_time_used += round(time_seconds)

        correct = choice == q.correct_answer
        if correct:
            self.score += 1
            if self.review_mode and self.profiles is not None:
                self.profiles.record_mastery(self.profile_id, q.word, q.question_type)
        else:
            self._record_miss(q, choice)
        outcome = AnswerOutcome(correct=correct, correct_answer=q.correct_answer, selected_answer=choice)
        self.outcomes[self.index] = outcome
        return outcome

    def time_out(self) -> AnswerOutcome | None:
        q = self._resolve()
        if q is None:
            return None
        self.total_time_used += self.timer_seconds
        self._record_miss(q, TIME_EXPIRED)
        outcome = AnswerOutcome(
            correct=False,
            correct_answer=q.correct_answer,
            selected_answer=TIME_EXPIRED,
            timed_out=True,
        )
        self.outcomes[self.index] = outcome
        return outcome

    def advance(self) -> Question | None:
        """Move to the next question; None once the quiz is over."""
        self._cancel_countdown()
        if not self.complete:
            self.index += 1
        return self.start()

    # ── End of run ────────────────────────────────────────────────────────

    def finish(self) -> QuizSummary:
        """Close the run and record it on the owning profile (once)."""
        self.close()
        if self._summary is not None:
            return self._summary
        time_used = self.total_time_used if self.timer_seconds > 0 else None
        self._summary = QuizSummary(
            score=self.score,
            total=len(self.quiz),
            missed=list(self.missed),
            time_used=time_used,
        )
        if self.profiles is not None:
            self.profiles.record_quiz_result(
                self.profile_id, self.score, len(self.quiz), self.level, self.type_mix, time_used,
            )
        return self._summary

    def close(self) -> None:
        """Stop the timer; later answer or timeout events are ignored."""
        self.closed = True
        self._cancel_countdown()

    def retry(self, rng: random.Random | None = None) -> Session:
        """A fresh run over the same questions in a new order."""
        self.close()
        return Session(
            retry_quiz(self.quiz, rng),
            profiles=self.profiles,
            profile_id=self.profile_id,
            review_mode=self.review_mode,
            level=self.level,
            type_mix=self.type_mix,
            timer_seconds=self.timer_seconds,
            countdown_factory=self.countdown_factory,
            on_tick=self.on_tick,
        )
