"""Sequential multiple-choice quiz over a finished question set."""

from __future__ import annotations

from typing import Optional, Sequence

from app.modules.study.models import ANSWER_LETTERS, ContentKind, Question
from app.modules.study.views.base import ModeView, require_count


class QuizSession(ModeView):
    mode = ContentKind.QUIZ

    def __init__(self, questions: Sequence[Question], **kwargs) -> None:
        super().__init__(**kwargs)
        self.questions: list[Question] = require_count(list(questions), self.mode)
        self.index = 0
        # question index -> chosen letter
        self.selections: dict[int, str] = {}

    @property
    def current(self) -> Question:
        return self.questions[self.index]

    def select(self, choice: str | int) -> bool:
        """Answer the current question; later picks for it are ignored."""
        if isinstance(choice, int):
            if not 0 <= choice < len(self.current.options):
                raise ValueError(f"option index out of range: {choice}")
            letter = ANSWER_LETTERS[choice]
        else:
            letter = choice.strip().upper()
            if letter not in ANSWER_LETTERS:
                raise ValueError(f"unknown option: {choice!r}")
        self.selections.setdefault(self.index, letter)
        return self.selections[self.index] == self.current.answer

    def selection(self, index: Optional[int] = None) -> Optional[str]:
        return self.selections.get(self.index if index is None else index)

    def is_correct(self, index: Optional[int] = None) -> Optional[bool]:
        i = self.index if index is None else index
        chosen = self.selections.get(i)
        if chosen is None:
            return None
        return chosen == self.questions[i].answer

    def next(self) -> int:
        self.index = (self.index + 1) % len(self.questions)
        return self.index

    def previous(self) -> int:
        self.index = (self.index - 1) % len(self.questions)
        return self.index

    @property
    def answered_count(self) -> int:
        return len(self.selections)

    @property
    def score(self) -> int:
        return sum(1 for i in self.selections if self.is_correct(i))

    @property
    def is_finished(self) -> bool:
        return self.answered_count == len(self.questions)

    @property
    def score_percent(self) -> int:
        return round(self.score / len(self.questions) * 100)

    def restart(self) -> None:
        self.index = 0
        self.selections.clear()
