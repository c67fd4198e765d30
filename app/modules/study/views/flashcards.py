"""Flippable flashcard deck."""

from __future__ import annotations

from typing import Sequence

from app.modules.study.models import ContentKind, Flashcard
from app.modules.study.views.base import ModeView, require_count


class FlashcardDeck(ModeView):
    mode = ContentKind.FLASHCARDS

    def __init__(self, cards: Sequence[Flashcard], **kwargs) -> None:
        super().__init__(**kwargs)
        self.cards: list[Flashcard] = require_count(list(cards), self.mode)
        self.index = 0
        self.flipped = False
        self.reviewed: set[int] = set()

    @property
    def current(self) -> Flashcard:
        return self.cards[self.index]

    @property
    def visible_text(self) -> str:
        card = self.current
        return card.definition if self.flipped else card.term

    def flip(self) -> bool:
        """Toggle the current card; the first flip to the back marks it reviewed."""
        self.flipped = not self.flipped
        if self.flipped:
            self.reviewed.add(self.index)
        return self.flipped

    def next(self) -> int:
        self.index = (self.index + 1) % len(self.cards)
        self.flipped = False
        return self.index

    def previous(self) -> int:
        self.index = (self.index - 1) % len(self.cards)
        self.flipped = False
        return self.index

    @property
    def reviewed_count(self) -> int:
        return len(self.reviewed)

    @property
    def progress(self) -> float:
        return self.reviewed_count / len(self.cards) * 100

    @property
    def summary(self) -> str:
        return f"{self.reviewed_count} of {len(self.cards)} reviewed"

    def restart(self) -> None:
        self.index = 0
        self.flipped = False
        self.reviewed.clear()
