"""Term/definition matching game.

Terms and definitions are shown in two independently shuffled columns. Once a
term and a definition are both picked the attempt is scored, and both picks
stay visible for ``clear_delay`` seconds before clearing; picks made during
that window are ignored. Randomness and time are injectable for tests.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from app.modules.study.models import ContentKind, MatchingItem
from app.modules.study.views.base import ModeView, require_count

CLEAR_DELAY_SEC = 1.0


@dataclass(frozen=True)
class MatchAttempt:
    term_id: str
    definition_id: str

    @property
    def correct(self) -> bool:
        return self.term_id == self.definition_id


class MatchingGame(ModeView):
    mode = ContentKind.MATCHING

    def __init__(
        self,
        items: Sequence[MatchingItem],
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        clear_delay: float = CLEAR_DELAY_SEC,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.items: list[MatchingItem] = require_count(list(items), self.mode)
        self._ids = {item.id for item in self.items}
        self.rng = rng or random.Random()
        self.clock = clock
        self.clear_delay = clear_delay
        self.restart()

    def _shuffled(self) -> list[MatchingItem]:
        out = list(self.items)
        self.rng.shuffle(out)
        return out

    def restart(self) -> None:
        self.terms = self._shuffled()
        self.definitions = self._shuffled()
        self.matched: list[str] = []
        self.attempts = 0
        self.correct_matches = 0
        self._selected_term: Optional[str] = None
        self._selected_definition: Optional[str] = None
        self._clear_at: Optional[float] = None

    def _settle(self) -> None:
        if self._clear_at is not None and self.clock() >= self._clear_at:
            self._selected_term = None
            self._selected_definition = None
            self._clear_at = None

    @property
    def selected_term(self) -> Optional[str]:
        self._settle()
        return self._selected_term

    @property
    def selected_definition(self) -> Optional[str]:
        self._settle()
        return self._selected_definition

    @property
    def clear_deadline(self) -> Optional[float]:
        """Clock value at which the current picks clear, if an attempt is showing."""
        self._settle()
        return self._clear_at

    def is_matched(self, item_id: str) -> bool:
        return item_id in self.matched

    def _selectable(self, item_id: str) -> bool:
        if item_id not in self._ids:
            raise KeyError(item_id)
        self._settle()
        return self._clear_at is None and not self.is_matched(item_id)

    def select_term(self, item_id: str) -> Optional[MatchAttempt]:
        if not self._selectable(item_id):
            return None
        self._selected_term = item_id
        return self._evaluate()

    def select_definition(self, item_id: str) -> Optional[MatchAttempt]:
        if not self._selectable(item_id):
            return None
        self._selected_definition = item_id
        return self._evaluate()

    def _evaluate(self) -> Optional[MatchAttempt]:
        if self._selected_term is None or self._selected_definition is None:
            return None
        attempt = MatchAttempt(self._selected_term, self._selected_definition)
        self.attempts += 1
        if attempt.correct:
            self.matched.append(attempt.term_id)
            self.correct_matches += 1
        self._clear_at = self.clock() + self.clear_delay
        return attempt

    @property
    def is_complete(self) -> bool:
        return len(self.matched) == len(self.items)

    @property
    def accuracy(self) -> int:
        if self.attempts == 0:
            return 0
        return round(self.correct_matches / self.attempts * 100)

    @property
    def progress(self) -> float:
        return len(self.matched) / len(self.items) * 100

    @property
    def summary(self) -> str:
        return f"Matched: {len(self.matched)} of {len(self.items)}"
