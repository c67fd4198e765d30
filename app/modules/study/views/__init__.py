from app.modules.study.models import ContentKind

from .base import ModeView
from .flashcards import FlashcardDeck
from .matching import CLEAR_DELAY_SEC, MatchAttempt, MatchingGame
from .quiz import QuizSession

VIEW_CLASSES: dict[ContentKind, type[ModeView]] = {
    ContentKind.QUIZ: QuizSession,
    ContentKind.FLASHCARDS: FlashcardDeck,
    ContentKind.MATCHING: MatchingGame,
}

# Labels and blurbs for the mode-selection screen.
MODE_CHOICES: dict[ContentKind, tuple[str, str]] = {
    ContentKind.QUIZ: (
        "Quiz Mode",
        "Test your knowledge with multiple-choice questions",
    ),
    ContentKind.FLASHCARDS: (
        "Flashcards",
        "Study with interactive flashcards to memorize concepts",
    ),
    ContentKind.MATCHING: (
        "Matching Game",
        "Match terms with their definitions in a fun game",
    ),
}

__all__ = [
    "CLEAR_DELAY_SEC",
    "FlashcardDeck",
    "MODE_CHOICES",
    "MatchAttempt",
    "MatchingGame",
    "ModeView",
    "QuizSession",
    "VIEW_CLASSES",
]
