from .content import (
    ANSWER_LETTERS,
    CONTENT_SPECS,
    ContentKind,
    ContentSpec,
    Flashcard,
    FlashcardSet,
    MatchingItem,
    MatchingPair,
    MatchingSet,
    Question,
    QuestionSet,
    get_spec,
    progress_percent,
)

__all__ = [
    "ANSWER_LETTERS",
    "CONTENT_SPECS",
    "ContentKind",
    "ContentSpec",
    "Flashcard",
    "FlashcardSet",
    "MatchingItem",
    "MatchingPair",
    "MatchingSet",
    "Question",
    "QuestionSet",
    "get_spec",
    "progress_percent",
]
