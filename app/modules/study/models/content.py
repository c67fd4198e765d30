"""Pydantic models for generated study content and its set-level validation.

Note: To keep the Google Generative AI structured output schema simple and
compatible, the per-item models carry no length constraints. Cardinality and
option counts are enforced post-generation by the ``*Set`` root models, which
reject the whole set when anything is off.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, RootModel, model_validator

ANSWER_LETTERS = ("A", "B", "C", "D")


class ContentKind(str, Enum):
    QUIZ = "quiz"
    FLASHCARDS = "flashcards"
    MATCHING = "matching"


class Question(BaseModel):
    """A single multiple-choice question."""

    question: str
    options: list[str] = Field(
        description=(
            "Four possible answers to the question. Only one should be correct. "
            "They should all be of equal lengths."
        ),
    )
    answer: Literal["A", "B", "C", "D"] = Field(
        description=(
            "The correct answer, where A is the first option, B is the second, "
            "and so on."
        ),
    )

    @property
    def answer_index(self) -> int:
        return ANSWER_LETTERS.index(self.answer)


class Flashcard(BaseModel):
    """Term on the front, definition on the back."""

    term: str = Field(description="The term or concept to learn")
    definition: str = Field(
        description="The definition or explanation of the term"
    )


class MatchingPair(BaseModel):
    """Term/definition pair as produced by the model (no id)."""

    term: str
    definition: str


class MatchingItem(MatchingPair):
    id: str


class QuestionSet(RootModel[list[Question]]):
    root: list[Question] = Field(min_length=4, max_length=4)

    @model_validator(mode="after")
    def _check_options(self) -> "QuestionSet":
        for i, q in enumerate(self.root, start=1):
            if len(q.options) != 4:
                raise ValueError(
                    f"question {i} must have exactly 4 options, got {len(q.options)}"
                )
            if not q.question.strip():
                raise ValueError(f"question {i} has an empty prompt")
        return self


class FlashcardSet(RootModel[list[Flashcard]]):
    root: list[Flashcard] = Field(min_length=8, max_length=8)

    @model_validator(mode="after")
    def _check_cards(self) -> "FlashcardSet":
        for i, card in enumerate(self.root, start=1):
            if not card.term.strip() or not card.definition.strip():
                raise ValueError(f"flashcard {i} has an empty term or definition")
        return self


class MatchingSet(RootModel[list[MatchingItem]]):
    root: list[MatchingItem] = Field(min_length=6, max_length=6)

    @model_validator(mode="after")
    def _check_ids(self) -> "MatchingSet":
        ids = [item.id for item in self.root]
        if any(not i for i in ids):
            raise ValueError("every matching item needs an id")
        if len(set(ids)) != len(ids):
            raise ValueError("matching item ids must be unique")
        return self


@dataclass(frozen=True)
class ContentSpec:
    """Everything that varies between the three content kinds."""

    kind: ContentKind
    generated_model: type[BaseModel]
    item_model: type[BaseModel]
    set_model: type[RootModel]
    target: int
    item_label: str
    default_title: str
    failure_notice: str


CONTENT_SPECS: dict[ContentKind, ContentSpec] = {
    ContentKind.QUIZ: ContentSpec(
        kind=ContentKind.QUIZ,
        generated_model=Question,
        item_model=Question,
        set_model=QuestionSet,
        target=4,
        item_label="question",
        default_title="Quiz",
        failure_notice="Failed to generate quiz. Please try again.",
    ),
    ContentKind.FLASHCARDS: ContentSpec(
        kind=ContentKind.FLASHCARDS,
        generated_model=Flashcard,
        item_model=Flashcard,
        set_model=FlashcardSet,
        target=8,
        item_label="flashcard",
        default_title="Flashcards",
        failure_notice="Failed to generate flashcards. Please try again.",
    ),
    ContentKind.MATCHING: ContentSpec(
        kind=ContentKind.MATCHING,
        generated_model=MatchingPair,
        item_model=MatchingItem,
        set_model=MatchingSet,
        target=6,
        item_label="matching item",
        default_title="Matching Game",
        failure_notice="Failed to generate matching items. Please try again.",
    ),
}


def get_spec(kind: ContentKind | str) -> ContentSpec:
    return CONTENT_SPECS[ContentKind(kind)]


def progress_percent(count: int, target: int) -> float:
    if target <= 0:
        return 0.0
    return max(0.0, min(100.0, count / target * 100.0))
