"""Shared fixtures: sample content sets, a PDF document and a stub gateway."""

from __future__ import annotations

import asyncio

import pytest

from app.modules.study.documents import PDF_MIME_TYPE, EncodedFile, UploadedDocument
from app.modules.study.errors import GenerationFailed
from app.modules.study.generator import StreamUpdate
from app.modules.study.models import ContentKind, Flashcard, MatchingItem, Question

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << >>\n%%EOF\n"


def make_questions(n: int = 4) -> list[Question]:
    return [
        Question(
            question=f"Which organelle is described in statement {i + 1}?",
            options=["Nucleus", "Mitochondria", "Ribosome", "Golgi body"],
            answer="B",
        )
        for i in range(n)
    ]


def make_flashcards(n: int = 8) -> list[Flashcard]:
    return [
        Flashcard(term=f"Term {i + 1}", definition=f"Definition number {i + 1}")
        for i in range(n)
    ]


def make_matching(n: int = 6) -> list[MatchingItem]:
    return [
        MatchingItem(id=f"m{i}", term=f"Term {i}", definition=f"Meaning {i}")
        for i in range(n)
    ]


def sample_sets() -> dict[ContentKind, list]:
    return {
        ContentKind.QUIZ: make_questions(),
        ContentKind.FLASHCARDS: make_flashcards(),
        ContentKind.MATCHING: make_matching(),
    }


class StubGateway:
    """Gateway double that replays canned sets one item at a time.

    ``calls`` records every stream request so tests can assert how many
    gateway calls a flow made. Streams for kinds listed in ``hold`` pause after
    the first partial until the matching event is set.
    """

    def __init__(
        self,
        results: dict[ContentKind, list] | None = None,
        *,
        fail: set[ContentKind] | None = None,
        title: str | Exception = "Cell Biology",
        hold: set[ContentKind] | None = None,
    ) -> None:
        self.results = results or sample_sets()
        self.fail = fail or set()
        self._title = title
        self.gates = {kind: asyncio.Event() for kind in (hold or set())}
        self.calls: list[ContentKind] = []
        self.files: list[EncodedFile] = []
        self.title_calls: list[str] = []

    def release(self, kind: ContentKind) -> None:
        self.gates[kind].set()

    async def stream(self, kind: ContentKind, file: EncodedFile):
        self.calls.append(kind)
        self.files.append(file)
        items = self.results[kind]
        for i in range(1, len(items) + 1):
            yield StreamUpdate(kind=kind, items=items[:i])
            await asyncio.sleep(0)
            gate = self.gates.get(kind)
            if gate is not None and i == 1:
                await gate.wait()
            if kind in self.fail and i == 2:
                raise GenerationFailed("model stream broke", kind=kind.value)
        yield StreamUpdate(kind=kind, items=list(items), complete=True)

    async def title(self, filename: str) -> str:
        self.title_calls.append(filename)
        if isinstance(self._title, Exception):
            raise self._title
        return self._title


@pytest.fixture
def pdf_document() -> UploadedDocument:
    return UploadedDocument(name="cell-biology.pdf", mime_type=PDF_MIME_TYPE, data=PDF_BYTES)


@pytest.fixture
def stub_gateway() -> StubGateway:
    return StubGateway()
