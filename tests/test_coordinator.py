"""
Tests for the async generation coordinator driven by a stub gateway.
"""

import asyncio
import random

import pytest

from app.modules.study.coordinator import GenerationCoordinator
from app.modules.study.documents import REJECTED_NOTICE, UploadedDocument
from app.modules.study.errors import InvalidTransition
from app.modules.study.generator import DEFAULT_TITLE
from app.modules.study.models import ContentKind
from app.modules.study.state import Phase, progress_for
from app.modules.study.views import FlashcardDeck, MatchingGame, QuizSession
from conftest import PDF_BYTES, StubGateway

QUIZ = ContentKind.QUIZ
CARDS = ContentKind.FLASHCARDS
MATCH = ContentKind.MATCHING


async def _started(gateway, pdf_document, **kwargs) -> GenerationCoordinator:
    coord = GenerationCoordinator(gateway, **kwargs)
    coord.select_files([pdf_document])
    await coord.submit()
    await coord.wait_idle()
    return coord


class TestUpload:
    def test_rejected_files_leave_notice(self, stub_gateway, pdf_document):
        coord = GenerationCoordinator(stub_gateway)
        txt = UploadedDocument("notes.txt", "text/plain", b"hello")

        chosen = coord.select_files([txt, pdf_document])

        assert chosen is pdf_document
        assert coord.state.document is pdf_document
        assert coord.state.notices == (REJECTED_NOTICE,)

    def test_multiple_pdfs_rejected(self, stub_gateway, pdf_document):
        coord = GenerationCoordinator(stub_gateway)
        other = UploadedDocument("other.pdf", "application/pdf", PDF_BYTES)

        assert coord.select_files([pdf_document, other]) is None
        assert coord.state.document is None
        assert coord.phase is Phase.IDLE
        assert len(coord.state.notices) == 1

    @pytest.mark.asyncio
    async def test_replacing_document_mid_session_changes_nothing(self, stub_gateway, pdf_document):
        coord = await _started(stub_gateway, pdf_document)
        before = coord.state
        txt = UploadedDocument("notes.txt", "text/plain", b"hello")

        with pytest.raises(InvalidTransition):
            coord.select_files([txt, pdf_document])

        assert coord.state is before
        assert coord.state.notices == ()

    @pytest.mark.asyncio
    async def test_generation_requires_document(self, stub_gateway):
        coord = GenerationCoordinator(stub_gateway)

        with pytest.raises(InvalidTransition):
            await coord.submit()
        with pytest.raises(InvalidTransition):
            await coord.select_mode(QUIZ)
        assert stub_gateway.calls == []


class TestGenerationFlow:
    @pytest.mark.asyncio
    async def test_submit_generates_quiz_then_offers_modes(self, stub_gateway, pdf_document):
        coord = await _started(stub_gateway, pdf_document)

        assert stub_gateway.calls == [QUIZ]
        assert coord.phase is Phase.MODE_SELECTION_PENDING
        assert len(coord.state.result_for(QUIZ)) == 4
        assert coord.state.title == "Cell Biology"
        assert coord.mounted_view() is None

    @pytest.mark.asyncio
    async def test_cached_mode_makes_no_gateway_call(self, stub_gateway, pdf_document):
        coord = await _started(stub_gateway, pdf_document)

        await coord.select_mode(QUIZ)

        assert stub_gateway.calls == [QUIZ]
        assert coord.phase is Phase.MODE_ACTIVE
        assert isinstance(coord.mounted_view(), QuizSession)

    @pytest.mark.asyncio
    async def test_empty_mode_regenerates_from_same_document(self, stub_gateway, pdf_document):
        coord = await _started(stub_gateway, pdf_document)

        await coord.select_mode(MATCH)

        assert stub_gateway.calls == [QUIZ, MATCH]
        assert stub_gateway.files[0] == stub_gateway.files[1]
        assert coord.phase is Phase.MODE_ACTIVE
        assert isinstance(coord.mounted_view(), MatchingGame)

    @pytest.mark.asyncio
    async def test_switch_from_view_reuses_cache(self, stub_gateway, pdf_document):
        coord = await _started(stub_gateway, pdf_document)
        await coord.select_mode(CARDS)
        deck = coord.mounted_view()
        assert isinstance(deck, FlashcardDeck)

        await deck.switch_mode(QUIZ)
        await coord.mounted_view().switch_mode(CARDS)

        assert stub_gateway.calls == [QUIZ, CARDS]
        assert isinstance(coord.mounted_view(), FlashcardDeck)
        assert coord.mounted_view() is not deck

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, stub_gateway, pdf_document):
        seen = []
        coord = GenerationCoordinator(
            stub_gateway,
            on_change=lambda st: seen.append((progress_for(st, QUIZ), bool(st.result_for(QUIZ)))),
        )
        coord.select_files([pdf_document])
        await coord.submit()
        await coord.wait_idle()

        values = [p for p, _ in seen]
        assert values == sorted(values)
        assert values[-1] == 100
        assert all((p == 100) == done for p, done in seen)

    @pytest.mark.asyncio
    async def test_view_reset_clears_session(self, stub_gateway, pdf_document):
        coord = await _started(stub_gateway, pdf_document)
        await coord.select_mode(QUIZ)

        coord.mounted_view().new_document()

        st = coord.state
        assert st.document is None
        assert st.selected_mode is None
        assert all(st.result_for(k) == () for k in ContentKind)
        assert coord.phase is Phase.IDLE


class TestFailures:
    @pytest.mark.asyncio
    async def test_gateway_failure_returns_to_idle(self, pdf_document):
        gateway = StubGateway(fail={QUIZ})
        coord = await _started(gateway, pdf_document)

        assert coord.phase is Phase.IDLE
        assert coord.state.document is None
        assert coord.state.notices == ("Failed to generate quiz. Please try again.",)
        assert coord.dismiss_notices()
        assert coord.state.notices == ()

    @pytest.mark.asyncio
    async def test_title_failure_does_not_block(self, pdf_document):
        gateway = StubGateway(title=RuntimeError("title service down"))
        coord = await _started(gateway, pdf_document)

        assert coord.state.title == DEFAULT_TITLE
        assert coord.phase is Phase.MODE_SELECTION_PENDING
        assert coord.state.notices == ()


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_one_stream_per_mode(self, pdf_document):
        gateway = StubGateway(hold={CARDS})
        coord = await _started(gateway, pdf_document)

        first = asyncio.create_task(coord.select_mode(CARDS))
        await asyncio.sleep(0)
        second = asyncio.create_task(coord.select_mode(CARDS))
        await asyncio.sleep(0)
        gateway.release(CARDS)
        await asyncio.gather(first, second)

        assert gateway.calls.count(CARDS) == 1
        assert coord.phase is Phase.MODE_ACTIVE

    @pytest.mark.asyncio
    async def test_reset_discards_late_results(self, pdf_document):
        gateway = StubGateway(hold={QUIZ})
        coord = GenerationCoordinator(gateway)
        coord.select_files([pdf_document])
        submit = asyncio.create_task(coord.submit())
        for _ in range(5):
            await asyncio.sleep(0)
        assert coord.phase is Phase.GENERATING

        coord.reset()
        gateway.release(QUIZ)
        await submit
        await coord.wait_idle()

        assert coord.phase is Phase.IDLE
        assert coord.state.result_for(QUIZ) == ()
        assert coord.state.title is None


class TestMountedViews:
    @pytest.mark.asyncio
    async def test_matching_uses_injected_randomness(self, pdf_document):
        first = await _started(StubGateway(), pdf_document, rng=random.Random(7))
        second = await _started(StubGateway(), pdf_document, rng=random.Random(7))
        await first.select_mode(MATCH)
        await second.select_mode(MATCH)

        a, b = first.mounted_view(), second.mounted_view()
        assert [i.id for i in a.terms] == [i.id for i in b.terms]
        assert [i.id for i in a.definitions] == [i.id for i in b.definitions]

    @pytest.mark.asyncio
    async def test_view_title_from_session(self, stub_gateway, pdf_document):
        coord = await _started(stub_gateway, pdf_document)
        await coord.select_mode(QUIZ)
        assert coord.mounted_view().title == "Cell Biology"
