"""Generation coordinator: drives gateway streams through the session reducers.

Example:
    coord = GenerationCoordinator(LocalGateway())
    coord.select_files([UploadedDocument("notes.pdf", "application/pdf", data)])
    await coord.submit()               # quiz is generated first
    await coord.select_mode("matching")
    game = coord.mounted_view()
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Callable, Iterable, Optional

from app.core.config import settings
from app.core.logging import bind, get_logger
from app.modules.study import state as session
from app.modules.study.documents import (
    REJECTED_NOTICE,
    EncodedFile,
    UploadedDocument,
    choose_single,
    filter_documents,
)
from app.modules.study.errors import DocumentRejected, GenerationFailed, InvalidTransition
from app.modules.study.gateway import Gateway
from app.modules.study.generator import DEFAULT_TITLE
from app.modules.study.models import ContentKind, get_spec
from app.modules.study.state import Phase, SessionState
from app.modules.study.views import VIEW_CLASSES, MatchingGame, ModeView

logger = get_logger(__name__)


class GenerationCoordinator:
    """Owns one session: the uploaded PDF, the three result sets and the mode.

    At most one gateway stream runs per mode per document; asking for a mode
    that is already streaming waits on the running task instead.
    """

    def __init__(
        self,
        gateway: Gateway,
        *,
        on_change: Optional[Callable[[SessionState], None]] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.gateway = gateway
        self.on_change = on_change
        self.rng = rng
        self.clock = clock
        self._state = SessionState()
        # mode -> (epoch, task)
        self._tasks: dict[ContentKind, tuple[int, asyncio.Task]] = {}
        self._title_task: Optional[asyncio.Task] = None
        self._view: Optional[tuple[tuple, ModeView]] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def progress(self) -> float:
        return session.current_progress(self._state)

    @property
    def progress_caption(self) -> str:
        return session.progress_caption(self._state)

    def _apply(self, new_state: SessionState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        if self.on_change is not None:
            self.on_change(new_state)

    # Upload ------------------------------------------------------------
    def select_files(
        self, candidates: Iterable[UploadedDocument]
    ) -> Optional[UploadedDocument]:
        """Validate picked/dropped files and keep the single accepted PDF.

        Only allowed while idle; the session is left untouched otherwise.
        """
        if self._state.phase is not Phase.IDLE:
            raise InvalidTransition(
                f"cannot replace the document while {self._state.phase.value}"
            )
        accepted, rejected = filter_documents(
            candidates, max_bytes=settings.generation.max_upload_bytes
        )
        if rejected:
            logger.info("Rejected %d file(s): %s", len(rejected), [d.name for d in rejected])
            self._apply(session.notice_added(self._state, REJECTED_NOTICE))
        try:
            document = choose_single(accepted)
        except DocumentRejected as e:
            if e.reason != "empty":
                self._apply(session.notice_added(self._state, str(e)))
            return None
        self._apply(session.document_selected(self._state, document))
        return document

    async def submit(self) -> None:
        """Start the first generation (quiz) and derive a title alongside it."""
        self._apply(session.submitted(self._state))
        document = self._state.document
        if document is None:
            raise InvalidTransition("select a PDF before generating")
        self._title_task = asyncio.create_task(
            self._resolve_title(document.name, self._state.epoch)
        )
        self._apply(session.generation_started(self._state, session.DEFAULT_MODE))
        await self._launch(session.DEFAULT_MODE)

    # Modes -------------------------------------------------------------
    async def select_mode(self, mode: ContentKind | str) -> None:
        """Show ``mode``, generating its set first when it is still empty."""
        mode = ContentKind(mode)
        must_generate = session.needs_generation(self._state, mode)
        self._apply(session.mode_selected(self._state, mode))
        if must_generate:
            await self._launch(mode)
            return
        running = self._tasks.get(mode)
        if running is not None and running[0] == self._state.epoch:
            await asyncio.shield(running[1])

    async def switch_mode(self, mode: ContentKind | str) -> None:
        await self.select_mode(mode)

    def reset(self) -> None:
        """Forget the PDF and everything generated from it."""
        self._apply(session.reset(self._state))
        self._view = None

    def dismiss_notices(self) -> tuple[str, ...]:
        notices = self._state.notices
        self._apply(session.notices_dismissed(self._state))
        return notices

    async def wait_idle(self) -> None:
        """Wait for every in-flight stream and the title call to settle."""
        pending = [t for _, t in self._tasks.values()]
        if self._title_task is not None:
            pending.append(self._title_task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # Streams -----------------------------------------------------------
    def _launch(self, kind: ContentKind) -> asyncio.Future:
        epoch = self._state.epoch
        running = self._tasks.get(kind)
        if running is not None and running[0] == epoch and not running[1].done():
            return asyncio.shield(running[1])
        document = self._state.document
        if document is None:
            raise InvalidTransition("no document to generate from")
        task = asyncio.create_task(self._run_stream(kind, document, epoch))
        self._tasks[kind] = (epoch, task)

        def _forget(t: asyncio.Task, kind: ContentKind = kind) -> None:
            if self._tasks.get(kind, (None, None))[1] is t:
                self._tasks.pop(kind, None)

        task.add_done_callback(_forget)
        return asyncio.shield(task)

    async def _run_stream(
        self, kind: ContentKind, document: UploadedDocument, epoch: int
    ) -> None:
        log = bind(logger, kind=kind.value, request_id=f"epoch-{epoch}")
        # Re-encoded for every call; the session keeps raw bytes only.
        file = EncodedFile.from_document(document)
        try:
            async for update in self.gateway.stream(kind, file):
                if update.complete:
                    self._apply(
                        session.generation_succeeded(self._state, kind, update.items, epoch)
                    )
                    return
                self._apply(
                    session.partial_received(self._state, kind, update.count, epoch)
                )
            raise GenerationFailed("Stream ended before completion", kind=kind.value)
        except Exception as e:  # noqa: BLE001
            if epoch == self._state.epoch:
                log.warning("Generation failed: %s", e)
            else:
                log.info("Ignoring failure from a stale stream: %s", e)
            self._apply(
                session.generation_failed(
                    self._state, kind, get_spec(kind).failure_notice, epoch
                )
            )

    async def _resolve_title(self, filename: str, epoch: int) -> None:
        try:
            title = await self.gateway.title(filename)
        except Exception as e:  # noqa: BLE001
            logger.warning("Title generation failed for %s: %s", filename, e)
            title = DEFAULT_TITLE
        self._apply(session.title_resolved(self._state, title or DEFAULT_TITLE, epoch))

    # Views -------------------------------------------------------------
    def mounted_view(self) -> Optional[ModeView]:
        """The interactive view for the active mode, once its data is complete."""
        st = self._state
        mode = st.selected_mode
        if st.phase is not Phase.MODE_ACTIVE or mode is None:
            return None
        items = st.result_for(mode)
        key = (mode, st.epoch, id(items))
        if self._view is not None and self._view[0] == key:
            return self._view[1]
        kwargs = dict(
            title=st.title,
            request_mode_switch=self.switch_mode,
            request_reset=self.reset,
        )
        if VIEW_CLASSES[mode] is MatchingGame:
            view: ModeView = MatchingGame(items, rng=self.rng, clock=self.clock, **kwargs)
        else:
            view = VIEW_CLASSES[mode](items, **kwargs)
        self._view = (key, view)
        return view
