"""Session state for one study-aid tab, transitioned by pure reducers.

Every reducer takes a ``SessionState`` and returns a new one; nothing here
touches the network. The async driver in ``coordinator.py`` performs the side
effects and feeds their outcomes back through these functions.

Streams are tagged with the session ``epoch`` they started in. Selecting a new
document, resetting or failing bumps the epoch, so results that arrive for an
older epoch are ignored instead of landing in a session that moved on.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from app.modules.study.documents import UploadedDocument
from app.modules.study.errors import InvalidTransition
from app.modules.study.models import ContentKind, get_spec, progress_percent

DEFAULT_MODE = ContentKind.QUIZ


class Phase(str, Enum):
    IDLE = "idle"
    AWAITING_FIRST_GENERATION = "awaiting_first_generation"
    MODE_SELECTION_PENDING = "mode_selection_pending"
    GENERATING = "generating"
    MODE_ACTIVE = "mode_active"


def _frozen(d: Mapping) -> Mapping:
    return MappingProxyType(dict(d))


def _empty_results() -> Mapping[ContentKind, tuple]:
    return _frozen({kind: () for kind in ContentKind})


@dataclass(frozen=True)
class SessionState:
    document: Optional[UploadedDocument] = None
    results: Mapping[ContentKind, tuple] = field(default_factory=_empty_results)
    selected_mode: Optional[ContentKind] = None
    content_generated: bool = False
    title: Optional[str] = None
    phase: Phase = Phase.IDLE
    # mode currently shown as generating (drives the progress bar)
    generating: Optional[ContentKind] = None
    in_flight: frozenset = frozenset()
    observed: Mapping[ContentKind, int] = field(default_factory=lambda: _frozen({}))
    notices: tuple[str, ...] = ()
    epoch: int = 0

    def result_for(self, kind: ContentKind | str) -> tuple:
        return self.results[ContentKind(kind)]


def _with_result(state: SessionState, kind: ContentKind, items: tuple) -> Mapping:
    results = dict(state.results)
    results[kind] = items
    return _frozen(results)


def _with_observed(state: SessionState, kind: ContentKind, count: int) -> Mapping:
    observed = dict(state.observed)
    observed[kind] = count
    return _frozen(observed)


def needs_generation(state: SessionState, mode: ContentKind | str) -> bool:
    """True when selecting ``mode`` must call the gateway."""
    mode = ContentKind(mode)
    return not state.results[mode] and mode not in state.in_flight


def document_selected(state: SessionState, document: UploadedDocument) -> SessionState:
    if state.phase not in (Phase.IDLE,):
        raise InvalidTransition(f"cannot replace the document while {state.phase.value}")
    return SessionState(document=document, notices=state.notices, epoch=state.epoch + 1)


def submitted(state: SessionState) -> SessionState:
    if state.document is None:
        raise InvalidTransition("select a PDF before generating")
    if state.phase is not Phase.IDLE:
        raise InvalidTransition(f"already {state.phase.value}")
    return replace(state, phase=Phase.AWAITING_FIRST_GENERATION)


def generation_started(state: SessionState, kind: ContentKind | str) -> SessionState:
    kind = ContentKind(kind)
    if state.document is None:
        raise InvalidTransition("no document to generate from")
    return replace(
        state,
        phase=Phase.GENERATING,
        generating=kind,
        in_flight=state.in_flight | {kind},
        observed=_with_observed(state, kind, 0),
    )


def partial_received(
    state: SessionState, kind: ContentKind | str, count: int, epoch: int
) -> SessionState:
    kind = ContentKind(kind)
    if epoch != state.epoch or kind not in state.in_flight:
        return state
    # Streamed counts stay below the target so 100% means "finished".
    capped = min(count, get_spec(kind).target - 1)
    if capped <= state.observed.get(kind, 0):
        return state
    return replace(state, observed=_with_observed(state, kind, capped))


def _settled_phase(state: SessionState) -> tuple[Phase, Optional[ContentKind]]:
    mode = state.selected_mode
    if mode is None:
        if state.content_generated:
            return Phase.MODE_SELECTION_PENDING, None
        return Phase.GENERATING, state.generating
    if state.results[mode]:
        return Phase.MODE_ACTIVE, None
    if mode in state.in_flight:
        return Phase.GENERATING, mode
    return Phase.MODE_SELECTION_PENDING, None


def generation_succeeded(
    state: SessionState, kind: ContentKind | str, items: Any, epoch: int
) -> SessionState:
    kind = ContentKind(kind)
    if epoch != state.epoch:
        return state
    state = replace(
        state,
        results=_with_result(state, kind, tuple(items)),
        content_generated=True,
        in_flight=state.in_flight - {kind},
        observed=_with_observed(state, kind, get_spec(kind).target),
    )
    phase, generating = _settled_phase(state)
    return replace(state, phase=phase, generating=generating)


def generation_failed(
    state: SessionState, kind: ContentKind | str, message: Optional[str], epoch: int
) -> SessionState:
    kind = ContentKind(kind)
    if epoch != state.epoch:
        return state
    notice = message or get_spec(kind).failure_notice
    return SessionState(notices=state.notices + (notice,), epoch=state.epoch + 1)


def mode_selected(state: SessionState, mode: ContentKind | str) -> SessionState:
    mode = ContentKind(mode)
    if state.document is None:
        raise InvalidTransition("no document loaded")
    state = replace(state, selected_mode=mode)
    if state.results[mode]:
        return replace(state, phase=Phase.MODE_ACTIVE, generating=None)
    if mode in state.in_flight:
        return replace(state, phase=Phase.GENERATING, generating=mode)
    return generation_started(state, mode)


def title_resolved(state: SessionState, title: str, epoch: int) -> SessionState:
    if epoch != state.epoch:
        return state
    return replace(state, title=title)


def notice_added(state: SessionState, notice: str) -> SessionState:
    return replace(state, notices=state.notices + (notice,))


def notices_dismissed(state: SessionState) -> SessionState:
    return replace(state, notices=())


def reset(state: SessionState) -> SessionState:
    return SessionState(epoch=state.epoch + 1)


def current_progress(state: SessionState) -> float:
    """Percentage for the mode shown as generating, 0 when nothing is."""
    kind = state.generating
    if kind is None:
        return 0.0
    return progress_percent(state.observed.get(kind, 0), get_spec(kind).target)


def progress_for(state: SessionState, kind: ContentKind | str) -> float:
    kind = ContentKind(kind)
    return progress_percent(state.observed.get(kind, 0), get_spec(kind).target)


def progress_caption(state: SessionState) -> str:
    kind = state.generating
    if kind is None or kind not in state.in_flight:
        return "Analyzing PDF content"
    spec = get_spec(kind)
    count = state.observed.get(kind, 0)
    if count == 0:
        return "Analyzing PDF content"
    return f"Generating {spec.item_label} {min(count + 1, spec.target)} of {spec.target}"
