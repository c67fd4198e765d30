from __future__ import annotations

from typing import Any, Callable, Optional

from app.modules.study.models import ContentKind, get_spec

ModeSwitch = Callable[[ContentKind], Any]
Reset = Callable[[], Any]


class ModeView:
    """Shared plumbing for the three interactive views.

    A view only knows its finished data set and two callbacks handed over by
    the coordinator; everything else is local state.
    """

    mode: ContentKind

    def __init__(
        self,
        *,
        title: Optional[str] = None,
        request_mode_switch: Optional[ModeSwitch] = None,
        request_reset: Optional[Reset] = None,
    ) -> None:
        self.title = title or get_spec(self.mode).default_title
        self._request_mode_switch = request_mode_switch
        self._request_reset = request_reset

    @property
    def other_modes(self) -> list[ContentKind]:
        return [k for k in ContentKind if k is not self.mode]

    def switch_mode(self, mode: ContentKind | str) -> Any:
        mode = ContentKind(mode)
        if mode is self.mode:
            raise ValueError(f"already in {mode.value} mode")
        if self._request_mode_switch is None:
            return None
        return self._request_mode_switch(mode)

    def new_document(self) -> Any:
        """Drop the current PDF and go back to the upload screen."""
        if self._request_reset is None:
            return None
        return self._request_reset()


def require_count(items: list, kind: ContentKind) -> list:
    target = get_spec(kind).target
    if len(items) != target:
        raise ValueError(f"{kind.value} view needs exactly {target} items, got {len(items)}")
    return items
