"""Gateways the coordinator uses to reach the generator.

``LocalGateway`` runs the generator in-process; ``HttpGateway`` talks to the
``/study/generate/{kind}`` endpoint and decodes its Server-Sent Events back
into ``StreamUpdate`` objects. Both satisfy the ``Gateway`` protocol.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.modules.study.documents import EncodedFile, validate_document
from app.modules.study.errors import GenerationFailed
from app.modules.study.generator import StreamUpdate, generate, generate_title
from app.modules.study.models import ContentKind, get_spec


class Gateway(Protocol):
    def stream(
        self, kind: ContentKind, file: EncodedFile
    ) -> AsyncIterator[StreamUpdate]: ...

    async def title(self, filename: str) -> str: ...


class LocalGateway:
    """Calls the generator directly, decoding the wire file like the API does."""

    async def stream(
        self, kind: ContentKind, file: EncodedFile
    ) -> AsyncIterator[StreamUpdate]:
        document = validate_document(
            file.to_document(), max_bytes=settings.generation.max_upload_bytes
        )
        async for update in generate(kind, document):
            yield update

    async def title(self, filename: str) -> str:
        return await generate_title(filename)


@dataclass
class SSEvent:
    event: Optional[str]
    data: str

    def json(self) -> dict:
        return json.loads(self.data) if self.data else {}


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[SSEvent]:
    """Parse ``text/event-stream`` lines into events (blank line dispatches)."""
    event: Optional[str] = None
    data: list[str] = []
    async for line in lines:
        if not line:
            if data or event:
                yield SSEvent(event=event, data="\n".join(data))
            event, data = None, []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if name == "event":
            if data:
                yield SSEvent(event=event, data="\n".join(data))
                data = []
            event = value
        elif name == "data":
            data.append(value)
    if data or event:
        yield SSEvent(event=event, data="\n".join(data))


class HttpGateway:
    """Streams generation results from a running study-aid API."""

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client
        self.timeout = timeout or settings.generation.timeout_sec + 5

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{settings.app.version}/study/{path}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def stream(
        self, kind: ContentKind, file: EncodedFile
    ) -> AsyncIterator[StreamUpdate]:
        kind = ContentKind(kind)
        spec = get_spec(kind)
        client = self._get_client()
        body = {"files": [file.model_dump()]}
        async with client.stream("POST", self._url(f"generate/{kind.value}"), json=body) as resp:
            if resp.status_code != 200:
                await resp.aread()
                detail = _error_detail(resp)
                raise GenerationFailed(
                    f"Gateway rejected request ({resp.status_code}): {detail}",
                    kind=kind.value,
                )
            async for ev in iter_sse_events(resp.aiter_lines()):
                payload = ev.json()
                if ev.event == "partial":
                    yield StreamUpdate(kind=kind, items=list(payload.get("items") or []))
                elif ev.event == "complete":
                    try:
                        items = spec.set_model.model_validate(payload.get("items") or []).root
                    except ValidationError as e:
                        raise GenerationFailed(
                            f"Gateway returned an invalid {kind.value} set: {e}",
                            kind=kind.value,
                        ) from e
                    yield StreamUpdate(kind=kind, items=list(items), complete=True)
                    return
                elif ev.event == "error":
                    raise GenerationFailed(
                        payload.get("detail") or "Generation failed", kind=kind.value
                    )
        raise GenerationFailed("Stream ended before completion", kind=kind.value)

    async def title(self, filename: str) -> str:
        resp = await self._get_client().post(
            self._url("title"), json={"filename": filename}
        )
        resp.raise_for_status()
        return resp.json()["title"]


def _error_detail(resp: httpx.Response) -> str:
    try:
        return str(resp.json().get("detail"))
    except ValueError:
        return resp.text
