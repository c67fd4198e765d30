from __future__ import annotations

import asyncio
import json
from uuid import uuid4

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import StreamingResponse

from app.core.config import settings
from app.core.logging import bind, get_logger
from app.modules.study.documents import (
    UploadedDocument,
    choose_single,
    validate_document,
)
from app.modules.study.errors import DocumentRejected, GenerationFailed
from app.modules.study.generator import generate, generate_title
from app.modules.study.models import ContentKind
from .schemas import GenerateRequest, TitleRequest, TitleResponse


router = APIRouter()
logger = get_logger(__name__)

_REJECTION_STATUS = {
    "mime": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    "size": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
}


def _sse(event: str | None, data: dict) -> bytes:
    payload = json.dumps(data, ensure_ascii=False)
    parts = []
    if event:
        parts.append(f"event: {event}")
    parts.append(f"data: {payload}")
    parts.append("")
    return ("\n".join(parts) + "\n").encode("utf-8")


def _load_document(req: GenerateRequest) -> UploadedDocument:
    try:
        document = choose_single([f.to_document() for f in req.files])
        return validate_document(
            document, max_bytes=settings.generation.max_upload_bytes
        )
    except DocumentRejected as e:
        code = _REJECTION_STATUS.get(e.reason, status.HTTP_422_UNPROCESSABLE_ENTITY)
        raise HTTPException(status_code=code, detail=str(e))


@router.post(
    f"/{settings.app.version}/study/generate/{{kind}}",
    tags=["study"],
)
async def generate_content(kind: ContentKind, req: GenerateRequest) -> StreamingResponse:
    document = _load_document(req)
    request_id = uuid4().hex[:8]
    log = bind(logger, request_id=request_id, kind=kind.value)

    async def gen():
        try:
            async with asyncio.timeout(settings.generation.timeout_sec):
                async for update in generate(kind, document, request_id=request_id):
                    event = "complete" if update.complete else "partial"
                    yield _sse(event, update.to_jsonable())
        except TimeoutError:
            log.warning("Generation timed out after %ss", settings.generation.timeout_sec)
            yield _sse("error", {"kind": kind.value, "detail": "Generation timed out"})
        except GenerationFailed as e:
            yield _sse("error", {"kind": kind.value, "detail": str(e)})
        except asyncio.CancelledError:
            # Client disconnected
            log.info("Client disconnected")
            raise

    return StreamingResponse(
        gen(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.post(
    f"/{settings.app.version}/study/title",
    response_model=TitleResponse,
    tags=["study"],
)
async def derive_title(req: TitleRequest) -> TitleResponse:
    title = await generate_title(req.filename)
    return TitleResponse(title=title)
