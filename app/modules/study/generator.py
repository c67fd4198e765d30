"""Study content generator using pydantic-ai and Gemini provider.

``generate`` streams one content kind (quiz questions, flashcards or matching
pairs) out of an uploaded PDF. The model is asked for array-shaped structured
output and its partial arrays are relayed as they grow; the final array is
validated against the kind's set model before the stream reports completion.
Imports for the LLM providers are kept lazy to avoid import-time errors when
credentials are missing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError
from pydantic_ai import Agent, BinaryContent, NativeOutput

from app.core.config import settings
from app.core.logging import bind, get_logger
from app.modules.study.documents import UploadedDocument
from app.modules.study.errors import GenerationFailed
from app.modules.study.models import ContentKind, ContentSpec, get_spec, progress_percent

logger = get_logger(__name__)

DEFAULT_TITLE = "Study Set"


def _build_google_model(model_name: str):
    """Build Google Gemini model for pydantic-ai (lazy import)."""
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider

    provider = GoogleProvider(api_key=settings.generation.gemini_api_key)
    return GoogleModel(model_name, provider=provider)


def _build_openrouter_model():
    """Build OpenRouter model via OpenAI-compatible provider (lazy import)."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    if not settings.generation.openrouter_api_key:
        raise RuntimeError(
            "OpenRouter API key not configured. Set OPENROUTER_API_KEY in your environment."
        )

    provider = OpenAIProvider(
        api_key=settings.generation.openrouter_api_key,
        base_url="https://openrouter.ai/api/v1",
    )
    return OpenAIChatModel(settings.generation.openrouter_model, provider=provider)


def _build_model_by_settings(model_name: str):
    provider = (settings.generation.model_provider or "google").lower()
    if provider == "openrouter":
        return _build_openrouter_model()
    return _build_google_model(model_name)


SYSTEM_PROMPTS: dict[ContentKind, str] = {
    ContentKind.QUIZ: (
        "You are a teacher. Your job is to take a document, and create a multiple "
        "choice test (with 4 questions) based on the content of the document. "
        "Each option should be roughly equal in length. "
        "Each question has: {question, options, answer}; options holds exactly 4 "
        "plain-text choices and answer is the letter A, B, C or D of the correct one."
    ),
    ContentKind.FLASHCARDS: (
        "You are a teacher. Your job is to take a document, and create a set of 8 "
        "flashcards based on the content of the document. Each flashcard should "
        "have a term on the front and a definition or explanation on the back. "
        "Plain text only, no markdown."
    ),
    ContentKind.MATCHING: (
        "You are a teacher. Your job is to take a document, and create a set of 6 "
        "matching items based on the content of the document. Each item should "
        "have a term and a definition that can be matched together. "
        "Terms must be distinct from one another."
    ),
}

USER_INSTRUCTIONS: dict[ContentKind, str] = {
    ContentKind.QUIZ: "Create a multiple choice test based on this document.",
    ContentKind.FLASHCARDS: "Create a set of flashcards based on this document.",
    ContentKind.MATCHING: "Create a set of matching items based on this document.",
}


@dataclass
class StreamUpdate:
    """One step of a generation stream.

    Partial updates carry the growing array as the model emits it; the final
    update has ``complete=True`` and the validated set.
    """

    kind: ContentKind
    items: list[Any] = field(default_factory=list)
    complete: bool = False

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def target(self) -> int:
        return get_spec(self.kind).target

    @property
    def progress(self) -> float:
        # Partial updates stay below 100 until the validated set lands.
        count = self.count if self.complete else min(self.count, self.target - 1)
        return progress_percent(count, self.target)

    def to_jsonable(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "items": [
                i.model_dump() if isinstance(i, BaseModel) else i for i in self.items
            ],
            "count": self.count,
            "target": self.target,
            "progress": round(self.progress, 2),
        }


def build_content_agent(spec: ContentSpec) -> Agent:
    model = _build_model_by_settings(settings.generation.content_model)
    output_type = NativeOutput(
        list[spec.generated_model],
        name=f"{spec.kind.value}_items",
        description=f"Exactly {spec.target} {spec.item_label} entries.",
    )
    return Agent(
        model,
        output_type=output_type,
        system_prompt=SYSTEM_PROMPTS[spec.kind],
        retries=settings.generation.retries,
    )


async def _stream_model_output(
    spec: ContentSpec, document: UploadedDocument
) -> AsyncIterator[list[BaseModel]]:
    """Yield the model's partial arrays, ending with its final output."""
    agent = build_content_agent(spec)
    prompt = [
        USER_INSTRUCTIONS[spec.kind],
        BinaryContent(data=document.data, media_type=document.mime_type),
    ]
    async with agent.run_stream(prompt) as result:
        async for partial in result.stream_output(debounce_by=None):
            yield list(partial or [])
        yield list(await result.get_output() or [])


def _describe(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ()))
        parts.append(f"{loc}: {e.get('msg')}" if loc else str(e.get("msg")))
    return "; ".join(parts) or str(err)


def finalize_items(kind: ContentKind | str, items: list[Any]) -> list[BaseModel]:
    """Validate a finished array against the kind's set model.

    Matching items get fresh ids here; anything the model put in ``id`` is
    overwritten.
    """
    spec = get_spec(kind)
    raw = [i.model_dump() if isinstance(i, BaseModel) else dict(i) for i in items]
    if spec.kind is ContentKind.MATCHING:
        raw = [{**r, "id": str(uuid4())} for r in raw]
    try:
        validated = spec.set_model.model_validate(raw)
    except ValidationError as e:
        raise GenerationFailed(
            f"Generated {spec.kind.value} failed validation: {_describe(e)}",
            kind=spec.kind.value,
        ) from e
    return list(validated.root)


async def generate(
    kind: ContentKind | str,
    document: UploadedDocument,
    *,
    request_id: str | None = None,
) -> AsyncIterator[StreamUpdate]:
    """Stream partial arrays for ``kind`` and finish with the validated set.

    Only completed items are relayed: the trailing entry of a mid-stream
    snapshot may still be half-parsed, so it is held back until a later
    snapshot moves past it. Relayed items are never rewritten and the final
    set keeps them as its prefix. Raises ``GenerationFailed`` instead of
    completing when the model errors or the final array does not validate.
    """
    spec = get_spec(kind)
    log = bind(logger, request_id=request_id or uuid4().hex[:8], kind=spec.kind.value)
    log.info("Generation started for %s (%d bytes)", document.name, document.size)

    relayed: list[Any] = []
    final: list[Any] = []
    try:
        async for partial in _stream_model_output(spec, document):
            final = partial
            fresh = partial[len(relayed) : len(partial) - 1]
            if fresh:
                relayed.extend(fresh)
                yield StreamUpdate(kind=spec.kind, items=list(relayed))
    except GenerationFailed:
        raise
    except Exception as e:
        log.error("Model stream failed: %s", e)
        raise GenerationFailed(
            f"Model stream failed: {e}", kind=spec.kind.value
        ) from e

    try:
        items = finalize_items(spec.kind, relayed + list(final[len(relayed) :]))
    except GenerationFailed as e:
        log.warning("%s", e)
        raise
    log.info("Generation completed with %d items", len(items))
    yield StreamUpdate(kind=spec.kind, items=items, complete=True)


class DocumentTitle(BaseModel):
    title: str = Field(description="A max three word title for the study set")


TITLE_SYSTEM_PROMPT = (
    "You name study sets. Generate a title for a study set based on the given "
    "file name. Try and extract as much info from the file name as possible. "
    "If the file name is just numbers or incoherent, just return 'Study Set'."
)


async def generate_title(filename: str) -> str:
    """Derive a short display title from a filename; never raises."""
    try:
        model = _build_model_by_settings(settings.generation.title_model)
        agent: Agent[None, DocumentTitle] = Agent[None, DocumentTitle](
            model,
            output_type=DocumentTitle,
            system_prompt=TITLE_SYSTEM_PROMPT,
        )
        res = await agent.run(f"File name: {filename}")
        title = " ".join(res.output.title.split()[:3]).strip()
        return title or DEFAULT_TITLE
    except Exception as e:  # noqa: BLE001
        logger.warning("Title generation failed for %s: %s", filename, e)
        return DEFAULT_TITLE
