"""Study-aid module exports."""

from .models import ContentKind, Flashcard, MatchingItem, Question
from .documents import UploadedDocument
from .generator import StreamUpdate, generate, generate_title
from .gateway import Gateway, HttpGateway, LocalGateway
from .coordinator import GenerationCoordinator
from .state import Phase, SessionState

__all__ = [
    "ContentKind",
    "Flashcard",
    "MatchingItem",
    "Question",
    "UploadedDocument",
    "StreamUpdate",
    "generate",
    "generate_title",
    "Gateway",
    "HttpGateway",
    "LocalGateway",
    "GenerationCoordinator",
    "Phase",
    "SessionState",
]
