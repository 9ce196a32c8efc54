"""Process-scoped collaborators injected into route handlers.

server.lifespan creates the AIClient once; tests replace these through
app.dependency_overrides.
"""

from fastapi import Depends, Request

from learnpath.config import settings
from learnpath.services.ai_client import AIClient
from learnpath.services.content_synthesizer import ContentSynthesizer
from learnpath.services.remediation import MODE_SYNTHESIS, RemediationSelector


def get_ai_client(request: Request) -> AIClient:
    return request.app.state.ai_client


def get_remediation_selector(client=Depends(get_ai_client)) -> RemediationSelector:
    synthesizer = None
    if settings.remediation_mode == MODE_SYNTHESIS:
        synthesizer = ContentSynthesizer(client, max_block_chars=settings.max_block_chars)
    return RemediationSelector(
        settings.remediation_mode,
        synthesizer,
        persist=settings.persist_remedial_lessons,
    )
