"""OpenAI-compatible chat completion routes."""

import time
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from know.exceptions import ErrorCode, KnowError, ValidationError
from know.logging_config import get_logger
from know.rag.models import RAGQuery
from know.rag.pipeline import RAGPipeline

logger = get_logger(__name__)

RESPONSE_MODEL_ID = "know-rag"

router = APIRouter(prefix="/v1", tags=["Chat"])


class ChatMessage(BaseModel):
    """A single chat message."""

    role: str = Field(description="Message role (system, user, assistant)")
    content: str | None = Field(default=None, description="Message text")


class ChatCompletionRequest(BaseModel):
    """Request body for chat completions.

    Only the last user message is answered; earlier turns are ignored.
    """

    model: str | None = Field(default=None, description="Requested model (ignored)")
    messages: list[ChatMessage] = Field(description="Conversation so far")
    stream: bool = Field(default=False, description="Streaming is not supported")
    top_k: int = Field(default=5, ge=1, le=50, description="Chunks to retrieve")


class ChatChoice(BaseModel):
    """One completion choice."""

    index: int = 0
    message: ChatMessage
    finish_reason: Literal["stop"] = "stop"


class Usage(BaseModel):
    """Token accounting (always zero)."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Chat completion response with the answer's sources attached."""

    id: str = Field(description="Completion id")
    object: Literal["chat.completion"] = "chat.completion"
    created: int = Field(description="Unix timestamp")
    model: str = Field(default=RESPONSE_MODEL_ID)
    choices: list[ChatChoice]
    usage: Usage = Field(default_factory=Usage)
    sources: list[str] = Field(
        default_factory=list,
        description="Distinct source paths used for the answer",
    )


def extract_question(messages: list[ChatMessage]) -> str:
    """Return the content of the most recent user message.

    Raises:
        ValidationError: If there is no user message, or the most recent
            one is blank.
    """
    for message in reversed(messages):
        if message.role != "user":
            continue
        question = (message.content or "").strip()
        if not question:
            raise ValidationError("User message is empty")
        return question
    raise ValidationError("No user message found")


def get_pipeline(request: Request) -> RAGPipeline:
    """Dependency returning the pipeline built at startup."""
    pipeline: RAGPipeline | None = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise KnowError(
            "Query pipeline is not configured",
            code=ErrorCode.SERVICE_NOT_CONFIGURED,
        )
    return pipeline


@router.post("/chat/completions", response_model=ChatCompletionResponse)
async def chat_completions(
    body: ChatCompletionRequest,
    pipeline: RAGPipeline = Depends(get_pipeline),
) -> ChatCompletionResponse:
    """Answer the last user message from the knowledge base."""
    question = extract_question(body.messages)

    response = await pipeline.query(RAGQuery(question=question, top_k=body.top_k))

    logger.info(
        "Chat completion served",
        extra={"status": response.status.value, "sources": len(response.sources)},
    )

    return ChatCompletionResponse(
        id=f"chatcmpl-{uuid.uuid4()}",
        created=int(time.time()),
        choices=[
            ChatChoice(
                message=ChatMessage(role="assistant", content=response.answer),
            )
        ],
        sources=response.sources,
    )
