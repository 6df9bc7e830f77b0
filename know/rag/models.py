"""RAG pipeline data models."""

from enum import Enum

from pydantic import BaseModel, Field

EMPTY_KNOWLEDGE_BASE_MESSAGE = (
    "Knowledge base is empty. Run 'know ingest <path>' first."
)
NO_RESULTS_MESSAGE = "No relevant documents found."


class QueryStatus(str, Enum):
    """How a query was resolved."""

    ANSWERED = "answered"
    EMPTY_KNOWLEDGE_BASE = "empty_knowledge_base"
    NO_RESULTS = "no_results"


class SourceAttribution(BaseModel):
    """Attribution to a source document.

    Attributes:
        source: Source document identifier.
        content: Relevant content snippet.
        score: Relevance score.
    """

    source: str = Field(description="Source document identifier")
    content: str = Field(description="Relevant content snippet")
    score: float = Field(description="Relevance score")


class RAGQuery(BaseModel):
    """Input for RAG query.

    Attributes:
        question: The user's question.
        top_k: Number of chunks to retrieve.
    """

    question: str = Field(min_length=1, description="User question")
    top_k: int = Field(default=5, ge=1, le=50, description="Chunks to retrieve")


class RAGResponse(BaseModel):
    """Response from RAG query.

    Attributes:
        answer: Generated answer, or an informational message.
        sources: Distinct source paths in retrieval order.
        attributions: Per-chunk attributions.
        status: How the query was resolved.
        model: Generation model used.
        backend: Backend that produced the answer.
        tokens_used: Total tokens consumed.
    """

    answer: str = Field(description="Generated answer")
    sources: list[str] = Field(
        default_factory=list,
        description="Distinct source paths, best match first",
    )
    attributions: list[SourceAttribution] = Field(
        default_factory=list,
        description="Per-chunk source attributions",
    )
    status: QueryStatus = Field(default=QueryStatus.ANSWERED)
    model: str = Field(description="Generation model used")
    backend: str = Field(default="", description="Backend name")
    tokens_used: int = Field(default=0, description="Total tokens consumed")
