"""Prompt templates for retrieval-augmented answers."""

from collections.abc import Iterable

CONTEXT_SEPARATOR = "\n---\n"


class RAGPromptTemplate:
    """Prompt template for grounded answers.

    Chat-style backends send the instruction and context as the system message
    and the question as the user message; completion-style backends get a
    single prompt holding all three.
    """

    DEFAULT_INSTRUCTION = (
        "You are a helpful assistant. Answer the user's question using only "
        "the context provided below. If the context doesn't contain relevant "
        "information, say so."
    )

    DEFAULT_SYSTEM_TEMPLATE = """{instruction}

Context:
{context}"""

    DEFAULT_COMPLETION_TEMPLATE = """{instruction}

Context:
{context}

Question: {question}"""

    def __init__(
        self,
        instruction: str | None = None,
        system_template: str | None = None,
        completion_template: str | None = None,
    ) -> None:
        """Initialize the template.

        Args:
            instruction: Custom grounding instruction.
            system_template: Custom system message template.
            completion_template: Custom single-prompt template.
        """
        self.instruction = instruction or self.DEFAULT_INSTRUCTION
        self.system_template = system_template or self.DEFAULT_SYSTEM_TEMPLATE
        self.completion_template = (
            completion_template or self.DEFAULT_COMPLETION_TEMPLATE
        )

    def format_context(
        self,
        chunks: Iterable[tuple[str, str]],
        separator: str = CONTEXT_SEPARATOR,
    ) -> str:
        """Join (source, content) pairs into one context string, in order."""
        return separator.join(
            f"[Source: {source}]\n{content}" for source, content in chunks
        )

    def build_system_prompt(self, context: str) -> str:
        """System message for chat-completion backends."""
        return self.system_template.format(
            instruction=self.instruction,
            context=context,
        )

    def build_completion_prompt(self, question: str, context: str) -> str:
        """Single prompt for completion backends."""
        return self.completion_template.format(
            instruction=self.instruction,
            context=context,
            question=question,
        )
