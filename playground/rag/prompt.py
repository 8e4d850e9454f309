"""
Prompt Template Module

Builds the single instruction string the RAG relay sends to the model.

Variables in templates:
{context} - Retrieved passages, numbered
{question} - User question
"""

from typing import List, Optional

from playground.core.logging import get_logger
from playground.utils.text import strip_control_characters

logger = get_logger(__name__)


class PromptTemplate:
    """Base prompt template"""

    def __init__(self, template: str, description: str = ""):
        """
        Initialize prompt template.

        Args:
            template: Template string with {variable} placeholders
            description: Description of the template
        """
        self.template = template
        self.description = description

    def format(self, **kwargs) -> str:
        """Format template with provided variables"""
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.warning(f"Missing variable in template: {e}")
            raise


class PromptTemplates:
    """Prompt templates used by the RAG relay"""

    RAG_PROMPT = PromptTemplate(
        template="""You are a helpful assistant. Answer the question using the context below.
If the context does not contain the answer, say that you don't know instead of guessing.

CONTEXT:
{context}

QUESTION:
{question}

ANSWER:""",
        description="Template for retrieval-augmented question answering"
    )

    PASSAGE_TEMPLATE = PromptTemplate(
        template="[{index}] {text}",
        description="Template for a single numbered passage"
    )

    NO_CONTEXT = "No relevant context was found."


class PromptBuilder:
    """Builder for constructing prompts from retrieved passages"""

    def build_rag_prompt(self, passages: List[Optional[str]], question: str) -> str:
        """
        Build the RAG prompt.

        Args:
            passages: Retrieved passage texts, closest match first
            question: Original user question

        Returns:
            Formatted prompt ready for the model
        """
        parts = []
        for text in passages:
            text = strip_control_characters(text or "").strip()
            if not text:
                continue
            parts.append(PromptTemplates.PASSAGE_TEMPLATE.format(index=len(parts) + 1, text=text))

        context = "\n\n".join(parts) if parts else PromptTemplates.NO_CONTEXT
        prompt = PromptTemplates.RAG_PROMPT.format(context=context, question=question.strip())

        logger.debug(f"Built RAG prompt with {len(parts)} passages")
        return prompt


# Global prompt builder
_prompt_builder = None


def get_prompt_builder() -> PromptBuilder:
    """Get or create prompt builder instance"""
    global _prompt_builder
    if _prompt_builder is None:
        _prompt_builder = PromptBuilder()
    return _prompt_builder


def build_rag_prompt(passages: List[Optional[str]], question: str) -> str:
    """Convenience function to build RAG prompt"""
    return get_prompt_builder().build_rag_prompt(passages, question)
