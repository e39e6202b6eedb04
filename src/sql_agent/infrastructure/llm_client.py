"""
LLM client using LangChain's ChatOpenAI.

This module provides the completion capability used by the pipeline:
one system prompt plus one user prompt in, text out.
"""

from typing import Any, List, Optional
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage, BaseMessage
from pydantic import SecretStr

from ..config import LLMConfig
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..utils.text_limits import InputValidator
from ..domain.errors import CompletionUnavailableError, LLMError


logger = get_module_logger()


def _content_to_text(content: Any) -> str:
    """Flatten a message content that may be a string or a list of content blocks."""
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict):
                parts.append(str(block.get("text") or ""))
        return "\n".join(parts)
    return str(content or "")


class LLMClient:
    """
    LLM client using LangChain's ChatOpenAI against an OpenAI-compatible API.

    The client is optional: without an API key it stays unavailable, SQL
    generation reports a diagnostic and answer formatting falls back to a
    deterministic summary.

    Usage:
        client = LLMClient(config)
        await client.connect()

        text = await client.generate(
            "QUESTION: top 5 products by price",
            system_prompt="You write PostgreSQL queries."
        )

        await client.close()
    """

    def __init__(self, config: LLMConfig):
        """
        Initialize LLM client with configuration.

        Args:
            config: LLM configuration
        """
        self.config = config
        self._llm: Optional[ChatOpenAI] = None
        self._is_connected = False

        logger.info(
            "LLMClient initialized",
            default_model=config.default_model,
            base_url=config.base_url,
            temperature=config.temperature,
            configured=config.is_configured
        )

    async def connect(self) -> None:
        """
        Create the ChatOpenAI client.

        No API call is made here; credentials are checked on first use.

        Raises:
            CompletionUnavailableError: If no API key is configured
            LLMError: If initialization fails
        """
        if self._is_connected:
            logger.warning("LLM client already connected")
            return

        trace_id = current_trace_id()

        if not self.config.is_configured:
            raise CompletionUnavailableError("No completion API key configured")

        try:
            self._llm = ChatOpenAI(
                model=self.config.default_model,
                api_key=SecretStr(self.config.api_key or ""),
                base_url=self.config.base_url,
                temperature=self.config.temperature,
                max_completion_tokens=self.config.max_tokens,
                timeout=self.config.timeout_seconds,
                max_retries=self.config.max_retries
            )

            self._is_connected = True
            logger.info("LLM client initialized successfully", trace_id=trace_id)

        except Exception as e:
            error_msg = f"Failed to initialize LLM client: {e}"
            logger.error(error_msg, error_type=type(e).__name__, trace_id=trace_id)
            raise LLMError(error_msg) from e

    async def close(self) -> None:
        """Release the client."""
        self._is_connected = False
        self._llm = None
        logger.info("LLM client closed", trace_id=current_trace_id())

    def is_connected(self) -> bool:
        """Check if the completion service can be called."""
        return self._is_connected and self._llm is not None

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Generate a text completion.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            temperature: Optional temperature override

        Returns:
            Completion text, possibly empty (may need sanitation by the caller)

        Raises:
            CompletionUnavailableError: If the client is not connected
            LLMError: If generation fails or input is too large
        """
        if not self.is_connected() or self._llm is None:
            raise CompletionUnavailableError("LLM client is not connected")

        try:
            InputValidator.validate_total_chars(
                prompt=prompt,
                system_prompt=system_prompt,
                max_chars=self.config.max_input_chars
            )
        except ValueError as e:
            raise LLMError(str(e)) from e

        trace_id = current_trace_id()

        logger.info(
            "Generating LLM response",
            prompt_length=len(prompt),
            system_prompt_length=len(system_prompt) if system_prompt else 0,
            trace_id=trace_id
        )

        messages: List[BaseMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))

        llm = self._llm
        if temperature is not None:
            llm = llm.bind(temperature=temperature)  # type: ignore[assignment]

        try:
            response = await llm.ainvoke(messages)
        except Exception as e:
            error_msg = f"LLM generation failed: {e}"
            logger.error(
                error_msg,
                error_type=type(e).__name__,
                prompt_length=len(prompt),
                trace_id=trace_id
            )
            raise LLMError(error_msg) from e

        content = _content_to_text(getattr(response, "content", None))
        if not content.strip():
            # Callers decide what an empty completion means
            logger.warning("LLM returned empty response", trace_id=trace_id)
            return content

        logger.info(
            "LLM response generated successfully",
            response_length=len(content),
            trace_id=trace_id
        )

        return content
