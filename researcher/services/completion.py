"""Text completion service backed by the Claude Agent SDK."""

from abc import ABC, abstractmethod
from functools import lru_cache

from researcher.config import settings
from researcher.core.exceptions import CompletionError
from researcher.utils.logging import get_logger

logger = get_logger(__name__)

_tracing_configured = False


def _configure_tracing() -> None:
    """Route SDK calls through langsmith tracing once per process."""
    global _tracing_configured
    if _tracing_configured or not settings.langsmith_tracing:
        return
    from langsmith.integrations.claude_agent_sdk import configure_claude_agent_sdk

    configure_claude_agent_sdk()
    _tracing_configured = True


class TextCompletionService(ABC):
    """Given a prompt and a system instruction, returns free text."""

    @abstractmethod
    async def complete(self, prompt: str, system_instruction: str) -> str:
        """Run one completion.

        Raises:
            CompletionError: If the call fails or produces no text
        """


class ClaudeCompletionService(TextCompletionService):
    """Single-turn, tool-less completions through ``ClaudeSDKClient``."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.completion_model
        _configure_tracing()

    async def complete(self, prompt: str, system_instruction: str) -> str:
        from claude_agent_sdk import (
            AssistantMessage,
            ClaudeAgentOptions,
            ClaudeSDKClient,
            TextBlock,
        )

        options = ClaudeAgentOptions(
            system_prompt=system_instruction,
            model=self.model,
            allowed_tools=[],
            max_turns=1,
            permission_mode="plan",  # Read-only mode
            env={"ANTHROPIC_API_KEY": self.api_key} if self.api_key else {},
        )

        response_text = ""
        try:
            async with ClaudeSDKClient(options=options) as client:
                await client.query(prompt)
                async for message in client.receive_response():
                    if isinstance(message, AssistantMessage):
                        for block in message.content:
                            if isinstance(block, TextBlock):
                                response_text += block.text
        except Exception as e:
            logger.warning("completion.failed", model=self.model, error=str(e))
            raise CompletionError(f"Completion failed: {e}") from e

        if not response_text.strip():
            raise CompletionError("Completion returned no text")

        return response_text


@lru_cache
def get_completion_service() -> TextCompletionService | None:
    """Get the completion service, or None when no API key is configured."""
    if not settings.completion_enabled:
        logger.info("completion.disabled", reason="anthropic_api_key not set")
        return None
    return ClaudeCompletionService()
