"""Azure OpenAI client wrapper for campaign content generation."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import structlog
from openai import APIConnectionError, APITimeoutError, AsyncAzureOpenAI, RateLimitError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import settings
from app.exceptions import GenerationError


logger = structlog.get_logger()


@dataclass
class Completion:
    """Text returned by the model plus usage bookkeeping."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)


class OpenAIClient:
    """Wrapper for Azure OpenAI API with retry logic."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        deployment: Optional[str] = None,
    ):
        self.api_key = api_key or settings.azure_ai_api_key
        self.endpoint = endpoint or settings.azure_ai_endpoint
        self.deployment = deployment or settings.azure_openai_deployment

        self.client = AsyncAzureOpenAI(
            api_key=self.api_key,
            api_version=settings.azure_openai_api_version,
            azure_endpoint=self.endpoint,
        ) if self.is_configured else None

    @property
    def is_configured(self) -> bool:
        """Check if Azure OpenAI is configured."""
        return bool(self.api_key and self.endpoint)

    @retry(
        retry=retry_if_exception_type((APIConnectionError, APITimeoutError, RateLimitError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> Completion:
        """
        Send a chat completion request to Azure OpenAI.

        Args:
            prompt: User prompt
            system: System message (the compiled audience prompt)
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response

        Returns:
            Completion with the generated text, model name and token usage
        """
        if not self.client:
            raise GenerationError("Azure OpenAI not configured")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=self.deployment,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error("Azure OpenAI API error", error=str(e))
            raise

        usage: Dict[str, int] = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
                "total_tokens": response.usage.total_tokens or 0,
            }

        return Completion(
            content=response.choices[0].message.content or "",
            model=response.model or self.deployment,
            usage=usage,
        )

    async def chat(self, prompt: str, system: Optional[str] = None, **kwargs: Any) -> str:
        """Convenience wrapper returning only the generated text."""
        completion = await self.complete(prompt, system=system, **kwargs)
        return completion.content
