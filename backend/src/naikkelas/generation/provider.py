"""Text generation providers.

The chat endpoint only needs the generated text and how many tokens it
cost; everything model-specific stays behind `GenerationProvider`.
"""

from dataclasses import dataclass
from typing import Protocol, Sequence

import httpx

from naikkelas.errors import ExternalProviderError, ProviderNotConfiguredError
from naikkelas.logging_config import get_logger
from naikkelas.settings import settings

SYSTEM_INSTRUCTION = (
    "You are a helpful, smart, and creative AI assistant. "
    "Answer the user's query thoroughly and politely, and be proactive "
    "in suggesting what to explore next."
)


@dataclass(frozen=True)
class HistoryMessage:
    role: str  # user | ai
    content: str


@dataclass(frozen=True)
class GenerationResult:
    text: str
    tokens_used: int


class GenerationProvider(Protocol):
    def generate(self, prompt: str, history: Sequence[HistoryMessage]) -> GenerationResult:
        ...


class GeminiProvider:
    """Gemini ``generateContent`` over HTTP."""

    PROVIDER = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        http_client: httpx.Client | None = None,
        logger=None,
    ):
        """Initialize Gemini provider.

        Args:
            api_key: Gemini API key. If not provided, uses settings.
            model: Model name. If not provided, uses settings.
            base_url: API base URL. If not provided, uses settings.
            http_client: Optional preconfigured httpx client
            logger: Bound logger (defaults to this module's logger)
        """
        self.api_key = api_key or settings.gemini_api_key or ""
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_api_url).rstrip("/")
        self.http_client = http_client
        self.logger = logger or get_logger(__name__)

    def generate(self, prompt: str, history: Sequence[HistoryMessage]) -> GenerationResult:
        """Generate a reply to `prompt` given prior turns.

        Raises:
            ProviderNotConfiguredError: If no API key is configured
            ExternalProviderError: If the request fails or returns no text
        """
        if not self.api_key:
            raise ProviderNotConfiguredError("Generation provider is not configured", provider=self.PROVIDER)

        contents = [
            {"role": "user" if m.role == "user" else "model", "parts": [{"text": m.content}]}
            for m in history
        ]
        contents.append({"role": "user", "parts": [{"text": prompt}]})

        body = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": contents,
        }

        client = self.http_client or httpx.Client(timeout=settings.request_timeout_seconds)
        try:
            response = client.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json=body,
            )
        except httpx.TimeoutException as e:
            raise ExternalProviderError("Generation provider timeout", provider=self.PROVIDER) from e
        except httpx.RequestError as e:
            raise ExternalProviderError(f"Generation request failed: {e}", provider=self.PROVIDER) from e
        finally:
            if self.http_client is None:
                client.close()

        if response.status_code >= 400:
            self.logger.error("gemini_request_failed", status=response.status_code, error=response.text[:500])
            raise ExternalProviderError(
                f"Generation failed: {response.status_code}",
                provider=self.PROVIDER,
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalProviderError("Unexpected generation provider response", provider=self.PROVIDER) from e

        candidates = data.get("candidates") or []
        parts = (candidates[0].get("content") or {}).get("parts", []) if candidates else []
        text = "".join(p.get("text", "") for p in parts)
        if not text:
            raise ExternalProviderError("Generation returned no text", provider=self.PROVIDER)

        tokens_used = (data.get("usageMetadata") or {}).get("candidatesTokenCount", 0)
        self.logger.info("gemini_generated", model=self.model, tokens_used=tokens_used)
        return GenerationResult(text=text, tokens_used=int(tokens_used))
