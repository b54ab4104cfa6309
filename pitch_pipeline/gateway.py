"""
Reasoning gateway adapters.

The pipeline only depends on the ReasoningGateway protocol: a role description
plus task text in, free text out. Provider SDK errors are classified into
GatewayFailure kinds and are never retried here; the only retries in a run are
the explicitly bounded gate loops.
"""

import logging
from typing import Optional, Protocol, Sequence

from pitch_pipeline import config
from pitch_pipeline.errors import (
    GatewayFailure,
    GATEWAY_INVALID_REQUEST,
    GATEWAY_RATE_LIMITED,
    GATEWAY_TRANSIENT,
)

logger = logging.getLogger(__name__)

CAPABILITY_SEARCH = "search"


class ReasoningGateway(Protocol):
    async def invoke(self, role_description: str, task_text: str,
                     capabilities: Optional[Sequence[str]] = None) -> str:
        ...


class AnthropicGateway:
    """Claude messages API. The search capability is ignored (no grounding tool)."""

    def __init__(self, api_key: str = None, model: str = None, max_tokens: int = None, client=None):
        if client is None:
            import anthropic
            api_key = api_key or config.ANTHROPIC_API_KEY
            if not api_key:
                raise GatewayFailure(GATEWAY_INVALID_REQUEST, "Anthropic API key not configured")
            client = anthropic.AsyncAnthropic(api_key=api_key)
        self.client = client
        self.model = model or config.ANTHROPIC_MODEL
        self.max_tokens = max_tokens or config.MAX_OUTPUT_TOKENS

    async def invoke(self, role_description: str, task_text: str,
                     capabilities: Optional[Sequence[str]] = None) -> str:
        import anthropic

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=role_description,
                messages=[{"role": "user", "content": task_text}],
            )
        except anthropic.RateLimitError as e:
            raise GatewayFailure(GATEWAY_RATE_LIMITED, str(e)) from e
        except (anthropic.BadRequestError, anthropic.AuthenticationError,
                anthropic.PermissionDeniedError, anthropic.NotFoundError) as e:
            raise GatewayFailure(GATEWAY_INVALID_REQUEST, str(e)) from e
        except anthropic.APIError as e:
            raise GatewayFailure(GATEWAY_TRANSIENT, str(e)) from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )


def grounding_tool(model: str) -> dict:
    """Search grounding tool fields for the model family: Gemini 1.x retrieval, google_search after that."""
    name = model.split("/")[-1]
    if name.startswith("gemini-1."):
        return {"google_search_retrieval": {}}
    return {"google_search": {}}


class GeminiGateway:
    """Gemini generateContent. The search capability enables Google Search grounding."""

    def __init__(self, api_key: str = None, model: str = None, client=None):
        if client is None:
            import google.generativeai as genai

            api_key = api_key or config.GOOGLE_API_KEY
            if not api_key:
                raise GatewayFailure(GATEWAY_INVALID_REQUEST, "Google API key not configured")
            genai.configure(api_key=api_key)
            client = genai
        self._genai = client
        self.model = model or config.GEMINI_MODEL

    def _tools(self, capabilities: Optional[Sequence[str]]) -> Optional[list]:
        if capabilities and CAPABILITY_SEARCH in capabilities:
            return [self._genai.protos.Tool(**grounding_tool(self.model))]
        return None

    async def invoke(self, role_description: str, task_text: str,
                     capabilities: Optional[Sequence[str]] = None) -> str:
        from google.api_core import exceptions as google_exceptions

        model = self._genai.GenerativeModel(
            self.model,
            system_instruction=role_description,
            tools=self._tools(capabilities),
        )
        try:
            response = await model.generate_content_async(task_text)
            return response.text
        except google_exceptions.ResourceExhausted as e:
            raise GatewayFailure(GATEWAY_RATE_LIMITED, str(e)) from e
        except (google_exceptions.InvalidArgument, google_exceptions.PermissionDenied,
                google_exceptions.NotFound) as e:
            raise GatewayFailure(GATEWAY_INVALID_REQUEST, str(e)) from e
        except google_exceptions.GoogleAPIError as e:
            raise GatewayFailure(GATEWAY_TRANSIENT, str(e)) from e
        except ValueError as e:
            # response.text raises ValueError when the candidate was blocked
            raise GatewayFailure(GATEWAY_INVALID_REQUEST, str(e)) from e


GATEWAY_PROVIDERS = {
    "anthropic": AnthropicGateway,
    "google": GeminiGateway,
}


def build_gateway(provider: str = None) -> ReasoningGateway:
    """Factory: instantiate the configured provider's gateway."""
    name = (provider or config.GATEWAY_PROVIDER).lower()
    cls = GATEWAY_PROVIDERS.get(name)
    if not cls:
        raise ValueError(f"Unknown gateway provider: {name}")
    logger.info("[gateway] using %s provider", name)
    return cls()
