import logging
import httpx
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum

from feedwatch.config import get_settings

logger = logging.getLogger(__name__)


class AIProvider(str, Enum):
    NONE = "none"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


# Cost rates per 1K tokens (USD)
COST_RATES: Dict[str, Dict[str, float]] = {
    "claude-3-haiku-20240307": {"input": 0.00025, "output": 0.00125},
    "claude-3-5-haiku-latest": {"input": 0.0008, "output": 0.004},
    "claude-3-5-sonnet-latest": {"input": 0.003, "output": 0.015},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4o": {"input": 0.0025, "output": 0.01},
}

# Default rates by provider (for unknown models)
PROVIDER_DEFAULT_RATES: Dict[str, Dict[str, float]] = {
    "anthropic": {"input": 0.00025, "output": 0.00125},
    "openai": {"input": 0.00015, "output": 0.0006},
    "ollama": {"input": 0.0, "output": 0.0},
    "none": {"input": 0.0, "output": 0.0},
}


class GenerationError(Exception):
    """The generation backend is unavailable or returned nothing usable."""


@dataclass
class GenerationResult:
    content: str
    model: str
    cost_cents: float


SYSTEM_PROMPT = (
    "You are a senior technology consultant reviewing an active client engagement. "
    "Be concrete, reference the engagement details, and keep the answer under 400 words."
)

INSIGHTS_PROMPT = """Review this consulting engagement and write actionable insights.

Engagement (JSON):
{snapshot}

Cover:
- Progress against the stated deliverables
- Technology or delivery opportunities the team may be missing
- Three recommended next steps"""

RISK_PROMPT = """Assess the delivery risk of this consulting engagement.

Engagement (JSON):
{snapshot}

Cover:
- Overall risk level (low, medium, high) with a one-line justification
- Budget, schedule and technical risks
- Mitigations for each risk you identify"""


class AIBackend(ABC):
    @abstractmethod
    async def complete(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: int = 800) -> str:
        pass


class OpenAIBackend(AIBackend):
    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.api_key = api_key
        self.model = model

    async def complete(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: int = 800) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.post(
                "https://api.openai.com/v1/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": messages,
                    "max_tokens": max_tokens,
                },
            )
            response.raise_for_status()
            data = response.json()
            return data["choices"][0]["message"]["content"]


class AnthropicBackend(AIBackend):
    def __init__(self, api_key: str, model: str = "claude-3-5-haiku-latest"):
        self.api_key = api_key
        self.model = model

    async def complete(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: int = 800) -> str:
        request_json: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request_json["system"] = system_prompt

        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.post(
                "https://api.anthropic.com/v1/messages",
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": "2023-06-01",
                    "Content-Type": "application/json",
                },
                json=request_json,
            )
            response.raise_for_status()
            data = response.json()
            return data["content"][0]["text"]


class OllamaBackend(AIBackend):
    def __init__(self, base_url: str = "http://localhost:11434", model: str = "llama3.2"):
        self.base_url = base_url.rstrip("/")
        self.model = model

    async def complete(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: int = 800) -> str:
        request_json: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"num_predict": max_tokens},
        }
        if system_prompt:
            request_json["system"] = system_prompt

        async with httpx.AsyncClient(timeout=120.0) as client:
            response = await client.post(
                f"{self.base_url}/api/generate",
                json=request_json,
            )
            response.raise_for_status()
            data = response.json()
            return data["response"]


def estimate_cost_cents(prompt: str, response: str, model: Optional[str], provider: AIProvider) -> float:
    """Rough cost in US cents using a words * 1.3 token heuristic."""
    rates = COST_RATES.get(model or "") or PROVIDER_DEFAULT_RATES.get(provider.value, {"input": 0.0, "output": 0.0})
    input_tokens = int(len(prompt.split()) * 1.3)
    output_tokens = int(len(response.split()) * 1.3)
    cost_usd = (input_tokens / 1000.0) * rates["input"] + (output_tokens / 1000.0) * rates["output"]
    return round(cost_usd * 100, 4)


class AIOrchestrator:
    """
    Generation collaborator used by the background workers.

    Given a project id and a JSON snapshot, returns a GenerationResult or
    raises. Timeouts belong to the backend's HTTP transport.
    """

    def __init__(self, backend: Optional[AIBackend] = None, provider: AIProvider = AIProvider.NONE, model: Optional[str] = None):
        self.backend = backend
        self.provider = provider
        self.model = model

    @classmethod
    def from_settings(cls, settings=None) -> "AIOrchestrator":
        settings = settings or get_settings()
        try:
            provider = AIProvider(settings.ai_provider.lower())
        except ValueError:
            logger.warning(f"Unknown AI provider '{settings.ai_provider}', generation disabled")
            provider = AIProvider.NONE

        api_key = settings.ai_api_key
        model = settings.ai_model or None

        if provider == AIProvider.ANTHROPIC and api_key:
            backend = AnthropicBackend(api_key, model or "claude-3-5-haiku-latest")
        elif provider == AIProvider.OPENAI and api_key:
            backend = OpenAIBackend(api_key, model or "gpt-4o-mini")
        elif provider == AIProvider.OLLAMA:
            backend = OllamaBackend(settings.ai_base_url or "http://localhost:11434", model or "llama3.2")
        else:
            return cls()

        return cls(backend=backend, provider=provider, model=backend.model)

    def is_configured(self) -> bool:
        return self.backend is not None

    async def generate_project_insights(self, project_id: int, snapshot: str) -> GenerationResult:
        return await self._generate(project_id, INSIGHTS_PROMPT.format(snapshot=snapshot))

    async def assess_project_risk(self, project_id: int, snapshot: str) -> GenerationResult:
        return await self._generate(project_id, RISK_PROMPT.format(snapshot=snapshot))

    async def _generate(self, project_id: int, prompt: str) -> GenerationResult:
        if not self.backend:
            raise GenerationError("AI provider is not configured")

        try:
            response = await self.backend.complete(prompt, SYSTEM_PROMPT)
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Malformed response generating for project {project_id}: {e!r}") from e

        content = (response or "").strip()
        if not content:
            raise GenerationError(f"Empty response generating for project {project_id}")

        return GenerationResult(
            content=content,
            model=self.model or "unknown",
            cost_cents=estimate_cost_cents(SYSTEM_PROMPT + " " + prompt, content, self.model, self.provider),
        )
