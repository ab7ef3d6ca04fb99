"""OpenAI-compatible translator powered by pydantic-ai."""

from __future__ import annotations

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from lingosync_core.ports.collaborators import TranslatorProtocol

INSTRUCTIONS = (
    "You translate short user interface strings. Reply with the translation "
    "only, no quotes, no explanations. Keep placeholders such as {name}, "
    "{{count}} and %s unchanged."
)


class OpenAICompatibleTranslator(TranslatorProtocol):
    """Translator for OpenAI-compatible chat endpoints."""

    def __init__(
        self,
        *,
        model_id: str,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_s: float = 60.0,
        model: Model | None = None,
    ) -> None:
        """Initialize the translator.

        Args:
            model_id: Model identifier on the endpoint.
            base_url: Endpoint base URL.
            api_key: Endpoint API key.
            timeout_s: Request timeout in seconds.
            model: Pre-built pydantic-ai model, overriding the endpoint.
        """
        if model is None:
            provider = OpenAIProvider(base_url=base_url, api_key=api_key)
            model = OpenAIChatModel(model_id, provider=provider)
        self._agent = Agent(model, instructions=INSTRUCTIONS)
        self._settings: ModelSettings = {"temperature": 0.2, "timeout": timeout_s}

    async def translate(self, text: str, from_lang: str, to_lang: str) -> str:
        """Translate text, raising on endpoint failure.

        Returns:
            str: Translated text, or ``text`` when the languages match.
        """
        if from_lang == to_lang:
            return text
        prompt = f"Translate from {from_lang} to {to_lang}:\n{text}"
        result = await self._agent.run(prompt, model_settings=self._settings)
        return str(result.output).strip()
