"""lingosync-llm: translation adapters."""

from lingosync_llm.translator import OpenAICompatibleTranslator

__version__ = "0.1.0"

__all__ = ["OpenAICompatibleTranslator"]
