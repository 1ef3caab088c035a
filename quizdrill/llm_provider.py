import logging
import os
from abc import ABC, abstractmethod

import google.generativeai as genai

from quizdrill.mock_responses import get_question_response

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """
    Abstract base class for a generic LLM provider.
    This defines the interface that all concrete providers must implement.
    """

    @abstractmethod
    def generate(self, prompt_parts: list, json_mode: bool = False, temperature: float = None) -> str:
        """
        Generates text from a list of prompt parts.

        Args:
            prompt_parts (list): A list of prompt strings.
            json_mode (bool): Whether to force JSON output.
            temperature (float): Sampling temperature, provider default if None.

        Returns:
            str: The generated text from the language model.
        """
        pass


class MockLLMProvider(LLMProvider):
    """
    Zero-cost provider for development and tests.

    Reads the requested question counts from the prompt and returns
    well-formed question JSON without any network call.
    """

    def __init__(self):
        self.calls = []

    def generate(self, prompt_parts: list, json_mode: bool = False, temperature: float = None) -> str:
        self.calls.append({"prompt_parts": prompt_parts, "json_mode": json_mode, "temperature": temperature})
        prompt = "\n".join(p for p in prompt_parts if isinstance(p, str))
        return get_question_response(prompt)


class GeminiProvider(LLMProvider):
    """
    Concrete implementation of the LLMProvider for Google's Gemini models.
    """

    def __init__(self, api_key: str, model_name: str = "gemini-1.5-flash"):
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.model = genai.GenerativeModel(model_name)

    def generate(self, prompt_parts: list, json_mode: bool = False, temperature: float = None) -> str:
        generation_config = {}
        if json_mode:
            generation_config["response_mime_type"] = "application/json"
        if temperature is not None:
            generation_config["temperature"] = temperature

        try:
            response = self.model.generate_content(prompt_parts, generation_config=generation_config)
        except Exception as e:
            logger.error("Gemini provider (%s) request failed: %s", self.model_name, e)
            raise
        return response.text


def get_provider(config, api_key=None):
    """
    Factory function to instantiate the correct LLM provider based on config.

    Args:
        config: Application config dict (reads the ``llm`` section).
        api_key: Optional per-user key; takes precedence over the environment.
    """
    llm_config = config.get("llm", {})
    provider_name = llm_config.get("provider", "mock")

    if provider_name == "mock":
        return MockLLMProvider()
    elif provider_name == "gemini":
        key = api_key or os.getenv("GEMINI_API_KEY")
        if not key:
            raise ValueError(
                "GEMINI_API_KEY is not set in the environment for Gemini provider. "
                "Add it to .env or supply an API key when logging in."
            )
        return GeminiProvider(api_key=key, model_name=llm_config.get("model_name", "gemini-1.5-flash"))
    else:
        raise ValueError(f"Unsupported LLM provider: {provider_name}")
