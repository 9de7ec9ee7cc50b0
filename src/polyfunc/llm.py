"""OpenAI client for requirement analysis, service decomposition and code generation."""

from __future__ import annotations

import json
import os
from typing import Any

import httpx
import openai
from openai import OpenAI

from polyfunc.config import API_KEY_ENV, Config
from polyfunc.logging import get_logger

logger = get_logger("llm")

SUPPORTED_PROVIDERS = ("openai",)

_MISSING_KEY_MESSAGE = (
    "OpenAI API key is required. Set OPENAI_API_KEY in your environment "
    "or llm.apiKey in the config file."
)

_ANALYZE_PROMPT = """\
Analyze the following microservice description and extract key requirements.
Determine the primary use case (web, api, data, ml, system, performance, concurrency, etc.)
and the performance characteristics needed.

Description: {description}

Respond with JSON only, in this format:
{{
  "useCase": "primary use case",
  "requirements": {{
    "performance": {{ "importance": 0-10, "weight": 0-1 }},
    "memory": {{ "importance": 0-10, "weight": 0-1 }},
    "startupTime": {{ "importance": 0-10, "weight": 0-1 }},
    "ecosystem": {{ "importance": 0-10, "weight": 0-1 }},
    "concurrency": {{ "importance": 0-10, "weight": 0-1 }}
  }},
  "dependencies": ["list", "of", "dependencies"],
  "useCaseWeight": 0-1
}}
"""

_DECOMPOSE_PROMPT = """\
Decompose the following service description into microservices.
For each microservice, provide a name, purpose, and brief description.

Service: {description}

Respond with JSON only, in this format:
[
  {{
    "name": "service-name",
    "purpose": "brief purpose",
    "description": "detailed description",
    "endpoints": ["endpoint1", "endpoint2"]
  }}
]
"""

_GENERATE_PROMPT = """\
Generate code for a {language} microservice with the following details:

Service name: {service_name}
Description: {description}

Provide the complete code needed to implement this service, including:
1. Main service implementation
2. Any necessary configuration
3. Dependencies and package management
4. Instructions for running the service

Respond with JSON only, in this format:
{{
  "files": [
    {{
      "filename": "path/to/file.ext",
      "content": "file content here"
    }}
  ],
  "instructions": "instructions on how to run the service",
  "dependencies": ["list", "of", "dependencies"]
}}
"""


class LLMError(Exception):
    """Raised when the LLM cannot be reached or returns unusable output."""


class LLMConfigError(LLMError):
    """Raised when the client is not configured well enough to make any request."""


def _strip_code_fence(content: str) -> str:
    stripped = content.strip()
    if stripped.startswith("```"):
        first_newline = stripped.find("\n")
        if first_newline > 0:
            stripped = stripped[first_newline + 1:]
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3].rstrip()
    return stripped


class LLMClient:
    """OpenAI chat client configured from a :class:`Config`.

    The API key comes from ``llm.apiKey`` and falls back to
    ``$OPENAI_API_KEY`` when the config leaves it empty. The SDK client is
    created on first use. A missing key is only a warning at construction
    time and becomes an :class:`LLMConfigError` when a request is attempted.

    Args:
        config: Settings to read the ``llm`` section from.
        http_client: Optional ``httpx.Client`` handed to the SDK, e.g. one
            with a mock transport.
    """

    def __init__(self, config: Config, http_client: httpx.Client | None = None):
        self.provider = config.get("llm.provider")
        self.model = config.get("llm.model")
        self.api_key = config.get("llm.apiKey") or os.environ.get(API_KEY_ENV, "")
        self.base_url = (config.get("llm.baseUrl") or "https://api.openai.com/v1").rstrip("/")
        self.temperature = config.get("llm.temperature", 0.2)
        self.timeout = config.get("llm.timeout", 60.0)
        self.max_retries = config.get("llm.maxRetries", 2)
        self._http_client = http_client
        self._client: OpenAI | None = None

        if not self.api_key:
            logger.warning(
                "No API key found for LLM provider. Set OPENAI_API_KEY in your "
                "environment or llm.apiKey in the config file."
            )

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise LLMConfigError(_MISSING_KEY_MESSAGE)
            if self.provider not in SUPPORTED_PROVIDERS:
                raise LLMConfigError(f"Unsupported LLM provider: {self.provider}")
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=self.max_retries,
                http_client=self._http_client,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def complete_json(self, prompt: str, temperature: float | None = None) -> Any:
        """Send a single-turn chat request and parse the reply as JSON.

        Raises:
            LLMError: On API, transport or JSON decoding failures.
        """
        client = self.client
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature if temperature is None else temperature,
            )
            content = response.choices[0].message.content or ""
        except openai.APIError as exc:
            raise LLMError(f"Error calling LLM API: {exc}") from exc
        except (AttributeError, IndexError, TypeError) as exc:
            raise LLMError(f"Malformed LLM API response: {exc}") from exc

        try:
            return json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as exc:
            raise LLMError(f"Failed to parse LLM response as JSON: {exc}") from exc

    def _ask(self, prompt: str, temperature: float) -> Any:
        try:
            return self.complete_json(prompt, temperature=temperature)
        except LLMConfigError:
            raise
        except LLMError as exc:
            logger.error("%s", exc)
            return None

    def analyze_requirements(self, description: str) -> dict | None:
        """Extract a requirement analysis from a service description."""
        result = self._ask(_ANALYZE_PROMPT.format(description=description), 0.2)
        if result is not None and not isinstance(result, dict):
            logger.error("Expected a JSON object from requirement analysis")
            return None
        return result

    def decompose_service(self, description: str) -> list | None:
        """Split a service description into a list of microservices."""
        result = self._ask(_DECOMPOSE_PROMPT.format(description=description), 0.3)
        if result is not None and not isinstance(result, list):
            logger.error("Expected a JSON array from service decomposition")
            return None
        return result

    def generate_code(
        self, language: str, service_name: str, description: str
    ) -> dict | None:
        """Generate service files for the given language."""
        prompt = _GENERATE_PROMPT.format(
            language=language, service_name=service_name, description=description
        )
        result = self._ask(prompt, 0.2)
        if result is not None and not isinstance(result, dict):
            logger.error("Expected a JSON object from code generation")
            return None
        return result
