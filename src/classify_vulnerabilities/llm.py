"""Structured classification backends.

Every backend turns chat messages into a parsed JSON object plus token usage.
``SchemaConstrainedBackend`` asks the API to enforce the taxonomy schema in
strict mode. ``JsonExtractionBackend`` works with any OpenAI-compatible
endpoint: the schema goes into the system message and the reply is scanned
for the outermost ``{...}`` span.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from openai import OpenAI, OpenAIError

from classify_vulnerabilities.taxonomy import classification_schema
from common.config import LLMConfig
from common.errors import DecodeError, ModelError

logger = logging.getLogger(__name__)

SCHEMA_NAME = "vulnerability_classification"
REQUEST_TIMEOUT_SECONDS = 60


@dataclass
class ChatResponse:
    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class StructuredResponse:
    result: Any
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class StructuredClassifier(Protocol):
    def classify(self, messages: list[dict[str, str]]) -> StructuredResponse: ...

    def chat(self, messages: list[dict[str, str]]) -> ChatResponse: ...


def extract_json_object(text: str) -> Any:
    """Parse the span from the first ``{`` to the last ``}`` of ``text``.

    Raises:
        DecodeError: If no such span exists or it is not valid JSON.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise DecodeError("no JSON object found in model response")

    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        raise DecodeError(f"unmarshaling JSON: {exc}") from exc


class OpenAIChatBackend:
    """Plain chat completions against the OpenAI API or a compatible endpoint."""

    def __init__(self, client: OpenAI, model: str, max_tokens: int = 4096) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def _complete(self, messages: list[dict[str, str]], **kwargs: Any) -> ChatResponse:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                **kwargs,
            )
        except OpenAIError as exc:
            raise ModelError(f"LLM request failed: {exc}") from exc

        if not response.choices:
            raise ModelError("no choices in response")

        message = response.choices[0].message
        if message.content is None:
            refusal = getattr(message, "refusal", None)
            raise ModelError(f"model returned no content{f': {refusal}' if refusal else ''}")

        usage = response.usage
        return ChatResponse(
            content=message.content,
            input_tokens=(usage.prompt_tokens or 0) if usage else 0,
            output_tokens=(usage.completion_tokens or 0) if usage else 0,
            total_tokens=(usage.total_tokens or 0) if usage else 0,
        )

    def chat(self, messages: list[dict[str, str]]) -> ChatResponse:
        return self._complete(messages)


class SchemaConstrainedBackend(OpenAIChatBackend):
    """Strict JSON-schema structured output."""

    def classify(self, messages: list[dict[str, str]]) -> StructuredResponse:
        response = self._complete(
            messages,
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": SCHEMA_NAME,
                    "schema": classification_schema(),
                    "strict": True,
                },
            },
        )
        try:
            result = json.loads(response.content)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"unmarshaling structured response: {exc}") from exc

        return StructuredResponse(
            result=result,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.total_tokens,
        )


class JsonExtractionBackend(OpenAIChatBackend):
    """Unconstrained generation with best-effort JSON extraction."""

    def classify(self, messages: list[dict[str, str]]) -> StructuredResponse:
        response = self._complete(with_schema_instruction(messages))
        result = extract_json_object(response.content)
        return StructuredResponse(
            result=result,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.total_tokens,
        )


def with_schema_instruction(messages: list[dict[str, str]]) -> list[dict[str, str]]:
    """Return a copy of ``messages`` whose system message carries the schema."""
    instruction = (
        "\n\nYou must respond with valid JSON that matches this exact schema: "
        + json.dumps(classification_schema())
    )
    result = [dict(message) for message in messages]
    for message in result:
        if message.get("role") == "system":
            message["content"] = message["content"] + instruction
            return result
    return [{"role": "system", "content": "Respond with valid JSON." + instruction}, *result]


def create_backend(config: LLMConfig, client: OpenAI | None = None) -> StructuredClassifier:
    """
    Build the structured classification backend named by ``config.strategy``.

    Raises:
        ValueError: If the strategy is unknown
        ModelError: If the OpenAI client cannot be created
    """
    if client is None:
        try:
            client = OpenAI(
                api_key=config.api_key,
                base_url=config.base_url,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except OpenAIError as exc:
            raise ModelError(f"creating LLM client: {exc}") from exc

    if config.strategy == "schema":
        backend_cls: type[SchemaConstrainedBackend | JsonExtractionBackend] = SchemaConstrainedBackend
    elif config.strategy == "extract":
        backend_cls = JsonExtractionBackend
    else:
        raise ValueError(f"unsupported LLM strategy: {config.strategy}")

    logger.info("Using %s with model %s", backend_cls.__name__, config.model)
    return backend_cls(client, config.model, max_tokens=config.max_tokens)
