"""
Text-generation collaborator.

The coaching core treats the language model as an opaque function:

    generate(system, messages, sampler?, tools?) -> GenerationResult

A result carries either tool calls (the model wants data from the app) or
text that is expected to decode to one JSON object.  Nothing returned here
is trusted: callers validate every reply and fall back to fixed copy on
any failure.

Rules
-----
- Every call runs under a hard timeout.  No retries.
- Transport problems of any kind surface as :class:`CollaboratorError`.
- Unparsable or wrongly-shaped output surfaces as :class:`ReplyValidationError`.
"""

from __future__ import annotations

import concurrent.futures
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

from google import genai
from google.genai import types as genai_types

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class CollaboratorError(Exception):
    """The text generator could not be reached or did not answer in time."""


class ReplyValidationError(ValueError):
    """The text generator answered with something we cannot use."""


# ---------------------------------------------------------------------------
# Request / response records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Sampler:
    temperature: float
    top_p: float


@dataclass(frozen=True)
class ToolParam:
    """A string parameter, optionally restricted to ``choices``."""
    description: str
    choices: tuple[str, ...] = ()


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: Dict[str, ToolParam] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolCall:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    name: str
    result: Dict[str, Any]


@dataclass
class Message:
    """One conversation turn.

    ``role`` is ``"user"`` or ``"model"``.  A model turn may carry the tool
    calls it made; the following user turn carries their results.
    """
    role: str
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)


@dataclass
class GenerationResult:
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)


class TextGenerator(Protocol):
    def generate(
        self,
        system: str,
        messages: List[Message],
        sampler: Optional[Sampler] = None,
        tools: Optional[List[ToolSpec]] = None,
    ) -> GenerationResult:
        ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_object(text: str) -> Dict[str, Any]:
    """Decode model text into exactly one JSON object.

    Markdown code fences around the object are tolerated.

    Raises:
        ReplyValidationError: empty text, invalid JSON or a non-object value.
    """
    cleaned = _FENCE_RE.sub("", (text or "").strip()).strip()
    if not cleaned:
        raise ReplyValidationError("empty reply")
    try:
        value = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ReplyValidationError(f"reply is not JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise ReplyValidationError(f"expected a JSON object, got {type(value).__name__}")
    return value


def call_with_timeout(fn: Callable[[], T], timeout_s: float) -> T:
    """Run ``fn`` in a worker thread and give up after ``timeout_s`` seconds.

    A call that times out is abandoned, not cancelled: its thread finishes
    in the background and the result is discarded.

    Raises:
        CollaboratorError: on timeout or when ``fn`` raises.
    """
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    future = executor.submit(fn)
    try:
        return future.result(timeout=timeout_s)
    except concurrent.futures.TimeoutError as exc:
        raise CollaboratorError(f"text generation timed out after {timeout_s}s") from exc
    except CollaboratorError:
        raise
    except Exception as exc:
        raise CollaboratorError(f"text generation failed: {exc}") from exc
    finally:
        executor.shutdown(wait=False)


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------

class UnavailableTextGenerator:
    """Stand-in used when no API key is configured: every call fails fast."""

    def __init__(self, reason: str = "no text generator configured"):
        self.reason = reason

    def generate(
        self,
        system: str,
        messages: List[Message],
        sampler: Optional[Sampler] = None,
        tools: Optional[List[ToolSpec]] = None,
    ) -> GenerationResult:
        raise CollaboratorError(self.reason)


class GeminiTextGenerator:
    """:class:`TextGenerator` backed by the Gemini API (``google-genai``).

    Without tools, the model is asked for ``application/json`` output.  With
    tools, plain text is requested since function calling and JSON mode do
    not combine; the caller still parses the final text as JSON.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout_s: float = 12.0,
        max_output_tokens: int = 400,
        client: Any = None,
    ):
        self.model = model
        self.timeout_s = timeout_s
        self.max_output_tokens = max_output_tokens
        self.client = client or genai.Client(
            api_key=api_key,
            http_options=genai_types.HttpOptions(timeout=int(timeout_s * 1000)),
        )

    # -- request building --------------------------------------------------

    @staticmethod
    def _to_content(message: Message) -> genai_types.Content:
        parts: List[genai_types.Part] = []
        if message.text:
            parts.append(genai_types.Part(text=message.text))
        for call in message.tool_calls:
            parts.append(genai_types.Part(
                function_call=genai_types.FunctionCall(name=call.name, args=call.args),
            ))
        for res in message.tool_results:
            parts.append(genai_types.Part(
                function_response=genai_types.FunctionResponse(
                    name=res.name, response={"result": res.result},
                ),
            ))
        return genai_types.Content(role=message.role, parts=parts)

    @staticmethod
    def _to_tool(specs: List[ToolSpec]) -> genai_types.Tool:
        declarations = []
        for spec in specs:
            parameters = None
            if spec.params:
                parameters = genai_types.Schema(
                    type=genai_types.Type.OBJECT,
                    properties={
                        name: genai_types.Schema(
                            type=genai_types.Type.STRING,
                            description=param.description,
                            enum=list(param.choices) or None,
                        )
                        for name, param in spec.params.items()
                    },
                    required=list(spec.params),
                )
            declarations.append(genai_types.FunctionDeclaration(
                name=spec.name, description=spec.description, parameters=parameters,
            ))
        return genai_types.Tool(function_declarations=declarations)

    def _config(
        self,
        system: str,
        sampler: Optional[Sampler],
        tools: Optional[List[ToolSpec]],
    ) -> genai_types.GenerateContentConfig:
        kwargs: Dict[str, Any] = {
            "system_instruction": system,
            "max_output_tokens": self.max_output_tokens,
        }
        if sampler is not None:
            kwargs["temperature"] = sampler.temperature
            kwargs["top_p"] = sampler.top_p
        if tools:
            kwargs["tools"] = [self._to_tool(tools)]
            kwargs["automatic_function_calling"] = genai_types.AutomaticFunctionCallingConfig(
                disable=True,
            )
        else:
            kwargs["response_mime_type"] = "application/json"
        return genai_types.GenerateContentConfig(**kwargs)

    # -- call ----------------------------------------------------------------

    def generate(
        self,
        system: str,
        messages: List[Message],
        sampler: Optional[Sampler] = None,
        tools: Optional[List[ToolSpec]] = None,
    ) -> GenerationResult:
        contents = [self._to_content(m) for m in messages]
        config = self._config(system, sampler, tools)

        # The wall-clock cap is applied by the caller via call_with_timeout;
        # the HTTP timeout here bounds the socket.
        try:
            response = self.client.models.generate_content(
                model=self.model, contents=contents, config=config,
            )
        except Exception as exc:
            raise CollaboratorError(f"Gemini call failed: {exc}") from exc

        result = GenerationResult()
        if not response.candidates:
            return result
        content = response.candidates[0].content
        for part in (content.parts if content and content.parts else []):
            if part.function_call:
                result.tool_calls.append(ToolCall(
                    name=part.function_call.name or "",
                    args=dict(part.function_call.args or {}),
                ))
            elif part.text:
                result.text += part.text
        logger.debug(
            "Gemini reply: %d tool call(s), %d chars of text",
            len(result.tool_calls), len(result.text),
        )
        return result


def build_text_generator() -> TextGenerator:
    """Text generator for the configured environment."""
    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY not set; coaching will use fallback copy only")
        return UnavailableTextGenerator("GEMINI_API_KEY not set")
    return GeminiTextGenerator(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        timeout_s=settings.COACH_LLM_TIMEOUT_S,
        max_output_tokens=settings.COACH_MAX_OUTPUT_TOKENS,
    )
