"""Structured value extraction from free-text search results.

The network call and the parsing are deliberately separate:
:func:`parse_extraction` takes the raw model output and a target index
name and always returns an :class:`ExtractedValue`, so the
sanitize-and-retry behaviour is testable without a provider.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

import anthropic

from globalmarkets.exceptions import MalformedExtractionError, ProviderError
from globalmarkets.models.readings import ExtractedValue

_logger = logging.getLogger(__name__)

_PROVIDER = "anthropic"

# Markdown code fences the model sometimes wraps its JSON in.
_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)

_PROMPT = """Extract the current value of the {index_name} stock index from the following search results.

Return ONLY a JSON object in this exact format, nothing else:
{{"value": "12,345.67", "found": true}}

If you cannot find a clear value, return:
{{"value": null, "found": false}}

Search results:
{content}"""


class ExtractionProvider(Protocol):
    async def extract(self, content: str, index_name: str) -> ExtractedValue: ...


def _parse_strict(text: str) -> ExtractedValue:
    """Parse *text* as ``{"value": str | null, "found": bool}`` or raise."""
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedExtractionError(f"not JSON: {exc}", provider=_PROVIDER) from exc
    if not isinstance(data, dict):
        raise MalformedExtractionError(f"expected an object, got {type(data).__name__}", provider=_PROVIDER)

    found = data.get("found")
    if not isinstance(found, bool):
        raise MalformedExtractionError("'found' must be a boolean", provider=_PROVIDER)

    value = data.get("value")
    if value is None:
        return ExtractedValue(value=None, found=False)
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedExtractionError("'value' must be a string or null", provider=_PROVIDER)
    text_value = str(value).strip()
    if not text_value:
        return ExtractedValue(value=None, found=False)
    return ExtractedValue(value=text_value, found=found)


def strip_formatting(text: str) -> str:
    """Remove markdown code fences around a JSON payload."""
    return _FENCE_RE.sub("", text).replace("```", "").strip()


def parse_extraction(raw_text: str, target_name: str) -> ExtractedValue:
    """Turn raw extraction output into a reading; never raises.

    The text is parsed as-is first.  If that fails and the text carries
    code-fence markers, they are stripped and the parse is retried once.
    Anything still unparseable degrades to not-found.
    """
    text = (raw_text or "").strip()
    try:
        return _parse_strict(text)
    except MalformedExtractionError as first:
        sanitized = strip_formatting(text)
        if sanitized == text:
            _logger.warning("Failed to parse extraction for %s (%s): %.200s", target_name, first, raw_text)
            return ExtractedValue.not_found()
        try:
            return _parse_strict(sanitized)
        except MalformedExtractionError as second:
            _logger.warning("Failed to parse extraction for %s (%s): %.200s", target_name, second, raw_text)
            return ExtractedValue.not_found()


def build_prompt(content: str, index_name: str) -> str:
    return _PROMPT.format(index_name=index_name, content=content)


class AnthropicExtractionProvider:
    """Extract an index value with a single bounded Messages API call.

    Parameters
    ----------
    client : anthropic.AsyncAnthropic
        SDK client.  Built from *api_key* when omitted.
    model : str
        Model name.
    max_tokens : int
        Response size bound.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None = None,
        *,
        api_key: str | None = None,
        model: str = "claude-3-5-haiku-20241022",
        max_tokens: int = 256,
        timeout: float = 30.0,
    ) -> None:
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self._model = model
        self._max_tokens = max_tokens

    async def extract(self, content: str, index_name: str) -> ExtractedValue:
        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=[{"role": "user", "content": build_prompt(content, index_name)}],
            )
        except anthropic.APIStatusError as exc:
            raise ProviderError(
                f"Extraction failed: HTTP {exc.status_code}", status_code=exc.status_code, provider=_PROVIDER
            ) from exc
        except anthropic.APIError as exc:
            raise ProviderError(f"Extraction failed: {exc}", provider=_PROVIDER) from exc

        text = "".join(getattr(block, "text", "") for block in message.content)
        return parse_extraction(text, index_name)

    async def close(self) -> None:
        await self._client.close()
