"""HTTP transport for the generative-AI recommendation service."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from evledger._redact import redact_for_log
from evledger.config import EvLedgerConfig
from evledger.exceptions import TransportError

_logger = logging.getLogger(__name__)

USER_AGENT = "evledger/1 (+aiohttp)"

#: JSON schema the model is asked to answer with.
RECOMMENDATION_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {
                "type": "STRING",
                "description": "A short, catchy title for the recommendation.",
            },
            "recommendation": {
                "type": "STRING",
                "description": "The specific, actionable advice for the user.",
            },
            "rationale": {
                "type": "STRING",
                "description": "A brief explanation of why this recommendation is being made based on the user's data.",
            },
        },
        "required": ["title", "recommendation", "rationale"],
    },
}


class GenerativeTransport(Protocol):
    """Structural interface for text generation backends.

    Keeps :class:`~evledger.recommendations.RecommendationClient` independent
    of any vendor's request format, and lets tests pass a stub.
    """

    async def generate(self, prompt: str) -> str:
        ...


def extract_text(body: Mapping[str, Any]) -> str:
    """Concatenate the text parts of the first candidate in a ``generateContent`` reply."""
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = body.get("promptFeedback")
        raise TransportError(f"Response contained no candidates: {feedback!r}")
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise TransportError("Response candidate has no content parts")
    text = "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))
    if not text.strip():
        raise TransportError("Response candidate text is empty")
    return text


class GeminiTransport:
    """Calls the Generative Language REST API ``generateContent`` endpoint."""

    def __init__(self, config: EvLedgerConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    @property
    def endpoint(self) -> str:
        return f"/v1beta/models/{self._config.model}:generateContent"

    def build_body(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RECOMMENDATION_SCHEMA,
            },
        }

    async def generate(self, prompt: str) -> str:
        if not self._config.api_key:
            raise TransportError("API key is not configured (set EVLEDGER_API_KEY)")

        endpoint = self.endpoint
        url = f"{self._config.api_base_url.rstrip('/')}{endpoint}"
        headers = {
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
            "x-goog-api-key": self._config.api_key,
        }
        body = self.build_body(prompt)
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        _logger.debug("POST %s", url)
        if self._config.api_trace_enabled:
            _logger.debug("Request headers=%s body=%s", redact_for_log(headers), redact_for_log(body))

        try:
            async with self._http.post(url, json=body, headers=headers, timeout=timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise TransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except TransportError:
            raise
        except UnicodeDecodeError as exc:
            raise TransportError(f"Undecodable response body from {endpoint}: {exc}", endpoint=endpoint) from exc
        except TimeoutError as exc:
            raise TransportError(
                f"Request to {endpoint} timed out after {self._config.request_timeout:g}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        try:
            body_json = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransportError(f"Invalid JSON from {endpoint}: {text[:200]}", endpoint=endpoint) from exc

        if self._config.api_trace_enabled:
            _logger.debug("Response body=%s", redact_for_log(body_json))

        if not isinstance(body_json, dict):
            raise TransportError(f"Unexpected response shape from {endpoint}", endpoint=endpoint)
        return extract_text(body_json)
