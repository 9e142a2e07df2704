"""AI-generated ownership recommendations.

The ledger is embedded as JSON in an instruction prompt, sent through a
:class:`~evledger._transport.GenerativeTransport`, and the reply is parsed
into :class:`~evledger.models.recommendation.Recommendation` records.

Failures never escape :meth:`RecommendationClient.recommend`: transport
errors, timeouts and unparseable replies all produce a single synthetic
record titled ``"Error"`` whose rationale carries the diagnostic text.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp
from pydantic import TypeAdapter, ValidationError

from evledger._transport import GeminiTransport, GenerativeTransport
from evledger.analytics import require_enough_data
from evledger.config import EvLedgerConfig
from evledger.exceptions import EvLedgerError, RecommendationBusyError, RecommendationError
from evledger.ledger.state import LedgerState
from evledger.models.recommendation import Recommendation

_logger = logging.getLogger(__name__)

_RECOMMENDATIONS_ADAPTER: TypeAdapter[list[Recommendation]] = TypeAdapter(list[Recommendation])

_PROMPT_TEMPLATE = """\
As an expert EV analyst, your task is to provide recommendations for an EV owner based on their vehicle data and logged events.
Analyze the following data and provide 3-5 actionable recommendations.

Data:
{data}

Focus on these areas:
1.  **Battery Health:** Analyze charging patterns (e.g., frequent DCFC, charging to 100%). Recommend best practices for longevity.
2.  **Driving Efficiency:** Look at trip data. Suggest ways to improve range and reduce energy consumption.
3.  **Maintenance:** Based on service logs, faults, and odometer readings, suggest potential upcoming maintenance needs.
4.  **Overall Usage:** Provide general tips based on the overall picture of the vehicle's use.

Provide a concise title, a clear recommendation, and a brief rationale for each point.
"""

FETCH_FAILED_MESSAGE = (
    "Could not fetch AI recommendations. Please check your API key and network connection."
)


def build_prompt(state: LedgerState) -> str:
    return _PROMPT_TEMPLATE.format(data=json.dumps(state.to_json_dict(), indent=2))


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def parse_recommendations(text: str) -> list[Recommendation]:
    """Parse a JSON array of ``{title, recommendation, rationale}`` objects.

    Raises
    ------
    ValueError
        If *text* is not JSON, not an array, empty, or a record is missing
        a non-empty field.
    """
    data: Any = json.loads(_strip_code_fence(text))
    if isinstance(data, dict) and isinstance(data.get("recommendations"), list):
        data = data["recommendations"]
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array of recommendations, got {type(data).__name__}")
    if not data:
        raise ValueError("Response contained no recommendations")
    return _RECOMMENDATIONS_ADAPTER.validate_python(data)


class RecommendationClient:
    """Async client for ledger recommendations.

    Usage::

        async with RecommendationClient(config) as client:
            recommendations = await client.recommend(ledger.state)

    Only one request may be outstanding at a time; :attr:`busy` reports
    whether one is in flight.
    """

    def __init__(
        self,
        config: EvLedgerConfig,
        *,
        transport: GenerativeTransport | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._external_session = session is not None
        self._http_session = session
        self._busy = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RecommendationClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = GeminiTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    @property
    def busy(self) -> bool:
        return self._busy

    def _require_transport(self) -> GenerativeTransport:
        if self._transport is None:
            raise EvLedgerError("Client not initialized. Use 'async with RecommendationClient(...) as client:'")
        return self._transport

    async def recommend(self, state: LedgerState) -> list[Recommendation]:
        """Request 3-5 recommendations for *state*.

        Raises
        ------
        InsufficientDataError
            If fewer than three events are logged; no request is sent.
        RecommendationBusyError
            If another request from this client is still pending.
        """
        require_enough_data(state)
        if self._busy:
            raise RecommendationBusyError("A recommendation request is already in progress")
        transport = self._require_transport()

        self._busy = True
        try:
            prompt = build_prompt(state)
            try:
                text = await asyncio.wait_for(transport.generate(prompt), timeout=self._config.request_timeout)
            except TimeoutError:
                _logger.error("Recommendation request timed out after %ss", self._config.request_timeout)
                return [
                    Recommendation.error(
                        FETCH_FAILED_MESSAGE,
                        f"No response within {self._config.request_timeout:g} seconds",
                    )
                ]
            except (RecommendationError, aiohttp.ClientError) as exc:
                _logger.error("Error fetching AI recommendations: %s", exc)
                return [Recommendation.error(FETCH_FAILED_MESSAGE, str(exc))]

            try:
                recommendations = parse_recommendations(text)
            except (ValueError, ValidationError) as exc:
                _logger.error("Could not parse AI recommendations: %s", exc)
                return [Recommendation.error("The AI service returned an unreadable response.", str(exc))]
        finally:
            self._busy = False

        _logger.info("Received %d recommendation(s)", len(recommendations))
        return recommendations
