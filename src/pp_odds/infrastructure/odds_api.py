"""OddsApiClient — The Odds API v4 over httpx.

Endpoints used:
  GET /sports/{sport_key}/odds    ?regions&markets&oddsFormat=decimal[&eventIds]
  GET /sports/{sport_key}/scores  ?daysFrom=1

Prices are normalized from the first bookmaker's first market. The snapshot
timestamp is the provider's ``last_update`` for that market (or bookmaker) so
the cashout freshness gate measures the price's age, not the fetch time.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from config.settings import settings
from src.pp_common.datetime_utils import ensure_aware, utc_now
from src.pp_common.errors import ExternalUnavailableError
from src.pp_odds.domain.models import EventScore, NormalizedOdds, OddsOutcome, ScoreEntry

logger = logging.getLogger(__name__)


def _parse_ts(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def _parse_outcomes(raw: list[dict[str, Any]]) -> list[OddsOutcome]:
    outcomes: list[OddsOutcome] = []
    for item in raw:
        name = item.get("name")
        try:
            price = Decimal(str(item.get("price")))
        except InvalidOperation:
            continue
        if isinstance(name, str) and name and price.is_finite() and price > 0:
            outcomes.append(OddsOutcome(name=name, price=price))
    return outcomes


def normalize_event_odds(item: dict[str, Any]) -> NormalizedOdds | None:
    """First bookmaker, first market. None when the event carries no usable prices."""
    bookmakers = item.get("bookmakers") or []
    if not bookmakers:
        return None
    bookmaker = bookmakers[0]
    markets = bookmaker.get("markets") or []
    if not markets:
        return None
    market = markets[0]
    outcomes = _parse_outcomes(market.get("outcomes") or [])
    if not outcomes:
        return None
    updated_at = (
        _parse_ts(market.get("last_update"))
        or _parse_ts(bookmaker.get("last_update"))
        or utc_now()
    )
    return NormalizedOdds(
        event_id=str(item.get("id")),
        sport_key=str(item.get("sport_key", "")),
        outcomes=outcomes,
        updated_at=updated_at,
        home_team=item.get("home_team"),
        away_team=item.get("away_team"),
    )


def parse_score(item: dict[str, Any]) -> EventScore:
    raw_scores = item.get("scores")
    scores = (
        [
            ScoreEntry(name=str(s.get("name", "")), score=s.get("score"))
            for s in raw_scores
            if isinstance(s, dict)
        ]
        if isinstance(raw_scores, list)
        else None
    )
    return EventScore(
        id=str(item.get("id")),
        completed=bool(item.get("completed")),
        scores=scores,
        home_team=item.get("home_team"),
        away_team=item.get("away_team"),
        last_update=_parse_ts(item.get("last_update")),
    )


class OddsApiClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        regions: str | None = None,
        markets: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = settings.ODDS_API_KEY if api_key is None else api_key
        self._base_url = (base_url or settings.ODDS_API_BASE_URL).rstrip("/")
        self._regions = regions or settings.ODDS_API_REGIONS
        self._markets = markets or settings.ODDS_API_MARKETS
        self._timeout = timeout or settings.ODDS_API_TIMEOUT_SECONDS
        self._transport = transport

    async def _get(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        if not self._api_key:
            raise ExternalUnavailableError("ODDS_API_KEY is not configured")
        query = {k: v for k, v in params.items() if v not in (None, "")}
        query["apiKey"] = self._api_key
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(path, params=query)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ExternalUnavailableError(
                f"{path} returned HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalUnavailableError(f"{path}: {exc}") from exc

        remaining = response.headers.get("x-requests-remaining")
        if remaining is not None:
            logger.debug("Odds API %s ok, requests remaining=%s", path, remaining)
        if not isinstance(payload, list):
            raise ExternalUnavailableError(f"{path} returned an unexpected payload")
        return [item for item in payload if isinstance(item, dict)]

    async def _fetch_odds(self, sport_key: str, event_id: str | None = None) -> list[dict[str, Any]]:
        return await self._get(
            f"/sports/{sport_key}/odds",
            {
                "regions": self._regions,
                "markets": self._markets,
                "oddsFormat": "decimal",
                "eventIds": event_id,
            },
        )

    async def get_event_odds(self, sport_key: str, event_id: str) -> NormalizedOdds | None:
        for item in await self._fetch_odds(sport_key, event_id):
            if str(item.get("id")) == event_id:
                return normalize_event_odds(item)
        return None

    async def get_sport_odds(self, sport_key: str) -> list[NormalizedOdds]:
        normalized = (normalize_event_odds(item) for item in await self._fetch_odds(sport_key))
        return [odds for odds in normalized if odds is not None]

    async def get_scores(self, sport_key: str) -> list[EventScore]:
        items = await self._get(f"/sports/{sport_key}/scores", {"daysFrom": 1})
        return [parse_score(item) for item in items]
