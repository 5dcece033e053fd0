"""Odds/results provider Protocol.

``None`` / empty results mean "cannot price or settle right now" and are never
read as zero. Transport or HTTP failures raise ExternalUnavailableError.
"""

from typing import Protocol

from src.pp_odds.domain.models import EventScore, NormalizedOdds


class OddsProviderProtocol(Protocol):
    async def get_event_odds(
        self, sport_key: str, event_id: str
    ) -> NormalizedOdds | None: ...

    async def get_sport_odds(self, sport_key: str) -> list[NormalizedOdds]: ...

    async def get_scores(self, sport_key: str) -> list[EventScore]: ...
