"""Provider-neutral odds and score shapes."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.pp_common.outcomes import normalize_outcome


@dataclass(frozen=True)
class OddsOutcome:
    name: str
    price: Decimal   # decimal odds, e.g. 2.10


@dataclass
class NormalizedOdds:
    event_id: str
    sport_key: str
    outcomes: list[OddsOutcome]
    updated_at: datetime    # provider-side timestamp of this price snapshot
    home_team: str | None = None
    away_team: str | None = None

    def to_json(self) -> dict[str, object]:
        """Shape cached on events.current_odds (JSONB)."""
        return {
            "event_id": self.event_id,
            "sport_key": self.sport_key,
            "outcomes": [{"name": o.name, "price": str(o.price)} for o in self.outcomes],
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class ScoreEntry:
    name: str
    score: str | None


@dataclass
class EventScore:
    id: str
    completed: bool
    scores: list[ScoreEntry] | None = None
    home_team: str | None = None
    away_team: str | None = None
    last_update: datetime | None = None


@dataclass
class OddsSyncResult:
    sports: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def find_odds_outcome(odds: NormalizedOdds, outcome: str) -> OddsOutcome | None:
    """Price for ``outcome`` by normalized name, or None if the provider has none."""
    wanted = normalize_outcome(outcome)
    for candidate in odds.outcomes:
        if normalize_outcome(candidate.name) == wanted:
            return candidate
    return None
