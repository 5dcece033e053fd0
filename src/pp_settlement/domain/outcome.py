"""Map a completed provider score onto one of an event's outcome labels."""

import logging
from decimal import Decimal, InvalidOperation

from src.pp_common.outcomes import match_outcome_by_name, normalize_outcome
from src.pp_odds.domain.models import EventScore

logger = logging.getLogger(__name__)

DRAW = "draw"


def _parse_score(value: str | None) -> Decimal | None:
    if value is None or not str(value).strip():
        return None
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def determine_outcome(score: EventScore, outcomes: list[str]) -> str | None:
    """Winning outcome label, or None when it cannot be determined safely.

    The first two score entries are compared: the higher one wins, equal scores
    are a draw. The winner's name is matched against the labels exactly (after
    normalization) and then by substring; a draw maps to the label containing
    "draw".
    """
    if not score.scores or len(score.scores) < 2:
        return None

    first, second = score.scores[0], score.scores[1]
    first_score = _parse_score(first.score)
    second_score = _parse_score(second.score)
    if first_score is None or second_score is None:
        return None

    if first_score == second_score:
        for outcome in outcomes:
            if DRAW in normalize_outcome(outcome):
                return outcome
        return None

    winner = first.name if first_score > second_score else second.name
    label, used_fallback = match_outcome_by_name(winner, outcomes)
    if label is not None and used_fallback:
        logger.info(
            "Outcome for provider event=%s matched by substring: %r -> %r",
            score.id, winner, label,
        )
    return label
