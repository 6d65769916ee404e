"""
Model selection for an agent iteration.

Models are named by tier: opus (large), sonnet (medium), haiku (small).
Balls state a size preference; sessions may set a default size.
"""

from dataclasses import dataclass
from typing import Iterable

from juggle.balls.ball import Ball
from juggle.lib.constants import LARGEST_TIER, MODEL_SIZE_TO_TIER

REASON_EXPLICIT = "explicitly set via --model flag"
REASON_NO_ACTIVE = "no active balls"

# Tie-break order, largest first
TIER_ORDER = list(MODEL_SIZE_TO_TIER.values())


@dataclass
class ModelSelection:
    model: str
    reason: str
    ball_count: int = 0  # Active balls that voted for the chosen model


def tier_for(size_or_model: str) -> str:
    """Map a size (small/medium/large) to its tier. Other names pass through."""
    return MODEL_SIZE_TO_TIER.get(size_or_model, size_or_model)


def filter_active(balls: Iterable[Ball]) -> list[Ball]:
    """Pending and in-progress balls. Blocked and complete ones are excluded."""
    return [b for b in balls if b.is_active()]


def count_by_model(balls: Iterable[Ball]) -> dict[str, int]:
    """Tally balls by preferred tier. Balls without a preference are not counted."""
    counts = {tier: 0 for tier in TIER_ORDER}
    for ball in balls:
        if ball.model_size:
            tier = tier_for(ball.model_size)
            counts[tier] = counts.get(tier, 0) + 1
    return counts


def select_model(explicit_model: str, balls: Iterable[Ball], session_default: str = "") -> ModelSelection:
    """Pick the model for the next iteration.

    An explicit model always wins. Otherwise the active balls vote with
    their size preference and ties go to the larger tier. With no votes the
    session default is used, then the largest tier.
    """
    if explicit_model:
        return ModelSelection(model=explicit_model, reason=REASON_EXPLICIT)

    active = filter_active(balls)
    if not active:
        return ModelSelection(model=LARGEST_TIER, reason=REASON_NO_ACTIVE)

    counts = count_by_model(active)
    best = max(counts.values())
    if best > 0:
        # max() keeps the first maximum, and TIER_ORDER is largest first
        model = max(TIER_ORDER, key=lambda t: counts[t])
        return ModelSelection(
            model=model,
            reason=f"{best} of {len(active)} active balls prefer {model}",
            ball_count=best,
        )

    if session_default:
        return ModelSelection(
            model=tier_for(session_default),
            reason=f"no ball preference, using session default ({session_default})",
        )
    return ModelSelection(model=LARGEST_TIER, reason="no ball preference and no session default")


def prioritize_by_model(balls: Iterable[Ball], model: str, session_default: str = "") -> list[Ball]:
    """Stable partition: balls that suit model first, the rest after.

    A ball suits the model when its own preference maps to it, or when it
    has no preference and the session default maps to it.
    """
    matching = []
    others = []
    for ball in balls:
        preference = ball.model_size or session_default
        if preference and tier_for(preference) == model:
            matching.append(ball)
        else:
            others.append(ball)
    return matching + others
