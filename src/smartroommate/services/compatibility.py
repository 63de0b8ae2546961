"""
Roommate compatibility scoring.

A candidate profile is scored against the profile of the user looking at it
(the viewer). The score blends three similarities:

- Rating similarity (weight 0.60): tidiness, social energy and noise tolerance,
  each rated 1-5. Absolute differences are summed and normalised by 4 per axis.
- Habit similarity (weight 0.25): Jaccard index of the two habit tag sets.
- Age similarity (weight 0.15): age gap, capped at 10 years.

The blend is mapped onto [50, 100]. A worst-case match still shows as 50%.
Missing values never raise: unset ratings and ages count as 0 and an empty
habit union gives a similarity of 0.
"""

import math
from typing import Iterable, Optional

from smartroommate.core.dto import UserDTO
from .profile import parse_habits

NEUTRAL_SCORE = 50

RATING_WEIGHT = 0.60
HABIT_WEIGHT = 0.25
AGE_WEIGHT = 0.15

MAX_RATING_DIFF = 4
MAX_AGE_GAP = 10


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def rating_similarity(
    viewer_ratings: Iterable[Optional[int]],
    candidate_ratings: Iterable[Optional[int]]
) -> float:
    """
    1 - (sum of per-axis absolute differences) / (axes * 4).

    Args:
        viewer_ratings: ratings of the viewer, None for unset (treated as 0)
        candidate_ratings: ratings of the candidate, in the same axis order

    Returns:
        Similarity; within [0, 1] whenever both sides hold ratings in [1, 5]
    """
    diffs = [
        abs((a or 0) - (b or 0))
        for a, b in zip(viewer_ratings, candidate_ratings)
    ]
    if not diffs:
        return 0.0
    return 1 - sum(diffs) / (len(diffs) * MAX_RATING_DIFF)


def habit_similarity(viewer_habits: Optional[str], candidate_habits: Optional[str]) -> float:
    """Jaccard similarity of two comma-separated habit lists; 0 when both are empty."""
    first = set(parse_habits(viewer_habits))
    second = set(parse_habits(candidate_habits))
    union = first | second
    if not union:
        return 0.0
    return len(first & second) / len(union)


def age_similarity(viewer_age: Optional[int], candidate_age: Optional[int]) -> float:
    gap = abs((viewer_age or 0) - (candidate_age or 0))
    return 1 - _clamp(gap, 0, MAX_AGE_GAP) / MAX_AGE_GAP


def _ratings(profile: UserDTO) -> tuple[Optional[int], Optional[int], Optional[int]]:
    return profile.tidiness, profile.social_energy, profile.noise_tolerance


def compatibility_score(viewer: Optional[UserDTO], candidate: UserDTO) -> int:
    """
    Score how well a candidate matches the viewer.

    Args:
        viewer: profile of the user browsing, None for an anonymous viewer
        candidate: profile being displayed

    Returns:
        Integer in [50, 100]; 50 for an anonymous viewer
    """
    if viewer is None:
        return NEUTRAL_SCORE

    weighted = (
        RATING_WEIGHT * rating_similarity(_ratings(viewer), _ratings(candidate))
        + HABIT_WEIGHT * habit_similarity(viewer.habits, candidate.habits)
        + AGE_WEIGHT * age_similarity(viewer.age, candidate.age)
    )
    weighted = _clamp(weighted, 0.0, 1.0)

    # half-up rounding, x.5 always goes up
    return int(math.floor(NEUTRAL_SCORE + 50 * weighted + 0.5))
