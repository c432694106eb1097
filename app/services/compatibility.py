"""
Roommate compatibility score (0-100) between two assessments.

Each factor present in both assessments adds its weight to the total.
An exact match earns the full weight, a value listed as compatible earns
half. If either side's deal breakers appear in the other side's sharing
preferences, the score is halved.
"""

from typing import Dict, List, Optional

from app.services.mongo_service import round_half_up

FACTOR_WEIGHTS: Dict[str, int] = {
    "sleepSchedule": 15,
    "cleanliness": 20,
    "studyHabits": 15,
    "socialLevel": 10,
    "cookingFrequency": 10,
    "musicPreference": 10,
    "guestPolicy": 10,
    "smokingTolerance": 5,
    "petFriendly": 5,
}

COMPATIBLE_VALUES: Dict[str, Dict[str, List[str]]] = {
    "sleepSchedule": {
        "early_bird": ["flexible"],
        "night_owl": ["flexible"],
        "flexible": ["early_bird", "night_owl", "flexible"],
    },
    "cleanliness": {
        "very_clean": ["moderately_clean"],
        "moderately_clean": ["very_clean", "relaxed"],
        "relaxed": ["moderately_clean"],
    },
    "studyHabits": {
        "silent": ["quiet"],
        "quiet": ["silent", "moderate_noise", "flexible"],
        "moderate_noise": ["quiet", "flexible"],
        "flexible": ["quiet", "moderate_noise"],
    },
    "socialLevel": {
        "very_social": ["moderately_social"],
        "moderately_social": ["very_social", "quiet"],
        "quiet": ["moderately_social", "prefer_alone"],
        "prefer_alone": ["quiet"],
    },
}

DEAL_BREAKER_PENALTY = 0.5


def is_compatible(factor: str, first: str, second: str) -> bool:
    return second in COMPATIBLE_VALUES.get(factor, {}).get(first, [])


def has_deal_breaker(first: dict, second: dict) -> bool:
    """True if either side rules out something the other side wants."""
    first_breakers = set(first.get("dealBreakers") or [])
    second_breakers = set(second.get("dealBreakers") or [])
    first_prefs = set(first.get("sharingPreferences") or [])
    second_prefs = set(second.get("sharingPreferences") or [])
    return bool(first_breakers & second_prefs) or bool(second_breakers & first_prefs)


def compatibility_score(first: Optional[dict], second: Optional[dict]) -> int:
    """
    Score two compatibility assessments.

    Returns:
        Integer 0-100; 0 when either assessment is missing or no factor overlaps.
    """
    if not first or not second:
        return 0

    score = 0.0
    total = 0
    for factor, weight in FACTOR_WEIGHTS.items():
        mine, theirs = first.get(factor), second.get(factor)
        if not mine or not theirs:
            continue
        total += weight
        if mine == theirs:
            score += weight
        elif is_compatible(factor, mine, theirs):
            score += weight * 0.5

    if total == 0:
        return 0

    if has_deal_breaker(first, second):
        score *= DEAL_BREAKER_PENALTY

    return round_half_up(score / total * 100)
