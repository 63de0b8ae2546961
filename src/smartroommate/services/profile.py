from datetime import date
from typing import Any, Optional

from smartroommate.core.dto import UserDTO
from smartroommate.core.exceptions import ValidationFailed

REQUIRED_HABITS_MIN = 3
HABITS_MAX = 8
BIO_MAX_LENGTH = 30

RATING_FIELDS = ("tidiness", "social_energy", "noise_tolerance")
PROFILE_FIELDS = (
    "gender", "location", "budget", "habits", "bio", "profile_image_url",
    "tidiness", "social_energy", "noise_tolerance", "birthdate", "email_opt_in",
)


def parse_habits(value: Optional[str]) -> list[str]:
    """Split a comma-separated habit list, dropping blanks and repeats."""
    habits: list[str] = []
    for item in (value or "").split(","):
        habit = item.strip()
        if habit and habit not in habits:
            habits.append(habit)
    return habits


def to_rating(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not parsed.is_integer() or parsed < 1 or parsed > 5:
        return None
    return int(parsed)


def calculate_age(birthdate: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if birthdate is None:
        return None
    today = today or date.today()
    years = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        years -= 1
    return max(years, 0)


def is_profile_complete(profile: dict[str, Any]) -> bool:
    has_ratings = all(to_rating(profile.get(name)) is not None for name in RATING_FIELDS)
    return (
        bool(profile.get("gender"))
        and bool(profile.get("location"))
        and bool(profile.get("bio"))
        and bool(profile.get("profile_image_url"))
        and len(parse_habits(profile.get("habits"))) >= REQUIRED_HABITS_MIN
        and has_ratings
    )


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_profile_update(current: UserDTO, changes: dict[str, Any], today: Optional[date] = None) -> dict[str, Any]:
    """
    Merges submitted profile fields onto the stored profile and derives
    age and profile_complete from the result.
    Raises ValidationFailed for a bio over 30 characters or more than 8 habits.
    """
    merged = {name: getattr(current, name) for name in PROFILE_FIELDS}
    merged.update({name: value for name, value in changes.items() if name in PROFILE_FIELDS})

    for name in ("gender", "location", "bio", "profile_image_url"):
        merged[name] = _clean_text(merged[name])
    for name in RATING_FIELDS:
        merged[name] = to_rating(merged[name])

    if merged["bio"] and len(merged["bio"]) > BIO_MAX_LENGTH:
        raise ValidationFailed(f"Bio must be at most {BIO_MAX_LENGTH} characters.")

    habits = parse_habits(merged["habits"])
    if len(habits) > HABITS_MAX:
        raise ValidationFailed(f"Choose at most {HABITS_MAX} habits.")
    merged["habits"] = ", ".join(habits) or None

    merged["email_opt_in"] = bool(merged["email_opt_in"])
    merged["age"] = calculate_age(merged["birthdate"], today)
    merged["profile_complete"] = is_profile_complete(merged)
    return merged
