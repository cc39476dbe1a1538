"""Fill plan computation from a profile's base info."""

from typing import Optional, Tuple

from apply_desk.core.models import BaseInfo, FieldSuggestion, FilledField, FillPlan

# Never auto-filled, whatever the profile holds
BLOCKED_FIELDS: Tuple[str, ...] = ("EEO", "veteran_status", "disability")

# (field, confidence) in fill order; confidence reflects extraction certainty
FIELD_CONFIDENCE: Tuple[Tuple[str, float], ...] = (
    ("first_name", 0.98),
    ("last_name", 0.98),
    ("email", 0.97),
    ("phone", 0.8),
)

DEFAULT_SUGGESTIONS: Tuple[FieldSuggestion, ...] = (
    FieldSuggestion(field="cover_letter", suggestion="Short note about relevant skills"),
)


def _source_value(base_info: BaseInfo, field: str) -> Optional[str]:
    if field == "first_name":
        return base_info.name.first
    if field == "last_name":
        return base_info.name.last
    if field == "email":
        return base_info.contact.email
    if field == "phone":
        return base_info.contact.phone
    return None


def build_fill_plan(base_info: Optional[BaseInfo]) -> FillPlan:
    """Compute the fill plan. Unset or empty source values are left out, never filled blank."""
    base_info = base_info or BaseInfo()

    filled = []
    for field, confidence in FIELD_CONFIDENCE:
        if field in BLOCKED_FIELDS:
            continue
        value = _source_value(base_info, field)
        if value:
            filled.append(FilledField(field=field, value=value, confidence=confidence))

    return FillPlan(
        filled=tuple(filled),
        suggestions=DEFAULT_SUGGESTIONS,
        blocked=BLOCKED_FIELDS,
    )
