"""
User profile helpers: completeness and the cultural context fed to prompts.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from models.prompts import DEFAULT_CULTURE

PROFILE_SECTIONS = ("location", "languages", "demographics")


def default_cultural_context() -> dict:
    return {**DEFAULT_CULTURE, "culturalAdaptation": False}


def is_profile_complete(profile: Optional[dict]) -> bool:
    if not profile:
        return False
    location = profile.get("location") or {}
    primary = (profile.get("languages") or {}).get("primary") or {}
    return bool(
        location.get("country")
        and location.get("region")
        and primary.get("language")
        and primary.get("dialect")
        and profile.get("demographics") is not None
    )


def symbol_style_for_age(age: Optional[int]) -> str:
    if not age:
        return "simple"
    if age <= 12:
        return "cartoon"
    if age <= 25:
        return "modern"
    return "simple"


def cultural_context(profile: Optional[dict]) -> dict:
    """Cultural context for AI prompts; incomplete profiles get the default."""
    if not is_profile_complete(profile):
        return default_cultural_context()
    primary = profile["languages"]["primary"]
    demographics = profile.get("demographics") or {}
    return {
        "language": primary["language"],
        "dialect": primary["dialect"],
        "region": profile["location"]["region"],
        "country": profile["location"]["country"],
        "symbolStyle": symbol_style_for_age(demographics.get("age")),
        "culturalAdaptation": True,
        "demographics": {
            "age": demographics.get("age"),
            "gender": demographics.get("gender"),
            "religion": demographics.get("religion"),
            "ethnicity": demographics.get("ethnicity"),
        },
    }


def build_profile_document(
    user_id: str, sections: dict, previous: Optional[dict] = None
) -> dict:
    """Assembles the stored document from validated sections."""
    version = ((previous or {}).get("metadata") or {}).get("version", 0) + 1
    document = {"userId": user_id}
    for section in PROFILE_SECTIONS:
        document[section] = sections.get(section)
    complete = is_profile_complete(document)
    document["profileComplete"] = complete
    document["onboardingStep"] = "completed" if complete else "location"
    document["metadata"] = {
        "version": version,
        "lastUpdated": datetime.now(timezone.utc),
    }
    return document
