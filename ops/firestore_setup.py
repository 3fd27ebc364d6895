"""
Seed documents for a fresh Firestore database.

Every seed uses a fixed document id and `create()`, so a rerun finds the
documents already present and writes nothing.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from firebase_admin import firestore
from google.api_core import exceptions as gexc

from ops.steps import Outcome, Step, StepResult, run_pipeline
from shared.firebase_constants import (
    BOARDS_COLLECTION,
    CULTURE_PROFILES_COLLECTION,
    HEALTH_CHECK_COLLECTION,
    ICON_LIBRARY_COLLECTION,
    SEEDED_COLLECTIONS,
    USERS_COLLECTION,
)
from shared.types import (
    AccessibilityNeeds,
    Board,
    BoardMetadata,
    CultureProfile,
    CulturalPreferences,
    IconCultureTag,
    IconLibraryEntry,
    IconPlacement,
    Position,
    UserPreferences,
    UserProfile,
    UserStats,
    to_document,
)

logger = logging.getLogger(__name__)

SYSTEM_USER_ID = "system"
SAMPLE_BOARD_ID = "sample-basic-communication"
DEFAULT_PROFILE_ID = "default-template"
HEALTH_DOC_ID = "status"


def _timestamps(document: dict, *fields: str) -> dict:
    for name in fields:
        document[name] = firestore.SERVER_TIMESTAMP
    return document


def health_document(environment: str) -> dict:
    return {
        "status": "healthy",
        "lastCheck": firestore.SERVER_TIMESTAMP,
        "version": "1.0.0",
        "environment": environment,
        "services": {
            "firestore": "connected",
            "auth": "enabled",
            "storage": "configured",
        },
    }


def sample_board_document() -> dict:
    placements = [
        ("hello", "Hello", 0, 0, "greetings", "#4CAF50"),
        ("thank-you", "Thank You", 1, 0, "greetings", "#2196F3"),
        ("help", "Help", 0, 1, "needs", "#FF9800"),
        ("yes", "Yes", 1, 1, "responses", "#4CAF50"),
        ("no", "No", 2, 1, "responses", "#F44336"),
        ("more", "More", 0, 2, "requests", "#9C27B0"),
    ]
    icons = [
        IconPlacement(
            id=icon_id,
            text=text,
            position=Position(x=x, y=y),
            category=category,
            color=color,
        )
        for icon_id, text, x, y, category, color in placements
    ]
    board = Board(
        user_id=SYSTEM_USER_ID,
        name="Basic Communication Board",
        description="A sample board with common communication icons for AAC users",
        is_public=True,
        icons=icons,
        metadata=BoardMetadata(
            version=1,
            icon_count=len(icons),
            tags=["basic", "communication", "sample", "public"],
        ),
    )
    document = to_document(board)
    document.pop("id")
    document["metadata"]["lastModified"] = firestore.SERVER_TIMESTAMP
    return _timestamps(document, "createdAt", "updatedAt")


def default_profile_document() -> dict:
    profile = CultureProfile(
        user_id=DEFAULT_PROFILE_ID,
        cultural_preferences=CulturalPreferences(
            color_preferences=["#2196F3", "#4CAF50", "#FF9800", "#9C27B0"],
            avoid_colors=["#F44336"],
            accessibility_needs=AccessibilityNeeds(color_blind_friendly=True),
        ),
        is_default=True,
    )
    document = to_document(profile)
    document["culturalPreferences"].pop("dialect")
    return _timestamps(document, "lastUpdated", "createdAt", "updatedAt")


def sample_icon_documents() -> dict[str, dict]:
    samples = {
        "sample-happy-face": (
            "happy face",
            ["emotion", "happy", "face", "basic"],
            "emotions",
        ),
        "sample-water-glass": (
            "water glass",
            ["drink", "water", "glass", "basic"],
            "food-drink",
        ),
    }
    documents = {}
    for doc_id, (text, tags, category) in samples.items():
        entry = IconLibraryEntry(
            text=text,
            generated_by=SYSTEM_USER_ID,
            generation_method="text",
            prompt=f"simple {text} icon, 2D, minimal, accessible design",
            model="seed",
            culture_profile=IconCultureTag(),
            is_public=True,
            tags=tags,
            category=category,
        )
        document = to_document(entry)
        document.pop("id")
        documents[doc_id] = _timestamps(document, "createdAt", "updatedAt")
    return documents


def system_user_document() -> dict:
    user = UserProfile(
        uid=SYSTEM_USER_ID,
        email="system@smartaac.app",
        display_name="Smart AAC System",
        preferences=UserPreferences(),
        stats=UserStats(total_boards=1, public_boards=1),
    )
    document = to_document(user)
    document.pop("culturalPreferences")
    document["stats"]["lastActive"] = firestore.SERVER_TIMESTAMP
    return _timestamps(document, "createdAt", "updatedAt")


def ensure_document(doc_ref, data: dict) -> bool:
    """Creates the document unless it exists; returns True when written."""
    if doc_ref.get().exists:
        return False
    try:
        doc_ref.create(data)
    except gexc.Conflict:
        # Created between the read and the write.
        return False
    return True


def _seed(db, collection: str, doc_id: str, build: Callable[[], dict]):
    def run(_shared: dict) -> Outcome:
        created = ensure_document(db.collection(collection).document(doc_id), build())
        state = "created" if created else "already exists"
        return Outcome(detail=f"{collection}/{doc_id} {state}", data={"created": created})

    return run


def _connect(db):
    def run(_shared: dict) -> Outcome:
        list(db.collection(HEALTH_CHECK_COLLECTION).limit(1).stream())
        return Outcome(detail="connected")

    return run


def _verify(db, clock: Callable[[], float]):
    def run(_shared: dict) -> Outcome:
        counts = {}
        for collection in SEEDED_COLLECTIONS:
            counts[collection] = len(list(db.collection(collection).limit(1).stream()))
        start = clock()
        list(
            db.collection(BOARDS_COLLECTION)
            .where(filter=firestore.FieldFilter("isPublic", "==", True))
            .limit(5)
            .stream()
        )
        elapsed_ms = (clock() - start) * 1000
        empty = [name for name, count in counts.items() if count == 0]
        detail = f"public boards query {elapsed_ms:.0f}ms"
        if empty:
            detail += f"; empty: {', '.join(empty)}"
        return Outcome(
            detail=detail,
            degraded=bool(empty),
            data={"counts": counts, "query_ms": elapsed_ms},
        )

    return run


def firestore_steps(
    db, *, environment: str = "development", clock: Callable[[], float] = time.perf_counter
) -> list[Step]:
    connected = ("connect",)
    steps = [
        Step("connect", _connect(db)),
        Step(
            "health_check",
            _seed(db, HEALTH_CHECK_COLLECTION, HEALTH_DOC_ID, lambda: health_document(environment)),
            requires=connected,
        ),
        Step(
            "sample_board",
            _seed(db, BOARDS_COLLECTION, SAMPLE_BOARD_ID, sample_board_document),
            requires=connected,
        ),
        Step(
            "default_culture_profile",
            _seed(db, CULTURE_PROFILES_COLLECTION, DEFAULT_PROFILE_ID, default_profile_document),
            requires=connected,
        ),
    ]
    for doc_id, document in sample_icon_documents().items():
        steps.append(
            Step(
                f"icon_{doc_id}",
                _seed(db, ICON_LIBRARY_COLLECTION, doc_id, lambda document=document: document),
                required=False,
                requires=connected,
            )
        )
    steps.append(
        Step(
            "system_user",
            _seed(db, USERS_COLLECTION, SYSTEM_USER_ID, system_user_document),
            required=False,
            requires=connected,
        )
    )
    steps.append(Step("verify", _verify(db, clock), requires=connected))
    return steps


def setup_firestore(
    db,
    *,
    environment: str = "development",
    on_result: Optional[Callable[[StepResult], Any]] = None,
) -> list[StepResult]:
    return run_pipeline(firestore_steps(db, environment=environment), on_result=on_result)
