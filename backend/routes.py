"""
HTTP routes for the AAC backend API.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from google.api_core import exceptions as gexc

from backend import __version__
from backend.auth import AuthUser, optional_user, require_user
from backend.config import get_settings
from backend.db import DbClient
from backend.dependencies import get_ai_service, get_db_client, get_storage_client
from backend.errors import ApiError, utc_now_iso
from backend.profiles import (
    build_profile_document,
    cultural_context,
    default_cultural_context,
    is_profile_complete,
)
from backend.schemas import (
    BoardIn,
    GenerateFromTextIn,
    OrderDirection,
    OrderField,
    ProfileIn,
    ProfilePatchIn,
)
from backend.storage import StorageClient
from models.vertex_ai import AIServiceError, GeneratedImage, VertexAIService
from shared.types import (
    Board,
    BoardMetadata,
    IconAudio,
    IconCultureTag,
    IconLibraryEntry,
    IconPlacement,
    Position,
    from_document,
    to_document,
)

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MIN_SEARCH_LENGTH = 2
MAX_SEARCH_LENGTH = 100

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "audio/wav": "wav",
    "audio/mpeg": "mp3",
}

health_router = APIRouter()
boards_router = APIRouter(prefix="/boards")
icons_router = APIRouter(prefix="/icons")
profile_router = APIRouter(prefix="/profile")


def _ok(data=None, message: Optional[str] = None, **extra) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    return body


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------- health


@health_router.get("/health")
def health(db: DbClient = Depends(get_db_client)):
    try:
        db.ping()
        firestore_status = "connected"
    except Exception:
        logger.warning("Firestore health check failed", exc_info=True)
        firestore_status = "unavailable"
    return {
        "status": "healthy" if firestore_status == "connected" else "degraded",
        "timestamp": utc_now_iso(),
        "version": __version__,
        "environment": get_settings().node_env,
        "services": {"firestore": firestore_status},
    }


# ---------------------------------------------------------------- boards


def _board_from_request(user_id: str, body: BoardIn, *, version: int = 1) -> Board:
    icons = [
        IconPlacement(
            id=icon.id,
            text=icon.text,
            image_url=icon.image_url,
            position=Position(x=icon.position.x, y=icon.position.y),
            category=icon.category,
            color=icon.color,
        )
        for icon in body.icons
    ]
    return Board(
        user_id=user_id,
        name=body.name,
        description=body.description,
        is_public=body.is_public,
        icons=icons,
        metadata=BoardMetadata(
            version=version, icon_count=len(icons), last_modified=_now()
        ),
    )


def _list_boards(db: DbClient, **query) -> list[dict]:
    try:
        return db.list_boards(**query)
    except gexc.FailedPrecondition as e:
        logger.warning("Board query needs a composite index: %s", e)
        raise ApiError(
            503,
            "DATABASE_INDEX_BUILDING",
            "Database index is still building, please retry shortly",
        )


def _paginate(
    db: DbClient,
    *,
    page: int,
    limit: int,
    order_by: str,
    order_direction: str,
    **filters,
) -> tuple[list[dict], bool]:
    # One extra row tells us whether another page exists.
    rows = _list_boards(
        db,
        order_by=order_by,
        direction=order_direction,
        limit=limit + 1,
        offset=(page - 1) * limit,
        **filters,
    )
    return rows[:limit], len(rows) > limit


def _get_owned_board(db: DbClient, board_id: str, user: AuthUser) -> dict:
    board = db.get_board(board_id)
    if not board:
        raise ApiError(404, "BOARD_NOT_FOUND", "Board not found")
    if board.get("userId") != user.uid:
        raise ApiError(403, "BOARD_ACCESS_DENIED", "You do not own this board")
    return board


@boards_router.post("", status_code=201)
@boards_router.post("/", status_code=201, include_in_schema=False)
def create_board(
    body: BoardIn,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    board = _board_from_request(user.uid, body)
    stored = db.create_board(to_document(board))
    logger.info("Board %s created by %s", stored["id"], user.uid)
    return _ok(stored, "Board created successfully")


@boards_router.get("")
@boards_router.get("/", include_in_schema=False)
def list_user_boards(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order_by: OrderField = Query("updatedAt", alias="orderBy"),
    order_direction: OrderDirection = Query("desc", alias="orderDirection"),
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    boards, has_more = _paginate(
        db,
        page=page,
        limit=limit,
        order_by=order_by,
        order_direction=order_direction,
        user_id=user.uid,
    )
    return _ok(
        boards,
        pagination={
            "page": page,
            "limit": limit,
            "count": len(boards),
            "hasMore": has_more,
        },
    )


@boards_router.get("/public")
def list_public_boards(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order_by: OrderField = Query("updatedAt", alias="orderBy"),
    order_direction: OrderDirection = Query("desc", alias="orderDirection"),
    search: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    term = None
    if search is not None:
        term = search.strip().lower()
        if not MIN_SEARCH_LENGTH <= len(term) <= MAX_SEARCH_LENGTH:
            raise ApiError(
                400,
                "INVALID_SEARCH_TERM",
                f"Search term must be {MIN_SEARCH_LENGTH}-{MAX_SEARCH_LENGTH} characters",
            )
    boards, has_more = _paginate(
        db,
        page=page,
        limit=limit,
        order_by=order_by,
        order_direction=order_direction,
        is_public=True,
    )
    if term:
        boards = [
            board
            for board in boards
            if term in board.get("name", "").lower()
            or term in board.get("description", "").lower()
        ]
    return _ok(
        boards,
        pagination={
            "page": page,
            "limit": limit,
            "count": len(boards),
            "hasMore": has_more,
        },
    )


@boards_router.get("/{board_id}")
def get_board(
    board_id: str,
    user: Optional[AuthUser] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    board = db.get_board(board_id)
    if not board:
        raise ApiError(404, "BOARD_NOT_FOUND", "Board not found")
    if not board.get("isPublic") and (user is None or user.uid != board.get("userId")):
        raise ApiError(403, "BOARD_ACCESS_DENIED", "This board is private")
    return _ok(board)


@boards_router.put("/{board_id}")
def replace_board(
    board_id: str,
    body: BoardIn,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    existing = from_document(Board, _get_owned_board(db, board_id, user))
    board = _board_from_request(
        user.uid, body, version=existing.metadata.version + 1
    )
    board.metadata.tags = existing.metadata.tags
    stored = db.replace_board(board_id, to_document(board))
    return _ok(stored, "Board updated successfully")


@boards_router.delete("/{board_id}")
def delete_board(
    board_id: str,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    _get_owned_board(db, board_id, user)
    db.delete_board(board_id)
    return _ok(message="Board deleted successfully")


# ---------------------------------------------------------------- icons


def _store_asset(
    storage: StorageClient, user_id: str, kind: str, data: bytes, mime_type: str
) -> str:
    extension = _EXTENSIONS.get(mime_type, "bin")
    path = f"{kind}/{user_id}/{uuid4().hex}.{extension}"
    return storage.upload_bytes(path, data, mime_type)


def _resolve_culture(db: DbClient, user_id: str, requested: Optional[dict]) -> dict:
    if requested:
        return requested
    return cultural_context(db.get_profile(user_id))


def _label_audio(
    ai: VertexAIService,
    storage: StorageClient,
    user_id: str,
    label: str,
    culture: dict,
) -> tuple[Optional[dict], Optional[IconAudio]]:
    """Translates and voices a label. Failures leave the icon without audio."""
    language = culture.get("language") or "en"
    dialect = culture.get("dialect")
    translation = None
    try:
        spoken = label
        if language != "en" or dialect:
            result = ai.translate_text(label, language, dialect)
            spoken = result.translated_text
            translation = {
                "originalText": result.original_text,
                "translatedText": result.translated_text,
                "targetLanguage": result.target_language,
                "targetDialect": result.target_dialect,
            }
        speech = ai.generate_speech(spoken, language, dialect)
        url = _store_asset(
            storage, user_id, "audio", speech.audio_bytes, speech.mime_type
        )
    except Exception:
        logger.warning("Audio generation failed for label %r", label, exc_info=True)
        return translation, None
    audio = IconAudio(
        public_url=url,
        mime_type=speech.mime_type,
        language=language,
        size=len(speech.audio_bytes),
        dialect=dialect,
        voice=speech.voice,
    )
    return translation, audio


def _save_icon(
    db: DbClient,
    storage: StorageClient,
    ai: VertexAIService,
    user: AuthUser,
    image: GeneratedImage,
    *,
    text: str,
    method: str,
    culture: dict,
    label: Optional[str] = None,
    category: Optional[str] = None,
    color: Optional[str] = None,
    generate_audio: bool = False,
) -> dict:
    public_url = _store_asset(storage, user.uid, "icons", image.image_bytes, image.mime_type)
    translation, audio = None, None
    if generate_audio and label:
        translation, audio = _label_audio(ai, storage, user.uid, label, culture)

    entry = IconLibraryEntry(
        text=text,
        image_url=public_url,
        thumbnail_url=public_url,
        mime_type=image.mime_type,
        generated_by=user.uid,
        generation_method=method,
        prompt=image.prompt,
        model=image.model,
        culture_profile=IconCultureTag(
            language=culture.get("language", "en"),
            region=culture.get("region", "US"),
            symbol_style=culture.get("symbolStyle", "simple"),
        ),
        tags=[re.sub(r"\s+", "_", text.lower())],
        category=category,
        label=label,
        color=color,
        audio=audio,
    )
    document = to_document(entry)
    document["translation"] = translation
    stored = db.create_icon(document)
    return {
        "id": stored["id"],
        "text": text,
        "label": label,
        "category": category,
        "color": color,
        "imageUrl": public_url,
        "publicUrl": public_url,
        "mimeType": image.mime_type,
        "size": len(image.image_bytes),
        "prompt": image.prompt,
        "model": image.model,
        "cultureProfile": culture,
        "translation": translation,
        "audio": stored.get("audio"),
        "createdAt": stored.get("createdAt"),
    }


async def _read_upload(upload: UploadFile, kind: str) -> bytes:
    content_type = upload.content_type or ""
    if not content_type.startswith(f"{kind}/"):
        raise ApiError(
            400, "INVALID_FILE_TYPE", f"Expected an {kind} file, got {content_type!r}"
        )
    data = await upload.read()
    if not data:
        raise ApiError(400, "EMPTY_FILE", "Uploaded file is empty")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ApiError(413, "FILE_TOO_LARGE", "Uploaded file exceeds 10MB")
    return data


def _ai_failure(error: AIServiceError) -> ApiError:
    logger.error("AI service call failed: %s", error)
    return ApiError(
        500, "AI_SERVICE_ERROR", "Icon generation service unavailable", str(error)
    )


@icons_router.post("/generate-from-text", status_code=201)
def generate_icon_from_text(
    body: GenerateFromTextIn,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    ai: VertexAIService = Depends(get_ai_service),
):
    culture = _resolve_culture(db, user.uid, body.cultural_context)
    try:
        image = ai.generate_icon_from_text(body.text, culture)
    except AIServiceError as e:
        raise _ai_failure(e)
    data = _save_icon(
        db,
        storage,
        ai,
        user,
        image,
        text=body.text,
        method="text-to-icon",
        culture=culture,
        label=body.label,
        category=body.category,
        color=body.color,
        generate_audio=body.generate_audio,
    )
    return _ok(data, "Icon generated successfully")


@icons_router.post("/generate-from-image", status_code=201)
async def generate_icon_from_image(
    image: UploadFile = File(...),
    label: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    color: Optional[str] = Form(None),
    generate_audio: bool = Form(False, alias="generateAudio"),
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    ai: VertexAIService = Depends(get_ai_service),
):
    image_bytes = await _read_upload(image, "image")
    culture = _resolve_culture(db, user.uid, None)
    try:
        analysis = ai.analyze_image(image_bytes, "icon_elements", image.content_type)
        generated = ai.generate_icon_from_text(analysis.description, culture)
    except AIServiceError as e:
        raise _ai_failure(e)
    data = _save_icon(
        db,
        storage,
        ai,
        user,
        generated,
        text=label or analysis.description,
        method="image-to-icon",
        culture=culture,
        label=label,
        category=category,
        color=color,
        generate_audio=generate_audio,
    )
    data["analysis"] = {
        "description": analysis.description,
        "analysisType": analysis.analysis_type,
        "confidence": analysis.confidence,
        "fallback": analysis.fallback,
    }
    return _ok(data, "Icon generated successfully")


@icons_router.post("/generate-audio-from-recording", status_code=201)
async def generate_audio_from_recording(
    audio: UploadFile = File(...),
    target_language: str = Form("en", alias="targetLanguage"),
    target_dialect: Optional[str] = Form(None, alias="targetDialect"),
    user: AuthUser = Depends(require_user),
    storage: StorageClient = Depends(get_storage_client),
    ai: VertexAIService = Depends(get_ai_service),
):
    audio_bytes = await _read_upload(audio, "audio")
    try:
        transcribed = ai.transcribe_audio(audio_bytes, audio.content_type)
        spoken = transcribed
        if target_language != "en" or target_dialect:
            spoken = ai.translate_text(
                transcribed, target_language, target_dialect
            ).translated_text
        speech = ai.generate_speech(spoken, target_language, target_dialect)
    except AIServiceError as e:
        raise _ai_failure(e)
    url = _store_asset(storage, user.uid, "audio", speech.audio_bytes, speech.mime_type)
    return _ok(
        {
            "transcribedText": transcribed,
            "targetLanguage": target_language,
            "targetDialect": target_dialect,
            "translatedText": spoken,
            "audio": {
                "publicUrl": url,
                "mimeType": speech.mime_type,
                "languageCode": speech.language_code,
                "voice": speech.voice,
                "size": len(speech.audio_bytes),
            },
        },
        "Audio generated successfully",
    )


@icons_router.get("")
@icons_router.get("/", include_in_schema=False)
def list_icons(
    limit: int = Query(50, ge=1, le=100),
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    icons = db.list_icons(user.uid, limit=limit)
    return _ok(icons, count=len(icons))


@icons_router.get("/{icon_id}")
def get_icon(
    icon_id: str,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    icon = db.get_icon(icon_id)
    if not icon:
        raise ApiError(404, "ICON_NOT_FOUND", "Icon not found")
    if not icon.get("isPublic") and icon.get("generatedBy") != user.uid:
        raise ApiError(403, "ICON_ACCESS_DENIED", "You do not have access to this icon")
    return _ok(icon)


# ---------------------------------------------------------------- profile


def _require_profile(db: DbClient, user: AuthUser) -> dict:
    profile = db.get_profile(user.uid)
    if not profile:
        raise ApiError(404, "PROFILE_NOT_FOUND", "User profile not found")
    return profile


@profile_router.get("")
@profile_router.get("/", include_in_schema=False)
def get_profile(
    user: AuthUser = Depends(require_user), db: DbClient = Depends(get_db_client)
):
    return _ok(_require_profile(db, user))


@profile_router.get("/status")
def profile_status(
    user: AuthUser = Depends(require_user), db: DbClient = Depends(get_db_client)
):
    profile = db.get_profile(user.uid)
    return _ok(
        {
            "exists": profile is not None,
            "complete": is_profile_complete(profile),
            "onboardingStep": (profile or {}).get("onboardingStep", "location"),
        }
    )


@profile_router.get("/cultural-context")
def get_cultural_context(
    user: AuthUser = Depends(require_user), db: DbClient = Depends(get_db_client)
):
    profile = db.get_profile(user.uid)
    if profile is None:
        return _ok(default_cultural_context())
    return _ok(cultural_context(profile))


@profile_router.post("", status_code=201)
@profile_router.post("/", status_code=201, include_in_schema=False)
def create_profile(
    body: ProfileIn,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    if db.get_profile(user.uid):
        raise ApiError(409, "PROFILE_EXISTS", "User profile already exists")
    document = build_profile_document(user.uid, body.model_dump(by_alias=True))
    return _ok(db.save_profile(user.uid, document), "Profile created successfully")


@profile_router.put("")
@profile_router.put("/", include_in_schema=False)
def replace_profile(
    body: ProfileIn,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    previous = _require_profile(db, user)
    document = build_profile_document(
        user.uid, body.model_dump(by_alias=True), previous
    )
    return _ok(db.save_profile(user.uid, document), "Profile updated successfully")


@profile_router.patch("")
@profile_router.patch("/", include_in_schema=False)
def patch_profile(
    body: ProfilePatchIn,
    user: AuthUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    previous = _require_profile(db, user)
    sections = {key: previous.get(key) for key in ("location", "languages", "demographics")}
    sections.update(body.model_dump(by_alias=True, exclude_unset=True))
    document = build_profile_document(user.uid, sections, previous)
    return _ok(db.save_profile(user.uid, document), "Profile updated successfully")


@profile_router.delete("")
@profile_router.delete("/", include_in_schema=False)
def delete_profile(
    user: AuthUser = Depends(require_user), db: DbClient = Depends(get_db_client)
):
    if not db.delete_profile(user.uid):
        raise ApiError(404, "PROFILE_NOT_FOUND", "User profile not found")
    return _ok(message="Profile deleted successfully")


router = APIRouter()
router.include_router(health_router)
router.include_router(boards_router)
router.include_router(icons_router)
router.include_router(profile_router)
