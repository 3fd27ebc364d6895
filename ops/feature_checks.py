"""
End-to-end checks of the icon and audio features over HTTP.

Each scenario is independent. A missing local fixture or a missing icon id
is reported as skipped, never as failed.
"""

from __future__ import annotations

import logging
import mimetypes
import time
from pathlib import Path
from typing import Any, Callable, Optional

import requests

from ops.steps import Outcome, SkipStep, Step, StepResult, run_pipeline

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
REQUEST_TIMEOUT_SECONDS = 120
DEFAULT_SAMPLE_AUDIO = Path("test-audio/sample.mp3")


class CheckError(RuntimeError):
    """The API answered, but not the way the scenario expects."""


class FeatureChecker:
    def __init__(
        self,
        api_base_url: str,
        token: str,
        *,
        session=None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.base = api_base_url.rstrip("/") + API_PREFIX
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, expected: int, **kwargs) -> dict:
        response = self.session.request(
            method,
            f"{self.base}{path}",
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=self.timeout,
            **kwargs,
        )
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code != expected:
            code = body.get("code") if isinstance(body, dict) else None
            message = body.get("error") if isinstance(body, dict) else None
            raise CheckError(
                f"HTTP {response.status_code} {code or ''} {message or response.text[:200]}".strip()
            )
        return body.get("data") or {}

    def icon_with_audio(self, _shared: dict) -> Outcome:
        icon = self._request(
            "POST",
            "/icons/generate-from-text",
            201,
            json={"text": "glass of water", "label": "Water", "generateAudio": True},
        )
        audio = icon.get("audio")
        if not audio or not audio.get("publicUrl"):
            raise CheckError(f"icon {icon.get('id')} was created without audio")
        return Outcome(
            detail=f"icon {icon['id']} with {audio.get('mimeType')} audio",
            data={"iconId": icon["id"]},
        )

    def icon_without_audio(self, _shared: dict) -> Outcome:
        icon = self._request(
            "POST",
            "/icons/generate-from-text",
            201,
            json={"text": "red apple", "label": "Apple", "generateAudio": False},
        )
        if icon.get("audio") is not None:
            raise CheckError(f"icon {icon.get('id')} has audio but none was requested")
        return Outcome(
            detail=f"icon {icon['id']} has no audio, as requested",
            data={"iconId": icon["id"]},
        )

    def audio_from_recording(self, sample: Path) -> Callable[[dict], Outcome]:
        def run(_shared: dict) -> Outcome:
            if not sample.is_file():
                raise SkipStep(f"sample recording not found at {sample}")
            mime_type = mimetypes.guess_type(sample.name)[0] or "audio/mpeg"
            with sample.open("rb") as f:
                result = self._request(
                    "POST",
                    "/icons/generate-audio-from-recording",
                    201,
                    files={"audio": (sample.name, f, mime_type)},
                    data={"targetLanguage": "en"},
                )
            return Outcome(
                detail=f"transcribed {result.get('transcribedText')!r}",
                data={"audio": result.get("audio")},
            )

        return run

    def retrieve_icon(self, shared: dict) -> Outcome:
        icon_id = next(
            (
                shared[name]["iconId"]
                for name in ("icon_with_audio", "icon_without_audio")
                if shared.get(name, {}).get("iconId")
            ),
            None,
        )
        if icon_id is None:
            raise SkipStep("no icon was created by an earlier scenario")
        icon = self._request("GET", f"/icons/{icon_id}", 200)
        return Outcome(detail=f"fetched icon {icon.get('id', icon_id)}")

    def steps(self, sample_audio: Path) -> list[Step]:
        return [
            Step("icon_with_audio", self.icon_with_audio),
            Step("icon_without_audio", self.icon_without_audio),
            Step("audio_from_recording", self.audio_from_recording(sample_audio)),
            Step("retrieve_icon", self.retrieve_icon),
        ]


def run_feature_checks(
    api_base_url: str,
    token: str,
    *,
    sample_audio: Path = DEFAULT_SAMPLE_AUDIO,
    delay_seconds: float = 0.0,
    session=None,
    sleep: Callable[[float], Any] = time.sleep,
    on_result: Optional[Callable[[StepResult], Any]] = None,
) -> list[StepResult]:
    checker = FeatureChecker(api_base_url, token, session=session)
    return run_pipeline(
        checker.steps(sample_audio),
        delay_seconds=delay_seconds,
        sleep=sleep,
        on_result=on_result,
    )
