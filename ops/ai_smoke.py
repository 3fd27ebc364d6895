"""
Single-shot smoke test of the generative AI models.

text_to_image -> save_output -> image_analysis [-> speech]. A vision
fallback counts as a degraded success. Nothing is retried.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from PIL import Image

from models.vertex_ai import VertexAIService
from ops.steps import Outcome, Step, StepResult, run_pipeline

logger = logging.getLogger(__name__)

OUTPUT_NAME = "smoke-test-icon"
SPEECH_SAMPLE = "Hello, I would like some water please."
_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


def _text_to_image(ai: VertexAIService, prompt: str):
    def run(_shared: dict) -> Outcome:
        image = ai.generate_icon_from_text(prompt)
        return Outcome(
            detail=f"{len(image.image_bytes)} bytes, {image.mime_type}, model {image.model}",
            data={"image": image},
        )

    return run


def _save_output(output_dir: Path):
    def run(shared: dict) -> Outcome:
        image = shared["text_to_image"]["image"]
        extension = _EXTENSIONS.get(image.mime_type, "png")
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / f"{OUTPUT_NAME}.{extension}"
        path.write_bytes(image.image_bytes)
        with Image.open(io.BytesIO(image.image_bytes)) as decoded:
            width, height = decoded.size
        return Outcome(
            detail=f"{path} ({len(image.image_bytes)} bytes, {width}x{height})",
            data={"path": path, "width": width, "height": height},
        )

    return run


def _image_analysis(ai: VertexAIService):
    def run(shared: dict) -> Outcome:
        image = shared["text_to_image"]["image"]
        analysis = ai.analyze_image(image.image_bytes, "description", image.mime_type)
        if analysis.fallback:
            return Outcome(
                detail=f"vision unavailable, heuristic description: {analysis.description!r}",
                degraded=True,
                data={"analysis": analysis},
            )
        return Outcome(
            detail=f"{analysis.confidence} confidence: {analysis.description[:80]}",
            data={"analysis": analysis},
        )

    return run


def _speech(ai: VertexAIService, language: str):
    def run(_shared: dict) -> Outcome:
        speech = ai.generate_speech(SPEECH_SAMPLE, language)
        return Outcome(
            detail=f"{len(speech.audio_bytes)} bytes {speech.mime_type}, voice {speech.voice}",
            data={"speech": speech},
        )

    return run


def smoke_steps(
    ai: VertexAIService,
    prompt: str,
    output_dir: Path,
    *,
    include_speech: bool = False,
    speech_language: str = "en",
) -> list[Step]:
    steps = [
        Step("text_to_image", _text_to_image(ai, prompt)),
        Step("save_output", _save_output(output_dir), requires=("text_to_image",)),
        Step(
            "image_analysis",
            _image_analysis(ai),
            requires=("text_to_image", "save_output"),
        ),
    ]
    if include_speech:
        steps.append(Step("speech", _speech(ai, speech_language), required=False))
    return steps


def run_smoke_test(
    ai: VertexAIService,
    prompt: str,
    output_dir: Path,
    *,
    include_speech: bool = False,
    on_result: Optional[Callable[[StepResult], Any]] = None,
) -> list[StepResult]:
    return run_pipeline(
        smoke_steps(ai, prompt, output_dir, include_speech=include_speech),
        on_result=on_result,
    )
