# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import io
import logging
import time
import wave
from dataclasses import dataclass
from typing import Optional

from google import genai
from google.genai import errors, types

from models import prompts

logger = logging.getLogger(__name__)

ANALYSIS_MAX_OUTPUT_TOKENS = 1000
TRANSLATION_MAX_OUTPUT_TOKENS = 500

# Speech models return raw 16-bit mono PCM at 24 kHz.
PCM_SAMPLE_RATE = 24000
PCM_SAMPLE_WIDTH = 2
PCM_CHANNELS = 1


class AIServiceError(Exception):
    pass


@dataclass
class GeneratedImage:
    image_bytes: bytes
    mime_type: str
    prompt: str
    model: str


@dataclass
class ImageAnalysis:
    description: str
    analysis_type: str
    confidence: str
    model: Optional[str] = None
    fallback: bool = False


@dataclass
class Translation:
    original_text: str
    translated_text: str
    target_language: str
    target_dialect: Optional[str]
    model: str


@dataclass
class SpeechAudio:
    audio_bytes: bytes
    mime_type: str
    language_code: str
    voice: str


def pcm_to_wav(pcm: bytes) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(PCM_CHANNELS)
        wav_file.setsampwidth(PCM_SAMPLE_WIDTH)
        wav_file.setframerate(PCM_SAMPLE_RATE)
        wav_file.writeframes(pcm)
    return buffer.getvalue()


def _is_not_found(error: Exception) -> bool:
    if isinstance(error, errors.APIError) and error.code == 404:
        return True
    message = str(error)
    return "NOT_FOUND" in message or "not found" in message


class VertexAIService:
    """Generative calls behind icon generation, analysis and speech."""

    def __init__(
        self,
        project_id: Optional[str],
        location: str,
        *,
        text_to_icon_model: str,
        image_to_icon_model: str,
        translate_model: str,
        tts_model: str,
        client: Optional[genai.Client] = None,
    ):
        self.project_id = project_id
        self.location = location
        self.text_to_icon_model = text_to_icon_model
        self.image_to_icon_model = image_to_icon_model
        self.translate_model = translate_model
        self.tts_model = tts_model
        self._client = client

    @classmethod
    def from_settings(cls, settings, client: Optional[genai.Client] = None):
        return cls(
            settings.project_id,
            settings.vertex_ai_location,
            text_to_icon_model=settings.imagen_text_to_icon_model,
            image_to_icon_model=settings.gemini_image_to_icon_model,
            translate_model=settings.gemini_translate_model,
            tts_model=settings.gemini_tts_model,
            client=client,
        )

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.project_id:
                raise AIServiceError(
                    "GOOGLE_CLOUD_PROJECT environment variable is required"
                )
            self._client = genai.Client(
                vertexai=True, project=self.project_id, location=self.location
            )
        return self._client

    def status(self) -> dict:
        return {
            "project_id": self.project_id,
            "location": self.location,
            "models": {
                "text_to_icon": self.text_to_icon_model,
                "image_to_icon": self.image_to_icon_model,
                "translate": self.translate_model,
                "tts": self.tts_model,
            },
        }

    def generate_icon_from_text(
        self, text: str, culture: Optional[dict] = None
    ) -> GeneratedImage:
        prompt = prompts.build_cultural_prompt(text, culture)
        logger.info("Generating icon with %s", self.text_to_icon_model)
        start_time = time.time()
        try:
            response = self.client.models.generate_images(
                model=self.text_to_icon_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    aspect_ratio="1:1",
                    person_generation=types.PersonGeneration.DONT_ALLOW,
                ),
            )
        except errors.APIError as e:
            raise AIServiceError(f"Icon generation failed: {e}") from e
        logger.info("Imagen call took %.2fs", time.time() - start_time)

        if not response.generated_images or not response.generated_images[0].image:
            raise AIServiceError("Icon generation failed: no image returned")
        image = response.generated_images[0].image
        if not image.image_bytes:
            raise AIServiceError("Icon generation failed: empty image payload")
        return GeneratedImage(
            image_bytes=image.image_bytes,
            mime_type=image.mime_type or "image/png",
            prompt=prompt,
            model=self.text_to_icon_model,
        )

    def analyze_image(
        self,
        image_bytes: bytes,
        analysis_type: str = "description",
        mime_type: str = "image/jpeg",
    ) -> ImageAnalysis:
        """Describes an image for icon generation.

        When the vision model is unavailable (404 / NOT_FOUND) a heuristic
        description is returned with low confidence and fallback=True.
        """
        try:
            response = self.client.models.generate_content(
                model=self.image_to_icon_model,
                contents=[
                    prompts.analysis_prompt(analysis_type),
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                ],
                config=types.GenerateContentConfig(
                    temperature=0.1,
                    max_output_tokens=ANALYSIS_MAX_OUTPUT_TOKENS,
                    top_p=0.8,
                    top_k=40,
                ),
            )
        except errors.APIError as e:
            if _is_not_found(e):
                logger.warning(
                    "Vision model %s unavailable, using fallback analysis",
                    self.image_to_icon_model,
                )
                return ImageAnalysis(
                    description=prompts.fallback_description(analysis_type),
                    analysis_type=analysis_type,
                    confidence="low",
                    fallback=True,
                )
            raise AIServiceError(f"Image analysis failed: {e}") from e

        try:
            description = prompts.filter_analysis_result(response.text or "")
        except ValueError as e:
            raise AIServiceError(f"Image analysis failed: {e}") from e
        return ImageAnalysis(
            description=description,
            analysis_type=analysis_type,
            confidence="high",
            model=self.image_to_icon_model,
        )

    def translate_text(
        self, text: str, language: str, dialect: Optional[str] = None
    ) -> Translation:
        try:
            response = self.client.models.generate_content(
                model=self.translate_model,
                contents=prompts.translation_prompt(text, language, dialect),
                config=types.GenerateContentConfig(
                    temperature=0.3,
                    max_output_tokens=TRANSLATION_MAX_OUTPUT_TOKENS,
                    top_p=0.8,
                    top_k=40,
                ),
            )
        except errors.APIError as e:
            raise AIServiceError(f"Translation failed: {e}") from e
        if not response.text:
            raise AIServiceError("Translation failed: empty response")
        return Translation(
            original_text=text,
            translated_text=prompts.clean_translation(response.text),
            target_language=language,
            target_dialect=dialect,
            model=self.translate_model,
        )

    def generate_speech(
        self, text: str, language: str = "en", dialect: Optional[str] = None
    ) -> SpeechAudio:
        code = prompts.language_code(language, dialect)
        voice = prompts.voice_for_language(code)
        try:
            response = self.client.models.generate_content(
                model=self.tts_model,
                contents=text,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        language_code=code,
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(
                                voice_name=voice
                            )
                        ),
                    ),
                ),
            )
        except errors.APIError as e:
            raise AIServiceError(f"Speech generation failed: {e}") from e

        pcm = None
        if response.candidates and response.candidates[0].content:
            for part in response.candidates[0].content.parts or []:
                if part.inline_data and part.inline_data.data:
                    pcm = part.inline_data.data
                    break
        if not pcm:
            raise AIServiceError("Speech generation failed: no audio returned")
        return SpeechAudio(
            audio_bytes=pcm_to_wav(pcm),
            mime_type="audio/wav",
            language_code=code,
            voice=voice,
        )

    def transcribe_audio(self, audio_bytes: bytes, mime_type: str = "audio/mpeg") -> str:
        try:
            response = self.client.models.generate_content(
                model=self.translate_model,
                contents=[
                    prompts.TRANSCRIPTION_PROMPT,
                    types.Part.from_bytes(data=audio_bytes, mime_type=mime_type),
                ],
                config=types.GenerateContentConfig(temperature=0.3),
            )
        except errors.APIError as e:
            raise AIServiceError(f"Transcription failed: {e}") from e
        if not response.text or not response.text.strip():
            raise AIServiceError("Transcription failed: empty response")
        return response.text.strip()
