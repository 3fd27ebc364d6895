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

import re
from typing import Optional

_FILTERED_WORDS = re.compile(r"\b(inappropriate|offensive|harmful)\b", re.IGNORECASE)
MIN_ANALYSIS_LENGTH = 10
MAX_ANALYSIS_LENGTH = 500

DEFAULT_CULTURE = {"language": "en", "region": "US", "symbolStyle": "simple"}

FALLBACK_DESCRIPTIONS = {
    "description": "uploaded image content",
    "icon_elements": "simple icon with basic shapes and elements",
    "objects": "various objects and elements",
    "scene": "general scene or setting",
}

TRANSCRIPTION_PROMPT = (
    "Transcribe the following audio and provide only the text content "
    "without any additional explanations."
)

# Default regional variant for speech synthesis, keyed by bare language code.
LANGUAGE_DEFAULTS = {
    "ar": "ar-EG", "bn": "bn-BD", "nl": "nl-NL", "en": "en-US", "fr": "fr-FR",
    "de": "de-DE", "hi": "hi-IN", "id": "id-ID", "it": "it-IT", "ja": "ja-JP",
    "ko": "ko-KR", "mr": "mr-IN", "pl": "pl-PL", "pt": "pt-BR", "ro": "ro-RO",
    "ru": "ru-RU", "es": "es-ES", "ta": "ta-IN", "te": "te-IN", "th": "th-TH",
    "tr": "tr-TR", "uk": "uk-UA", "vi": "vi-VN", "af": "af-ZA", "bg": "bg-BG",
    "ca": "ca-ES", "zh": "cmn-CN", "cmn": "cmn-CN", "hr": "hr-HR", "cs": "cs-CZ",
    "da": "da-DK", "et": "et-EE", "fil": "fil-PH", "fi": "fi-FI", "gl": "gl-ES",
    "el": "el-GR", "gu": "gu-IN", "he": "he-IL", "hu": "hu-HU", "is": "is-IS",
    "kn": "kn-IN", "lv": "lv-LV", "lt": "lt-LT", "mk": "mk-MK", "ms": "ms-MY",
    "ml": "ml-IN", "nb": "nb-NO", "nn": "nn-NO", "fa": "fa-IR", "pa": "pa-IN",
    "sr": "sr-RS", "sk": "sk-SK", "sl": "sl-SI", "sw": "sw-KE", "sv": "sv-SE",
    "ur": "ur-PK",
}

SUPPORTED_LANGUAGE_CODES = frozenset(LANGUAGE_DEFAULTS.values()) | {
    "en-AU", "en-GB", "en-IN", "es-419", "es-MX", "fr-CA", "pt-PT",
    "cmn-TW", "ar-001",
}

_VOICE_GROUPS = {
    "Achird": ("en",),
    "Aoede": ("es", "pt", "ro", "ca", "gl"),
    "Charon": ("fr", "nl", "af"),
    "Fenrir": ("de", "sv", "da", "nb", "nn", "is"),
}
DEFAULT_VOICE = "Kore"
UNMAPPED_VOICE = "Puck"
_KORE_LANGUAGES = frozenset(
    "it ja ko zh cmn hi bn ar ru pl uk cs sk bg hr sr sl mk be th vi id ms fil "
    "tr el he fa ur ta te mr gu kn ml pa or hu fi et lv lt".split()
)


def build_cultural_prompt(text: str, culture: Optional[dict] = None) -> str:
    """Builds an Imagen prompt for an AAC icon.

    Text that already asks for an AAC icon or a transparent background is
    passed through untouched. Otherwise style constraints are appended,
    followed by whatever language, location and demographics the culture
    context carries.

    Args:
        text: The subject of the icon.
        culture: A cultural context dict as produced for the user profile
            (camelCase keys), or None.

    Returns:
        str: The prompt to send to the image model.
    """
    lowered = text.lower()
    if "aac icon" in lowered or "transparent background" in lowered:
        return text

    parts = [
        f"{text}. Create a culturally appropriate AAC icon.",
        "Use a simple, high-contrast 2D style with a completely transparent background.",
        "Ensure the final PNG is optimized below 200KB.",
    ]
    if culture:
        language = culture.get("language")
        if language:
            line = f"User profile context -> Primary language: {language}"
            if culture.get("dialect"):
                line += f", Dialect: {culture['dialect']}"
            parts.append(line + ".")

        country = culture.get("country")
        region = culture.get("region")
        if country:
            line = f"Country: {country}"
            if region and region != country:
                line += f", Region: {region}"
            parts.append(line + ".")
        elif region:
            parts.append(f"Region: {region}.")

        demographics = culture.get("demographics") or {}
        for key, label in (
            ("age", "Age"),
            ("gender", "Gender"),
            ("religion", "Religion"),
            ("ethnicity", "Ethnicity"),
        ):
            if demographics.get(key):
                parts.append(f"{label}: {demographics[key]}.")
    return " ".join(parts)


def analysis_prompt(analysis_type: str) -> str:
    if analysis_type == "description":
        return (
            "Describe this image in simple, clear language suitable for creating "
            "an AAC communication icon. Focus on the main subject and key visual "
            "elements. Keep the description concise and appropriate for "
            "generating a simplified icon."
        )
    if analysis_type == "icon_elements":
        return (
            "Identify the key visual elements in this image that would be "
            "important for creating a simple communication icon. List the main "
            "objects, colors, and shapes that should be preserved in a "
            "simplified version."
        )
    return "Analyze this image and provide a clear, simple description of what it shows."


def filter_analysis_result(text: str) -> str:
    """Masks flagged words and bounds the length of a vision response.

    Raises:
        ValueError: If the filtered text is shorter than 10 characters.
    """
    filtered = _FILTERED_WORDS.sub("[filtered]", text or "").strip()
    if len(filtered) < MIN_ANALYSIS_LENGTH:
        raise ValueError("Analysis result too short or empty")
    if len(filtered) > MAX_ANALYSIS_LENGTH:
        return filtered[:MAX_ANALYSIS_LENGTH] + "..."
    return filtered


def fallback_description(analysis_type: str) -> str:
    return FALLBACK_DESCRIPTIONS.get(analysis_type, FALLBACK_DESCRIPTIONS["description"])


def translation_prompt(text: str, language: str, dialect: Optional[str] = None) -> str:
    prompt = f"Translate the following text to {language}"
    if dialect:
        prompt += f" using the {dialect} dialect"
    return (
        prompt + ". Provide only the translated text without any explanations "
        f'or additional context.\n\nText to translate: "{text}"'
    )


def clean_translation(text: str) -> str:
    return re.sub(r"^[\"']|[\"']$", "", text.strip())


def language_code(language: str, dialect: Optional[str] = None) -> str:
    """Resolves a BCP-47 style code supported by speech synthesis.

    Falls back to en-US for anything unsupported.
    """
    if dialect:
        candidate = f"{language}-{dialect.upper()}"
        if candidate in SUPPORTED_LANGUAGE_CODES:
            return candidate
    if language in LANGUAGE_DEFAULTS:
        return LANGUAGE_DEFAULTS[language]
    if language in SUPPORTED_LANGUAGE_CODES:
        return language
    return "en-US"


def voice_for_language(language: str) -> str:
    base = language.split("-")[0]
    for voice, languages in _VOICE_GROUPS.items():
        if base in languages:
            return voice
    if base in _KORE_LANGUAGES:
        return DEFAULT_VOICE
    return UNMAPPED_VOICE
