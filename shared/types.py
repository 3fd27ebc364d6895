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

from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional

from dacite import Config, from_dict

from shared.json_utils import convert_keys


@dataclass
class Position:
    """Grid cell of an icon on a board."""

    x: int = 0
    y: int = 0


@dataclass
class IconPlacement:
    """An icon embedded in a board."""

    id: str
    text: str
    image_url: Optional[str] = None
    position: Position = field(default_factory=Position)
    category: Optional[str] = None
    color: Optional[str] = None


@dataclass
class BoardMetadata:
    version: int = 1
    icon_count: int = 0
    tags: List[str] = field(default_factory=list)
    last_modified: Any = None  # Firestore timestamp


@dataclass
class Board:
    """A named grid of icon placements owned by a user."""

    user_id: str
    name: str
    description: str
    is_public: bool = False
    icons: List[IconPlacement] = field(default_factory=list)
    metadata: BoardMetadata = field(default_factory=BoardMetadata)
    id: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None


@dataclass
class AccessibilityNeeds:
    high_contrast: bool = False
    large_text: bool = False
    simplified_icons: bool = True
    color_blind_friendly: bool = False


@dataclass
class CulturalPreferences:
    """Preferences that bias icon prompts and speech output."""

    language: str = "en"
    region: str = "US"
    color_preferences: List[str] = field(default_factory=list)
    avoid_colors: List[str] = field(default_factory=list)
    symbol_style: str = "simple"
    cultural_context: str = "Western"
    dialect: Optional[str] = None
    accessibility_needs: AccessibilityNeeds = field(default_factory=AccessibilityNeeds)


@dataclass
class CultureProfile:
    user_id: str
    cultural_preferences: CulturalPreferences = field(
        default_factory=CulturalPreferences
    )
    is_default: bool = False
    last_updated: Any = None
    created_at: Any = None
    updated_at: Any = None


@dataclass
class IconCultureTag:
    """Subset of the culture profile recorded with a generated icon."""

    language: str = "en"
    region: str = "US"
    symbol_style: str = "simple"


@dataclass
class IconAudio:
    public_url: str
    mime_type: str
    language: str
    size: int
    dialect: Optional[str] = None
    voice: Optional[str] = None


@dataclass
class IconLibraryEntry:
    """A stored icon together with how it was generated."""

    text: str
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    mime_type: str = "image/png"
    generated_by: str = "system"
    generation_method: str = "text"
    prompt: Optional[str] = None
    model: Optional[str] = None
    culture_profile: IconCultureTag = field(default_factory=IconCultureTag)
    is_public: bool = False
    usage_count: int = 0
    tags: List[str] = field(default_factory=list)
    category: Optional[str] = None
    label: Optional[str] = None
    color: Optional[str] = None
    audio: Optional[IconAudio] = None
    id: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None


@dataclass
class UserPreferences:
    theme: str = "light"
    language: str = "en"
    notifications: bool = False
    default_board_layout: str = "grid"


@dataclass
class UserStats:
    total_boards: int = 0
    public_boards: int = 0
    total_icons: int = 0
    last_active: Any = None


@dataclass
class UserProfile:
    """Account-level record; the system user shares this shape."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    preferences: UserPreferences = field(default_factory=UserPreferences)
    stats: UserStats = field(default_factory=UserStats)
    cultural_preferences: Optional[CulturalPreferences] = None
    is_active: bool = True
    is_premium: bool = False
    subscription_expiry: Any = None
    created_at: Any = None
    updated_at: Any = None


def to_document(item: Any) -> dict:
    """Dataclass -> camelCase dict ready for Firestore."""
    return convert_keys(asdict(item), "snake_to_camel")


def from_document(data_class: type, data: dict) -> Any:
    """camelCase Firestore dict -> dataclass instance."""
    return from_dict(
        data_class=data_class,
        data=convert_keys(data, "camel_to_snake"),
        config=Config(check_types=False),
    )
