"""
Pydantic schemas for the AAC backend.

Request bodies use camelCase on the wire; snake_case names are accepted too.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MAX_BOARD_ICONS = 50


def sanitize_text(value):
    if isinstance(value, str):
        return value.strip().replace("<", "").replace(">", "")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PositionIn(CamelModel):
    x: int = Field(default=0, ge=0)
    y: int = Field(default=0, ge=0)


class IconPlacementIn(CamelModel):
    id: str = Field(..., min_length=1, max_length=100)
    text: str = Field(..., min_length=1, max_length=100)
    image_url: Optional[str] = None
    position: PositionIn = Field(default_factory=PositionIn)
    category: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)

    @field_validator("id", "text", "category", mode="before")
    @classmethod
    def strip_markup(cls, value):
        return sanitize_text(value)


class BoardIn(CamelModel):
    """Body for creating a board and for whole-document replacement."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    is_public: bool = False
    icons: List[IconPlacementIn] = Field(
        default_factory=list, max_length=MAX_BOARD_ICONS
    )

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_markup(cls, value):
        return sanitize_text(value)

    @model_validator(mode="after")
    def check_unique_icon_ids(self):
        ids = [icon.id for icon in self.icons]
        if len(ids) != len(set(ids)):
            raise ValueError("Icon ids must be unique within a board")
        return self


class GenerateFromTextIn(CamelModel):
    text: str = Field(..., min_length=1, max_length=200)
    label: Optional[str] = Field(default=None, max_length=100)
    category: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)
    cultural_context: Optional[dict] = None
    generate_audio: bool = False

    @field_validator("text", "label", "category", mode="before")
    @classmethod
    def strip_markup(cls, value):
        return sanitize_text(value)


class LocationIn(CamelModel):
    country: str = Field(..., min_length=1, max_length=100)
    region: str = Field(..., min_length=1, max_length=100)

    @field_validator("country", "region", mode="before")
    @classmethod
    def strip_markup(cls, value):
        return sanitize_text(value)


class LanguageChoiceIn(CamelModel):
    language: str = Field(..., min_length=1, max_length=20)
    dialect: str = Field(..., min_length=1, max_length=20)


class SecondaryLanguageIn(CamelModel):
    language: str = Field(default="", max_length=20)
    dialect: str = Field(default="", max_length=20)


class LanguagesIn(CamelModel):
    primary: LanguageChoiceIn
    secondary: Optional[SecondaryLanguageIn] = None


class DemographicsIn(CamelModel):
    age: Optional[int] = Field(default=None, ge=1, le=120)
    gender: Optional[str] = Field(default=None, max_length=50)
    religion: Optional[str] = Field(default=None, max_length=100)
    ethnicity: Optional[str] = Field(default=None, max_length=100)

    @field_validator("gender", "religion", "ethnicity", mode="before")
    @classmethod
    def strip_markup(cls, value):
        return sanitize_text(value)


class ProfileIn(CamelModel):
    location: LocationIn
    languages: LanguagesIn
    demographics: DemographicsIn


class ProfilePatchIn(CamelModel):
    location: Optional[LocationIn] = None
    languages: Optional[LanguagesIn] = None
    demographics: Optional[DemographicsIn] = None


OrderField = Literal["createdAt", "updatedAt", "name"]
OrderDirection = Literal["asc", "desc"]
