"""
Bradspel Backend — Catalog Schemas
===================================

What:  Response models for games and their history, and the import item model.
Who:   routes/games.py and GameService.import_games.

Game fields keep the snake_case column names the frontend already reads
(title_sv, lent_out, times_lent, ...).
"""

import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from bradspel.schemas.inputs import (
    MAX_INT,
    as_value_error,
    clean_text,
    coerce_bool,
    coerce_optional_int,
)


class GameResponse(BaseModel):
    id: int
    title_sv: str
    title_en: str
    description_sv: Optional[str] = None
    description_en: Optional[str] = None
    players: Optional[str] = None
    time: Optional[str] = None
    age: Optional[str] = None
    tags: Optional[str] = None
    img: Optional[str] = None
    rules: Optional[str] = None
    slow_day_only: bool
    trusted_only: bool
    max_table_size: Optional[int] = None
    condition_rating: Optional[int] = None
    staff_picks: str
    lent_out: bool
    times_lent: int
    last_lent: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class HistoryEntryResponse(BaseModel):
    id: int
    game_id: int
    user_id: Optional[int] = None
    action: str
    note: Optional[str] = None
    timestamp: datetime
    returned_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GameImportItem(BaseModel):
    """
    One game in a POST /import payload.

    Accepts the raw export format (flags as 0/1 or "true"/"false", numbers as
    strings). Unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    title_sv: str = Field(max_length=255)
    title_en: Optional[str] = Field(default=None, max_length=255)
    description_sv: Optional[str] = None
    description_en: Optional[str] = None
    players: Optional[str] = Field(default=None, max_length=50)
    time: Optional[str] = Field(default=None, max_length=50)
    age: Optional[str] = Field(default=None, max_length=50)
    tags: Optional[str] = None
    img: Optional[str] = Field(default=None, max_length=512)
    rules: Optional[str] = Field(default=None, max_length=512)
    slow_day_only: bool = False
    trusted_only: bool = False
    max_table_size: Optional[int] = Field(default=None, ge=0, le=MAX_INT)
    condition_rating: Optional[int] = Field(default=None, ge=0, le=MAX_INT)
    staff_picks: str = "[]"

    @field_validator("title_sv", mode="before")
    @classmethod
    def require_title(cls, v: Any, info: ValidationInfo) -> str:
        return as_value_error(clean_text, v, info.field_name, required=True)

    @field_validator(
        "title_en",
        "description_sv",
        "description_en",
        "players",
        "time",
        "age",
        "tags",
        "img",
        "rules",
        mode="before",
    )
    @classmethod
    def normalize_text(cls, v: Any, info: ValidationInfo) -> Optional[str]:
        return as_value_error(clean_text, v, info.field_name)

    @field_validator("slow_day_only", "trusted_only", mode="before")
    @classmethod
    def normalize_flag(cls, v: Any, info: ValidationInfo) -> bool:
        return as_value_error(coerce_bool, v, info.field_name)

    @field_validator("max_table_size", "condition_rating", mode="before")
    @classmethod
    def normalize_number(cls, v: Any, info: ValidationInfo) -> Optional[int]:
        return as_value_error(coerce_optional_int, v, info.field_name)

    @field_validator("staff_picks", mode="before")
    @classmethod
    def encode_staff_picks(cls, v: Any, info: ValidationInfo) -> str:
        if isinstance(v, list):
            v = json.dumps(v, ensure_ascii=False)
        return as_value_error(clean_text, v, info.field_name) or "[]"

    def to_values(self) -> Dict[str, Any]:
        """Column values ready for a Game(**values) insert."""
        values = self.model_dump()
        # English title falls back to the Swedish one
        values["title_en"] = values["title_en"] or values["title_sv"]
        return values


class ImportResponse(BaseModel):
    imported: int = Field(description="Number of games inserted")


class ImageResponse(BaseModel):
    img: str = Field(description="URL of the stored cover image")
