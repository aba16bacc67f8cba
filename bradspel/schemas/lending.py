"""
Bradspel Backend — Lending Request/Response Schemas
====================================================

What:  API contract for the lending and order endpoints, plus the command
       objects the lending workflow accepts.
How:   Request models take camelCase keys. Before-validators run the
       normalization helpers, then typed and bounded fields check the result;
       failures reach the client as 400. `to_command()` returns an immutable
       command.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from bradspel.schemas.inputs import (
    MAX_ID,
    NOTE_MAX_LENGTH,
    as_value_error,
    clean_text,
    coerce_id,
    field_label,
)


# ══════════════════════════════════════════════════════════════════════════
# Commands: validated input handed to LendingService
# ══════════════════════════════════════════════════════════════════════════


class LendCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_id: int
    user_id: int
    note: Optional[str] = None


class ReturnCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_id: int
    returning_user_id: int
    return_notes: Optional[str] = None


class OrderCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_id: int
    table_id: str
    first_name: str
    last_name: str
    phone: str


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class LendRequest(BaseModel):
    """Body of POST /lend/{gameId}."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId", gt=0, le=MAX_ID, description="Borrowing user's id")
    note: Optional[str] = Field(
        default=None,
        max_length=NOTE_MAX_LENGTH,
        description="Free-text note stored on the history row",
    )

    @field_validator("user_id", mode="before")
    @classmethod
    def normalize_user_id(cls, v: Any, info: ValidationInfo) -> int:
        return as_value_error(coerce_id, v, field_label(cls, info))

    @field_validator("note", mode="before")
    @classmethod
    def normalize_note(cls, v: Any, info: ValidationInfo) -> Optional[str]:
        return as_value_error(clean_text, v, field_label(cls, info))

    def to_command(self, game_id: int) -> LendCommand:
        return LendCommand(game_id=game_id, user_id=self.user_id, note=self.note)


class ReturnRequest(BaseModel):
    """Body of POST /return/{gameId}. The returning user comes from the token."""

    model_config = ConfigDict(populate_by_name=True)

    return_notes: Optional[str] = Field(
        default=None, alias="returnNotes", max_length=NOTE_MAX_LENGTH
    )

    @field_validator("return_notes", mode="before")
    @classmethod
    def normalize_notes(cls, v: Any, info: ValidationInfo) -> Optional[str]:
        return as_value_error(clean_text, v, field_label(cls, info))

    def to_command(self, game_id: int, returning_user_id: int) -> ReturnCommand:
        return ReturnCommand(
            game_id=game_id,
            returning_user_id=returning_user_id,
            return_notes=self.return_notes,
        )


class OrderRequest(BaseModel):
    """
    Body of POST /order-game. Every field is required.

    Lengths follow the columns the order ends up in: the phone number must
    fit users.phone once the order is completed.
    """

    model_config = ConfigDict(populate_by_name=True)

    game_id: int = Field(alias="gameId", gt=0, le=MAX_ID)
    table_id: str = Field(alias="tableId", max_length=50)
    first_name: str = Field(alias="firstName", max_length=100)
    last_name: str = Field(alias="lastName", max_length=100)
    phone: str = Field(max_length=32)

    @field_validator("game_id", mode="before")
    @classmethod
    def normalize_game_id(cls, v: Any, info: ValidationInfo) -> int:
        return as_value_error(coerce_id, v, field_label(cls, info))

    @field_validator("table_id", "first_name", "last_name", "phone", mode="before")
    @classmethod
    def require_text(cls, v: Any, info: ValidationInfo) -> str:
        # Table numbers are often sent as numbers
        return as_value_error(clean_text, v, field_label(cls, info), required=True)

    def to_command(self) -> OrderCommand:
        return OrderCommand(
            game_id=self.game_id,
            table_id=self.table_id,
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone,
        )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable acknowledgement")


class OrderPlacedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: int = Field(alias="orderId", description="Id of the pending order")


class OrderResponse(BaseModel):
    """A pending table order, as listed for staff."""

    id: int
    game_id: int = Field(alias="gameId")
    table_id: str = Field(alias="tableId")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    phone: str
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
