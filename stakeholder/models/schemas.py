from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# --- Requests ---


class ProfileRequest(BaseModel):
    """Subject descriptor for one pipeline run. Immutable once accepted."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    role: str | None = None
    organisation: str | None = Field(
        default=None,
        validation_alias=AliasChoices("organisation", "organization", "company"),
    )

    @field_validator("name", mode="before")
    @classmethod
    def _null_name_is_blank(cls, value: Any) -> Any:
        # Blank names are rejected by the pipeline with a 400, not here.
        return "" if value is None else value

    def describe(self) -> str:
        return ", ".join(
            [
                self.name.strip(),
                (self.role or "").strip() or "unknown role",
                (self.organisation or "").strip() or "unknown organisation",
            ]
        )


# --- Responses ---


class ProfileResponse(BaseModel):
    profile: dict[str, Any]


class ErrorResponse(BaseModel):
    error: str
    raw: str | None = None
