"""Pydantic model of the synthesized stakeholder profile.

Keys are camelCase on the wire and snake_case in Python. Every sequence is
present and never null, sub-records are never null, and ``sources`` is
deduplicated in first-seen order.
"""
from __future__ import annotations

import inspect
from typing import Any, Literal, get_origin

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Confidence = Literal["high", "medium", "low"]


class ProfileModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _replace_nulls(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            annotation = field.annotation
            if get_origin(annotation) is list:
                empty: Any = []
            elif inspect.isclass(annotation) and issubclass(annotation, BaseModel):
                empty = {}
            else:
                continue
            for key in {name, field.alias or name}:
                if key not in cleaned:
                    continue
                if cleaned[key] is None:
                    cleaned[key] = empty
                elif isinstance(cleaned[key], list):
                    cleaned[key] = [item for item in cleaned[key] if item is not None]
        return cleaned


class EducationEntry(ProfileModel):
    year: str | None = None
    institution: str | None = None
    qualification: str | None = None


class TitledDetail(ProfileModel):
    title: str | None = None
    detail: str | None = None


class LinkedItem(TitledDetail):
    url: str | None = None


class CareerItem(ProfileModel):
    period: str | None = None
    role: str | None = None
    organisation: str | None = None
    detail: str | None = None
    sub_items: list[str] = Field(default_factory=list)


class CareerPhase(ProfileModel):
    phase: str | None = None
    items: list[CareerItem] = Field(default_factory=list)


class InterestsPriorities(ProfileModel):
    intro: str | None = None
    priorities: list[TitledDetail] = Field(default_factory=list)
    personal: str | None = None


class ConversationStarterGroup(ProfileModel):
    category: str | None = None
    starters: list[str] = Field(default_factory=list)


class DiscProfile(ProfileModel):
    primary: str | None = None
    secondary: str | None = None
    summary: str | None = None


class SocialPresence(ProfileModel):
    linkedin_url: str | None = None
    linkedin_note: str | None = None
    linkedin_level: str | None = None
    twitter: str | None = None
    instagram: str | None = None
    youtube: str | None = None


class PersonRef(ProfileModel):
    name: str | None = None
    role: str | None = None


class SphereOfInfluence(ProfileModel):
    reports_to: PersonRef | None = None
    peers: list[PersonRef] = Field(default_factory=list)
    direct_reports: list[PersonRef] = Field(default_factory=list)


class ProfileRecord(ProfileModel):
    name: str | None = None
    role: str | None = None
    organisation: str | None = None
    nationality: str | None = None
    position_since: str | None = None
    confidence: Confidence = "low"
    confidence_note: str | None = None
    background: str | None = None
    education: list[EducationEntry] = Field(default_factory=list)
    honors_awards: list[TitledDetail] = Field(default_factory=list)
    licenses_certs: list[str] = Field(default_factory=list)
    career: list[CareerPhase] = Field(default_factory=list)
    interests_priorities: InterestsPriorities = Field(default_factory=InterestsPriorities)
    conversation_starters: list[ConversationStarterGroup] = Field(default_factory=list)
    disc: DiscProfile = Field(default_factory=DiscProfile)
    engagement_summary: str | None = None
    engagement_opportunities: list[str] = Field(default_factory=list)
    social: SocialPresence = Field(default_factory=SocialPresence)
    events: list[LinkedItem] = Field(default_factory=list)
    reading_materials: list[LinkedItem] = Field(default_factory=list)
    sphere_of_influence: SphereOfInfluence = Field(default_factory=SphereOfInfluence)
    sources: list[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value: Any) -> Any:
        if value is None:
            return "low"
        if isinstance(value, str):
            return value.strip().lower() or "low"
        return value

    @field_validator("sources", mode="before")
    @classmethod
    def _dedupe_sources(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        seen: set[str] = set()
        cleaned: list[str] = []
        for item in value:
            if not isinstance(item, str):
                continue
            url = item.strip()
            if not url or url in seen:
                continue
            seen.add(url)
            cleaned.append(url)
        return cleaned

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
