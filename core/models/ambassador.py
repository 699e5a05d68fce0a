# =============================================================================
# core/models/ambassador.py - Ambassador Profile Schemas
# =============================================================================
# These models define the write commands and read shapes for ambassador
# profiles:
# - AmbassadorCreate: everything the signup form collects (minus media files)
# - AmbassadorUpdate: the profile edit form (partial; only sent fields change)
# - AmbassadorProfile: a profile row as returned to its owner
#
# Commands are mapped to table rows explicitly (to_row), never by spreading
# the incoming form into the insert.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class ExperienceLevel(str, Enum):
    """Self-reported experience tier."""
    NEW = "new"
    EXPERIENCED = "experienced"
    ELITE = "elite"


class AvailabilityStatus(str, Enum):
    """How open the ambassador currently is to bookings."""
    AVAILABLE = "available"
    LIMITED = "limited"
    UNAVAILABLE = "unavailable"


class VocabularyItem(BaseModel):
    """A role, skill or language option."""
    id: int
    name: str


class ProfileOptions(BaseModel):
    """Option lists for the signup/edit forms."""
    roles: list[VocabularyItem] = Field(default_factory=list)
    skills: list[VocabularyItem] = Field(default_factory=list)
    languages: list[VocabularyItem] = Field(default_factory=list)


# Join-table selections carried by the profile commands
JOIN_FIELDS = ("role_ids", "skill_ids", "language_ids")


def _clean(value: str | None) -> str | None:
    """Trim; empty strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class AmbassadorFields(BaseModel):
    """
    Attributes shared by the signup and edit commands.

    Text fields are trimmed and empty strings stored as null. The Instagram
    handle is stored without its leading "@".
    """

    full_name: str = Field(..., min_length=1, max_length=200)
    phone_number: str | None = None
    instagram_handle: str | None = None
    city: str | None = None
    state_region: str | None = None
    country: str | None = None
    timezone: str | None = None
    experience_level: ExperienceLevel = ExperienceLevel.NEW
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    bio: str | None = Field(default=None, max_length=4000)
    willing_to_travel: bool = False
    has_vehicle: bool = False
    can_work_weekends: bool = True
    can_work_nights: bool = True
    role_ids: list[int] = Field(default_factory=list)
    skill_ids: list[int] = Field(default_factory=list)
    language_ids: list[int] = Field(default_factory=list)

    @field_validator("full_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("full_name is required")
        return v

    @field_validator(
        "phone_number", "city", "state_region", "country", "timezone", "bio",
    )
    @classmethod
    def _strip_optional(cls, v: str | None) -> str | None:
        return _clean(v)

    @field_validator("instagram_handle")
    @classmethod
    def _strip_handle(cls, v: str | None) -> str | None:
        v = _clean(v)
        if v is None:
            return None
        return _clean(v.lstrip("@"))

    @field_validator("role_ids", "skill_ids", "language_ids")
    @classmethod
    def _dedupe_ids(cls, v: list[int]) -> list[int]:
        return list(dict.fromkeys(v))

    def links(self) -> dict[str, list[int]]:
        """Role, skill and language id selections keyed by field name."""
        return {name: getattr(self, name) for name in JOIN_FIELDS}

    def profile_columns(self) -> dict[str, Any]:
        """Columns of the `ambassadors` row (join ids excluded)."""
        return {
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "instagram_handle": self.instagram_handle,
            "city": self.city,
            "state_region": self.state_region,
            "country": self.country,
            "timezone": self.timezone,
            "experience_level": self.experience_level.value,
            "availability_status": self.availability_status.value,
            "bio": self.bio,
            "willing_to_travel": self.willing_to_travel,
            "has_vehicle": self.has_vehicle,
            "can_work_weekends": self.can_work_weekends,
            "can_work_nights": self.can_work_nights,
        }


class AmbassadorCreate(AmbassadorFields):
    """
    Signup command.

    Example:
        {
            "full_name": "Ana Souza",
            "email": "ana@example.com",
            "country": "Brazil",
            "role_ids": [1, 4]
        }
    """

    email: str = Field(..., min_length=3, max_length=320)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v

    def to_row(
        self,
        ambassador_id: UUID,
        user_id: UUID,
        headshot_url: str | None,
        video_url: str | None,
        now: datetime,
    ) -> dict[str, Any]:
        """Explicit insert row for the `ambassadors` table."""
        row = {
            "id": str(ambassador_id),
            "user_id": str(user_id),
            "email": self.email,
            **self.profile_columns(),
            "headshot_url": headshot_url,
            "video_url": video_url,
            "last_active_at": now.isoformat(),
        }
        return row


class AmbassadorUpdate(BaseModel):
    """
    Profile edit command. Email is owned by the auth account and not editable here.

    Every field is optional: only the fields present in the request are
    written, and a role/skill/language selection is replaced only when its
    id list was sent.
    """

    full_name: str | None = Field(default=None, min_length=1, max_length=200)
    phone_number: str | None = None
    instagram_handle: str | None = None
    city: str | None = None
    state_region: str | None = None
    country: str | None = None
    timezone: str | None = None
    experience_level: ExperienceLevel | None = None
    availability_status: AvailabilityStatus | None = None
    bio: str | None = Field(default=None, max_length=4000)
    willing_to_travel: bool | None = None
    has_vehicle: bool | None = None
    can_work_weekends: bool | None = None
    can_work_nights: bool | None = None
    role_ids: list[int] | None = None
    skill_ids: list[int] | None = None
    language_ids: list[int] | None = None

    @field_validator(
        "full_name", "experience_level", "availability_status",
        "willing_to_travel", "has_vehicle", "can_work_weekends", "can_work_nights",
    )
    @classmethod
    def _not_null(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        if info.field_name == "full_name":
            v = v.strip()
            if not v:
                raise ValueError("full_name cannot be blank")
        return v

    @field_validator(
        "phone_number", "city", "state_region", "country", "timezone", "bio",
    )
    @classmethod
    def _strip_optional(cls, v: str | None) -> str | None:
        return _clean(v)

    @field_validator("instagram_handle")
    @classmethod
    def _strip_handle(cls, v: str | None) -> str | None:
        v = _clean(v)
        if v is None:
            return None
        return _clean(v.lstrip("@"))

    @field_validator("role_ids", "skill_ids", "language_ids")
    @classmethod
    def _dedupe_ids(cls, v: list[int] | None) -> list[int]:
        return list(dict.fromkeys(v or []))

    def links(self) -> dict[str, list[int]]:
        """Id selections that were sent with the edit."""
        return {name: getattr(self, name) for name in JOIN_FIELDS if name in self.model_fields_set}

    def to_row(
        self,
        email: str | None,
        headshot_url: str | None,
        video_url: str | None,
        now: datetime,
    ) -> dict[str, Any]:
        """Explicit update row; media URLs are only written when new media was uploaded."""
        row = self.model_dump(mode="json", exclude_unset=True, exclude=set(JOIN_FIELDS))
        row["last_active_at"] = now.isoformat()
        if email:
            row["email"] = email.strip().lower()
        if headshot_url:
            row["headshot_url"] = headshot_url
        if video_url:
            row["video_url"] = video_url
        return row


class AmbassadorProfile(BaseModel):
    """An ambassador row as shown to its owner."""

    id: UUID
    user_id: UUID | None = None
    full_name: str
    email: str | None = None
    phone_number: str | None = None
    instagram_handle: str | None = None
    city: str | None = None
    state_region: str | None = None
    country: str | None = None
    timezone: str | None = None
    experience_level: str | None = None
    availability_status: str | None = None
    bio: str | None = None
    willing_to_travel: bool | None = None
    has_vehicle: bool | None = None
    can_work_weekends: bool | None = None
    can_work_nights: bool | None = None
    headshot_url: str | None = None
    video_url: str | None = None
    role_ids: list[int] = Field(default_factory=list)
    skill_ids: list[int] = Field(default_factory=list)
    language_ids: list[int] = Field(default_factory=list)
    created_at: datetime | None = None


class SignupResult(BaseModel):
    """
    Outcome of a signup or profile save.

    status is "ok" when every step succeeded, "partial" when the profile row
    was written but its role/skill/language links were not.
    """

    status: str
    ambassador_id: UUID
    message: str
    headshot_url: str | None = None
    video_url: str | None = None
