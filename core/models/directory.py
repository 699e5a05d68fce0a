# =============================================================================
# core/models/directory.py - Directory Search Schemas
# =============================================================================
# These models define the directory search contract:
# - DirectoryFilters: parsed query-string filters
# - DirectoryPage: one page of results plus pagination hints
# - ContactDetails / QuotaSnapshot / RevealResponse: contact reveal results
# - DirectoryOptions: dropdown values for the filter sidebar
# =============================================================================

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .ambassador import VocabularyItem


class MatchMode(str, Enum):
    """
    How multi-select tag filters combine.

    - any: profile has at least one selected id (array overlap)
    - all: profile has every selected id (array containment)
    """
    ANY = "any"
    ALL = "all"


class DirectoryFilters(BaseModel):
    """
    Parsed directory search filters.

    Built from the raw query string by
    core.services.directory_service.parse_filters; empty values mean
    "no restriction".
    """

    q: str = ""
    country: str = ""
    state: str = ""
    experience: str = ""
    availability: str = ""
    vehicle: bool = False
    travel: bool = False
    role_ids: list[int] = Field(default_factory=list)
    skill_ids: list[int] = Field(default_factory=list)
    language_ids: list[int] = Field(default_factory=list)
    match: MatchMode = MatchMode.ANY
    page: int = Field(default=1, ge=1)
    per: int = Field(default=25, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per


class DirectoryPage(BaseModel):
    """
    One page of directory results.

    has_next is true only when a row beyond this page exists.
    """

    items: list[dict[str, Any]] = Field(default_factory=list)
    page: int
    per: int
    has_next: bool = False
    has_prev: bool = False
    subscribed_regions: list[str] = Field(default_factory=list)


class DirectoryOptions(BaseModel):
    """Dropdown values for the directory sidebar."""
    countries: list[str] = Field(default_factory=list)
    states_by_country: dict[str, list[str]] = Field(default_factory=dict)
    roles: list[VocabularyItem] = Field(default_factory=list)
    skills: list[VocabularyItem] = Field(default_factory=list)
    languages: list[VocabularyItem] = Field(default_factory=list)


class ContactDetails(BaseModel):
    """Private contact fields released by reveal_contact."""
    email: str | None = None
    phone_number: str | None = None
    instagram_handle: str | None = None


class QuotaSnapshot(BaseModel):
    """Monthly reveal usage for the caller's agency."""
    used: int = Field(default=0, ge=0)
    remaining: int = Field(default=0, ge=0)
    monthly_limit: int = Field(default=0, ge=0)


class RevealResponse(BaseModel):
    """Result of a successful contact reveal."""
    contact: ContactDetails
    quota: QuotaSnapshot | None = None
