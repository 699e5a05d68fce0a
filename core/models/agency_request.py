# =============================================================================
# core/models/agency_request.py - Agency Access Request Schema
# =============================================================================
# Lead form submitted by agencies that want to talk to sales before
# subscribing. Write-only from the API's point of view.
# =============================================================================

from pydantic import BaseModel, Field, field_validator

from lib.regions import is_subscribable


class AgencyRequestCreate(BaseModel):
    """
    Access request form.

    Example:
        {
            "company_name": "Brightside Staffing",
            "contact_name": "Sam Lee",
            "email": "sam@brightside.example",
            "continents_of_interest": ["Europe", "Canada"]
        }
    """

    company_name: str = Field(..., min_length=1, max_length=200)
    contact_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    phone: str | None = Field(default=None, max_length=50)
    continents_of_interest: list[str] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=4000)

    @field_validator("company_name", "contact_name", "email")
    @classmethod
    def _required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please fill in company name, contact name, and email.")
        return v

    @field_validator("phone", "notes")
    @classmethod
    def _optional_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("continents_of_interest")
    @classmethod
    def _known_regions(cls, v: list[str]) -> list[str]:
        unknown = [r for r in v if not is_subscribable(r)]
        if unknown:
            raise ValueError(f"Unknown regions: {', '.join(unknown)}")
        return list(dict.fromkeys(v))
