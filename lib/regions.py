# =============================================================================
# lib/regions.py - Subscription Region Table
# =============================================================================
# Maps subscription regions to the countries they cover, and back.
#
# Region labels must match the Stripe product metadata `region` values and the
# values stored in `agency_subscriptions.subscribed_continents`.
#
# United States, Canada and Mexico are sold as their own regions. "North
# America" covers only Central America and the Caribbean.
#
# Usage:
#   from lib.regions import countries_of, region_of
#   allowed = countries_of(["Europe", "Canada"])
#   region_of("France")  # "Europe"
# =============================================================================

from __future__ import annotations

from typing import Iterable

# Statistics bucket for countries outside every region. Never subscribable.
OTHER_REGION = "Other"

REGION_COUNTRIES: dict[str, tuple[str, ...]] = {
    "United States": ("United States",),
    "Canada": ("Canada",),
    "Mexico": ("Mexico",),
    "North America": (
        "Bahamas", "Belize", "Costa Rica", "Cuba", "Dominican Republic",
        "El Salvador", "Guatemala", "Haiti", "Honduras", "Jamaica",
        "Nicaragua", "Panama",
    ),
    "South America": (
        "Argentina", "Bolivia", "Brazil", "Chile", "Colombia", "Ecuador",
        "Paraguay", "Peru", "Uruguay", "Venezuela",
    ),
    "Europe": (
        "Albania", "Andorra", "Austria", "Belarus", "Belgium",
        "Bosnia and Herzegovina", "Bulgaria", "Croatia", "Cyprus",
        "Czech Republic", "Denmark", "Estonia", "Finland", "France", "Georgia",
        "Germany", "Greece", "Hungary", "Iceland", "Ireland", "Italy",
        "Latvia", "Lithuania", "Luxembourg", "Malta", "Moldova", "Montenegro",
        "Netherlands", "North Macedonia", "Norway", "Poland", "Portugal",
        "Romania", "Russia", "Serbia", "Slovakia", "Slovenia", "Spain",
        "Sweden", "Switzerland", "Turkey", "Ukraine", "United Kingdom",
    ),
    "Africa": (
        "Algeria", "Angola", "Benin", "Botswana", "Burkina Faso", "Burundi",
        "Cameroon", "Central African Republic", "Chad", "Congo", "Egypt",
        "Ethiopia", "Gabon", "Ghana", "Guinea", "Kenya", "Libya",
        "Madagascar", "Malawi", "Mali", "Morocco", "Mozambique", "Namibia",
        "Niger", "Nigeria", "Rwanda", "Senegal", "Somalia", "South Africa",
        "South Sudan", "Sudan", "Tanzania", "Togo", "Tunisia", "Uganda",
        "Zambia", "Zimbabwe",
    ),
    "Asia": (
        "Afghanistan", "Armenia", "Azerbaijan", "Bahrain", "Bangladesh",
        "Brunei", "Cambodia", "China", "India", "Indonesia", "Iran", "Iraq",
        "Israel", "Japan", "Jordan", "Kazakhstan", "Kuwait", "Kyrgyzstan",
        "Laos", "Lebanon", "Malaysia", "Mongolia", "Myanmar", "Nepal",
        "North Korea", "Oman", "Pakistan", "Philippines", "Qatar",
        "Saudi Arabia", "Singapore", "South Korea", "Sri Lanka", "Syria",
        "Taiwan", "Tajikistan", "Thailand", "Turkmenistan",
        "United Arab Emirates", "Uzbekistan", "Vietnam", "Yemen",
    ),
    "Oceania": ("Australia", "New Zealand"),
}

# Reverse table, built from REGION_COUNTRIES so the two cannot drift apart.
COUNTRY_REGION: dict[str, str] = {
    country: region
    for region, countries in REGION_COUNTRIES.items()
    for country in countries
}

REGIONS: tuple[str, ...] = tuple(REGION_COUNTRIES)


def is_subscribable(region: str) -> bool:
    """True for labels an agency can buy access to."""
    return region in REGION_COUNTRIES


def region_of(country: str | None) -> str:
    """
    Region label for a country name, or "Other" when unmapped.

    Whitespace around the name is ignored; matching is otherwise exact.
    """
    if not country:
        return OTHER_REGION
    return COUNTRY_REGION.get(country.strip(), OTHER_REGION)


def countries_of(regions: Iterable[str] | None) -> list[str]:
    """
    Countries an agency subscribed to `regions` may see.

    Unknown labels (including "Other") contribute nothing. Order follows the
    input regions; duplicates are dropped.
    """
    countries: list[str] = []
    seen: set[str] = set()
    for region in regions or []:
        for country in REGION_COUNTRIES.get(region, ()):
            if country not in seen:
                seen.add(country)
                countries.append(country)
    return countries
