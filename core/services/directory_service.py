# =============================================================================
# core/services/directory_service.py - Directory Search
# =============================================================================
# Turns directory query-string parameters into a PostgREST read against the
# ambassadors_directory view, restricted to the countries the caller's
# subscription covers.
#
# The read is described first as a DirectoryQuery (an ordered list of
# builder calls) and applied afterwards, so the filter logic can be checked
# without a database.
#
# Usage:
#   filters = parse_filters(request.query_params, settings)
#   query = build_directory_query(filters, allowed_countries)
#   page = DirectoryService(client).search(filters, allowed_countries)
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from supabase import Client

from app.exceptions import (
    AmbassadorNotFoundError,
    DirectoryQueryError,
    NoRegionAccessError,
    SubscriptionRequiredError,
)
from core.models.directory import DirectoryFilters, DirectoryOptions, DirectoryPage, MatchMode
from core.models.subscription import AgencySubscription
from core.services.ambassador_service import load_vocabulary
from core.services.subscription_service import SubscriptionService, latest_active_subscription
from lib.regions import countries_of
from lib.supabase_client import error_message, is_no_rows_error

logger = logging.getLogger(__name__)

DIRECTORY_VIEW = "ambassadors_directory"

# Columns searched by the free-text box
SEARCH_COLUMNS = ("full_name", "city", "state_region", "country", "instagram_handle", "bio")

# Multi-select filter param -> array column on the view
TAG_FILTERS = (
    ("role_ids", "role_ids"),
    ("skill_ids", "skill_ids"),
    ("language_ids", "language_ids"),
)

# Characters with meaning inside a PostgREST or=(...) expression
_RESERVED = re.compile(r'[,()"\\*%]')

_TRUE_VALUES = ("1", "true", "on", "yes")

# Options dropdowns read at most this many ambassador rows
OPTIONS_ROW_LIMIT = 5000


# =============================================================================
# Query-string parsing
# =============================================================================

def _get_list(params: Mapping[str, Any], key: str) -> list[str]:
    """All values for `key` (repeated params and comma lists), trimmed, empties dropped."""
    if hasattr(params, "getlist"):
        raw = params.getlist(key)
    else:
        value = params.get(key)
        raw = value if isinstance(value, list) else ([] if value is None else [value])

    values: list[str] = []
    for item in raw:
        values.extend(part.strip() for part in str(item).split(","))
    return [v for v in values if v]


def _get_str(params: Mapping[str, Any], key: str) -> str:
    return str(params.get(key) or "").strip()


def _get_int_list(params: Mapping[str, Any], key: str) -> list[int]:
    ids: list[int] = []
    for value in _get_list(params, key):
        try:
            ids.append(int(value))
        except ValueError:
            continue
    return list(dict.fromkeys(ids))


def _get_bool(params: Mapping[str, Any], key: str) -> bool:
    return _get_str(params, key).lower() in _TRUE_VALUES


def _get_int(params: Mapping[str, Any], key: str, default: int) -> int:
    try:
        return int(_get_str(params, key))
    except ValueError:
        return default


def parse_filters(params: Mapping[str, Any], settings: Any) -> DirectoryFilters:
    """
    Parse raw query parameters into DirectoryFilters.

    Invalid page falls back to 1; invalid per falls back to the default;
    per is clamped into the configured bounds.
    """
    page = _get_int(params, "page", 1)
    per = _get_int(params, "per", settings.DIRECTORY_PER_PAGE_DEFAULT)
    per = max(settings.DIRECTORY_PER_PAGE_MIN, min(settings.DIRECTORY_PER_PAGE_MAX, per))

    match = MatchMode.ALL if _get_str(params, "match").lower() == MatchMode.ALL.value else MatchMode.ANY

    return DirectoryFilters(
        q=_get_str(params, "q"),
        country=_get_str(params, "country"),
        state=_get_str(params, "state"),
        experience=_get_str(params, "experience"),
        availability=_get_str(params, "availability"),
        vehicle=_get_bool(params, "vehicle"),
        travel=_get_bool(params, "travel"),
        role_ids=_get_int_list(params, "role_ids"),
        skill_ids=_get_int_list(params, "skill_ids"),
        language_ids=_get_int_list(params, "language_ids"),
        match=match,
        page=max(1, page),
        per=per,
    )


# =============================================================================
# Query building
# =============================================================================

def sanitize_search(q: str) -> str:
    """Replace characters that would break an or=(...) filter; collapse spaces."""
    return " ".join(_RESERVED.sub(" ", q).split())


@dataclass(frozen=True)
class FilterOp:
    """One PostgREST builder call, e.g. FilterOp("eq", ("country", "France"))."""
    method: str
    args: tuple
    kwargs: dict[str, Any] = field(default_factory=dict)


@dataclass
class DirectoryQuery:
    """Ordered builder calls for one directory read."""
    ops: list[FilterOp] = field(default_factory=list)

    def add(self, method: str, *args: Any, **kwargs: Any) -> "DirectoryQuery":
        self.ops.append(FilterOp(method, args, kwargs))
        return self

    def methods(self) -> list[str]:
        return [op.method for op in self.ops]

    def find(self, method: str) -> list[FilterOp]:
        return [op for op in self.ops if op.method == method]

    def apply(self, builder: Any) -> Any:
        """Chain every operation onto a postgrest request builder."""
        for op in self.ops:
            builder = getattr(builder, op.method)(*op.args, **op.kwargs)
        return builder


def build_directory_query(filters: DirectoryFilters, allowed_countries: Iterable[str]) -> DirectoryQuery:
    """
    Describe the directory read for `filters` within `allowed_countries`.

    An empty allowed list adds no country restriction; callers refuse
    earlier when a subscription covers nothing. The range asks for one row
    past the page so the caller can tell whether a next page exists.
    """
    query = DirectoryQuery()

    allowed = list(allowed_countries)
    if allowed:
        query.add("in_", "country", allowed)

    if filters.experience:
        query.add("eq", "experience_level", filters.experience)
    if filters.availability:
        query.add("eq", "availability_status", filters.availability)
    if filters.country:
        query.add("eq", "country", filters.country)
    if filters.state:
        query.add("eq", "state_region", filters.state)
    if filters.vehicle:
        query.add("eq", "has_vehicle", "true")
    if filters.travel:
        query.add("eq", "willing_to_travel", "true")

    tag_method = "contains" if filters.match == MatchMode.ALL else "overlaps"
    for attr, column in TAG_FILTERS:
        ids = getattr(filters, attr)
        if ids:
            query.add(tag_method, column, list(ids))

    term = sanitize_search(filters.q)
    if term:
        query.add("or_", ",".join(f"{col}.ilike.%{term}%" for col in SEARCH_COLUMNS))

    query.add("order", "created_at", desc=True)
    query.add("range", filters.offset, filters.offset + filters.per)
    return query


# =============================================================================
# Services
# =============================================================================

class DirectoryAccessService:
    """
    Decides whether the caller may browse the directory and where.

    Looks up the caller's current subscription; on a checkout success
    redirect with no subscription row yet, syncs from Stripe inline.
    """

    def __init__(self, client: Client, subscriptions: SubscriptionService | None = None):
        self.client = client
        self.subscriptions = subscriptions

    def resolve_subscription(
        self,
        user_id: str,
        success: bool = False,
        session_id: str | None = None,
    ) -> AgencySubscription:
        """
        Current access-granting subscription for `user_id`.

        Raises:
            SubscriptionRequiredError: If there is none, even after a fallback sync
        """
        subscription = latest_active_subscription(self.client, user_id)

        if subscription is None and success and session_id and self.subscriptions is not None:
            try:
                self.subscriptions.sync_from_checkout_session(session_id, user_id)
            except Exception as e:
                logger.warning(f"Checkout fallback sync failed for session {session_id}: {e}")
            subscription = latest_active_subscription(self.client, user_id)

        if subscription is None:
            raise SubscriptionRequiredError()
        return subscription

    @staticmethod
    def allowed_countries(subscription: AgencySubscription) -> list[str]:
        """
        Countries covered by the subscription's regions.

        Raises:
            NoRegionAccessError: If the regions map to no country
        """
        countries = countries_of(subscription.subscribed_continents)
        if not countries:
            raise NoRegionAccessError(subscription.subscribed_continents)
        return countries


class DirectoryService:
    """Reads against the directory view and its vocabularies."""

    def __init__(self, client: Client):
        self.client = client

    def search(
        self,
        filters: DirectoryFilters,
        allowed_countries: list[str],
        subscribed_regions: list[str] | None = None,
    ) -> DirectoryPage:
        """
        Run one page of the directory search.

        Raises:
            DirectoryQueryError: If the read fails
        """
        query = build_directory_query(filters, allowed_countries)
        try:
            result = query.apply(self.client.table(DIRECTORY_VIEW).select("*")).execute()
        except Exception as e:
            logger.error(f"Directory query failed: {e}")
            raise DirectoryQueryError(error_message(e))

        rows = result.data or []
        return DirectoryPage(
            items=rows[: filters.per],
            page=filters.page,
            per=filters.per,
            has_next=len(rows) > filters.per,
            has_prev=filters.page > 1,
            subscribed_regions=subscribed_regions or [],
        )

    def get_profile(self, ambassador_id: str, allowed_countries: list[str]) -> dict[str, Any]:
        """
        One directory profile, only if it lies in an allowed country.

        Raises:
            AmbassadorNotFoundError: If missing or outside the allowed countries
        """
        try:
            result = (
                self.client.table(DIRECTORY_VIEW)
                .select("*")
                .eq("id", ambassador_id)
                .in_("country", allowed_countries)
                .single()
                .execute()
            )
        except Exception as e:
            if is_no_rows_error(e):
                raise AmbassadorNotFoundError(ambassador_id)
            logger.error(f"Directory profile read failed for {ambassador_id}: {e}")
            raise DirectoryQueryError(error_message(e))

        if not result.data:
            raise AmbassadorNotFoundError(ambassador_id)
        return result.data

    def options(self, allowed_countries: list[str]) -> DirectoryOptions:
        """Sidebar dropdown values restricted to the allowed countries."""
        allowed = set(allowed_countries)
        result = (
            self.client.table("ambassadors")
            .select("country, state_region")
            .limit(OPTIONS_ROW_LIMIT)
            .execute()
        )

        states: dict[str, set[str]] = {}
        for row in result.data or []:
            country = (row.get("country") or "").strip()
            if not country or country not in allowed:
                continue
            bucket = states.setdefault(country, set())
            state = (row.get("state_region") or "").strip()
            if state:
                bucket.add(state)

        return DirectoryOptions(
            countries=sorted(states),
            states_by_country={c: sorted(s) for c, s in sorted(states.items())},
            roles=load_vocabulary(self.client, "roles"),
            skills=load_vocabulary(self.client, "skills"),
            languages=load_vocabulary(self.client, "languages"),
        )
