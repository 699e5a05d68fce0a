# =============================================================================
# tests/test_subscription_service.py - Subscription Reconciliation Tests
# =============================================================================
# Tests for:
# - normalize_status / extract_regions
# - save_for_agency upsert and stale-write rejection
# - reconcile: agency resolution and idempotence
# - handle_event routing
# - sync_from_checkout_session checks
#
# Stripe is replaced by a small fake returning plain dicts.
#
# Run with: pytest tests/test_subscription_service.py -v
# =============================================================================

import pytest

from core.models.subscription import SubscriptionStatus
from core.services.subscription_service import (
    TABLE,
    SubscriptionService,
    extract_regions,
    latest_active_subscription,
    normalize_status,
)
from tests.conftest import AGENCY_ID

OTHER_AGENCY = "33333333-3333-3333-3333-333333333333"


def stripe_subscription(sub_id="sub_1", status="active", regions=("Europe",), customer="cus_1", metadata=None):
    """A subscription shaped like Stripe's, with products expanded."""
    return {
        "id": sub_id,
        "status": status,
        "customer": customer,
        "metadata": metadata or {},
        "items": {
            "data": [
                {"price": {"id": f"price_{r}", "product": {"id": f"prod_{r}", "metadata": {"region": r}}}}
                for r in regions
            ]
        },
    }


class FakeStripe:
    """Stands in for StripeService."""

    def __init__(self):
        self.subscriptions = {}
        self.sessions = {}
        self.retrieved = []

    def retrieve_subscription(self, subscription_id):
        self.retrieved.append(subscription_id)
        return self.subscriptions[subscription_id]

    def retrieve_checkout_session(self, session_id):
        return self.sessions[session_id]


class Clock:
    def __init__(self, now=1_700_000_000):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def fake_stripe():
    return FakeStripe()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def service(fake_db, fake_stripe, clock):
    return SubscriptionService(fake_db, fake_stripe, clock=clock)


# =============================================================================
# Pure helpers
# =============================================================================

class TestNormalizeStatus:

    @pytest.mark.parametrize("raw,expected", [
        ("active", SubscriptionStatus.ACTIVE),
        ("trialing", SubscriptionStatus.ACTIVE),
        ("past_due", SubscriptionStatus.PAST_DUE),
        ("canceled", SubscriptionStatus.CANCELED),
        ("unpaid", SubscriptionStatus.CANCELED),
        ("incomplete_expired", SubscriptionStatus.CANCELED),
        ("incomplete", SubscriptionStatus.INACTIVE),
        ("paused", SubscriptionStatus.INACTIVE),
        (None, SubscriptionStatus.INACTIVE),
    ])
    def test_mapping(self, raw, expected):
        assert normalize_status(raw) == expected


class TestExtractRegions:

    def test_regions_in_item_order(self):
        sub = stripe_subscription(regions=("Canada", "Europe"))
        assert extract_regions(sub) == ["Canada", "Europe"]

    def test_unexpanded_and_blank_products_skipped(self):
        sub = {
            "items": {"data": [
                {"price": {"product": "prod_plain"}},
                {"price": {"product": {"metadata": {"region": "  "}}}},
                {"price": {"product": {"metadata": {}}}},
                {"price": {"product": {"metadata": {"region": "Asia"}}}},
            ]}
        }
        assert extract_regions(sub) == ["Asia"]

    def test_no_items(self):
        assert extract_regions({}) == []


# =============================================================================
# Persistence
# =============================================================================

class TestSaveForAgency:

    def save(self, service, observed_at, status=SubscriptionStatus.ACTIVE, regions=("Europe",)):
        return service.save_for_agency(
            AGENCY_ID,
            status=status,
            regions=list(regions),
            customer_id="cus_1",
            subscription_id="sub_1",
            observed_at=observed_at,
        )

    def test_inserts_first_row(self, service, fake_db):
        assert self.save(service, 100)
        rows = fake_db.tables[TABLE]
        assert len(rows) == 1
        assert rows[0]["agency_user_id"] == AGENCY_ID
        assert rows[0]["subscribed_continents"] == ["Europe"]
        assert rows[0]["synced_at"] == 100

    def test_updates_latest_row_in_place(self, service, fake_db):
        self.save(service, 100)
        assert self.save(service, 200, status=SubscriptionStatus.PAST_DUE)
        rows = fake_db.tables[TABLE]
        assert len(rows) == 1
        assert rows[0]["status"] == "past_due"

    def test_older_observation_rejected(self, service, fake_db):
        self.save(service, 200, regions=("Europe", "Canada"))
        assert not self.save(service, 150, regions=("Europe",))
        assert fake_db.tables[TABLE][0]["subscribed_continents"] == ["Europe", "Canada"]

    def test_same_observation_time_applies(self, service):
        self.save(service, 200)
        assert self.save(service, 200)

    def test_legacy_row_without_synced_at_is_updated(self, service, fake_db):
        fake_db.seed(TABLE, {
            "id": 7, "agency_user_id": AGENCY_ID, "status": "inactive",
            "subscribed_continents": [], "synced_at": None, "updated_at": "2024-01-01T00:00:00+00:00",
        })
        assert self.save(service, 100)
        assert fake_db.tables[TABLE][0]["status"] == "active"


# =============================================================================
# Reconciliation
# =============================================================================

class TestReconcile:

    def test_reconcile_with_explicit_agency(self, service, fake_stripe, fake_db):
        fake_stripe.subscriptions["sub_1"] = stripe_subscription(regions=("Europe", "Canada"))

        result = service.reconcile("sub_1", agency_user_id=AGENCY_ID)

        assert result.matched and result.applied
        assert result.status == SubscriptionStatus.ACTIVE
        assert result.regions == ["Europe", "Canada"]
        current = latest_active_subscription(fake_db, AGENCY_ID)
        assert current.stripe_subscription_id == "sub_1"
        assert current.stripe_customer_id == "cus_1"

    def test_reconcile_is_idempotent(self, service, fake_stripe, fake_db, clock):
        fake_stripe.subscriptions["sub_1"] = stripe_subscription()

        service.reconcile("sub_1", agency_user_id=AGENCY_ID)
        first = dict(fake_db.tables[TABLE][0])
        clock.now += 5
        service.reconcile("sub_1", agency_user_id=AGENCY_ID)

        rows = fake_db.tables[TABLE]
        assert len(rows) == 1
        second = rows[0]
        for column in ("status", "subscribed_continents", "stripe_customer_id", "stripe_subscription_id"):
            assert second[column] == first[column]

    def test_agency_found_by_stored_subscription_id(self, service, fake_stripe, fake_db):
        fake_db.seed(TABLE, {
            "id": 1, "agency_user_id": OTHER_AGENCY, "status": "active",
            "stripe_subscription_id": "sub_9", "stripe_customer_id": "cus_x",
            "subscribed_continents": ["Asia"], "updated_at": "2024-01-01",
        })
        fake_stripe.subscriptions["sub_9"] = stripe_subscription("sub_9", status="canceled", customer="cus_x")

        result = service.reconcile("sub_9")

        assert str(result.agency_user_id) == OTHER_AGENCY
        assert fake_db.tables[TABLE][0]["status"] == "canceled"

    def test_agency_found_by_customer_id(self, service, fake_stripe, fake_db):
        fake_db.seed(TABLE, {
            "id": 1, "agency_user_id": OTHER_AGENCY, "status": "active",
            "stripe_subscription_id": "sub_old", "stripe_customer_id": "cus_x",
            "subscribed_continents": [], "updated_at": "2024-01-01",
        })
        fake_stripe.subscriptions["sub_new"] = stripe_subscription("sub_new", customer="cus_x")

        assert str(service.reconcile("sub_new").agency_user_id) == OTHER_AGENCY

    def test_agency_found_by_metadata(self, service, fake_stripe):
        fake_stripe.subscriptions["sub_2"] = stripe_subscription("sub_2", metadata={"user_id": AGENCY_ID})
        assert str(service.reconcile("sub_2").agency_user_id) == AGENCY_ID

    def test_unmatched_subscription_not_saved(self, service, fake_stripe, fake_db):
        fake_stripe.subscriptions["sub_3"] = stripe_subscription("sub_3", customer="cus_unknown")

        result = service.reconcile("sub_3")

        assert not result.matched
        assert fake_db.tables.get(TABLE, []) == []


# =============================================================================
# Webhook events
# =============================================================================

class TestHandleEvent:

    def test_checkout_completed(self, service, fake_stripe, fake_db):
        fake_stripe.subscriptions["sub_1"] = stripe_subscription()
        event = {
            "type": "checkout.session.completed",
            "data": {"object": {"subscription": "sub_1", "metadata": {"user_id": AGENCY_ID}}},
        }

        ack = service.handle_event(event)

        assert ack["received"] and ack["handled"]
        assert latest_active_subscription(fake_db, AGENCY_ID) is not None

    def test_checkout_completed_without_user_skipped(self, service, fake_stripe):
        event = {"type": "checkout.session.completed", "data": {"object": {"subscription": "sub_1"}}}
        assert service.handle_event(event)["handled"] is False
        assert fake_stripe.retrieved == []

    @pytest.mark.parametrize("event_type", ["customer.subscription.updated", "customer.subscription.deleted"])
    def test_subscription_events_refetch_live_state(self, service, fake_stripe, fake_db, event_type):
        fake_stripe.subscriptions["sub_1"] = stripe_subscription(status="canceled", metadata={"user_id": AGENCY_ID})
        # payload says active; the live subscription wins
        event = {"type": event_type, "data": {"object": {"id": "sub_1", "status": "active"}}}

        service.handle_event(event)

        assert fake_db.tables[TABLE][0]["status"] == "canceled"

    def test_invoice_payment_failed(self, service, fake_stripe, fake_db):
        fake_stripe.subscriptions["sub_1"] = stripe_subscription(status="past_due", metadata={"user_id": AGENCY_ID})
        event = {"type": "invoice.payment_failed", "data": {"object": {"subscription": "sub_1"}}}

        service.handle_event(event)

        assert fake_db.tables[TABLE][0]["status"] == "past_due"

    def test_other_events_acknowledged(self, service):
        ack = service.handle_event({"type": "customer.created", "data": {"object": {}}})
        assert ack == {"received": True, "type": "customer.created", "handled": False, "result": None}


# =============================================================================
# Checkout redirect sync
# =============================================================================

class TestSyncFromCheckoutSession:

    def session(self, **overrides):
        session = {
            "id": "cs_1", "mode": "subscription", "customer": "cus_1",
            "subscription": "sub_1", "metadata": {"user_id": AGENCY_ID},
        }
        session.update(overrides)
        return session

    def test_syncs_owned_subscription(self, service, fake_stripe, fake_db):
        fake_stripe.sessions["cs_1"] = self.session()
        fake_stripe.subscriptions["sub_1"] = stripe_subscription()

        result = service.sync_from_checkout_session("cs_1", AGENCY_ID)

        assert result is not None and result.applied
        assert latest_active_subscription(fake_db, AGENCY_ID) is not None

    def test_expanded_subscription_object_accepted(self, service, fake_stripe):
        fake_stripe.sessions["cs_1"] = self.session(subscription={"id": "sub_1", "status": "active"})
        fake_stripe.subscriptions["sub_1"] = stripe_subscription()
        assert service.sync_from_checkout_session("cs_1", AGENCY_ID).subscription_id == "sub_1"

    @pytest.mark.parametrize("overrides", [
        {"mode": "payment"},
        {"metadata": {"user_id": OTHER_AGENCY}},
        {"customer": None},
        {"subscription": None},
    ])
    def test_rejected_sessions(self, service, fake_stripe, fake_db, overrides):
        fake_stripe.sessions["cs_1"] = self.session(**overrides)
        fake_stripe.subscriptions["sub_1"] = stripe_subscription()

        assert service.sync_from_checkout_session("cs_1", AGENCY_ID) is None
        assert fake_db.tables.get(TABLE, []) == []
