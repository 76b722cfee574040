"""Tests for the Stripe webhook endpoint.

Covers method handling, signature verification, event dispatch, idempotent
redelivery and the error-to-status mapping.
"""

import json

import pytest

from conftest import make_event, sign_payload
from paywall.db.models import SubscriptionStatus
from paywall.errors import ConfigurationError
from paywall.payments.events import RELEVANT_EVENTS, EventRoute, LifecycleEvent
from paywall.payments.webhooks import WebhookHandler

WEBHOOK_URL = "/api/webhooks"


def checkout_completed(subscription="S1", customer="C1", **extra) -> bytes:
    obj = {
        "id": "cs_test_1",
        "object": "checkout.session",
        "mode": "subscription",
        "subscription": subscription,
        "customer": customer,
        **extra,
    }
    return make_event("checkout.session.completed", obj)


def subscription_event(event_type: str, subscription="S1", customer="C1") -> bytes:
    obj = {
        "id": subscription,
        "object": "subscription",
        "customer": customer,
        "status": "active",
    }
    return make_event(event_type, obj)


async def post_signed(client, payload: bytes, **kwargs):
    return await client.post(
        WEBHOOK_URL,
        data=payload,
        headers={"Stripe-Signature": sign_payload(payload, **kwargs)},
    )


class TestMethodHandling:
    """Non-POST requests are refused before any processing."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    async def test_non_post_returns_405(self, client, reconciler, method):
        payload = checkout_completed()
        response = await client.request(
            method,
            WEBHOOK_URL,
            data=payload,
            headers={"Stripe-Signature": sign_payload(payload)},
        )

        assert response.status == 405
        assert response.headers["Allow"] == "POST"
        reconciler.reconcile.assert_not_called()


class TestSignatureVerification:
    """Requests that fail verification are rejected with 400."""

    @pytest.mark.asyncio
    async def test_wrong_secret_rejected(self, client, reconciler, repository):
        response = await post_signed(client, checkout_completed(), secret="whsec_wrong")

        assert response.status == 400
        assert (await response.text()).startswith("Webhook error: ")
        reconciler.reconcile.assert_not_called()
        assert repository.subscriptions == {}

    @pytest.mark.asyncio
    async def test_tampered_body_rejected(self, client, reconciler):
        payload = checkout_completed()
        header = sign_payload(payload)
        tampered = checkout_completed(customer="C_attacker")

        response = await client.post(WEBHOOK_URL, data=tampered, headers={"Stripe-Signature": header})

        assert response.status == 400
        reconciler.reconcile.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_signature_header_rejected(self, client, reconciler):
        response = await client.post(WEBHOOK_URL, data=checkout_completed())

        assert response.status == 400
        assert "Stripe-Signature" in await response.text()
        reconciler.reconcile.assert_not_called()

    @pytest.mark.asyncio
    async def test_stale_timestamp_rejected(self, client, reconciler):
        response = await post_signed(client, checkout_completed(), timestamp=1_000_000)

        assert response.status == 400
        reconciler.reconcile.assert_not_called()

    def test_missing_secret_is_configuration_error(self, reconciler):
        with pytest.raises(ConfigurationError, match="stripe_webhook_secret"):
            WebhookHandler("", reconciler)


class TestDispatch:
    """Relevant events reach the reconciler with the right status."""

    @pytest.mark.asyncio
    async def test_checkout_completed_creates_active_record(self, client, reconciler, repository):
        response = await post_signed(client, checkout_completed("S1", "C1"))

        assert response.status == 200
        assert await response.json() == {"ok": True}
        reconciler.reconcile.assert_awaited_once_with("S1", "C1", True)
        assert list(repository.subscriptions) == ["C1"]
        assert repository.subscriptions["C1"]["status"] is SubscriptionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_record_linked_to_known_customer(self, client, repository):
        repository.customers["583231"] = "C1"

        await post_signed(client, checkout_completed("S1", "C1"))

        assert repository.subscriptions["C1"]["user_id"] == "583231"
        assert await repository.has_active_subscription("583231")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event_type",
        ["customer.subscription.created", "customer.subscription.updated"],
    )
    async def test_created_and_updated_reconcile_active(self, client, reconciler, event_type):
        response = await post_signed(client, subscription_event(event_type, "S2", "C2"))

        assert response.status == 200
        reconciler.reconcile.assert_awaited_once_with("S2", "C2", True)

    @pytest.mark.asyncio
    async def test_deleted_flips_existing_record_to_inactive(self, client, reconciler, repository):
        await post_signed(client, checkout_completed("S1", "C1"))
        response = await post_signed(
            client,
            subscription_event("customer.subscription.deleted", "S1", "C1"),
        )

        assert response.status == 200
        reconciler.reconcile.assert_awaited_with("S1", "C1", False)
        assert list(repository.subscriptions) == ["C1"]
        assert repository.subscriptions["C1"]["status"] is SubscriptionStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_expanded_objects_use_their_ids(self, client, reconciler):
        payload = checkout_completed(
            subscription={"id": "S3", "object": "subscription"},
            customer={"id": "C3", "object": "customer"},
        )

        response = await post_signed(client, payload)

        assert response.status == 200
        reconciler.reconcile.assert_awaited_once_with("S3", "C3", True)

    @pytest.mark.asyncio
    async def test_one_off_payment_session_is_skipped(self, client, reconciler):
        payload = checkout_completed(subscription=None, mode="payment")

        response = await post_signed(client, payload)

        assert response.status == 200
        reconciler.reconcile.assert_not_called()


class TestIdempotency:
    """Redelivered events leave the same single record."""

    @pytest.mark.asyncio
    async def test_redelivery_keeps_one_record(self, client, reconciler, repository):
        payload = checkout_completed("S1", "C1")

        first = await post_signed(client, payload)
        snapshot = dict(repository.subscriptions["C1"])
        second = await post_signed(client, payload)

        assert first.status == 200
        assert second.status == 200
        assert reconciler.reconcile.await_count == 2
        assert list(repository.subscriptions) == ["C1"]
        assert repository.subscriptions["C1"] == snapshot


class TestIrrelevantEvents:
    """Events outside the allow-list are acknowledged and ignored."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event_type", ["invoice.paid", "charge.refunded", "customer.created"])
    async def test_irrelevant_event_acknowledged(self, client, reconciler, repository, event_type):
        response = await post_signed(client, make_event(event_type, {"id": "obj_1"}))

        assert response.status == 200
        assert await response.json() == {"ok": True}
        reconciler.reconcile.assert_not_called()
        assert repository.subscriptions == {}


class TestFailures:
    """Processing failures map to 5xx so Stripe retries."""

    @pytest.mark.asyncio
    async def test_persistence_failure_returns_500(self, client, repository):
        repository.fail_writes = True

        response = await post_signed(client, checkout_completed())

        assert response.status == 500
        body = await response.json()
        assert "error" in body
        assert "ok" not in body

    @pytest.mark.asyncio
    async def test_missing_customer_returns_500(self, client, reconciler):
        payload = subscription_event("customer.subscription.updated", "S1", None)

        response = await post_signed(client, payload)

        assert response.status == 500
        reconciler.reconcile.assert_not_called()

    @pytest.mark.asyncio
    async def test_allow_listed_event_without_handler_returns_500(self, reconciler):
        handler = WebhookHandler(
            "whsec_other",
            reconciler,
            relevant_events=RELEVANT_EVENTS | {"customer.subscription.paused"},
        )
        payload = subscription_event("customer.subscription.paused")

        response = await handler.handle(payload, sign_payload(payload, secret="whsec_other"))

        assert response.status == 500
        assert json.loads(response.text) == {"error": "Webhook handler failed"}
        reconciler.reconcile.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_json_rejected(self, reconciler):
        handler = WebhookHandler("whsec_other", reconciler)
        payload = b"not json"

        response = await handler.handle(payload, sign_payload(payload, secret="whsec_other"))

        assert response.status == 400
        reconciler.reconcile.assert_not_called()


class TestMalformedEnvelopes:
    """Signed bodies that are not usable event objects are rejected with 400."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            json.dumps({"id": "evt_1", "object": "event", "data": {"object": {}}}).encode(),
            json.dumps({"id": "evt_1", "object": "event", "type": "customer.subscription.updated"}).encode(),
            b"[]",
            b"42",
        ],
        ids=["no-type", "no-data-object", "array", "number"],
    )
    async def test_unusable_event_rejected(self, reconciler, payload):
        handler = WebhookHandler("whsec_other", reconciler)

        response = await handler.handle(payload, sign_payload(payload, secret="whsec_other"))

        assert response.status == 400
        assert response.text.startswith("Webhook error: invalid payload")
        reconciler.reconcile.assert_not_called()

    @pytest.mark.asyncio
    async def test_data_object_handed_over_as_plain_dict(self, reconciler):
        seen = []

        def record(obj, event_type):
            seen.append(obj)
            return ("S1", "C1")

        route = EventRoute(LifecycleEvent.SUBSCRIPTION_UPDATED, record, active=True)
        handler = WebhookHandler("whsec_other", reconciler, dispatch={route.event.value: route})
        payload = subscription_event("customer.subscription.updated", "S1", "C1")

        response = await handler.handle(payload, sign_payload(payload, secret="whsec_other"))

        assert response.status == 200
        assert type(seen[0]) is dict
        assert seen[0]["customer"] == "C1"
        reconciler.reconcile.assert_awaited_once_with("S1", "C1", True)
