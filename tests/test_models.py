"""Unit tests for Courier models."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import SecretStr, ValidationError

from courier.models import (
    ALL_EVENT_NAMES,
    ActivityEntry,
    DeliveryAttempt,
    DeliveryResult,
    DispatchResult,
    EventEnvelope,
    EventName,
    RetryPolicy,
    RetryQueueEntry,
    WebhookCreate,
    WebhookSubscription,
    WebhookUpdate,
)


class TestEventCatalog:
    """Tests for the closed event catalog."""

    def test_catalog_has_eighteen_events(self):
        """The catalog should list every business event."""
        assert len(ALL_EVENT_NAMES) == 18
        assert "deal.status_changed" in ALL_EVENT_NAMES
        assert "subscription.cancelled" in ALL_EVENT_NAMES

    def test_unknown_event_rejected(self):
        """Unknown event names should be rejected when converting."""
        with pytest.raises(ValueError):
            EventName("deal.exploded")


class TestEventEnvelope:
    """Tests for EventEnvelope."""

    def test_defaults(self):
        """Envelope should default data and metadata to empty dicts."""
        envelope = EventEnvelope(event="user.created")
        assert envelope.data == {}
        assert envelope.metadata == {}
        assert envelope.timestamp.tzinfo is not None

    def test_unknown_event_rejected_at_construction(self):
        """An envelope cannot be built for an event outside the catalog."""
        with pytest.raises(ValidationError):
            EventEnvelope(event="not.an.event")

    def test_body_is_cached(self):
        """body should be computed once and returned identically."""
        envelope = EventEnvelope(event="deal.created", data={"id": "d1"})
        first = envelope.body
        assert envelope.body is first

    def test_body_contents(self):
        """body should contain the four envelope fields."""
        envelope = EventEnvelope(event="deal.created", data={"id": "d1"}, metadata={"src": "crm"})
        decoded = json.loads(envelope.body)

        assert decoded["event"] == "deal.created"
        assert decoded["data"] == {"id": "d1"}
        assert decoded["metadata"] == {"src": "crm"}
        assert "timestamp" in decoded

    def test_timestamp_header_matches_body(self):
        """The timestamp header should be the exact string in the body."""
        envelope = EventEnvelope(event="deal.created")
        assert json.loads(envelope.body)["timestamp"] == envelope.timestamp_header

    def test_from_body_keeps_original_bytes(self):
        """from_body should reuse the stored body verbatim."""
        body = (
            '{"event": "payment.failed", "timestamp": "2026-01-01T00:00:00Z", '
            '"data": {"invoice": "inv_1"}, "metadata": {}}'
        )
        envelope = EventEnvelope.from_body(body)

        assert envelope.event == EventName.PAYMENT_FAILED
        assert envelope.data == {"invoice": "inv_1"}
        assert envelope.body == body


class TestRetryPolicy:
    """Tests for RetryPolicy bounds."""

    def test_defaults(self):
        """Defaults should be 3 retries, 60s base delay, multiplier 2."""
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.retry_delay == 60
        assert policy.backoff_multiplier == 2

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_retries", -1),
            ("max_retries", 11),
            ("retry_delay", 0),
            ("retry_delay", 3601),
            ("backoff_multiplier", 0.5),
            ("backoff_multiplier", 11),
        ],
    )
    def test_out_of_range_rejected(self, field, value):
        """Values outside the allowed ranges should be rejected."""
        with pytest.raises(ValidationError):
            RetryPolicy(**{field: value})


class TestWebhookSubscription:
    """Tests for WebhookSubscription validation."""

    def test_minimal_subscription(self):
        """A name, URL and one event should be enough."""
        sub = WebhookSubscription(
            name="Hook", url="https://example.com/hook", events=["deal.created"]
        )
        assert sub.id.startswith("whk_")
        assert sub.is_active is True
        assert sub.timeout == 30
        assert sub.retry_config == RetryPolicy()
        assert sub.has_secret is False

    def test_empty_events_rejected(self):
        """At least one event is required."""
        with pytest.raises(ValidationError):
            WebhookSubscription(name="Hook", url="https://example.com", events=[])

    def test_unknown_event_rejected(self):
        """Events must come from the catalog."""
        with pytest.raises(ValidationError):
            WebhookSubscription(name="Hook", url="https://example.com", events=["foo.bar"])

    def test_duplicate_events_collapsed(self):
        """Duplicate events should be collapsed, keeping order."""
        sub = WebhookSubscription(
            name="Hook",
            url="https://example.com",
            events=["deal.created", "deal.deleted", "deal.created"],
        )
        assert sub.events == [EventName.DEAL_CREATED, EventName.DEAL_DELETED]

    @pytest.mark.parametrize("url", ["not a url", "ftp://example.com/x", "/relative/path"])
    def test_invalid_url_rejected(self, url):
        """Only absolute http(s) URLs are accepted."""
        with pytest.raises(ValidationError):
            WebhookSubscription(name="Hook", url=url, events=["deal.created"])

    def test_empty_name_rejected(self):
        """Name must not be empty."""
        with pytest.raises(ValidationError):
            WebhookSubscription(name="", url="https://example.com", events=["deal.created"])

    @pytest.mark.parametrize("timeout", [0.5, 61])
    def test_timeout_bounds(self, timeout):
        """Timeout must be between 1 and 60 seconds."""
        with pytest.raises(ValidationError):
            WebhookSubscription(
                name="Hook", url="https://example.com", events=["deal.created"], timeout=timeout
            )

    def test_reserved_header_rejected(self):
        """Custom headers cannot override headers set by the executor."""
        with pytest.raises(ValidationError, match="reserved header"):
            WebhookSubscription(
                name="Hook",
                url="https://example.com",
                events=["deal.created"],
                headers={"x-webhook-signature": "forged"},
            )

    def test_custom_headers_accepted(self):
        """Non-reserved headers should be kept."""
        sub = WebhookSubscription(
            name="Hook",
            url="https://example.com",
            events=["deal.created"],
            headers={"Authorization": "Bearer abc"},
        )
        assert sub.headers == {"Authorization": "Bearer abc"}

    def test_unknown_field_rejected(self):
        """Unknown fields should be rejected."""
        with pytest.raises(ValidationError):
            WebhookSubscription(
                name="Hook", url="https://example.com", events=["deal.created"], colour="blue"
            )

    def test_secret_hidden_in_repr_and_dump(self):
        """The secret should never appear in repr or a plain dump."""
        sub = WebhookSubscription(
            name="Hook", url="https://example.com", events=["deal.created"], secret="topsecret"
        )
        assert "topsecret" not in repr(sub)
        assert "topsecret" not in sub.model_dump_json()
        assert sub.has_secret is True

    def test_storage_payload_keeps_secret(self):
        """The storage payload carries the raw secret and round-trips."""
        sub = WebhookSubscription(
            name="Hook", url="https://example.com", events=["deal.created"], secret="topsecret"
        )
        payload = sub.to_storage_payload()
        assert payload["secret"] == "topsecret"

        restored = WebhookSubscription.model_validate(payload)
        assert restored.secret == SecretStr("topsecret")
        assert restored.events == sub.events

    def test_subscribes_to(self):
        """subscribes_to requires the event and an active subscription."""
        sub = WebhookSubscription(name="Hook", url="https://example.com", events=["deal.created"])
        assert sub.subscribes_to("deal.created")
        assert not sub.subscribes_to(EventName.DEAL_DELETED)

        inactive = sub.model_copy(update={"is_active": False})
        assert not inactive.subscribes_to("deal.created")


class TestWebhookInputs:
    """Tests for WebhookCreate and WebhookUpdate."""

    def test_create_rejects_system_fields(self):
        """Registration input cannot set the ID or timestamps."""
        with pytest.raises(ValidationError):
            WebhookCreate(
                name="Hook", url="https://example.com", events=["deal.created"], id="whk_mine"
            )

    def test_update_tracks_set_fields(self):
        """Only explicitly provided fields count as set."""
        update = WebhookUpdate(name="Renamed", retry_config={"max_retries": 5})
        assert update.model_fields_set == {"name", "retry_config"}
        assert update.model_dump(exclude_unset=True) == {
            "name": "Renamed",
            "retry_config": {"max_retries": 5},
        }

    def test_update_validates_fields(self):
        """Update values obey the same bounds as the record."""
        with pytest.raises(ValidationError):
            WebhookUpdate(timeout=120)
        with pytest.raises(ValidationError):
            WebhookUpdate(events=[])
        with pytest.raises(ValidationError):
            WebhookUpdate(headers={"User-Agent": "spoof"})


class TestDeliveryModels:
    """Tests for delivery records and results."""

    def _attempt(self, **overrides):
        fields = {
            "webhook_id": "whk_1",
            "event": "deal.created",
            "url": "https://example.com",
            "status": "success",
            "status_code": 200,
            "response_time": 12,
        }
        fields.update(overrides)
        return DeliveryAttempt(**fields)

    def test_attempt_is_immutable(self):
        """Attempts cannot be modified once created."""
        attempt = self._attempt()
        with pytest.raises(ValidationError):
            attempt.status = "failed"

    def test_attempt_id_format(self):
        """Attempt IDs are opaque whd_ identifiers."""
        assert self._attempt().id.startswith("whd_")

    def test_result_from_http_attempt(self):
        """HTTP outcomes report the status code."""
        result = DeliveryResult.from_attempt(self._attempt(status="failed", status_code=503))
        assert result.success is False
        assert result.status_code == 503
        assert result.error is None

    def test_result_from_transport_failure(self):
        """Transport failures report the error instead of a status code."""
        attempt = self._attempt(status="failed", status_code=0, error="Request timeout after 5s")
        result = DeliveryResult.from_attempt(attempt)
        assert result.status_code is None
        assert result.error == "Request timeout after 5s"

    def test_dispatch_trigger_response(self):
        """to_trigger_response should use the trigger field names."""
        ok = DeliveryResult.from_attempt(self._attempt())
        result = DispatchResult(matched_count=2, sent_count=1, deliveries=[ok])

        response = result.to_trigger_response()
        assert response["total_webhooks"] == 2
        assert response["successful_deliveries"] == 1
        assert response["deliveries"][0]["delivery_id"] == ok.delivery_id

    def test_retry_entry_is_due(self):
        """An entry is due once retry_at has been reached."""
        now = datetime(2026, 1, 1, tzinfo=UTC)
        entry = RetryQueueEntry(
            webhook_id="whk_1",
            original_delivery_id="whd_1",
            payload="{}",
            attempt=2,
            retry_at=now,
        )
        assert entry.id.startswith("whr_")
        assert entry.is_due(now)
        assert entry.is_due(now + timedelta(seconds=1))
        assert not entry.is_due(now - timedelta(seconds=1))

    def test_retry_entry_attempt_starts_at_two(self):
        """A retry always carries attempt number 2 or higher."""
        with pytest.raises(ValidationError):
            RetryQueueEntry(
                webhook_id="whk_1",
                original_delivery_id="whd_1",
                payload="{}",
                attempt=1,
                retry_at=datetime.now(UTC),
            )


class TestActivityEntry:
    """Tests for ActivityEntry factories."""

    def test_for_created(self):
        """for_created records name, events and URL."""
        entry = ActivityEntry.for_created(
            webhook_id="whk_1",
            name="Hook",
            events=["deal.created"],
            url="https://example.com",
            actor="user_1",
        )
        assert entry.id.startswith("act_")
        assert entry.action == "webhook.created"
        assert entry.entity_type == "webhook"
        assert entry.metadata == {
            "webhook_name": "Hook",
            "events": ["deal.created"],
            "url": "https://example.com",
        }

    def test_for_updated(self):
        """for_updated records the changed field names."""
        entry = ActivityEntry.for_updated("whk_1", "Hook", ["name", "url"], actor="user_1")
        assert entry.action == "webhook.updated"
        assert entry.metadata["changes"] == ["name", "url"]

    def test_for_deleted(self):
        """for_deleted records the webhook name."""
        entry = ActivityEntry.for_deleted("whk_1", "Hook")
        assert entry.action == "webhook.deleted"
        assert entry.actor is None
        assert entry.metadata == {"webhook_name": "Hook"}
