# backend/tests/test_publish_handler.py

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import InvalidPayloadError, RecipientStoreError
from app.services.publish_handler import PublishEventHandler, item_from_payload
from app.services.types import localized, normalize_categories
from conftest import ERROR_TICKET, FakePushGateway

PUBLISH = "ContentManagement.Entry.publish"


def _payload(
    entry_id="abc123",
    *,
    content_type="project",
    title="North Tower",
    send=True,
    categories=("architecture",),
    **extra_fields,
) -> dict:
    fields = {}
    if title is not None:
        fields["title"] = {"en-US": title}
    if send is not None:
        fields["sendNotification"] = {"en-US": send}
    if categories is not None:
        fields["categories"] = {"en-US": list(categories) if isinstance(categories, tuple) else categories}
    for name, value in extra_fields.items():
        fields[name] = {"en-US": value}
    return {
        "sys": {"id": entry_id, "contentType": {"sys": {"id": content_type}}},
        "fields": fields,
    }


def _handler(db_session, gateway, throttle) -> PublishEventHandler:
    return PublishEventHandler(db_session, gateway, throttle, content_type="project")


def test_category_filter_example(db_session, gateway, throttle, add_recipient, history_rows):
    """R1 (no preference) gets the push, R2 (design only) is skipped."""
    add_recipient("r1")
    add_recipient("r2", categories=["design"])

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload())

    assert result["sent"] == 1
    assert result["skipped"] == 1
    assert result["errors"] == 0
    assert result["project"] == {"id": "abc123", "title": "North Tower", "case_number": None, "slug": None}
    assert [token for token, _ in gateway.calls] == ["ExponentPushToken[r1]"]
    assert [(r.user_id, r.project_id) for r in history_rows()] == [("r1", "abc123")]


def test_overlapping_preference_receives_push(db_session, gateway, throttle, add_recipient):
    add_recipient("r1", categories=["design", "architecture"])

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload())

    assert result["sent"] == 1
    assert result["skipped"] == 0


@pytest.mark.parametrize("categories", [None, [], ("interiors",)])
def test_empty_preference_always_attempted(db_session, gateway, throttle, add_recipient, categories):
    add_recipient("r1", categories=[])
    add_recipient("r2", categories=None)

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload(categories=categories))

    assert result["sent"] == 2
    assert len(gateway.calls) == 2


def test_preference_with_uncategorized_item_is_skipped(db_session, gateway, throttle, add_recipient):
    add_recipient("r1", categories=["design"])

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload(categories=None))

    assert result["skipped"] == 1
    assert gateway.calls == []


@pytest.mark.parametrize("send", [False, None, "true", 1])
def test_send_notification_must_be_true(db_session, gateway, throttle, add_recipient, send):
    add_recipient("r1")

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload(send=send))

    assert result["message"] == "Ignored"
    assert result["reason"] == "send_notification_disabled"
    assert gateway.calls == []


def test_other_content_type_is_ignored(db_session, gateway, throttle, add_recipient):
    add_recipient("r1")

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload(content_type="article"))

    assert result == {"success": True, "message": "Ignored", "reason": "content_type"}
    assert gateway.calls == []


@pytest.mark.parametrize("topic", [None, "ContentManagement.Entry.unpublish", "ContentManagement.Entry.save"])
@pytest.mark.parametrize(
    "payload",
    [_payload(), {"fields": {}}, {"sys": "abc"}, {}],
    ids=["entry", "no-sys", "sys-not-object", "empty"],
)
def test_non_publish_topic_is_ignored(db_session, gateway, throttle, add_recipient, topic, payload):
    add_recipient("r1")

    result = _handler(db_session, gateway, throttle).handle(topic, payload)

    assert result["reason"] == "topic"
    assert gateway.calls == []


def test_disabled_recipients_are_not_loaded(db_session, gateway, throttle, add_recipient):
    add_recipient("on")
    add_recipient("off", enabled=False)

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload())

    assert result["sent"] == 1
    assert [token for token, _ in gateway.calls] == ["ExponentPushToken[on]"]


def test_dispatch_failures_are_counted_and_do_not_abort(db_session, throttle, add_recipient, history_rows):
    add_recipient("bad-ticket")
    add_recipient("raises")
    add_recipient("no-response")
    add_recipient("good")
    gateway = FakePushGateway(
        per_token={
            "ExponentPushToken[bad-ticket]": ERROR_TICKET,
            "ExponentPushToken[raises]": RuntimeError("boom"),
            "ExponentPushToken[no-response]": None,
        }
    )

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload())

    assert result["sent"] == 1
    assert result["errors"] == 3
    assert result["skipped"] == 0
    assert len(gateway.calls) == 4
    assert [r.user_id for r in history_rows()] == ["good"]


def test_blank_token_is_skipped(db_session, gateway, throttle, add_recipient):
    add_recipient("r1", token="  ")

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload())

    assert result["skipped"] == 1
    assert gateway.calls == []


def test_recipient_store_failure_is_fatal(db_session, gateway, throttle):
    with patch.object(db_session, "query", side_effect=OperationalError("SELECT", {}, Exception("db down"))):
        with pytest.raises(RecipientStoreError):
            _handler(db_session, gateway, throttle).handle(PUBLISH, _payload())
    assert gateway.calls == []


def test_history_write_failure_still_counts_as_sent(db_session, gateway, throttle, add_recipient):
    add_recipient("r1")

    with patch("app.services.publish_handler.record_delivery", return_value=False) as record:
        result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload())

    record.assert_called_once()
    assert result["sent"] == 1
    assert result["errors"] == 0



def test_database_outage_mid_batch_still_attempts_everyone(
    db_session, gateway, throttle, add_recipient, history_rows, db_outage
):
    add_recipient("r1")
    add_recipient("r2")
    add_recipient("r3")
    db_outage.statements.clear()
    db_outage.trip_on_insert = True

    result = _handler(db_session, gateway, throttle).handle(PUBLISH, _payload())

    assert result["sent"] == 3
    assert result["errors"] == 0
    assert len(gateway.calls) == 3
    assert db_outage.selects_from("user_push_tokens") == 1
    db_outage.down = False
    assert history_rows() == []

@pytest.mark.parametrize("payload", [None, [], "text", {"fields": {}}, {"sys": "abc"}])
def test_malformed_payload_raises(db_session, gateway, throttle, payload):
    with pytest.raises(InvalidPayloadError):
        _handler(db_session, gateway, throttle).handle(PUBLISH, payload)


def test_missing_entry_id_on_matching_event_raises(db_session, gateway, throttle):
    payload = _payload()
    del payload["sys"]["id"]

    with pytest.raises(InvalidPayloadError):
        _handler(db_session, gateway, throttle).handle(PUBLISH, payload)


def test_item_from_payload_defaults_and_extra_fields():
    payload = _payload(title=None, categories="architecture", caseNumber=42, slug="north-tower", architect="Studio Gang")

    item = item_from_payload(payload["sys"], payload["fields"])

    assert item.id == "abc123"
    assert item.title == "New Project"
    assert item.categories == ("architecture",)
    assert item.case_number == 42
    assert item.slug == "north-tower"
    assert item.architect == "Studio Gang"


def test_localized_reads_only_en_us():
    fields = {"title": {"de-DE": "Nordturm"}, "slug": {"en-US": "north"}, "architect": "not-nested"}

    assert localized(fields, "title", "fallback") == "fallback"
    assert localized(fields, "slug") == "north"
    assert localized(fields, "architect", "fallback") == "fallback"
    assert localized(fields, "missing") is None


def test_normalize_categories_scalar_list_and_missing():
    assert normalize_categories(None) == ()
    assert normalize_categories("architecture") == ("architecture",)
    assert normalize_categories(["design", " ", None, "urbanism"]) == ("design", "urbanism")
