from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from pyfeedbridge.exceptions import FeedBridgeMessageError
from pyfeedbridge.ingestion.normalize import parse_number_list, parse_timestamp, round_half_up, safe_float
from pyfeedbridge.ingestion.pull import reading_from_pull_body
from pyfeedbridge.ingestion.push import FeedEvent, parse_push_message

_RECEIVED = datetime(2026, 2, 2, 10, 0, tzinfo=UTC)


def test_safe_float() -> None:
    assert safe_float("1.5") == 1.5
    assert safe_float(3) == 3.0
    assert safe_float(True) is None
    assert safe_float("nan") is None
    assert safe_float("inf") is None
    assert safe_float("") is None
    assert safe_float(None) is None


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.4999) == 2
    assert round_half_up(-2.5) == -2


def test_parse_number_list_requires_every_token() -> None:
    assert parse_number_list("1, 2 3") == [1.0, 2.0, 3.0]
    assert parse_number_list("1,two") is None
    assert parse_number_list("   ") is None


def test_parse_timestamp_variants() -> None:
    expected = datetime(2026, 2, 2, 10, 0, tzinfo=UTC)

    assert parse_timestamp("2026-02-02T10:00:00Z") == expected
    assert parse_timestamp("2026-02-02T11:00:00+01:00") == expected
    assert parse_timestamp("2026-02-02T10:00:00") == expected
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp(1234) is None


def test_push_message_with_timestamp() -> None:
    frame = json.dumps({"feed": "max-data", "value": "75,98", "created_at": "2026-02-02T09:59:00Z"})

    feed, reading = parse_push_message(frame, received_at=_RECEIVED)

    assert feed == "max-data"
    assert reading.value == "75,98"
    assert reading.observed_at == datetime(2026, 2, 2, 9, 59, tzinfo=UTC)


def test_push_message_without_timestamp_uses_receipt_time() -> None:
    feed, reading = parse_push_message(b'{"feed": "temp-data", "value": 21.5}', received_at=_RECEIVED)

    assert feed == "temp-data"
    assert reading.value == "21.5"
    assert reading.observed_at == _RECEIVED


def test_push_message_with_bad_timestamp_uses_receipt_time() -> None:
    _, reading = parse_push_message(
        '{"feed": "temp-data", "value": "20", "created_at": "not a date"}',
        received_at=_RECEIVED,
    )
    assert reading.observed_at == _RECEIVED


def test_push_message_ignores_unknown_fields() -> None:
    feed, _ = parse_push_message('{"feed": " gps-data ", "value": "1,2", "extra": true}')
    assert feed == "gps-data"


@pytest.mark.parametrize(
    "frame",
    [
        "not json",
        "[1, 2]",
        '"just a string"',
        '{"value": "1"}',
        '{"feed": "", "value": "1"}',
        '{"feed": "temp-data"}',
        '{"feed": "temp-data", "value": null}',
        '{"feed": "temp-data", "value": {"nested": 1}}',
    ],
)
def test_malformed_push_frames_raise(frame: str) -> None:
    with pytest.raises(FeedBridgeMessageError):
        parse_push_message(frame)


def test_feed_event_json_omits_missing_timestamp() -> None:
    event = FeedEvent(feed="mpu-data", value="1,2,3")
    assert json.loads(event.to_json()) == {"feed": "mpu-data", "value": "1,2,3"}


def test_pull_body_takes_newest_item() -> None:
    body = [
        {"value": "22.0", "created_at": "2026-02-02T10:05:00Z"},
        {"value": "21.0", "created_at": "2026-02-02T10:00:00Z"},
    ]

    reading = reading_from_pull_body(body, received_at=_RECEIVED)

    assert reading is not None
    assert reading.value == "22.0"
    assert reading.observed_at == datetime(2026, 2, 2, 10, 5, tzinfo=UTC)


def test_pull_body_without_created_at_uses_receipt_time() -> None:
    reading = reading_from_pull_body([{"value": 7}], received_at=_RECEIVED)

    assert reading is not None
    assert reading.value == "7"
    assert reading.observed_at == _RECEIVED


@pytest.mark.parametrize("body", [[], None, {"error": "x"}, ["nope"], [{"value": None}], [{"value": [1]}]])
def test_pull_body_without_reading(body: object) -> None:
    assert reading_from_pull_body(body) is None


@pytest.mark.parametrize("value", ["0001-01-01T00:00:00+01:00", "9999-12-31T23:59:59-01:00"])
def test_parse_timestamp_outside_utc_range(value: str) -> None:
    assert parse_timestamp(value) is None


def test_push_message_with_out_of_range_timestamp_uses_receipt_time() -> None:
    feed, reading = parse_push_message(
        '{"feed": "temp-data", "value": "1", "created_at": "0001-01-01T00:00:00+01:00"}',
        received_at=_RECEIVED,
    )

    assert feed == "temp-data"
    assert reading.observed_at == _RECEIVED


def test_pull_body_with_out_of_range_timestamp_uses_receipt_time() -> None:
    reading = reading_from_pull_body(
        [{"value": "5", "created_at": "9999-12-31T23:59:59-01:00"}],
        received_at=_RECEIVED,
    )

    assert reading is not None
    assert reading.observed_at == _RECEIVED
