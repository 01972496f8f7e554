"""Tests for the proprietary JSON payload: encode, validate and accept."""

import base64
import json

import pytest

from tracelink.context import (
    accept_inbound_payload,
    convert_payload_to_object,
    object_get_account_id,
    object_get_trusted_key,
)
from tracelink.errors import ErrorToken, TraceError
from tracelink.tracing import Payload, TraceMetadata, create_payload_text


def make_metadata():
    metadata = TraceMetadata()
    metadata.account_id = "1234"
    metadata.app_id = "9876"
    metadata.txn_id = "txnid"
    metadata.trace_id = "traceid"
    metadata.trusted_key = "1234"
    metadata.priority = 0.5
    metadata.sampled = True
    return metadata


def payload_text(data, version=(0, 1)):
    return json.dumps({"v": list(version), "d": data})


VALID_DATA = {
    "ty": "App",
    "ac": "9123",
    "ap": "51424",
    "id": "27856f70d3d314b7",
    "tr": "3221bf09aa0bcf0d",
    "tx": "6789",
    "pr": 0.1234,
    "sa": False,
    "ti": 1482959525577,
}


class TestCreatePayload:
    def test_metadata_required(self):
        assert create_payload_text(None, "spanid") is None

    def test_parent_or_txn_id_required(self):
        metadata = TraceMetadata()
        assert create_payload_text(metadata, None) is None

    def test_txn_id_only(self):
        metadata = TraceMetadata()
        metadata.priority = 0.5
        payload = Payload(metadata, txn_id="txnid", timestamp=60000)

        assert payload.as_text() == (
            '{"v":[0,1],"d":{"ty":"App","tx":"txnid","pr":0.5,"sa":false,"ti":60}}'
        )

    def test_txn_id_from_metadata(self):
        metadata = make_metadata()
        obj = Payload(metadata, parent_id="spanid").as_dict()
        assert obj["d"]["tx"] == "txnid"

    def test_all_fields(self):
        metadata = make_metadata()
        metadata.trusted_key = "777"
        payload = Payload(metadata, parent_id="spanid", timestamp=60000)

        assert payload.as_text() == (
            '{"v":[0,1],"d":{"ty":"App","ac":"1234","ap":"9876","id":"spanid",'
            '"tr":"traceid","tx":"txnid","pr":0.5,"sa":true,"ti":60,"tk":"777"}}'
        )

    def test_trusted_key_omitted_when_equal_to_account(self):
        obj = Payload(make_metadata(), parent_id="spanid").as_dict()
        assert "tk" not in obj["d"]

    def test_http_safe(self):
        payload = Payload(make_metadata(), parent_id="spanid", timestamp=60000)
        decoded = base64.b64decode(payload.http_safe()).decode("utf-8")
        assert decoded == payload.as_text()

    def test_http_safe_without_text(self):
        assert Payload(None).http_safe() == ""


class TestConvertPayload:
    def test_valid(self):
        error = ErrorToken()
        obj = convert_payload_to_object(payload_text(VALID_DATA), error)

        assert obj is not None
        assert not error
        assert object_get_account_id(obj) == "9123"
        assert object_get_trusted_key(obj) is None

    @pytest.mark.parametrize("text", [None, ""])
    def test_null(self, text):
        error = ErrorToken()
        assert convert_payload_to_object(text, error) is None
        assert error.error is TraceError.ACCEPT_NULL

    @pytest.mark.parametrize("text", ["{", "[1,2,3]", "\"text\"", "{}"])
    def test_not_a_payload(self, text):
        error = ErrorToken()
        assert convert_payload_to_object(text, error) is None
        assert error.error is TraceError.ACCEPT_PARSE_EXCEPTION

    @pytest.mark.parametrize("text", ["[" * 100000, "{\"v\":" * 100000])
    def test_deeply_nested_text(self, text):
        error = ErrorToken()
        assert convert_payload_to_object(text, error) is None
        assert error.error is TraceError.ACCEPT_PARSE_EXCEPTION

    def test_version_must_be_integer_list(self):
        error = ErrorToken()
        text = json.dumps({"v": "0.1", "d": VALID_DATA})
        assert convert_payload_to_object(text, error) is None
        assert error.error is TraceError.ACCEPT_PARSE_EXCEPTION

    def test_newer_major_version_rejected(self):
        error = ErrorToken()
        assert convert_payload_to_object(payload_text(VALID_DATA, (1, 0)), error) is None
        assert error.error is TraceError.ACCEPT_MAJOR_VERSION

    def test_newer_minor_version_accepted(self):
        error = ErrorToken()
        assert convert_payload_to_object(payload_text(VALID_DATA, (0, 9)), error)
        assert not error

    def test_missing_guid_and_txn_id(self):
        data = {k: v for k, v in VALID_DATA.items() if k not in ("id", "tx")}
        error = ErrorToken()
        assert convert_payload_to_object(payload_text(data), error) is None
        assert error.error is TraceError.ACCEPT_PARSE_EXCEPTION

    def test_numeric_guid_and_txn_id_do_not_count(self):
        data = dict(VALID_DATA, id=27856, tx=6789)
        error = ErrorToken()
        assert convert_payload_to_object(payload_text(data), error) is None
        assert error.error is TraceError.ACCEPT_PARSE_EXCEPTION

    @pytest.mark.parametrize("key", ["id", "tx"])
    def test_either_guid_or_txn_id_suffices(self, key):
        data = dict(VALID_DATA)
        del data[key]
        assert convert_payload_to_object(payload_text(data)) is not None

    @pytest.mark.parametrize("key", ["ty", "ac", "ap", "tr", "ti"])
    def test_missing_required_field(self, key):
        data = dict(VALID_DATA)
        del data[key]
        error = ErrorToken()
        assert convert_payload_to_object(payload_text(data), error) is None
        assert error.error is TraceError.ACCEPT_PARSE_EXCEPTION

    def test_numeric_account_id_accepted(self):
        data = dict(VALID_DATA, ac=9123, tk=33)
        obj = convert_payload_to_object(payload_text(data))
        assert object_get_account_id(obj) == "9123"
        assert object_get_trusted_key(obj) == "33"

    def test_existing_error_is_kept(self):
        error = ErrorToken(TraceError.ACCEPT_MULTIPLE)
        assert convert_payload_to_object(payload_text(VALID_DATA), error) is None
        assert error.error is TraceError.ACCEPT_MULTIPLE


class TestAcceptPayload:
    def test_fields_copied(self):
        metadata = TraceMetadata()
        obj = convert_payload_to_object(payload_text(VALID_DATA))
        error = ErrorToken()

        assert accept_inbound_payload(metadata, obj, "HTTP", error)
        assert not error

        inbound = metadata.inbound
        assert inbound.set
        assert inbound.type == "App"
        assert inbound.account_id == "9123"
        assert inbound.app_id == "51424"
        assert inbound.guid == "27856f70d3d314b7"
        assert inbound.txn_id == "6789"
        assert inbound.transport_type == "HTTP"
        assert inbound.timestamp == 1482959525577 * 1000
        assert metadata.trace_id == "3221bf09aa0bcf0d"
        assert metadata.priority == pytest.approx(0.1234)
        assert metadata.sampled is False

    def test_missing_priority_and_sampled_keep_local_values(self):
        metadata = TraceMetadata()
        metadata.priority = 0.75
        metadata.sampled = True
        data = {k: v for k, v in VALID_DATA.items() if k not in ("pr", "sa")}
        obj = convert_payload_to_object(payload_text(data))

        assert accept_inbound_payload(metadata, obj, "Kafka")
        assert metadata.priority == 0.75
        assert metadata.sampled is True

    @pytest.mark.parametrize("priority", ["1" + "0" * 400, "1e400"])
    def test_out_of_range_priority_keeps_local_value(self, priority):
        metadata = TraceMetadata()
        metadata.priority = 0.75
        text = payload_text(VALID_DATA).replace('"pr": 0.1234', '"pr": ' + priority)
        obj = convert_payload_to_object(text)

        assert accept_inbound_payload(metadata, obj, "HTTP")
        assert metadata.priority == 0.75
        assert metadata.inbound_is_set()

    def test_unknown_transport_type(self):
        metadata = TraceMetadata()
        obj = convert_payload_to_object(payload_text(VALID_DATA))
        assert accept_inbound_payload(metadata, obj, "Smoke Signal")
        assert metadata.inbound.transport_type == "Unknown"

    def test_missing_metadata(self):
        error = ErrorToken()
        obj = convert_payload_to_object(payload_text(VALID_DATA))
        assert not accept_inbound_payload(None, obj, "HTTP", error)
        assert error.error is TraceError.ACCEPT_EXCEPTION

    def test_missing_object(self):
        metadata = TraceMetadata()
        error = ErrorToken()
        assert not accept_inbound_payload(metadata, None, "HTTP", error)
        assert error.error is TraceError.ACCEPT_PARSE_EXCEPTION
        assert not metadata.inbound_is_set()

    def test_existing_error_is_noop(self):
        metadata = TraceMetadata()
        obj = convert_payload_to_object(payload_text(VALID_DATA))
        error = ErrorToken(TraceError.ACCEPT_NULL)
        assert not accept_inbound_payload(metadata, obj, "HTTP", error)
        assert not metadata.inbound_is_set()
        assert error.error is TraceError.ACCEPT_NULL
