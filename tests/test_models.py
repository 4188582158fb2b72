"""Tests for the token bundle model"""

import datetime

import pytest

from gcloud_oauth.models import TokenBundle, parse_timestamp
from tests.helpers import make_bundle, token_response

NOW = datetime.datetime(2025, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


def test_dict_round_trip_preserves_all_fields():
    bundle = make_bundle(now=NOW)
    assert TokenBundle.from_dict(bundle.to_dict()) == bundle


def test_dict_round_trip_without_refresh_token():
    bundle = make_bundle(refresh_token=None, now=NOW)
    restored = TokenBundle.from_dict(bundle.to_dict())
    assert restored.refresh_token is None
    assert restored == bundle


def test_from_token_response_uses_absolute_expiry():
    bundle = TokenBundle.from_token_response(token_response(expires_in=3600), "u@x.com", now=NOW)
    assert bundle.token_expiry == NOW + datetime.timedelta(seconds=3600)
    assert bundle.access_token == "AT1"
    assert bundle.refresh_token == "RT1"
    assert bundle.scope_identity == "u@x.com"


def test_from_token_response_keeps_previous_tokens_when_omitted():
    payload = token_response(email=None, refresh_token=None)
    bundle = TokenBundle.from_token_response(
        payload, "u@x.com", refresh_token="old-refresh", id_token="old-id", now=NOW
    )
    assert bundle.refresh_token == "old-refresh"
    assert bundle.id_token == "old-id"


def test_expires_in_seconds_never_negative():
    bundle = make_bundle(expires_in=30, now=NOW)
    assert bundle.expires_in_seconds(NOW) == 30
    assert bundle.expires_in_seconds(NOW + datetime.timedelta(hours=1)) == 0


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"access_token": "a", "id_token": "i", "token_expiry": "not a date", "scope_identity": "u@x.com"},
        {"access_token": 1, "id_token": "i", "token_expiry": "2025-01-01T00:00:00Z", "scope_identity": "u@x.com"},
        {"access_token": "a", "id_token": "i", "token_expiry": None, "scope_identity": "u@x.com"},
        {"access_token": "a", "id_token": "i", "token_expiry": 12345, "scope_identity": "u@x.com"},
        {"access_token": "a", "id_token": "i", "token_expiry": "2025-01-01T00:00:00Z", "scope_identity": 7},
        {"access_token": "a", "id_token": "i", "token_expiry": "2025-01-01T00:00:00Z", "scope_identity": ""},
        {
            "access_token": "a",
            "id_token": "i",
            "refresh_token": ["r"],
            "token_expiry": "2025-01-01T00:00:00Z",
            "scope_identity": "u@x.com",
        },
        ["not", "a", "dict"],
    ],
)
def test_from_dict_rejects_malformed_data(data):
    with pytest.raises((KeyError, TypeError, ValueError)):
        TokenBundle.from_dict(data)


def test_parse_timestamp_accepts_zulu_and_naive_values():
    assert parse_timestamp("2025-01-01T12:00:00Z") == NOW
    assert parse_timestamp("2025-01-01T12:00:00") == NOW
    assert parse_timestamp("2025-01-01T13:00:00+01:00") == NOW


def test_to_output_has_only_public_fields():
    output = make_bundle(now=NOW).to_output()
    assert set(output) == {"access_token", "id_token", "token_expiry"}
    assert output["token_expiry"] == "2025-01-01T13:00:00Z"


def test_parse_timestamp_rejects_non_strings():
    with pytest.raises(TypeError):
        parse_timestamp(None)
    with pytest.raises(TypeError):
        parse_timestamp(1735732800)
