import base64
import json

import pytest

from codex_profiles.claims import decode_jwt_claims, summarize_profile
from codex_profiles.types import Profile, TokenData


def _segment(payload: bytes, padded: bool) -> str:
    encoded = base64.urlsafe_b64encode(payload).decode("ascii")
    return encoded if padded else encoded.rstrip("=")


@pytest.mark.parametrize("padded", [True, False])
def test_decode_accepts_padded_and_unpadded_payloads(padded: bool) -> None:
    # 17 bytes of JSON needs padding when encoded
    payload = json.dumps({"email": "a@b.io"}).encode()
    token = f"header.{_segment(payload, padded)}.sig"

    assert decode_jwt_claims(token) == {"email": "a@b.io"}


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "only.two",
        "a.b.c.d",
        "header.!!!not-base64!!!.sig",
        f"header.{_segment(b'not json', False)}.sig",
        f"header.{_segment(b'[1, 2, 3]', False)}.sig",
        f"header.{_segment(bytes([0xff, 0xfe, 0xfd]), False)}.sig",
    ],
)
def test_decode_malformed_tokens_yield_no_claims(token) -> None:
    assert decode_jwt_claims(token) is None


def test_summary_derives_display_fields(auth_record) -> None:
    tokens = TokenData(**auth_record["tokens"])
    summary = summarize_profile("p1", Profile(tokens=tokens, last_refresh="2025-01-01T00:00:00.000Z"))

    assert summary.id == "p1"
    assert summary.has_api_key is False
    assert summary.email == "alice@example.com"
    assert summary.plan_type == "plus"
    assert summary.expires_at == "2023-11-14T22:13:20.000Z"
    assert summary.access_token_last4 == tokens.access_token[-4:]
    assert summary.account_id == "acct-123"
    assert summary.last_refresh == "2025-01-01T00:00:00.000Z"
    assert summary.openai_user_sub == "google-oauth2|1234567890"
    assert summary.openai_user_type == "google-oauth2"
    assert summary.id_token["email"] == "alice@example.com"
    assert summary.access_token["client_id"] == "app_test"


def test_summary_falls_back_to_account_id_claim(auth_record) -> None:
    auth_record["tokens"].pop("account_id")
    summary = summarize_profile("p1", Profile(tokens=TokenData(**auth_record["tokens"])))

    assert summary.account_id == "acct-from-claims"


def test_summary_without_tokens_or_pipe_in_sub(make_jwt) -> None:
    api_key_only = summarize_profile("key", Profile(api_key="sk-test"))
    assert api_key_only.has_api_key is True
    assert api_key_only.openai_api_key == "sk-test"
    assert api_key_only.email is None
    assert api_key_only.access_token_last4 is None
    assert api_key_only.id_token is None

    tokens = TokenData(
        id_token=make_jwt({"sub": "plain-subject", "exp": "not-a-number"}),
        access_token="abc",
        refresh_token="r",
    )
    summary = summarize_profile("p2", Profile(tokens=tokens))
    assert summary.openai_user_type is None
    assert summary.openai_user_sub == "plain-subject"
    assert summary.expires_at is None
    assert summary.access_token_last4 is None
