import base64
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from codex_profiles import CredentialStore, ProfileSettings

TOKEN_URL = "https://auth.example.test/oauth/token"
CHATGPT_BASE_URL = "https://chatgpt.example.test/backend-api"


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def encode_jwt(claims: Dict[str, Any]) -> str:
    header = _b64url(json.dumps({"alg": "RS256", "typ": "JWT"}).encode())
    payload = _b64url(json.dumps(claims).encode())
    return f"{header}.{payload}.signature"


@pytest.fixture()
def settings(tmp_path: Path) -> ProfileSettings:
    return ProfileSettings.for_root(
        tmp_path,
        token_url=TOKEN_URL,
        chatgpt_base_url=CHATGPT_BASE_URL,
        http_timeout_seconds=5.0,
    )


@pytest.fixture()
def store(settings: ProfileSettings) -> CredentialStore:
    return CredentialStore(settings)


@pytest.fixture()
def make_jwt() -> Callable[[Dict[str, Any]], str]:
    return encode_jwt


@pytest.fixture()
def write_auth_file(settings: ProfileSettings) -> Callable[..., Path]:
    """Write a raw `<id>.auth.json` record (dicts are JSON-encoded, strings written as is)."""

    def _write(profile_id: str, record: Any, directory: Optional[Path] = None) -> Path:
        target_dir = directory or settings.auth_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / f"{profile_id}.auth.json"
        body = record if isinstance(record, str) else json.dumps(record)
        path.write_text(body, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def auth_record(make_jwt) -> Dict[str, Any]:
    id_token = make_jwt(
        {
            "email": "alice@example.com",
            "exp": 1_700_000_000,
            "sub": "google-oauth2|1234567890",
            "https://api.openai.com/auth": {
                "chatgpt_plan_type": "plus",
                "chatgpt_account_id": "acct-from-claims",
            },
        }
    )
    access_token = make_jwt({"scp": ["openid"], "client_id": "app_test"})
    return {
        "OPENAI_API_KEY": None,
        "tokens": {
            "id_token": id_token,
            "access_token": access_token,
            "refresh_token": "r1",
            "account_id": "acct-123",
        },
        "last_refresh": "2025-01-01T00:00:00.000Z",
    }
