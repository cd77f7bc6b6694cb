import json
import os

import pytest

from codex_profiles import (
    CredentialStore,
    Profile,
    ProfileNotFoundError,
    ProfileParseError,
    TokenData,
)
from codex_profiles.credential_store import is_valid_profile_id


def test_persist_then_load_returns_the_same_record(store: CredentialStore) -> None:
    profile = Profile(
        api_key="sk-abc",
        tokens=TokenData(
            id_token="a.b.c",
            access_token="x.y.z",
            refresh_token="r1",
            account_id="acct-1",
        ),
        last_refresh="2025-02-03T04:05:06.789Z",
        extra={"custom_field": {"kept": True}},
    )

    store.persist_profile("p1", profile)

    assert store.load_profile("p1") == profile


def test_persisted_record_uses_auth_json_layout(store: CredentialStore) -> None:
    store.persist_profile("p1", Profile(tokens=TokenData("a.b.c", "x.y.z", "r1")))

    raw = json.loads(store.profile_path("p1").read_text(encoding="utf-8"))
    assert raw["tokens"] == {"id_token": "a.b.c", "access_token": "x.y.z", "refresh_token": "r1"}
    assert "OPENAI_API_KEY" not in raw


def test_list_skips_unreadable_records(store, write_auth_file, auth_record) -> None:
    write_auth_file("good-1", auth_record)
    write_auth_file("good-2", {"OPENAI_API_KEY": "sk-only"})
    write_auth_file("broken-json", "{not json")
    write_auth_file("array", "[1, 2]")
    write_auth_file("bad-tokens", {"tokens": "nope"})
    write_auth_file("bad-field", {"last_refresh": 12})
    (store.directory / "latin1.auth.json").write_bytes(b'{"OPENAI_API_KEY": "caf\xe9"}')
    write_auth_file("deep", "[" * 200_000 + "]" * 200_000)
    (store.directory / "notes.txt").write_text("ignored", encoding="utf-8")
    (store.directory / "auth.json").write_text("{}", encoding="utf-8")

    summaries = store.list_profiles()

    assert [s.id for s in summaries] == ["good-1", "good-2"]
    assert summaries[1].has_api_key is True


def test_list_without_directory_is_empty(store: CredentialStore) -> None:
    assert not store.directory.exists()
    assert store.list_profiles() == []


def test_load_missing_profile_raises_not_found(store: CredentialStore) -> None:
    with pytest.raises(ProfileNotFoundError) as excinfo:
        store.load_profile("ghost")

    assert "ghost" in str(excinfo.value)


@pytest.mark.parametrize(
    "raw",
    [
        b"{oops",
        b'{"OPENAI_API_KEY": "caf\xe9"}',
        b"[" * 200_000 + b"]" * 200_000,
    ],
)
def test_load_corrupt_profile_raises_parse_error(store, raw: bytes) -> None:
    store.directory.mkdir(parents=True)
    store.profile_path("corrupt").write_bytes(raw)

    with pytest.raises(ProfileParseError) as excinfo:
        store.load_profile("corrupt")

    assert excinfo.value.profile_id == "corrupt"
    assert "corrupt" in excinfo.value.message


@pytest.mark.parametrize("profile_id", ["", "../escape", "a/b", ".hidden"])
def test_ids_that_leave_the_directory_are_rejected(store, profile_id: str) -> None:
    assert is_valid_profile_id(profile_id) is False
    with pytest.raises(ProfileNotFoundError):
        store.load_profile(profile_id)
    with pytest.raises(ProfileNotFoundError):
        store.persist_profile(profile_id, Profile())


def test_persist_replaces_file_without_leaving_temp_files(store: CredentialStore) -> None:
    store.persist_profile("p1", Profile(tokens=TokenData("a.b.c", "x.y.z", "r1")))
    before = os.stat(store.profile_path("p1"))

    store.persist_profile("p1", Profile(tokens=TokenData("a.b.c", "x.y.z", "r2")))
    after = os.stat(store.profile_path("p1"))

    assert after.st_ino != before.st_ino
    assert store.load_profile("p1").tokens.refresh_token == "r2"
    assert sorted(os.listdir(store.directory)) == ["p1.auth.json"]


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
def test_persisted_records_are_owner_only(store: CredentialStore) -> None:
    store.persist_profile("p1", Profile(api_key="sk-abc"))

    mode = os.stat(store.profile_path("p1")).st_mode & 0o777
    assert mode == 0o600
