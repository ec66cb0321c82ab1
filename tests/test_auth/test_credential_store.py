"""Tests for the credential store."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest

from edpear.auth.credential_store import CredentialStore
from edpear.models import ApiKey, Credential, User


class TestLoad:
    def test_missing_file_loads_empty(self, store: CredentialStore) -> None:
        credential = store.load()
        assert credential.token is None
        assert credential.user is None
        assert credential.api_keys == []
        assert credential.is_authenticated is False

    def test_load_does_not_create_anything(self, store: CredentialStore) -> None:
        store.load()
        assert not store.path.exists()
        assert not store.path.parent.exists()

    @pytest.mark.parametrize(
        "content",
        [
            "not json at all",
            "{",
            "[1, 2, 3]",
            '{"token": 5}',
            '{"apiKeys": "nope"}',
            '{"apiKeys": [{"name": "no key field"}]}',
            '{"token": ' + "1" * 5000 + "}",
            "[" * 200000 + "]" * 200000,
        ],
        ids=[
            "not-json",
            "truncated",
            "array",
            "numeric-token",
            "keys-not-list",
            "key-missing",
            "huge-integer",
            "deep-nesting",
        ],
    )
    def test_corrupt_file_loads_empty(self, store: CredentialStore, content: str) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text(content)
        assert store.load() == Credential()

    def test_binary_garbage_loads_empty(self, store: CredentialStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(b"\xff\xfe\x00garbage")
        assert store.load() == Credential()

    def test_directory_in_place_of_file_loads_empty(self, store: CredentialStore) -> None:
        store.path.mkdir(parents=True)
        assert store.load() == Credential()

    def test_reads_camel_case_document(self, store: CredentialStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text(
            json.dumps(
                {
                    "token": "tok",
                    "user": {"id": 7, "name": "Ada", "email": "ada@example.com", "credits": 3},
                    "apiKeys": [
                        {"id": "k1", "key": "ep_1", "name": "One", "createdAt": "2024-05-01"},
                        {"id": "k2", "key": "ep_2", "name": "Two", "usageCount": 9},
                    ],
                }
            )
        )
        credential = store.load()
        assert credential.token == "tok"
        assert credential.user is not None
        assert credential.user.email == "ada@example.com"
        assert [k.key for k in credential.api_keys] == ["ep_1", "ep_2"]
        assert credential.api_keys[0].created_at == "2024-05-01"
        assert credential.api_keys[1].model_extra == {"usageCount": 9}


class TestSave:
    def test_save_then_load(self, store: CredentialStore) -> None:
        credential = Credential(
            token="tok",
            user=User(name="Ada", email="ada@example.com", credits=10),
            api_keys=[ApiKey(key="ep_a", name="A"), ApiKey(key="ep_b", name="B")],
        )
        assert store.save(credential) is True

        loaded = store.load()
        assert loaded.token == "tok"
        assert loaded.user == credential.user
        assert [k.key for k in loaded.api_keys] == ["ep_a", "ep_b"]

    def test_writes_camel_case_keys(self, store: CredentialStore) -> None:
        store.save(
            Credential(token="tok", api_keys=[ApiKey(key="ep_a", created_at="2024-01-01")])
        )
        data = json.loads(store.path.read_text())
        assert data == {"token": "tok", "apiKeys": [{"key": "ep_a", "createdAt": "2024-01-01"}]}

    def test_empty_credential_is_empty_object(self, store: CredentialStore) -> None:
        store.save(Credential())
        assert store.path.read_text() == "{}\n"

    def test_resave_is_byte_identical(self, store: CredentialStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.save(
            Credential(
                token="tok",
                user=User(id=1, name="Ada", email="ada@example.com", credits=1.5),
                api_keys=[ApiKey(id=3, key="ep_a", name="A", created_at="2024-01-01")],
            )
        )
        before = store.path.read_bytes()

        store.save(store.load())
        assert store.path.read_bytes() == before

    def test_unknown_fields_survive_a_resave(self, store: CredentialStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text(
            json.dumps({"token": "tok", "apiKeys": [{"key": "ep", "usageCount": 4}]})
        )
        store.save(store.load())
        data = json.loads(store.path.read_text())
        assert data["apiKeys"] == [{"key": "ep", "usageCount": 4}]

    def test_file_permissions_are_owner_only(self, store: CredentialStore) -> None:
        store.save(Credential(token="secret"))
        mode = stat.S_IMODE(os.stat(store.path).st_mode)
        assert mode == 0o600

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        store = CredentialStore(tmp_path / "a" / "b" / "config.json")
        assert store.save(Credential(token="tok"))
        assert store.path.is_file()

    def test_no_temp_files_left_behind(self, store: CredentialStore) -> None:
        store.save(Credential(token="one"))
        store.save(Credential(token="two"))
        assert [p.name for p in store.path.parent.iterdir()] == ["config.json"]

    def test_write_failure_returns_false(
        self, tmp_path: Path, quiet_output: object, capfd: pytest.CaptureFixture[str]
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("i am a file")
        store = CredentialStore(blocker / "config.json")

        assert store.save(Credential(token="tok")) is False
        assert "Could not save credentials" in capfd.readouterr().err

    def test_write_failure_keeps_previous_file(
        self, store: CredentialStore, monkeypatch: pytest.MonkeyPatch, quiet_output: object
    ) -> None:
        store.save(Credential(token="old"))

        def _fail(*args: object, **kwargs: object) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("edpear.auth.credential_store._atomic_write", _fail)
        assert store.save(Credential(token="new")) is False
        assert store.load().token == "old"


class TestClear:
    def test_clear_writes_empty_document(self, store: CredentialStore, signed_in: Credential) -> None:
        assert store.clear() is True
        assert store.path.read_text() == "{}\n"
        assert store.load() == Credential()

    def test_clear_resets_in_memory_credential(
        self, store: CredentialStore, signed_in: Credential
    ) -> None:
        store.clear(signed_in)
        assert signed_in.token is None
        assert signed_in.user is None
        assert signed_in.api_keys == []

    def test_clear_when_nothing_stored(self, store: CredentialStore) -> None:
        assert store.clear() is True
        assert store.load().is_authenticated is False
