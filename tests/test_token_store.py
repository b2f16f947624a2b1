#!/usr/bin/env python
"""Tests for bearer token storage."""

from coursebag.api.token_store import TokenStore


class TestTokenStore:
    """Test the JSON token file."""

    def test_missing_file(self, tmp_path):
        assert TokenStore(tmp_path / "token.json").get() is None

    def test_set_and_get(self, tmp_path):
        store = TokenStore(tmp_path / "nested" / "token.json")
        store.set("abc")
        assert store.get() == "abc"
        assert TokenStore(store.path).get() == "abc"

    def test_clear(self, tmp_path):
        store = TokenStore(tmp_path / "token.json")
        store.set("abc")
        store.clear()
        assert store.get() is None
        assert not store.path.exists()
        store.clear()

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text("not json")
        assert TokenStore(path).get() is None

    def test_empty_token(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text('{"token": ""}')
        assert TokenStore(path).get() is None

    def test_default_path(self):
        path = TokenStore._default_path()
        assert path.name == "token.json"
        assert "coursebag" in str(path)
