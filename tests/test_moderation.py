"""Tests for moderation lists and privileged commands."""

import json

import pytest

from chat_plays.moderation import (
    JsonUserList,
    ModerationLists,
    PrivilegedCommandHandler,
    normalize_name,
)


@pytest.fixture
def lists(tmp_path):
    return ModerationLists(
        blacklist=JsonUserList(tmp_path / "blacklist.json", name="blacklist"),
        whitelist=JsonUserList(tmp_path / "whitelist.json", name="whitelist"),
        admins=["Streamer"],
    )


@pytest.fixture
def handler(lists):
    return PrivilegedCommandHandler(lists)


def test_normalize_name():
    assert normalize_name(" @SomeUser ") == "someuser"


class TestJsonUserList:
    def test_persists_and_reloads(self, tmp_path):
        path = tmp_path / "data" / "list.json"
        users = JsonUserList(path)
        users.add("@Alice")
        users.add("bob")
        users.remove("bob")

        assert json.loads(path.read_text(encoding="utf-8")) == ["alice"]
        reloaded = JsonUserList(path)
        assert "ALICE" in reloaded
        assert len(reloaded) == 1

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("{not json", encoding="utf-8")
        assert len(JsonUserList(path)) == 0

    def test_in_memory_list(self):
        users = JsonUserList()
        users.add("carol")
        assert "carol" in users


class TestPrivilegedCommands:
    def test_admin_can_ban_and_unban(self, handler, lists):
        reply = handler.handle("streamer", "!ban Troll")
        assert reply.startswith("troll added to blacklist")
        assert lists.is_blocked("troll")

        reply = handler.handle("streamer", "!unban @troll")
        assert reply == "troll removed from blacklist; they can now run commands."
        assert not lists.is_blocked("troll")

    def test_whitelisted_user_can_ban(self, handler, lists):
        lists.allow("mod")
        assert handler.handle("mod", "!ban troll") is not None
        assert lists.is_blocked("troll")

    def test_whitelisted_user_cannot_whitelist(self, handler, lists):
        lists.allow("mod")
        assert handler.handle("mod", "!whitelist friend") is None
        assert not lists.is_allowed("friend")

    def test_admin_manages_whitelist(self, handler, lists):
        assert handler.handle("streamer", "!whitelist friend") == "friend whitelisted for mod commands."
        assert lists.is_allowed("friend")

        assert handler.handle("streamer", "!whitelistremove friend") == "friend removed from whitelist."
        assert not lists.is_allowed("friend")

    def test_regular_user_is_ignored(self, handler, lists):
        assert handler.handle("viewer", "!ban troll") is None
        assert not lists.is_blocked("troll")

    def test_non_command_text(self, handler):
        assert handler.handle("streamer", "left") is None
