"""
모더레이션 모듈

발신자 차단/허용 목록과 특권 명령어(!ban, !unban, !whitelist ...)를 관리합니다.
목록은 JSON 파일에 저장되어 재시작 후에도 유지됩니다.
"""

import json
from pathlib import Path
from typing import Iterable, Optional, Sequence, Set, Union

from loguru import logger

from .classifier import DEFAULT_PRIVILEGED_TABLE, CommandRule, build_rules, match_first


def normalize_name(name: str) -> str:
    """Chat names compare case-insensitively and may be written as @name."""
    return name.strip().lstrip("@").lower()


class JsonUserList:
    """A set of user names persisted as a JSON array."""

    def __init__(self, path: Optional[Union[str, Path]] = None, name: str = "list"):
        self._path = Path(path) if path else None
        self._name = name
        self._users: Set[str] = set()
        self._load()

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._users = {normalize_name(user) for user in data}
            logger.info(f"[Moderation] Loaded {len(self._users)} user(s) into {self._name}")
        except (OSError, json.JSONDecodeError, TypeError) as e:
            logger.error(f"[Moderation] Failed to load {self._name} from {self._path}: {e}")

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(sorted(self._users), f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.error(f"[Moderation] Failed to save {self._name} to {self._path}: {e}")

    def __contains__(self, user: str) -> bool:
        return normalize_name(user) in self._users

    def __len__(self) -> int:
        return len(self._users)

    def add(self, user: str) -> None:
        self._users.add(normalize_name(user))
        self._save()

    def remove(self, user: str) -> None:
        self._users.discard(normalize_name(user))
        self._save()


class ModerationLists:
    """Block list, allow list and administrator standing."""

    def __init__(
        self,
        blacklist: JsonUserList,
        whitelist: JsonUserList,
        admins: Iterable[str] = (),
    ):
        self.blacklist = blacklist
        self.whitelist = whitelist
        self._admins = {normalize_name(admin) for admin in admins if admin}

    def is_blocked(self, sender: str) -> bool:
        return sender in self.blacklist

    def is_allowed(self, sender: str) -> bool:
        return sender in self.whitelist

    def has_admin_standing(self, sender: str) -> bool:
        return normalize_name(sender) in self._admins

    def block(self, user: str) -> None:
        self.blacklist.add(user)

    def unblock(self, user: str) -> None:
        self.blacklist.remove(user)

    def allow(self, user: str) -> None:
        self.whitelist.add(user)

    def disallow(self, user: str) -> None:
        self.whitelist.remove(user)


class PrivilegedCommandHandler:
    """
    Evaluates the privileged rule table for allowed senders.

    Runs independently of the main classification. ``ban``/``unban`` need
    allow-list or admin standing; allow-list mutations need admin standing.
    """

    def __init__(
        self,
        lists: ModerationLists,
        rules: Optional[Sequence[CommandRule]] = None,
    ):
        self._lists = lists
        self.rules = tuple(rules) if rules is not None else build_rules(DEFAULT_PRIVILEGED_TABLE)

    def handle(self, sender: str, text: str) -> Optional[str]:
        """
        Apply a privileged command if the sender may use it.

        Returns:
            Optional[str]: Chat reply to send, or None if nothing happened
        """
        is_admin = self._lists.has_admin_standing(sender)
        if not self._lists.is_allowed(sender) and not is_admin:
            return None

        result = match_first(self.rules, text)
        if result is None:
            return None

        target = normalize_name(result.params[1] or "")
        if not target:
            return None

        if result.command_id == "ban":
            self._lists.block(target)
            logger.info(f"[Moderation] {sender} banned {target}")
            return (
                f"{target} added to blacklist; they can no longer perform commands "
                "until you !unban them."
            )
        if result.command_id == "unban":
            self._lists.unblock(target)
            logger.info(f"[Moderation] {sender} unbanned {target}")
            return f"{target} removed from blacklist; they can now run commands."
        if result.command_id == "whitelist" and is_admin:
            self._lists.allow(target)
            logger.info(f"[Moderation] {sender} whitelisted {target}")
            return f"{target} whitelisted for mod commands."
        if result.command_id == "whitelistremove" and is_admin:
            self._lists.disallow(target)
            logger.info(f"[Moderation] {sender} removed {target} from whitelist")
            return f"{target} removed from whitelist."
        return None
