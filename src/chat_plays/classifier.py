"""
Chat line classification.

Maps a raw chat line to at most one command id using an ordered table of
regular expressions. The first rule that matches wins, so broad patterns
(``click``) must stay below the narrower ones they overlap with.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from loguru import logger

if TYPE_CHECKING:
    from .moderation import ModerationLists


@dataclass(frozen=True, slots=True)
class CommandRule:
    """A single compiled command pattern."""

    command_id: str
    pattern: re.Pattern[str]

    def match(self, text: str) -> Optional[Tuple[Optional[str], ...]]:
        """Return ``(whole_match, group1, group2, ...)`` or None."""
        found = self.pattern.search(text)
        if found is None:
            return None
        return (found.group(0), *found.groups())


@dataclass(frozen=True)
class Classification:
    """Result of a successful classification."""

    command_id: str
    params: Tuple[Optional[str], ...]


# ---------------------------------------------------------------------------
# Default rule tables: (command id, pattern, flags). Order is priority.
# ---------------------------------------------------------------------------
_MOVE = r"((mouse|pos|click|move) ?)*"

DEFAULT_COMMAND_TABLE: Tuple[Tuple[str, str, int], ...] = (
    ("esc", r"^esc$", 0),
    ("center", rf"^{_MOVE}center$", re.I),
    ("upleft", rf"^{_MOVE}(up ?left|left ?up) ?([1-9])?$", re.I),
    ("upright", rf"^{_MOVE}(up ?right|right ?up) ?([1-9])?$", re.I),
    ("downright", rf"^{_MOVE}(down ?right|right ?down) ?([1-9])?$", re.I),
    ("downleft", rf"^{_MOVE}(down ?left|left ?down) ?([1-9])?$", re.I),
    ("left", rf"^{_MOVE}left ?([1-9])?$", re.I),
    ("up", rf"^{_MOVE}up ?([1-9])?$", re.I),
    ("right", rf"^{_MOVE}right ?([1-9])?$", re.I),
    ("down", rf"^{_MOVE}down ?([1-9])?$", re.I),
    ("repeat", r"^(mouse ?)?(repeat|rep|repeat ?on|rep ?on|repeat ?enable|rep ?enable)$", re.I),
    ("repeatoff", r"^(mouse ?)?(repeat ?off|rep ?off|repeat ?disable|rep ?disable)$", re.I),
    ("str", r"^str$", re.I),
    ("dex", r"^dex$", re.I),
    ("vit", r"^vit$", re.I),
    ("energy", r"^energy$", re.I),
    ("belt", r"^belt ?([1-4])$", re.I),
    ("belt pos", r"^belt ?(pos|position) ?([1-4])$", re.I),
    ("tree tab", r"^tree ?tab ?([1-3])$", re.I),
    ("tree row", r"^tree ?row ?([1-6])$", re.I),
    ("tree col", r"^tree ?col ?([1-3])$", re.I),
    ("skill row", r"^(left|right)? ?skill ?row ?([1-5])$", re.I),
    ("right col", r"^right ?(skill ?)?col ?([1-9]|10)$", re.I),
    ("left col", r"^left ?(skill ?)?col ?([1-9]|10)$", re.I),
    ("inv row", r"^inv ?row ?([1-4])$", re.I),
    ("inv col", r"^inv ?col ?([1-9]|10)$", re.I),
    ("stash row", r"^stash ?row ?([1-8])$", re.I),
    ("stash col", r"^stash ?col ?([1-6])$", re.I),
    ("quest row", r"^quest ?row ?([1-2])$", re.I),
    ("quest col", r"^quest ?col ?([1-3])$", re.I),
    ("quest speech", r"^quest ?speech$", re.I),
    ("repair", r"^repair$", re.I),
    ("repair all", r"^repair ?all$", re.I),
    ("vendor row", r"^vendor ?row ?([1-9]|10)$", re.I),
    ("vendor col", r"^vendor ?col ?([1-9]|10)$", re.I),
    ("cube row", r"^cube ?row ?([1-4])$", re.I),
    ("cube col", r"^cube ?col ?([1-3])$", re.I),
    ("cube transmute", r"^cube ?transmute$", re.I),
    ("orifice", r"^orifice$", re.I),
    ("orifice ok", r"^orifice ?ok$", re.I),
    ("inv slot", r"^(inv|inventory) ?(weapon|offhand|head|neck|chest|gloves|lring|rring|belt|boots)$", re.I),
    ("merc slot", r"^merc ?(weapon|offhand|head|chest)$", re.I),
    ("inv gold", r"^inv ?gold$", re.I),
    ("stash gold", r"^stash ?gold$", re.I),
    ("wp", r"^wp ?([1-9])$", re.I),
    ("wp tab", r"^wp ?tab ?([1-5])$", re.I),
    ("click", r"^(((mouse ?|button ?)*(left ?)?)?(click|leftclick|left click|lclick)|(mouse ?|button ?|click ?)+left) ?([1-9])?", re.I),
    ("rclick", r"^(((mouse ?|button ?)*(right ?)?)?((attack[^1-9]*)|(rclick|right click|rightclick))|(mouse ?|button ?|click ?)+right) ?([1-9])?", re.I),
    ("close", r"^(close|clear) ?([1-9])?$", re.I),
    ("enter", r"^(enter) ?([1-9])?$", re.I),
    ("number", r"^([1-9])$", re.I),
    ("fkey", r"^((use|skill|f) ?)+([1-8])$", re.I),
    ("numpad", r"^num([0-7])$", re.I),
    ("run", r"^(run|walk|r) ?([1-9])?$", re.I),
    ("swap", r"^(swap|w) ?([1-9])?$", re.I),
    ("left menu", r"left ?(menu|menu|abilities|ability|skill|skills)$", re.I),
    ("right menu", r"^right ?(menu|menu|abilities|ability|skill|skills)$", re.I),
    ("stats", r"^(stats|char|character|c)([1-9])?$", re.I),
    ("inv", r"^(i|inv|inventory|bag|bags)([1-9])?$", re.I),
    ("skills", r"^(skill|skills|tree|skill tree|skilltree|talents)([1-9])?$", re.I),
    ("map", r"^(map|m)([1-9])?$", re.I),
    ("quests", r"^(q|quest|quests)([1-9])?$", re.I),
    ("merc", r"^(merc)([1-9])?$", re.I),
    ("mapfade", r"^(map ?fade|fade ?map)$", re.I),
    ("showloot", r"^(show ?loot|loot ?show|loot|alt)$", re.I),
    ("social", r"^(social|talk|gossip) ?([1-6])$", re.I),
    ("setplayers", r"^players ?([1-8])$", re.I),
    (
        "bindskill",
        r"^((((skill|bind|f) ?)+([1-8]) ?((left|right) ?)row ?([1-5]) ?col ?([1-9]|10))"
        r"|(((skill|bind|f) ?)+([1-8]) ?row ?([1-5]) ?col ?([1-9]|10) ? (left|right)))$",
        re.I,
    ),
)

DEFAULT_PRIVILEGED_TABLE: Tuple[Tuple[str, str, int], ...] = (
    ("ban", r"^!ban ?([^ ]+)$", re.I),
    ("unban", r"^!unban ?([^ ]+)$", re.I),
    ("whitelist", r"^!whitelist ?([^ ]+)$", re.I),
    ("whitelistremove", r"^!whitelist ?remove ?([^ ]+)$", re.I),
)


def build_rules(table: Iterable[Tuple[str, str, int]]) -> Tuple[CommandRule, ...]:
    """Compile a ``(command_id, pattern, flags)`` table, keeping its order."""
    return tuple(
        CommandRule(command_id=command_id, pattern=re.compile(pattern, flags))
        for command_id, pattern, flags in table
    )


def match_first(rules: Sequence[CommandRule], text: str) -> Optional[Classification]:
    """Evaluate rules in order and return the first match."""
    for rule in rules:
        params = rule.match(text)
        if params is not None:
            return Classification(command_id=rule.command_id, params=params)
    return None


class CommandClassifier:
    """
    Moderation gate + main rule table.

    Blocked senders are rejected before any pattern is evaluated. Filtered
    commands are never forwarded, and throttled commands are accepted at
    most once per configured window (ms).
    """

    def __init__(
        self,
        rules: Optional[Sequence[CommandRule]] = None,
        moderation: Optional["ModerationLists"] = None,
        filtered_commands: Iterable[str] = (),
        throttled_commands: Optional[Mapping[str, int]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rules = tuple(rules) if rules is not None else build_rules(DEFAULT_COMMAND_TABLE)
        self._moderation = moderation
        self._filtered = frozenset(filtered_commands)
        self._throttled: Dict[str, int] = dict(throttled_commands or {})
        self._last_accepted: Dict[str, float] = {}
        self._clock = clock

    def classify(self, sender: str, text: str) -> Optional[Classification]:
        return self.admit(sender, self.match(sender, text))

    def match(self, sender: str, text: str) -> Optional[Classification]:
        """First rule hit for a sender that is not blocked, before filtering."""
        if self._moderation is not None and self._moderation.is_blocked(sender):
            return None
        return match_first(self.rules, text)

    def admit(self, sender: str, result: Optional[Classification]) -> Optional[Classification]:
        """Drop filtered commands and commands inside their throttle window."""
        if result is None:
            return None

        if result.command_id in self._filtered:
            logger.debug(f"[Classifier] '{result.command_id}' is filtered")
            return None

        if self._is_throttled(result.command_id):
            logger.debug(f"[Classifier] '{result.command_id}' throttled for {sender}")
            return None

        return result

    def _is_throttled(self, command_id: str) -> bool:
        window = self._throttled.get(command_id)
        if not window:
            return False
        now = self._clock()
        last = self._last_accepted.get(command_id)
        if last is not None and (now - last) * 1000 < window:
            return True
        self._last_accepted[command_id] = now
        return False
