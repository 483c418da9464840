"""
Vote resolution contract and the default in-memory resolver.

The scheduler only talks to a ``VoteResolver``. ``VoteTally`` is a small
implementation of that contract that counts votes per (command, captured
parameters) inside each channel type and resolves actions from the
configured catalog.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from loguru import logger

from .exceptions import UnknownChannelTypeError
from .runtime_state import RuntimeState

if TYPE_CHECKING:
    from .config_manager import Config


@dataclass(frozen=True)
class Action:
    """A resolved, executable unit. Treated as an immutable value."""

    command_id: str
    description: str
    group: str = ""
    channel_type: str = ""
    shell_command: str = ""
    repeat: int = 1
    repeat_delay: int = 0  # ms between repetitions
    continuous: bool = False
    can_be_global_continuous: bool = True

    def delay(self) -> int:
        """Time in ms this action needs to play out."""
        return self.repeat * self.repeat_delay


@dataclass(frozen=True)
class TypeOptions:
    """Read-only options bound to a channel type."""

    start_action: Optional[Action] = None
    min_delay: Optional[int] = None  # ms


@dataclass(frozen=True)
class VoteResult:
    """Returned by ``queue_command`` when a vote was accepted."""

    count: int
    command_id: str
    action: Action


@dataclass(frozen=True)
class PopularAction:
    """Current winner of a channel type."""

    action: Optional[Action]
    count: int = 0


class VoteResolver(Protocol):
    """Contract consumed by the command pipeline and the schedulers."""

    def queue_command(
        self, command_id: str, params: Sequence[Optional[str]]
    ) -> Optional[VoteResult]: ...

    def get_most_popular_action(self, channel_type: str) -> Optional[PopularAction]: ...

    def clear_command_queue(self, channel_type: str) -> None: ...

    def get_options_for_type(self, channel_type: str) -> TypeOptions: ...

    def get_state(self) -> RuntimeState: ...

    def get_command_types(self) -> List[str]: ...


class _TemplateFormatter(string.Formatter):
    """Positional fields past the captured groups format as empty strings."""

    def get_value(self, key, args, kwargs):
        if isinstance(key, int):
            return args[key] if key < len(args) else ""
        return super().get_value(key, args, kwargs)


_formatter = _TemplateFormatter()


@dataclass(frozen=True)
class ActionTemplate:
    """
    Catalog entry that turns a classified command into an ``Action``.

    ``description`` and ``shell_command`` are ``str.format`` templates. The
    positional arguments are the classifier params (``{0}`` is the whole
    matched text, ``{1}`` the first group, ...). ``shell_command`` also gets
    ``{count}``.
    """

    command_id: str
    channel_type: str
    description: str
    group: str = ""
    shell_command: str = ""
    count_group: Optional[int] = None
    repeat_delay: int = 0
    continuous: bool = False
    can_be_global_continuous: bool = True

    def resolve(self, params: Sequence[Optional[str]] = ()) -> Action:
        groups = [p or "" for p in params] or [self.command_id]
        repeat = 1
        if self.count_group is not None and self.count_group < len(groups):
            value = groups[self.count_group]
            if value.isdigit() and int(value) > 0:
                repeat = int(value)

        return Action(
            command_id=self.command_id,
            description=_formatter.format(self.description, *groups).strip(),
            group=self.group,
            channel_type=self.channel_type,
            shell_command=_formatter.format(self.shell_command, *groups, count=repeat),
            repeat=repeat,
            repeat_delay=self.repeat_delay,
            continuous=self.continuous,
            can_be_global_continuous=self.can_be_global_continuous,
        )


class _Ballot:
    __slots__ = ("action", "count")

    def __init__(self, action: Action):
        self.action = action
        self.count = 0


class VoteTally:
    """
    In-memory ``VoteResolver``.

    Votes for the same command with the same captured parameters add up.
    The winner is the ballot with the most votes; ties go to whichever
    ballot received its first vote earliest.
    """

    def __init__(
        self,
        catalog: Mapping[str, ActionTemplate],
        type_options: Mapping[str, TypeOptions],
        state: RuntimeState,
    ):
        for command_id, template in catalog.items():
            if template.channel_type not in type_options:
                raise UnknownChannelTypeError(template.channel_type)
        self._catalog = dict(catalog)
        self._types = dict(type_options)
        self._state = state
        self._votes: Dict[str, Dict[Tuple[str, Tuple[str, ...]], _Ballot]] = {}

    @classmethod
    def from_config(cls, config: "Config", state: RuntimeState) -> "VoteTally":
        """Build the catalog and per-type options from the loaded config."""
        catalog: Dict[str, ActionTemplate] = {}
        for command_id, entry in config.actions.items():
            type_config = config.channel_types.get(entry.type)
            if type_config is None:
                raise UnknownChannelTypeError(entry.type)
            catalog[command_id] = ActionTemplate(
                command_id=command_id,
                channel_type=entry.type,
                description=entry.description or command_id,
                group=entry.group,
                shell_command=entry.command,
                count_group=entry.count_group,
                repeat_delay=type_config.repeat_delay,
                continuous=entry.continuous,
                can_be_global_continuous=entry.can_be_global_continuous,
            )

        type_options: Dict[str, TypeOptions] = {}
        for channel_type, type_config in config.channel_types.items():
            start_action = None
            if type_config.start_action:
                template = catalog.get(type_config.start_action)
                if template is None:
                    raise ValueError(
                        f"start_action '{type_config.start_action}' of '{channel_type}' "
                        "is not in the action catalog"
                    )
                start_action = template.resolve()
            type_options[channel_type] = TypeOptions(
                start_action=start_action,
                min_delay=type_config.min_delay,
            )

        return cls(catalog, type_options, state)

    def queue_command(
        self, command_id: str, params: Sequence[Optional[str]]
    ) -> Optional[VoteResult]:
        template = self._catalog.get(command_id)
        if template is None:
            logger.debug(f"[Votes] No action registered for '{command_id}'")
            return None

        try:
            action = template.resolve(params)
        except (IndexError, KeyError, ValueError) as e:
            logger.warning(f"[Votes] Could not resolve '{command_id}' with {list(params)}: {e}")
            return None

        key = (command_id, tuple(p or "" for p in params[1:]))
        ballots = self._votes.setdefault(template.channel_type, {})
        ballot = ballots.get(key)
        if ballot is None:
            ballot = ballots[key] = _Ballot(action)
        ballot.count += 1

        return VoteResult(count=ballot.count, command_id=command_id, action=action)

    def get_most_popular_action(self, channel_type: str) -> Optional[PopularAction]:
        ballots = self._votes.get(channel_type)
        if not ballots:
            return None
        best = max(ballots.values(), key=lambda ballot: ballot.count)
        return PopularAction(action=best.action, count=best.count)

    def clear_command_queue(self, channel_type: str) -> None:
        self._votes.pop(channel_type, None)

    def get_options_for_type(self, channel_type: str) -> TypeOptions:
        try:
            return self._types[channel_type]
        except KeyError:
            raise UnknownChannelTypeError(channel_type) from None

    def get_state(self) -> RuntimeState:
        return self._state

    def get_command_types(self) -> List[str]:
        return list(self._types)
