"""
Chat Plays Test Fixtures
공통 테스트 픽스처 및 모킹 유틸리티
"""
import asyncio
from typing import List
from unittest.mock import AsyncMock

import pytest

from chat_plays.events import EventBus
from chat_plays.runtime_state import RuntimeState
from chat_plays.voting import ActionTemplate, TypeOptions, VoteTally


class VirtualSleep:
    """asyncio.sleep 대체: 실제로 기다리지 않고 요청된 시간을 기록"""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)

    @property
    def elapsed(self) -> float:
        return sum(self.calls)


@pytest.fixture
def virtual_sleep():
    return VirtualSleep()


@pytest.fixture
def state():
    return RuntimeState()


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def catalog():
    """두 개의 채널 타입(keyboard, mouse)을 가진 샘플 액션 카탈로그"""
    return {
        "left": ActionTemplate(
            command_id="left",
            channel_type="mouse",
            description="left {3}",
            group="move",
            count_group=3,
            repeat_delay=100,
            continuous=True,
        ),
        "click": ActionTemplate(
            command_id="click",
            channel_type="mouse",
            description="click",
            group="click",
            repeat_delay=100,
        ),
        "esc": ActionTemplate(
            command_id="esc",
            channel_type="keyboard",
            description="esc",
            group="menu",
            repeat_delay=300,
            can_be_global_continuous=False,
        ),
        "number": ActionTemplate(
            command_id="number",
            channel_type="keyboard",
            description="belt {1}",
            group="belt",
            repeat_delay=300,
        ),
    }


@pytest.fixture
def tally(catalog, state):
    return VoteTally(
        catalog,
        {"mouse": TypeOptions(), "keyboard": TypeOptions(min_delay=1000)},
        state,
    )


@pytest.fixture
def mock_executor():
    """Mock 액션 실행기"""
    executor = AsyncMock()
    executor.execute = AsyncMock(return_value=None)
    return executor


@pytest.fixture
def mock_websocket():
    """Mock WebSocket 연결"""
    ws = AsyncMock()
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()
    ws.close = AsyncMock()
    return ws


@pytest.fixture
def sample_config():
    """샘플 설정 딕셔너리"""
    return {
        "system_config": {"conf_version": "v1.0.0", "log_level": "info"},
        "twitch_config": {
            "nick": "chatplaysbot",
            "password": "oauth:test-token",
            "channel": "streamer",
        },
        "channel_types": {
            "keyboard": {"repeat_delay": 300},
            "mouse": {"repeat_delay": 100, "min_delay": 200},
        },
        "actions": {
            "left": {
                "type": "mouse",
                "description": "left {3}",
                "command": "xdotool mousemove_relative -- -40 0",
                "count_group": 3,
                "continuous": True,
            },
            "esc": {
                "type": "keyboard",
                "command": "xdotool key Escape",
                "can_be_global_continuous": False,
            },
        },
    }
