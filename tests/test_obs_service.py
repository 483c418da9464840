"""Tests for the OBS WebSocket integration."""

import asyncio
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from chat_plays.obs import obs_service
from chat_plays.obs.obs_service import OBSService


@pytest.fixture
def mock_obs(monkeypatch):
    """obsws_python 모듈 Mock"""
    module = MagicMock()
    client = MagicMock()
    client.get_stream_status.return_value = SimpleNamespace(output_active=True)
    module.ReqClient.return_value = client
    monkeypatch.setattr(obs_service, "obs", module, raising=False)
    monkeypatch.setattr(obs_service, "OBS_AVAILABLE", True)
    return module


class TestOBSService:
    @pytest.mark.asyncio
    async def test_connect_observes_stream_state(self, mock_obs, state):
        service = OBSService(state, password="secret", retry_interval=0)

        assert await service.connect() is True

        assert service.is_connected
        assert state.streaming is True
        mock_obs.ReqClient.assert_called_once_with(
            host="localhost", port=4455, password="secret", timeout=5
        )
        mock_obs.EventClient.return_value.callback.register.assert_called_once_with(
            service.on_stream_state_changed
        )

    @pytest.mark.asyncio
    async def test_stream_status_is_queried_off_event_loop_thread(self, mock_obs, state):
        status_threads = []

        def get_stream_status():
            status_threads.append(threading.get_ident())
            return SimpleNamespace(output_active=True)

        mock_obs.ReqClient.return_value.get_stream_status.side_effect = get_stream_status
        service = OBSService(state, retry_interval=0)

        await service.connect()

        assert status_threads and status_threads[0] != threading.get_ident()
        assert state.streaming is True

    @pytest.mark.asyncio
    async def test_bounded_retries_then_disabled(self, mock_obs, state):
        mock_obs.ReqClient.side_effect = ConnectionRefusedError("refused")
        service = OBSService(state, max_retries=3, retry_interval=0)

        assert await service.connect() is False

        assert mock_obs.ReqClient.call_count == 3
        assert service.is_disabled
        assert not service.is_connected

    @pytest.mark.asyncio
    async def test_retry_then_success(self, mock_obs, state):
        client = mock_obs.ReqClient.return_value
        mock_obs.ReqClient.side_effect = [ConnectionRefusedError("refused"), client]
        service = OBSService(state, retry_interval=0)

        assert await service.connect() is True
        assert mock_obs.ReqClient.call_count == 2

    @pytest.mark.asyncio
    async def test_not_installed(self, monkeypatch, state):
        monkeypatch.setattr(obs_service, "OBS_AVAILABLE", False)
        service = OBSService(state)
        assert await service.connect() is False
        assert service.is_disabled

    @pytest.mark.asyncio
    async def test_stream_event_from_other_thread(self, mock_obs, state):
        service = OBSService(state, retry_interval=0)
        await service.connect()

        await asyncio.to_thread(
            service.on_stream_state_changed, SimpleNamespace(output_active=False)
        )
        await asyncio.sleep(0)

        assert state.streaming is False

    @pytest.mark.asyncio
    async def test_stop_stream(self, mock_obs, state):
        service = OBSService(state, retry_interval=0)
        await service.connect()

        service.stop()

        mock_obs.ReqClient.return_value.stop_stream.assert_called_once()

    def test_stop_without_connection_is_noop(self, state):
        OBSService(state).stop()

    @pytest.mark.asyncio
    async def test_status_error_falls_back_to_last_state(self, mock_obs, state):
        service = OBSService(state, retry_interval=0)
        await service.connect()
        mock_obs.ReqClient.return_value.get_stream_status.side_effect = OSError(
            "Connection reset by peer"
        )

        assert service.is_live() is True
        assert not service.is_connected

    @pytest.mark.asyncio
    async def test_disconnect(self, mock_obs, state):
        service = OBSService(state, retry_interval=0)
        await service.connect()

        service.disconnect()

        mock_obs.ReqClient.return_value.disconnect.assert_called_once()
        mock_obs.EventClient.return_value.disconnect.assert_called_once()
        assert not service.is_connected
