"""Fleet test helpers: a scriptable in-memory process control channel."""

from __future__ import annotations

import threading

import pytest

from vpnctl.fleet.channel import ClientSession, ProcessControlChannel


class ScriptedChannel(ProcessControlChannel):
    """Channel whose behaviour per port is looked up in ``script``.

    ``script[port]`` is a list of sessions, an exception instance raised
    from ``connect()``, or a callable run by ``list_sessions()`` and
    ``kill_session()`` in place of the session lookup.
    """

    script: dict = {}
    calls: list = []
    lock = threading.Lock()

    def connect(self) -> None:
        self._record("connect")
        behaviour = self.script.get(self.endpoint.port, [])
        if isinstance(behaviour, BaseException):
            raise behaviour

    def list_sessions(self) -> list[ClientSession]:
        self._record("list")
        return list(self._sessions())

    def kill_session(self, common_name: str) -> bool:
        self._record("kill")
        return any(s.common_name == common_name for s in self._sessions())

    def _sessions(self) -> list[ClientSession]:
        behaviour = self.script.get(self.endpoint.port, [])
        if callable(behaviour):
            return behaviour()
        return behaviour

    def disconnect(self) -> None:
        self._record("disconnect")

    def _record(self, op: str) -> None:
        with self.lock:
            self.calls.append((self.endpoint.port, op))


@pytest.fixture()
def scripted_channel():
    """Yield the channel class with a fresh script and call log."""
    ScriptedChannel.script = {}
    ScriptedChannel.calls = []
    yield ScriptedChannel
    ScriptedChannel.script = {}
    ScriptedChannel.calls = []


@pytest.fixture()
def channel_factory(scripted_channel):
    def factory(endpoint):
        return scripted_channel(endpoint, 1.0)

    return factory
