"""Tests for vpnctl.services.connection -- connect/disconnect orchestration."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from vpnctl.config.settings import ProfileSettings
from vpnctl.core.types import DenyReason, MessageType
from vpnctl.models import Account, CertificateBinding
from vpnctl.services.authorization import AuthorizationEngine
from vpnctl.services.connection import (
    CONNECT_ERROR_PREFIX,
    ConnectionService,
    UnknownProfileError,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
IP4 = "10.42.42.2"
IP6 = "fd42::2"


def _profile(pid: str, number: int, acl: tuple[str, ...] = ()) -> ProfileSettings:
    return ProfileSettings(
        id=pid,
        profile_number=number,
        management_ip="127.0.0.1",
        process_count=1,
        enable_acl=bool(acl),
        acl_permissions=acl,
        display_name=pid,
    )


@pytest.fixture()
def accounts():
    repo = MagicMock()
    repo.find_account.side_effect = lambda user_id, uow=None: {
        "alice": Account(id="alice", session_expires_at=NOW + timedelta(hours=1)),
        "bob": Account(id="bob", disabled=True),
    }.get(user_id)
    return repo


@pytest.fixture()
def certificates(connection_log):
    bindings = {"cn-alice": "alice", "cn-bob": "bob"}
    connection_log.bindings.update(bindings)
    repo = MagicMock()
    repo.find_by_common_name.side_effect = lambda cn, uow=None: (
        CertificateBinding(cn, bindings[cn], cn, NOW, NOW + timedelta(days=1))
        if cn in bindings
        else None
    )
    return repo


@pytest.fixture()
def messages():
    return MagicMock()


@pytest.fixture()
def service(ledger, accounts, certificates, messages, metrics):
    engine = AuthorizationEngine(certificates, accounts, ledger)
    return ConnectionService(
        (_profile("employees", 1), _profile("admins", 3, ("admin",))),
        engine,
        ledger,
        certificates,
        messages,
        database=MagicMock(),
        metrics=metrics,
    )


class TestConnect:
    def test_allowed_connect_is_recorded(self, service, connection_log, metrics, messages):
        decision = service.connect("employees", "cn-alice", IP4, IP6, NOW, NOW)

        assert decision.allowed
        (row,) = connection_log.rows
        assert (row.user_id, row.profile_id, row.connected_at) == ("alice", "employees", NOW)
        assert metrics.get("vpnctl_connect_total", labels={"outcome": "allowed"}) == 1
        messages.add.assert_not_called()

    def test_account_and_triple_locks_share_one_transaction(self, service, fake_uow):
        service.connect("employees", "cn-alice", IP4, IP6, NOW, NOW)
        (uow,) = fake_uow.instances
        assert uow.locks == [("account", "alice"), ("connection", "employees", IP4, IP6)]

    def test_authorization_reads_use_the_connect_transaction(
        self, service, fake_uow, accounts, certificates
    ):
        service.connect("employees", "cn-alice", IP4, IP6, NOW, NOW)
        (uow,) = fake_uow.instances
        for call in certificates.find_by_common_name.call_args_list:
            assert call.kwargs["uow"] is uow
        assert accounts.find_account.call_args.kwargs["uow"] is uow

    def test_unknown_profile(self, service, connection_log):
        with pytest.raises(UnknownProfileError, match="'guests'"):
            service.connect("guests", "cn-alice", IP4, IP6, NOW, NOW)
        assert connection_log.rows == []

    def test_denied_connect_writes_user_message(self, service, connection_log, messages, metrics):
        decision = service.connect("employees", "cn-bob", IP4, IP6, NOW, NOW)

        assert decision.reason is DenyReason.ACCOUNT_DISABLED
        assert connection_log.rows == []
        messages.add.assert_called_once_with(
            "bob",
            MessageType.NOTIFICATION,
            CONNECT_ERROR_PREFIX + "unable to connect, account is disabled",
            NOW,
        )
        assert metrics.get("vpnctl_connect_total", labels={"outcome": "account_disabled"}) == 1

    def test_unknown_certificate_has_nobody_to_notify(self, service, messages, fake_uow):
        decision = service.connect("employees", "cn-nobody", IP4, IP6, NOW, NOW)
        assert decision.reason is DenyReason.UNKNOWN_CERTIFICATE
        messages.add.assert_not_called()
        assert fake_uow.instances[0].locks == []

    def test_second_device_is_refused(self, service, connection_log):
        assert service.connect("employees", "cn-alice", IP4, IP6, NOW, NOW).allowed
        decision = service.connect("admins", "cn-alice", "10.9.9.9", "fd09::9", NOW, NOW)
        assert decision.reason is DenyReason.ALREADY_CONNECTED
        assert len(connection_log.rows) == 1

    def test_reconnect_after_disconnect(self, service):
        service.connect("employees", "cn-alice", IP4, IP6, NOW, NOW)
        service.disconnect("employees", "cn-alice", IP4, IP6, NOW, NOW + timedelta(minutes=5), 10)
        later = NOW + timedelta(minutes=6)
        assert service.connect("employees", "cn-alice", IP4, IP6, later, later).allowed

    def test_denial_is_a_security_event(self, service, caplog):
        with caplog.at_level("WARNING", logger="vpnctl.security"):
            service.connect("employees", "cn-bob", IP4, IP6, NOW, NOW)
        (record,) = [r for r in caplog.records if r.name == "vpnctl.security"]
        assert record.event_id == "vpnctl.security.connection_denied"
        assert record.reason == "account_disabled"


class TestDisconnect:
    def test_closes_row(self, service, connection_log, metrics):
        service.connect("employees", "cn-alice", IP4, IP6, NOW, NOW)
        closed = service.disconnect(
            "employees", "cn-alice", IP4, IP6, NOW, NOW + timedelta(minutes=1), 1234
        )
        assert closed is True
        assert connection_log.rows[0].bytes_transferred == 1234
        assert metrics.get("vpnctl_disconnect_total", labels={"matched": "true"}) == 1

    def test_unmatched_disconnect(self, service, metrics):
        closed = service.disconnect("employees", "cn-alice", IP4, IP6, NOW, NOW, 0)
        assert closed is False
        assert metrics.get("vpnctl_disconnect_total", labels={"matched": "false"}) == 1

    def test_removed_profile_can_still_be_closed(self, service, connection_log, ledger):
        ledger.record_connect("retired", "cn-alice", IP4, IP6, NOW)
        assert service.disconnect("retired", "cn-alice", IP4, IP6, NOW, NOW, 0) is True
