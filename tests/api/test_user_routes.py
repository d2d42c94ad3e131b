"""Tests for /users and /certificates -- account administration."""

from __future__ import annotations

from datetime import UTC, datetime

from vpnctl.app.errors import NOT_FOUND, ApiProblem
from vpnctl.core.types import MessageType
from vpnctl.models.account import Account, CertificateBinding
from vpnctl.models.message import UserMessage

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
T1 = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


def _account(**overrides):
    values = {"id": "alice", "permissions": ("employees",), "session_expires_at": T1, "created_at": T0}
    values.update(overrides)
    return Account(**values)


def _binding(**overrides):
    values = {
        "common_name": "cn-alice",
        "user_id": "alice",
        "display_name": "Laptop",
        "valid_from": T0,
        "valid_to": T1,
    }
    values.update(overrides)
    return CertificateBinding(**values)


# ---------------------------------------------------------------------------
# /users
# ---------------------------------------------------------------------------


class TestUserQueries:
    def test_list(self, client, container, admin_headers):
        container.account_service.list_accounts.return_value = [_account(), _account(id="home!!bob", federated=True)]
        body = client.get("/users", headers=admin_headers).get_json()
        assert [u["user_id"] for u in body] == ["alice", "home!!bob"]
        assert body[1]["is_federated"] is True

    def test_get(self, client, container, admin_headers):
        container.account_service.get_account.return_value = _account()
        body = client.get("/users/alice", headers=admin_headers).get_json()
        assert body["permission_list"] == ["employees"]
        assert body["session_expires_at"] == T1.isoformat()

    def test_get_unknown_is_404(self, client, container, admin_headers):
        container.account_service.get_account.side_effect = ApiProblem(NOT_FOUND, "nope", 404)
        assert client.get("/users/ghost", headers=admin_headers).status_code == 404

    def test_messages(self, client, container, admin_headers):
        container.account_service.messages.return_value = [
            UserMessage(id=4, user_id="alice", type=MessageType.ERROR, message="denied", created_at=T0),
        ]
        body = client.get("/users/alice/messages", headers=admin_headers).get_json()
        assert body == [{"id": 4, "type": "error", "message": "denied", "date_time": T0.isoformat()}]

    def test_certificates(self, client, container, admin_headers):
        container.account_service.certificates.return_value = [_binding(client_id="app")]
        body = client.get("/users/alice/certificates", headers=admin_headers).get_json()
        assert body[0]["client_id"] == "app"

    def test_node_is_forbidden(self, client, node_headers):
        assert client.get("/users", headers=node_headers).status_code == 403


class TestUserChanges:
    def test_disable(self, client, container, admin_headers):
        container.account_service.disable.return_value = _account(disabled=True)
        resp = client.post("/users/alice/disable", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["is_disabled"] is True
        assert container.account_service.disable.call_args.args[0] == "alice"

    def test_enable(self, client, container, admin_headers):
        container.account_service.enable.return_value = _account()
        resp = client.post("/users/alice/enable", headers=admin_headers)
        assert resp.get_json()["is_disabled"] is False

    def test_delete(self, client, container, admin_headers):
        resp = client.delete("/users/alice", headers=admin_headers)
        assert resp.status_code == 204
        container.account_service.delete.assert_called_once_with("alice")

    def test_update_session(self, client, container, admin_headers):
        container.account_service.update_session_info.return_value = _account(permissions=("a", "b"))
        resp = client.post(
            "/users/alice/session",
            json={"session_expires_at": "2026-03-02T12:00:00+00:00", "permission_list": ["a", "b"]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        args = container.account_service.update_session_info.call_args.args
        assert args[:3] == ("alice", T1, ["a", "b"])

    def test_update_session_defaults_to_no_permissions(self, client, container, admin_headers):
        container.account_service.update_session_info.return_value = _account(permissions=())
        client.post(
            "/users/alice/session",
            json={"session_expires_at": "2026-03-02T12:00:00Z"},
            headers=admin_headers,
        )
        assert container.account_service.update_session_info.call_args.args[2] == []

    def test_update_session_rejects_bad_permissions(self, client, container, admin_headers):
        resp = client.post(
            "/users/alice/session",
            json={"session_expires_at": "2026-03-02T12:00:00Z", "permission_list": "admin"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        container.account_service.update_session_info.assert_not_called()

    def test_delete_client_certificates(self, client, container, admin_headers):
        container.account_service.delete_client_certificates.return_value = 2
        resp = client.delete("/users/alice/certificates?client_id=portal-app", headers=admin_headers)
        assert resp.get_json() == {"deleted": 2}
        container.account_service.delete_client_certificates.assert_called_once_with("alice", "portal-app")

    def test_delete_client_certificates_requires_client(self, client, admin_headers):
        resp = client.delete("/users/alice/certificates", headers=admin_headers)
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# /certificates
# ---------------------------------------------------------------------------


CERT_BODY = {
    "common_name": "cn-alice",
    "user_id": "alice",
    "display_name": "Laptop",
    "valid_from": "2026-03-01T12:00:00+00:00",
    "valid_to": "2026-03-02T12:00:00+00:00",
}


class TestCertificateRoutes:
    def test_add(self, client, container, admin_headers):
        container.account_service.add_certificate.return_value = _binding()
        resp = client.post("/certificates", json=CERT_BODY, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.get_json()["common_name"] == "cn-alice"
        call = container.account_service.add_certificate.call_args
        assert call.args == ("cn-alice", "alice", "Laptop", T0, T1)
        assert call.kwargs == {"client_id": None}

    def test_add_with_client(self, client, container, admin_headers):
        container.account_service.add_certificate.return_value = _binding(client_id="app")
        client.post("/certificates", json={**CERT_BODY, "client_id": "app"}, headers=admin_headers)
        assert container.account_service.add_certificate.call_args.kwargs == {"client_id": "app"}

    def test_add_rejects_blank_display_name(self, client, admin_headers):
        resp = client.post("/certificates", json={**CERT_BODY, "display_name": "  "}, headers=admin_headers)
        assert resp.status_code == 400

    def test_delete(self, client, container, admin_headers):
        resp = client.delete("/certificates/cn-alice", headers=admin_headers)
        assert resp.status_code == 204
        container.account_service.delete_certificate.assert_called_once_with("cn-alice")
