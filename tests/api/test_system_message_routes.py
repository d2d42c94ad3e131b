"""Tests for /system-messages."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from vpnctl.models.message import SystemMessage

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class TestSystemMessageRoutes:
    def test_list_with_type_filter(self, client, container, admin_headers):
        container.system_message_service.list_messages.return_value = [
            SystemMessage(id=1, type="motd", message="Maintenance tonight", created_at=T0),
        ]
        resp = client.get("/system-messages?type=motd", headers=admin_headers)
        assert resp.get_json() == [
            {"id": 1, "type": "motd", "message": "Maintenance tonight", "date_time": T0.isoformat()},
        ]
        container.system_message_service.list_messages.assert_called_once_with("motd")

    def test_list_unfiltered(self, client, container, admin_headers):
        container.system_message_service.list_messages.return_value = []
        client.get("/system-messages", headers=admin_headers)
        container.system_message_service.list_messages.assert_called_once_with(None)

    def test_add(self, client, container, admin_headers):
        container.system_message_service.add.return_value = SystemMessage(
            id=2, type="motd", message="hi", created_at=T0
        )
        resp = client.post("/system-messages", json={"type": "motd", "message": "hi"}, headers=admin_headers)
        assert resp.status_code == 201
        assert container.system_message_service.add.call_args.args[:2] == ("motd", "hi")

    @pytest.mark.parametrize(
        "body",
        [
            {"type": "not an identifier", "message": "hi"},
            {"type": "motd", "message": "   "},
            {"type": "motd", "message": "x" * 4097},
            {"type": 5, "message": "hi"},
            {"message": "hi"},
        ],
    )
    def test_add_rejects_invalid(self, client, container, admin_headers, body):
        resp = client.post("/system-messages", json=body, headers=admin_headers)
        assert resp.status_code == 400
        container.system_message_service.add.assert_not_called()

    def test_delete(self, client, container, admin_headers):
        resp = client.delete("/system-messages/2", headers=admin_headers)
        assert resp.status_code == 204
        container.system_message_service.delete.assert_called_once_with(2)

    def test_delete_requires_integer_id(self, client, admin_headers):
        assert client.delete("/system-messages/abc", headers=admin_headers).status_code == 404
