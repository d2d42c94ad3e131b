"""Unit tests for vpnctl.app.errors -- RFC 7807 Problem Details."""

from __future__ import annotations

from datetime import UTC, datetime

import flask
import pytest
from werkzeug.exceptions import NotFound

from vpnctl.app.errors import (
    CONNECTION_DENIED,
    MALFORMED,
    PROBLEM_CONTENT_TYPE,
    SERVER_INTERNAL,
    ApiProblem,
    register_error_handlers,
)
from vpnctl.services.ledger import LedgerConsistencyViolation

# ---------------------------------------------------------------------------
# ApiProblem
# ---------------------------------------------------------------------------


class TestApiProblem:
    def test_to_dict_basic(self):
        d = ApiProblem(MALFORMED, "bad request").to_dict()
        assert d == {"type": MALFORMED, "detail": "bad request", "status": 400}

    def test_to_dict_with_title(self):
        assert ApiProblem(MALFORMED, "bad", title="Malformed").to_dict()["title"] == "Malformed"

    def test_extra_members_do_not_override_core_fields(self):
        p = ApiProblem(CONNECTION_DENIED, "denied", 403, extra={"reason": "ACCOUNT_DISABLED", "status": 999})
        d = p.to_dict()
        assert d["reason"] == "ACCOUNT_DISABLED"
        assert d["status"] == 403

    def test_to_response(self):
        app = flask.Flask("t")
        with app.test_request_context():
            resp = ApiProblem(MALFORMED, "nope", headers={"Retry-After": "5"}).to_response()
        assert resp.status_code == 400
        assert resp.headers["Content-Type"] == PROBLEM_CONTENT_TYPE
        assert resp.headers["Cache-Control"] == "no-store"
        assert resp.headers["Retry-After"] == "5"

    def test_is_exception(self):
        with pytest.raises(ApiProblem, match="nope"):
            raise ApiProblem(MALFORMED, "nope")


# ---------------------------------------------------------------------------
# register_error_handlers
# ---------------------------------------------------------------------------


@pytest.fixture()
def client():
    app = flask.Flask("t")
    register_error_handlers(app)

    @app.route("/problem")
    def problem():
        raise ApiProblem(MALFORMED, "bad input")

    @app.route("/missing")
    def missing():
        raise NotFound()

    @app.route("/ledger")
    def ledger():
        raise LedgerConsistencyViolation("10.0.0.2", datetime(2026, 3, 1, tzinfo=UTC), [])

    @app.route("/boom")
    def boom():
        raise RuntimeError("kaboom")

    return app.test_client()


class TestRegisterErrorHandlers:
    def test_api_problem(self, client):
        resp = client.get("/problem")
        assert resp.status_code == 400
        assert resp.get_json()["type"] == MALFORMED

    def test_http_exception_becomes_about_blank(self, client):
        resp = client.get("/missing")
        body = resp.get_json()
        assert resp.status_code == 404
        assert body["type"] == "about:blank"
        assert body["title"] == "Not Found"

    def test_unrouted_path_is_problem_json(self, client):
        resp = client.get("/nowhere")
        assert resp.status_code == 404
        assert resp.content_type == PROBLEM_CONTENT_TYPE

    def test_ledger_violation_is_500(self, client):
        resp = client.get("/ledger")
        assert resp.status_code == 500
        assert resp.get_json()["type"] == SERVER_INTERNAL

    def test_unhandled_exception_hides_details(self, client):
        resp = client.get("/boom")
        assert resp.status_code == 500
        assert "kaboom" not in resp.get_data(as_text=True)
