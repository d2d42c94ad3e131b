"""RFC 7807 Problem Details for the vpnctl HTTP API.

Provides :class:`ApiProblem`, an exception that renders itself as an
``application/problem+json`` response, the vpnctl error-type URNs, and
a Flask error-handler registration function.

Usage::

    raise ApiProblem(MALFORMED, "ip4 is not a valid IPv4 address")
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Error-type URNs
# ---------------------------------------------------------------------------
_P = "urn:vpnctl:error:"

CONFLICT = _P + "conflict"
CONNECTION_DENIED = _P + "connectionDenied"
FLEET_UNAVAILABLE = _P + "fleetUnavailable"
FORBIDDEN = _P + "forbidden"
MALFORMED = _P + "malformed"
NOT_FOUND = _P + "notFound"
RATE_LIMITED = _P + "rateLimited"
SERVER_INTERNAL = _P + "serverInternal"
UNAUTHORIZED = _P + "unauthorized"

PROBLEM_CONTENT_TYPE = "application/problem+json"


# ---------------------------------------------------------------------------
# Problem exception
# ---------------------------------------------------------------------------


class ApiProblem(Exception):
    """An RFC 7807 *problem details* object that doubles as an exception.

    Raise anywhere in request handling to produce an error response.
    The registered Flask error handler catches it and calls
    :meth:`to_response`.

    Parameters
    ----------
    error_type:
        A URN string (one of the constants above) or ``"about:blank"``
        for generic HTTP errors.
    detail:
        Human-readable explanation of the problem.
    status:
        HTTP status code (default 400).
    title:
        Short summary; omitted when *error_type* is self-explanatory.
    extra:
        Additional members merged into the problem body
        (e.g. the deny ``reason`` of a refused connection).
    headers:
        Extra HTTP headers to include on the response.

    """

    def __init__(
        self,
        error_type: str,
        detail: str,
        status: int = 400,
        *,
        title: str | None = None,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.error_type = error_type
        self.detail = detail
        self.status = status
        self.title = title
        self.extra = extra or {}
        self.extra_headers = headers or {}
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": self.error_type,
            "detail": self.detail,
            "status": self.status,
        }
        if self.title is not None:
            body["title"] = self.title
        for key, value in self.extra.items():
            body.setdefault(key, value)
        return body

    def to_response(self):
        """Build a Flask :class:`~flask.Response`."""
        resp = jsonify(self.to_dict())
        resp.status_code = self.status
        resp.headers["Content-Type"] = PROBLEM_CONTENT_TYPE
        resp.headers["Cache-Control"] = "no-store"
        for key, value in self.extra_headers.items():
            resp.headers[key] = value
        return resp


# ---------------------------------------------------------------------------
# Flask error handler registration
# ---------------------------------------------------------------------------


def register_error_handlers(app: Flask) -> None:
    """Attach handlers that produce RFC 7807 responses for all errors."""
    from vpnctl.services.ledger import LedgerConsistencyViolation  # noqa: PLC0415

    @app.errorhandler(ApiProblem)
    def _handle_api_problem(exc: ApiProblem):
        return exc.to_response()

    @app.errorhandler(LedgerConsistencyViolation)
    def _handle_ledger_violation(exc: LedgerConsistencyViolation):
        # Already logged at CRITICAL by the ledger
        return ApiProblem(
            SERVER_INTERNAL,
            "The connection log is inconsistent for the requested address",
            500,
        ).to_response()

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        problem = ApiProblem(
            "about:blank",
            exc.description or "An error occurred",
            exc.code or 500,
            title=exc.name,
        )
        return problem.to_response()

    @app.errorhandler(Exception)
    def _handle_unhandled(exc: Exception):
        log.exception("Unhandled exception during request")
        problem = ApiProblem(
            SERVER_INTERNAL,
            "An unexpected internal error occurred",
            500,
        )
        return problem.to_response()
