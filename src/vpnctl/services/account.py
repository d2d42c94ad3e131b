"""Account service: user administration for the admin portal.

Accounts are never created explicitly; every operation that names a
user id creates the row on first reference.  State changes leave a
message in the user's feed so the portal can show what happened.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from vpnctl.app.errors import CONFLICT, MALFORMED, NOT_FOUND, ApiProblem
from vpnctl.core.types import MessageType
from vpnctl.logging import security_events
from vpnctl.models.account import Account, CertificateBinding

if TYPE_CHECKING:
    from datetime import datetime

    from vpnctl.models.message import UserMessage
    from vpnctl.repositories.account import AccountRepository
    from vpnctl.repositories.certificate import CertificateRepository
    from vpnctl.repositories.message import UserMessageRepository

log = logging.getLogger(__name__)


class AccountService:
    """Manage accounts, their sessions and certificate bindings."""

    def __init__(
        self,
        account_repo: AccountRepository,
        certificate_repo: CertificateRepository,
        message_repo: UserMessageRepository,
    ) -> None:
        self._accounts = account_repo
        self._certificates = certificate_repo
        self._messages = message_repo

    # -- queries -------------------------------------------------------------

    def list_accounts(self) -> list[Account]:
        return self._accounts.list_all()

    def get_account(self, user_id: str) -> Account:
        account = self._accounts.find_by_id(user_id)
        if account is None:
            raise ApiProblem(NOT_FOUND, f"Account '{user_id}' does not exist", 404)
        return account

    def messages(self, user_id: str) -> list[UserMessage]:
        self.get_account(user_id)
        return self._messages.find_by_user(user_id)

    def certificates(self, user_id: str) -> list[CertificateBinding]:
        self.get_account(user_id)
        return self._certificates.find_by_user(user_id)

    # -- state changes -------------------------------------------------------

    def disable(self, user_id: str, now: datetime) -> Account:
        """Disable an account.  Existing sessions are killed separately."""
        self._accounts.ensure(user_id)
        account = self._accounts.set_disabled(user_id, True)
        self._messages.add(user_id, MessageType.NOTIFICATION, "account disabled", now)
        security_events.account_disabled(user_id)
        return account

    def enable(self, user_id: str, now: datetime) -> Account:
        self._accounts.ensure(user_id)
        account = self._accounts.set_disabled(user_id, False)
        self._messages.add(user_id, MessageType.NOTIFICATION, "account (re)enabled", now)
        security_events.account_enabled(user_id)
        return account

    def delete(self, user_id: str) -> None:
        if not self._accounts.delete_account(user_id):
            raise ApiProblem(NOT_FOUND, f"Account '{user_id}' does not exist", 404)
        security_events.account_deleted(user_id)

    def update_session_info(
        self,
        user_id: str,
        session_expires_at: datetime,
        permissions: list[str],
        now: datetime,
    ) -> Account:
        """Record a fresh authentication: new expiry and permission list.

        An expiry in the past is refused; the refusal is also written to
        the user's feed as an ``error`` message.
        """
        self._accounts.ensure(user_id)
        if session_expires_at < now:
            detail = f"session set to expire at {session_expires_at.isoformat()} which is in the past"
            self._messages.add(user_id, MessageType.ERROR, detail, now)
            raise ApiProblem(MALFORMED, detail)

        account = self._accounts.update_session_info(user_id, session_expires_at, permissions, now)
        self._messages.add(
            user_id,
            MessageType.NOTIFICATION,
            f"updated session info {{permission_list: [{','.join(permissions)}], "
            f"expires_at: {session_expires_at.isoformat()}}}",
            now,
        )
        log.info("Session info updated for %s (expires %s)", user_id, session_expires_at)
        return account

    # -- certificate bindings ------------------------------------------------

    def add_certificate(  # noqa: PLR0913
        self,
        common_name: str,
        user_id: str,
        display_name: str,
        valid_from: datetime,
        valid_to: datetime,
        client_id: str | None = None,
    ) -> CertificateBinding:
        if valid_to <= valid_from:
            raise ApiProblem(MALFORMED, "valid_to must be later than valid_from")
        if self._certificates.find_by_common_name(common_name) is not None:
            raise ApiProblem(
                CONFLICT,
                f"A certificate with common name '{common_name}' is already bound",
                409,
            )
        self._accounts.ensure(user_id)
        binding = self._certificates.create(
            CertificateBinding(
                common_name=common_name,
                user_id=user_id,
                display_name=display_name,
                valid_from=valid_from,
                valid_to=valid_to,
                client_id=client_id,
            ),
        )
        log.info("Certificate %s bound to %s", common_name, user_id)
        return binding

    def delete_certificate(self, common_name: str) -> None:
        if not self._certificates.delete_by_common_name(common_name):
            raise ApiProblem(
                NOT_FOUND,
                f"No certificate with common name '{common_name}'",
                404,
            )
        log.info("Certificate %s deleted", common_name)

    def delete_client_certificates(self, user_id: str, client_id: str) -> int:
        """Drop every binding a client obtained for *user_id*."""
        deleted = self._certificates.delete_by_client(user_id, client_id)
        log.info("Deleted %d certificate(s) of %s issued to %s", deleted, user_id, client_id)
        return deleted
