"""Authorization engine: gate a connect attempt on account state.

The checks run in a fixed order and the first failure wins; the order
decides which diagnostic the user eventually sees.

1. certificate binding exists
2. session not expired (federated accounts are exempt)
3. account not disabled
4. no open connection anywhere (single active session)
5. profile ACL, when enabled: permission sets must intersect

The engine only reads.  Recording the outcome is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from vpnctl.core.types import DenyReason

if TYPE_CHECKING:
    from datetime import datetime

    from vpnctl.config.settings import ProfileSettings
    from vpnctl.db.unit_of_work import UnitOfWork
    from vpnctl.repositories.account import AccountRepository
    from vpnctl.repositories.certificate import CertificateRepository
    from vpnctl.services.ledger import ConnectionLedger


@dataclass(frozen=True)
class Decision:
    """Outcome of :meth:`AuthorizationEngine.authorize`.

    ``account_id`` is set whenever the certificate resolved to an
    account, including on denial, so the caller knows whom to notify.
    """

    allowed: bool
    reason: DenyReason | None = None
    account_id: str | None = None
    detail: str = ""

    @classmethod
    def allow(cls, account_id: str) -> Self:
        return cls(allowed=True, account_id=account_id)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str, account_id: str | None = None) -> Self:
        return cls(allowed=False, reason=reason, account_id=account_id, detail=detail)


class AuthorizationEngine:
    """Decide whether a common name may connect to a profile."""

    def __init__(
        self,
        certificate_repo: CertificateRepository,
        account_repo: AccountRepository,
        ledger: ConnectionLedger,
    ) -> None:
        self._certificates = certificate_repo
        self._accounts = account_repo
        self._ledger = ledger

    def authorize(
        self,
        profile: ProfileSettings,
        common_name: str,
        now: datetime,
        *,
        uow: UnitOfWork | None = None,
    ) -> Decision:
        """Run the checks; reads go through *uow* when the caller holds one."""
        binding = self._certificates.find_by_common_name(common_name, uow=uow)
        account = (
            self._accounts.find_account(binding.user_id, uow=uow) if binding is not None else None
        )
        if account is None:
            return Decision.deny(
                DenyReason.UNKNOWN_CERTIFICATE,
                f"user or certificate does not exist "
                f"[profile_id: {profile.id}, common_name: {common_name}]",
            )

        if not account.federated and account.session_expired(now):
            return Decision.deny(
                DenyReason.SESSION_EXPIRED,
                "the certificate is still valid, but the session expired at "
                f"{account.session_expires_at.isoformat()}",
                account.id,
            )

        if account.disabled:
            return Decision.deny(
                DenyReason.ACCOUNT_DISABLED,
                "unable to connect, account is disabled",
                account.id,
            )

        if self._ledger.has_open_connection(account.id, uow=uow):
            return Decision.deny(
                DenyReason.ALREADY_CONNECTED,
                "unable to connect, already connected from another device",
                account.id,
            )

        if profile.enable_acl and not set(account.permissions) & set(profile.acl_permissions):
            return Decision.deny(
                DenyReason.ACL_FORBIDDEN,
                "unable to connect, user permissions are "
                f"[{','.join(account.permissions)}], but requires any of "
                f"[{','.join(profile.acl_permissions)}]",
                account.id,
            )

        return Decision.allow(account.id)
