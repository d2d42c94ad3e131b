"""Dependency injection container for vpnctl.

Created once during application startup and stored on the Flask app
via ``app.extensions["container"]``.  Accessible from any request
context with :func:`get_container`.

Usage::

    from vpnctl.app.context import get_container

    c = get_container()
    decision = c.connection_service.connect(...)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import current_app

if TYPE_CHECKING:
    from pypgkit import Database

    from vpnctl.app.auth import LoginRateLimiter
    from vpnctl.config.settings import VpnctlSettings
    from vpnctl.fleet.dispatcher import FleetDispatcher
    from vpnctl.fleet.registry import ChannelFactory
    from vpnctl.metrics.collector import MetricsCollector
    from vpnctl.repositories import (
        AccountRepository,
        CertificateRepository,
        ConnectionLogRepository,
        SystemMessageRepository,
        UserMessageRepository,
    )
    from vpnctl.services import (
        AccountService,
        AuthorizationEngine,
        ConnectionLedger,
        ConnectionService,
        SystemMessageService,
    )
    from vpnctl.services.cleanup_worker import CleanupWorker


class Container:
    """Application-wide dependency container.

    Holds the :class:`Database` singleton, one instance of every
    repository and service, and the fleet dispatcher.  The dispatcher
    is ``None`` when no process control channel is configured.
    """

    def __init__(
        self,
        db: Database,
        settings: VpnctlSettings,
        channel_factory: ChannelFactory | None = None,
    ) -> None:
        from vpnctl.app.auth import LoginRateLimiter  # noqa: PLC0415
        from vpnctl.fleet.dispatcher import FleetDispatcher  # noqa: PLC0415
        from vpnctl.fleet.registry import load_channel_factory  # noqa: PLC0415
        from vpnctl.metrics.collector import MetricsCollector  # noqa: PLC0415
        from vpnctl.repositories import (  # noqa: PLC0415
            AccountRepository,
            CertificateRepository,
            ConnectionLogRepository,
            SystemMessageRepository,
            UserMessageRepository,
        )
        from vpnctl.services import (  # noqa: PLC0415
            AccountService,
            AuthorizationEngine,
            ConnectionLedger,
            ConnectionService,
            SystemMessageService,
        )
        from vpnctl.services.cleanup_worker import CleanupWorker  # noqa: PLC0415

        self.db: Database = db
        self.settings: VpnctlSettings = settings

        self.metrics_collector: MetricsCollector | None = (
            MetricsCollector() if settings.metrics.enabled else None
        )
        self.auth_limiter: LoginRateLimiter = LoginRateLimiter(
            max_attempts=settings.api.max_failed_attempts,
            lockout_seconds=settings.api.lockout_seconds,
        )

        # Repositories
        self.accounts: AccountRepository = AccountRepository(db)
        self.certificates: CertificateRepository = CertificateRepository(db)
        self.connection_log: ConnectionLogRepository = ConnectionLogRepository(db)
        self.user_messages: UserMessageRepository = UserMessageRepository(db)
        self.system_messages: SystemMessageRepository = SystemMessageRepository(db)

        # Services
        self.ledger: ConnectionLedger = ConnectionLedger(
            self.connection_log,
            database=db,
            metrics=self.metrics_collector,
        )
        self.authorization_engine: AuthorizationEngine = AuthorizationEngine(
            self.certificates,
            self.accounts,
            self.ledger,
        )
        self.connection_service: ConnectionService = ConnectionService(
            settings.profiles,
            self.authorization_engine,
            self.ledger,
            self.certificates,
            self.user_messages,
            database=db,
            metrics=self.metrics_collector,
        )
        self.account_service: AccountService = AccountService(
            self.accounts,
            self.certificates,
            self.user_messages,
        )
        self.system_message_service: SystemMessageService = SystemMessageService(
            self.system_messages,
        )

        # Fleet
        if channel_factory is None:
            channel_factory = load_channel_factory(settings.fleet)
        self.fleet_dispatcher: FleetDispatcher | None = None
        if channel_factory is not None:
            self.fleet_dispatcher = FleetDispatcher(
                settings.profiles,
                channel_factory,
                base_port=settings.fleet.base_port,
                timeout_seconds=settings.fleet.timeout_seconds,
                max_workers=settings.fleet.max_workers,
                metrics=self.metrics_collector,
            )

        # Background retention
        self.cleanup_worker: CleanupWorker = CleanupWorker(
            ledger=self.ledger,
            message_repo=self.user_messages,
            settings=settings,
            db=db,
            metrics=self.metrics_collector,
        )


def get_container() -> Container:
    """Return the :class:`Container` from the current Flask app.

    Raises :class:`RuntimeError` if the database was not initialised
    (i.e. ``create_app`` was called without a ``database`` argument).
    """
    container = current_app.extensions.get("container")
    if container is None:
        msg = (
            "Dependency container not available -- "
            "was the database initialised before create_app()?"
        )
        raise RuntimeError(msg)
    return container
