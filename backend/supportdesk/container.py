"""Service Container - Builds the automation core once per process"""
import random
from datetime import timedelta
from typing import Optional

import httpx

from .config.settings import Settings
from .domain.errors import DomainError, StorageConfigurationError
from .engine.agent_selector import AgentSelector
from .engine.audit_writer import AuditLogger
from .engine.default_rules import build_default_rules
from .engine.rule_engine import RuleEngine
from .engine.rule_store import RuleStore
from .repositories.audit_repo import AuditRepository
from .repositories.channel_repo import ChannelConfigRepository
from .repositories.rule_repo import AutomationRuleRepository
from .services.channel_health import ChannelHealthMonitor
from .services.message_dispatcher import MessageDispatcher
from .services.object_storage_service import ObjectStorageService
from .services.storage_providers import StorageProvider, build_storage_provider
from .services.ticket_router import ManagementNotifier, TicketRouter
from .utils.logger import get_logger

logger = get_logger(__name__)


class ServiceContainer:
    """Object graph shared by every request"""

    def __init__(
        self,
        settings: Settings,
        rule_store: RuleStore,
        engine: RuleEngine,
        health_monitor: ChannelHealthMonitor,
        dispatcher: MessageDispatcher,
        router: TicketRouter,
        audit: AuditLogger,
        storage: Optional[ObjectStorageService] = None,
        channel_repo: Optional[ChannelConfigRepository] = None
    ):
        self.settings = settings
        self.rule_store = rule_store
        self.engine = engine
        self.health_monitor = health_monitor
        self.dispatcher = dispatcher
        self.router = router
        self.audit = audit
        self.storage = storage
        self.channel_repo = channel_repo

    def require_storage(self) -> ObjectStorageService:
        """
        Raises:
            StorageConfigurationError: No storage backend could be built
        """
        if self.storage is None:
            raise StorageConfigurationError("Object storage is not configured")
        return self.storage

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        channel_repo: Optional[ChannelConfigRepository] = None,
        rule_repo: Optional[AutomationRuleRepository] = None,
        audit_repo: Optional[AuditRepository] = None,
        storage_provider: Optional[StorageProvider] = None,
        email_transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None
    ) -> "ServiceContainer":
        """
        Wire every service

        Repositories are optional: without them rules, channel status and
        audit entries live only in memory / the application log.
        """
        audit = AuditLogger(audit_repo)

        rule_store = RuleStore(build_default_rules(), repo=rule_repo)
        if rule_repo is not None:
            try:
                rule_store.load_rules(rule_repo.list_rule_documents())
            except Exception as e:
                logger.error(f"Failed to load stored automation rules: {e}")

        dispatcher = MessageDispatcher(settings, transport=email_transport)
        notifier = ManagementNotifier(dispatcher, audit, settings.management_email or None)
        engine = RuleEngine(rule_store, selector=AgentSelector(rng), notifier=notifier)

        health_monitor = ChannelHealthMonitor(
            repo=channel_repo,
            audit=audit,
            timeout_seconds=settings.channel_test_timeout_seconds,
            fresh_window=timedelta(hours=settings.channel_sync_fresh_hours),
        )

        storage = None
        try:
            provider = storage_provider or build_storage_provider(settings)
            storage = ObjectStorageService(provider)
        except DomainError as e:
            logger.error(f"Object storage unavailable: {e.message}", extra={"error_code": e.error_code})

        router = TicketRouter(engine, health_monitor, dispatcher, channel_repo=channel_repo, audit=audit)

        return cls(
            settings=settings,
            rule_store=rule_store,
            engine=engine,
            health_monitor=health_monitor,
            dispatcher=dispatcher,
            router=router,
            audit=audit,
            storage=storage,
            channel_repo=channel_repo,
        )
