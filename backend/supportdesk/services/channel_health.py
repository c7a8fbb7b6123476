"""
Channel Health - Connection testing and health classification

Two operations that must not be confused:
- get_channel_health_status(): pure, derived from the stored config
- ChannelHealthMonitor.test_channel_connection(): performs the test and
  persists the outcome

Only email channels get a live test (SMTP handshake + login). SMS, WhatsApp,
Twitter and Facebook only check that their credentials are present.
"""
import asyncio
import smtplib
import socket
import ssl
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Callable, Dict, Optional, Set, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..domain.models import ChannelConfig, ConnectionTestResult, OutboundSettings
from ..domain.enums import ChannelStatus, ChannelType, EmailHostProvider
from ..domain.errors import ChannelStateError, ChannelNotFoundError
from ..repositories.channel_repo import ChannelConfigRepository
from ..engine.audit_writer import AuditLogger
from ..utils.time import utc_now, is_within
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SMTP_PORT = 587
DEFAULT_FRESH_WINDOW = timedelta(hours=24)

# Credential keys that must be present in ChannelConfig.config
REQUIRED_CONFIG_FIELDS: Dict[str, Tuple[str, ...]] = {
    ChannelType.SMS.value: ("twilioAccountSid", "twilioAuthToken", "twilioPhoneNumber"),
    ChannelType.WHATSAPP.value: ("apiKey", "phoneNumber"),
    ChannelType.TWITTER.value: ("apiKey", "apiSecret"),
    ChannelType.FACEBOOK.value: ("pageAccessToken", "appId"),
}

# Mailbox hosts that require an App Password when 2FA is on
APP_PASSWORD_PROVIDERS = {
    EmailHostProvider.GMAIL.value: "Gmail",
    EmailHostProvider.OFFICE365.value: "Office 365",
    EmailHostProvider.OUTLOOK.value: "Outlook",
}

CONNECTION_FAILED_MESSAGE = "Cannot connect to email server. Check server and port settings."
TIMEOUT_MESSAGE = "Connection timeout. Check server address and firewall settings."
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
UNSUPPORTED_TYPE_MESSAGE = "Unsupported channel type"
INVALID_CONFIG_MESSAGE = "Invalid channel configuration"


# =============================================================================
# State machine
# =============================================================================

class ChannelStateMachine:
    """Allowed channel status transitions"""

    TRANSITIONS: Dict[ChannelStatus, Set[ChannelStatus]] = {
        ChannelStatus.DISCONNECTED: {ChannelStatus.CONNECTING},
        ChannelStatus.CONNECTING: {ChannelStatus.CONNECTING, ChannelStatus.CONNECTED, ChannelStatus.ERROR},
        ChannelStatus.CONNECTED: {ChannelStatus.CONNECTING, ChannelStatus.DISCONNECTED},
        ChannelStatus.ERROR: {ChannelStatus.CONNECTING, ChannelStatus.DISCONNECTED},
    }

    @classmethod
    def can_transition(cls, current: ChannelStatus, target: ChannelStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def assert_transition(cls, current: ChannelStatus, target: ChannelStatus) -> None:
        """
        Raises:
            ChannelStateError: Transition not allowed
        """
        if not cls.can_transition(current, target):
            raise ChannelStateError(
                f"Cannot move channel from {current.value} to {target.value}",
                details={"current": current.value, "target": target.value}
            )


# =============================================================================
# Pure health status
# =============================================================================

def has_required_config(config: ChannelConfig) -> bool:
    """Check the fields a channel type needs before it can work"""
    if config.type == ChannelType.EMAIL.value:
        inbound = config.inbound_settings
        outbound = config.outbound_settings
        return bool(
            inbound and inbound.server and inbound.username
            and outbound and outbound.smtp_host and outbound.username
        )

    required = REQUIRED_CONFIG_FIELDS.get(config.type)
    if required is None:
        return False
    return all(config.config.get(field) for field in required)


def get_channel_health_status(
    config: ChannelConfig,
    now: Optional[datetime] = None,
    fresh_window: timedelta = DEFAULT_FRESH_WINDOW
) -> ChannelStatus:
    """
    Classify a channel from its stored configuration

    Read-only and idempotent: nothing is tested and nothing is written.
    A recent sync only confirms a stored "connected" status; it never
    upgrades any other status.
    """
    if not config.is_active:
        return ChannelStatus.DISCONNECTED

    if not has_required_config(config):
        return ChannelStatus.ERROR

    if config.status == ChannelStatus.CONNECTED and is_within(config.last_sync, fresh_window, now):
        return ChannelStatus.CONNECTED

    return config.status or ChannelStatus.DISCONNECTED


# =============================================================================
# Testers
# =============================================================================

class ChannelTester:
    """Connection test for one channel type"""

    channel_type: str = ""

    async def test(self, config: ChannelConfig) -> ConnectionTestResult:
        raise NotImplementedError


class CredentialPresenceTester(ChannelTester):
    """Static check that all credential keys are filled in"""

    def __init__(self, channel_type: str, label: str):
        self.channel_type = channel_type
        self.label = label

    async def test(self, config: ChannelConfig) -> ConnectionTestResult:
        required = REQUIRED_CONFIG_FIELDS[self.channel_type]
        if all(config.config.get(field) for field in required):
            return ConnectionTestResult(success=True, status=ChannelStatus.CONNECTED)
        return ConnectionTestResult(
            success=False,
            error=f"{self.label} configuration incomplete or invalid",
            status=ChannelStatus.ERROR
        )


class EmailConnectionTester(ChannelTester):
    """Live SMTP handshake and login against the outbound settings"""

    channel_type = ChannelType.EMAIL.value

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds

    async def test(self, config: ChannelConfig) -> ConnectionTestResult:
        inbound = config.inbound_settings
        outbound = config.outbound_settings

        if not (inbound and inbound.server and outbound and outbound.smtp_host):
            return self._failed("Missing IMAP server or SMTP configuration")
        if not (outbound.username and outbound.password):
            return self._failed("Missing email credentials (username/password)")

        try:
            await asyncio.to_thread(self._verify_smtp, outbound)
            return ConnectionTestResult(success=True, status=ChannelStatus.CONNECTED)
        except smtplib.SMTPAuthenticationError:
            return self._failed(self._auth_failed_message(config.provider))
        except (socket.timeout, TimeoutError, asyncio.TimeoutError):
            return self._failed(TIMEOUT_MESSAGE)
        except (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected, ConnectionError, socket.gaierror):
            return self._failed(CONNECTION_FAILED_MESSAGE)
        except Exception as e:
            logger.warning(f"Email connection test failed: {e}", extra={"channel_type": self.channel_type})
            return self._failed(str(e) or UNKNOWN_ERROR_MESSAGE)

    def _verify_smtp(self, outbound: OutboundSettings) -> None:
        port = outbound.smtp_port or DEFAULT_SMTP_PORT
        context = ssl.create_default_context()

        if outbound.ssl:
            server = smtplib.SMTP_SSL(outbound.smtp_host, port, timeout=self.timeout_seconds, context=context)
        else:
            server = smtplib.SMTP(outbound.smtp_host, port, timeout=self.timeout_seconds)

        try:
            if not outbound.ssl:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=context)
                    server.ehlo()
            server.login(outbound.username, outbound.password)
        finally:
            try:
                server.quit()
            except (smtplib.SMTPException, OSError):
                pass

    @staticmethod
    def _auth_failed_message(provider: Optional[str]) -> str:
        label = APP_PASSWORD_PROVIDERS.get(provider or "", "Gmail")
        return (
            "Authentication failed. Check username/password. "
            f"For {label}, use an App Password instead of your account password."
        )

    @staticmethod
    def _failed(error: str) -> ConnectionTestResult:
        return ConnectionTestResult(success=False, error=error, status=ChannelStatus.ERROR)


def build_channel_testers(timeout_seconds: float = 10.0) -> Dict[str, ChannelTester]:
    """One tester per supported channel type"""
    return {
        ChannelType.EMAIL.value: EmailConnectionTester(timeout_seconds),
        ChannelType.SMS.value: CredentialPresenceTester(ChannelType.SMS.value, "SMS"),
        ChannelType.WHATSAPP.value: CredentialPresenceTester(ChannelType.WHATSAPP.value, "WhatsApp"),
        ChannelType.TWITTER.value: CredentialPresenceTester(ChannelType.TWITTER.value, "Twitter"),
        ChannelType.FACEBOOK.value: CredentialPresenceTester(ChannelType.FACEBOOK.value, "Facebook"),
    }


# =============================================================================
# Monitor
# =============================================================================

class _ChannelLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class ChannelHealthMonitor:
    """
    Runs connection tests and keeps channel status in sync

    Tests of the same channel id are serialized by a per-id lock so their
    status writes never interleave; different channels never wait on each
    other. Every test is bounded by a hard timeout.
    """

    def __init__(
        self,
        repo: Optional[ChannelConfigRepository] = None,
        audit: Optional[AuditLogger] = None,
        testers: Optional[Dict[str, ChannelTester]] = None,
        timeout_seconds: float = 10.0,
        fresh_window: timedelta = DEFAULT_FRESH_WINDOW,
        clock: Callable[[], datetime] = utc_now
    ):
        self.repo = repo
        self.audit = audit
        self.testers = testers if testers is not None else build_channel_testers(timeout_seconds)
        self.timeout_seconds = timeout_seconds
        self.fresh_window = fresh_window
        self.clock = clock
        self._locks: Dict[str, _ChannelLock] = {}

    def get_health_status(self, config: ChannelConfig) -> ChannelStatus:
        """Pure health classification with the configured freshness window"""
        return get_channel_health_status(config, now=self.clock(), fresh_window=self.fresh_window)

    async def test_channel_connection(
        self,
        config: Union[ChannelConfig, Dict[str, Any]],
        channel_id: Optional[str] = None
    ) -> ConnectionTestResult:
        """
        Test a channel and persist the outcome when an id is known

        Never raises: malformed input, tester crashes and timeouts all
        resolve to an unsuccessful ConnectionTestResult.
        """
        try:
            if not isinstance(config, ChannelConfig):
                config = ChannelConfig.model_validate(config)
        except (PydanticValidationError, TypeError, ValueError) as e:
            logger.warning(f"Rejected channel configuration: {e}")
            return ConnectionTestResult(success=False, error=INVALID_CONFIG_MESSAGE, status=ChannelStatus.ERROR)

        channel_id = channel_id or config.id
        if not channel_id:
            return await self._run_test(config)

        async with self._channel_lock(channel_id):
            return await self._test_locked(channel_id, config)

    async def activate_channel(self, channel_id: str) -> ConnectionTestResult:
        """
        Re-enable a channel and test it

        Raises:
            ChannelNotFoundError: Unknown channel id
        """
        async with self._channel_lock(channel_id):
            config = self._get_channel(channel_id)
            self._persist(channel_id, {"is_active": True})
            config = config.model_copy(update={"is_active": True})
            logger.info("Activating channel", extra={"channel_id": channel_id, "channel_type": config.type})
            return await self._test_locked(channel_id, config)

    async def deactivate_channel(self, channel_id: str) -> ChannelConfig:
        """
        Disable a channel

        Waits for a running test of the same channel and judges the state
        it left behind. A stored connecting status seen under the lock
        belongs to a test that never finished and counts as an error.

        Raises:
            ChannelNotFoundError: Unknown channel id
        """
        async with self._channel_lock(channel_id):
            config = self._get_channel(channel_id)
            current = config.status
            if current == ChannelStatus.CONNECTING:
                logger.warning("Channel left in connecting by an interrupted test", extra={"channel_id": channel_id})
                current = ChannelStatus.ERROR
            if current != ChannelStatus.DISCONNECTED:
                ChannelStateMachine.assert_transition(current, ChannelStatus.DISCONNECTED)
            self.repo.update_channel(channel_id, {
                "is_active": False,
                "is_online": False,
                "status": ChannelStatus.DISCONNECTED.value,
            })

        if self.audit:
            self.audit.log_channel_update(channel_id, config.type, ChannelStatus.DISCONNECTED)
        logger.info("Deactivated channel", extra={"channel_id": channel_id, "channel_type": config.type})
        return config.model_copy(update={
            "is_active": False,
            "is_online": False,
            "status": ChannelStatus.DISCONNECTED,
        })

    # =========================================================================
    # Internals
    # =========================================================================

    @asynccontextmanager
    async def _channel_lock(self, channel_id: str) -> AsyncIterator[None]:
        """Per-id lock, dropped again once no caller holds or awaits it"""
        entry = self._locks.get(channel_id)
        if entry is None:
            entry = self._locks[channel_id] = _ChannelLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._locks.get(channel_id) is entry:
                del self._locks[channel_id]

    async def _test_locked(self, channel_id: str, config: ChannelConfig) -> ConnectionTestResult:
        self._persist(channel_id, {"status": ChannelStatus.CONNECTING.value})
        result = await self._run_test(config)
        self._record_result(channel_id, config, result)
        return result

    def _get_channel(self, channel_id: str) -> ChannelConfig:
        if self.repo is None:
            raise ChannelNotFoundError(f"Channel {channel_id} not found")
        return self.repo.get_channel_or_raise(channel_id)

    async def _run_test(self, config: ChannelConfig) -> ConnectionTestResult:
        tester = self.testers.get(config.type)
        if tester is None:
            return ConnectionTestResult(success=False, error=UNSUPPORTED_TYPE_MESSAGE, status=ChannelStatus.ERROR)

        try:
            return await asyncio.wait_for(tester.test(config), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            return ConnectionTestResult(success=False, error=TIMEOUT_MESSAGE, status=ChannelStatus.ERROR)
        except Exception as e:
            logger.error(f"Connection tester crashed: {e}", extra={"channel_type": config.type}, exc_info=True)
            return ConnectionTestResult(
                success=False,
                error=str(e) or UNKNOWN_ERROR_MESSAGE,
                status=ChannelStatus.ERROR
            )

    def _record_result(self, channel_id: str, config: ChannelConfig, result: ConnectionTestResult) -> None:
        now = self.clock()
        if result.success:
            updates = {
                "status": ChannelStatus.CONNECTED.value,
                "is_online": True,
                "error_message": None,
                "last_error_time": None,
                "last_sync": now,
            }
        else:
            updates = {
                "status": ChannelStatus.ERROR.value,
                "is_online": False,
                "error_message": result.error,
                "last_error_time": now,
            }
        self._persist(channel_id, updates)

        logger.info(
            f"Channel test {'passed' if result.success else 'failed'}",
            extra={"channel_id": channel_id, "channel_type": config.type, "status": result.status.value}
        )
        if self.audit:
            self.audit.log_channel_update(channel_id, config.type, result.status, error_message=result.error)

    def _persist(self, channel_id: str, updates: Dict[str, Any]) -> None:
        """Write status fields; failures are logged, never raised"""
        if self.repo is None:
            return
        try:
            self.repo.update_channel(channel_id, updates)
        except Exception as e:
            logger.error(f"Failed to persist channel status: {e}", extra={"channel_id": channel_id})
