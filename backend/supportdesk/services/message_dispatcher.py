"""
Message Dispatcher - Outbound email with a bounded fallback chain

Attempt order:
1. The active provider. Not configured -> False, nothing is sent.
2. Only when the active provider is SendGrid and it answered 401
   (authentication / IP restriction), try each configured provider of
   FALLBACK_PROVIDERS in order until one succeeds.
3. Any other failure -> False.

Attempts are strictly sequential so a message is never sent twice.
"""
from typing import Any, Dict, Iterable, List, Optional

import httpx

from .email_providers import EmailProvider, build_email_providers
from ..config.settings import Settings
from ..domain.models import EmailData, EmailProviderInfo, SendResult, Ticket
from ..domain.enums import EmailProviderName, SendErrorCategory
from ..domain.errors import EmailConfigurationError
from ..templates.email_templates import EmailTemplateKey, get_email_template
from ..utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_PROVIDERS = (EmailProviderName.MAILGUN.value, EmailProviderName.SMTP.value)

# update_config credential names -> settings fields, per provider
CREDENTIAL_FIELDS: Dict[str, Dict[str, str]] = {
    EmailProviderName.SENDGRID.value: {"api_key": "sendgrid_api_key"},
    EmailProviderName.MAILGUN.value: {"api_key": "mailgun_api_key", "domain": "mailgun_domain"},
    EmailProviderName.MAILJET.value: {"api_key": "mailjet_api_key", "api_secret": "mailjet_api_secret"},
    EmailProviderName.ELASTIC.value: {"api_key": "elastic_email_api_key"},
    EmailProviderName.SMTP.value: {
        "host": "smtp_host",
        "port": "smtp_port",
        "username": "smtp_username",
        "password": "smtp_password",
        "secure": "smtp_secure",
    },
}


class MessageDispatcher:
    """Email service used by the automation core and the admin API"""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.settings = settings
        self.transport = transport
        self.providers: Dict[str, EmailProvider] = build_email_providers(settings, transport)

    @property
    def provider_name(self) -> str:
        return self.settings.email_provider

    @property
    def active_provider(self) -> Optional[EmailProvider]:
        return self.providers.get(self.provider_name)

    def is_configured(self) -> bool:
        provider = self.active_provider
        return provider is not None and provider.is_configured()

    async def send_email(self, data: EmailData) -> bool:
        """
        Send an email through the active provider (and fallbacks)

        Returns:
            True if any attempt succeeded; provider errors never propagate
        """
        provider = self.active_provider
        if provider is None:
            logger.error(f"Unknown email provider: {self.provider_name}", extra={"provider": self.provider_name})
            return False

        if not provider.is_configured():
            logger.warning(
                f"{provider.name} not configured - email not sent",
                extra={"provider": provider.name}
            )
            return False

        result = await provider.send(data)
        if result.success:
            return True

        if not self._should_fall_back(provider, result):
            return False

        logger.warning(
            "SendGrid rejected the request (401), trying fallback providers",
            extra={"provider": provider.name, "status_code": result.status_code}
        )
        for name in FALLBACK_PROVIDERS:
            fallback = self.providers.get(name)
            if fallback is None or not fallback.is_configured():
                continue
            fallback_result = await fallback.send(data)
            if fallback_result.success:
                logger.info(f"Email sent via fallback provider {name}", extra={"provider": name})
                return True

        logger.error("All email providers failed", extra={"provider": provider.name})
        return False

    def _should_fall_back(self, provider: EmailProvider, result: SendResult) -> bool:
        return (
            provider.name == EmailProviderName.SENDGRID.value
            and result.error_category == SendErrorCategory.AUTHENTICATION
            and result.status_code == 401
        )

    # =========================================================================
    # Provider management
    # =========================================================================

    def get_provider_info(self) -> EmailProviderInfo:
        """Active provider and whether it has credentials"""
        return EmailProviderInfo(provider=self.provider_name, configured=self.is_configured())

    def update_config(self, provider: str, **credentials: Any) -> EmailProviderInfo:
        """
        Switch provider at runtime

        Args:
            provider: EmailProviderName value
            credentials: Provider specific values (api_key, domain, host, ...)

        Raises:
            EmailConfigurationError: Unknown provider or credential name
        """
        fields = CREDENTIAL_FIELDS.get(provider)
        if fields is None:
            raise EmailConfigurationError(
                f"Unsupported email provider: {provider}",
                details={"supported": sorted(CREDENTIAL_FIELDS.keys())}
            )

        unknown = sorted(set(credentials) - set(fields))
        if unknown:
            raise EmailConfigurationError(
                f"Unknown settings for {provider}: {', '.join(unknown)}",
                details={"allowed": sorted(fields.keys())}
            )

        update: Dict[str, Any] = {"email_provider": provider}
        for key, value in credentials.items():
            if value is not None:
                update[fields[key]] = value

        self.settings = self.settings.model_copy(update=update)
        self.providers = build_email_providers(self.settings, self.transport)

        logger.info(f"Email provider switched to {provider}", extra={"provider": provider})
        return self.get_provider_info()

    # =========================================================================
    # Ticket email
    # =========================================================================

    @property
    def sender_address(self) -> str:
        return self.settings.verified_sender_email or self.settings.default_from_email

    async def send_ticket_reply(
        self,
        ticket: Ticket,
        content: str,
        agent_name: Optional[str] = None,
        html: Optional[str] = None
    ) -> bool:
        """Reply to the ticket's customer address"""
        if not ticket.customer_contact:
            logger.warning("Ticket has no customer contact, reply not sent", extra={"ticket_id": ticket.id})
            return False

        rendered = get_email_template(
            EmailTemplateKey.TICKET_REPLY.value,
            {"subject": ticket.subject, "content": content, "html": html, "agent_name": agent_name},
            app_url=self.settings.app_url
        )
        return await self.send_email(EmailData(
            to=ticket.customer_contact,
            from_=self.sender_address,
            subject=rendered["subject"],
            text=content,
            html=rendered["body"]
        ))

    async def send_escalation_notice(self, ticket: Ticket, recipients: Iterable[str]) -> bool:
        """Notify management that a ticket was escalated"""
        addresses: List[str] = [address for address in recipients if address]
        if not addresses:
            return False

        payload = {
            "ticket_id": ticket.id,
            "ticket_number": ticket.ticket_number,
            "subject": ticket.subject,
            "priority": ticket.priority.value,
            "channel": ticket.channel,
            "customer_name": ticket.customer_name,
        }
        rendered = get_email_template(EmailTemplateKey.TICKET_ESCALATED.value, payload, app_url=self.settings.app_url)

        return await self.send_email(EmailData(
            to=", ".join(addresses),
            from_=self.sender_address,
            subject=rendered["subject"],
            text=f"Ticket {ticket.ticket_number or ticket.id} was escalated: {ticket.subject}",
            html=rendered["body"]
        ))
