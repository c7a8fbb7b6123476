"""
Email Providers - One delivery backend per vendor

Every provider exposes the same small capability:
- name
- is_configured(): all required credentials are present
- send(data): one delivery attempt, always resolving to a SendResult

Vendor failures are mapped onto SendErrorCategory so the dispatcher can
decide on fallback without knowing vendor specifics.
"""
import asyncio
import smtplib
import socket
import ssl
from email.message import EmailMessage
from typing import Any, Dict, List, Optional, Type

import httpx

from ..config.settings import Settings
from ..domain.models import EmailData, SendResult
from ..domain.enums import EmailProviderName, SendErrorCategory
from ..domain.errors import (
    AuthenticationError, EmailSendError, TransientNetworkError,
    ConnectionFailureError, ConnectionTimeoutError
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"
MAILJET_SEND_URL = "https://api.mailjet.com/v3.1/send"
ELASTIC_SEND_URL = "https://api.elasticemail.com/v2/email/send"


def parse_recipients(recipients: Optional[str]) -> List[str]:
    """Split a comma separated address list, dropping blanks"""
    if not recipients:
        return []
    return [address.strip() for address in recipients.split(",") if address.strip()]


class EmailProvider:
    """Base class for email delivery providers"""

    name: str = ""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def is_configured(self) -> bool:
        raise NotImplementedError

    async def send(self, data: EmailData) -> SendResult:
        """
        Make one delivery attempt

        Never raises; every failure is reported through the SendResult.
        """
        if not self.is_configured():
            return SendResult(
                provider=self.name,
                success=False,
                error=f"{self.name} is not configured",
                error_category=SendErrorCategory.CONFIGURATION
            )

        try:
            message_id = await self._deliver(data)
            logger.info(f"Email sent via {self.name}", extra={"provider": self.name})
            return SendResult(provider=self.name, success=True, message_id=message_id)

        except AuthenticationError as e:
            return self._failure(e.message, SendErrorCategory.AUTHENTICATION, 401)
        except EmailSendError as e:
            return self._failure(e.message, SendErrorCategory.REJECTED, e.status_code)
        except ConnectionTimeoutError as e:
            return self._failure(e.message, SendErrorCategory.TIMEOUT)
        except TransientNetworkError as e:
            return self._failure(e.message, SendErrorCategory.NETWORK)
        except (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError) as e:
            return self._failure(f"{self.name} request timed out: {e}", SendErrorCategory.TIMEOUT)
        except (httpx.TransportError, OSError) as e:
            return self._failure(f"{self.name} connection failed: {e}", SendErrorCategory.NETWORK)
        except Exception as e:
            return self._failure(f"{self.name} error: {e}", SendErrorCategory.UNKNOWN)

    async def _deliver(self, data: EmailData) -> Optional[str]:
        """Vendor call; returns the vendor message id when there is one"""
        raise NotImplementedError

    def _failure(
        self,
        error: str,
        category: SendErrorCategory,
        status_code: Optional[int] = None
    ) -> SendResult:
        logger.error(
            f"{self.name} email error: {error}",
            extra={"provider": self.name, "error_category": category.value, "status_code": status_code}
        )
        return SendResult(
            provider=self.name,
            success=False,
            error=error,
            status_code=status_code,
            error_category=category
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.email_timeout_seconds,
            transport=self.transport
        )

    def _check_response(self, response: httpx.Response) -> None:
        """Raise the domain error that matches a vendor response"""
        if response.status_code == 401:
            raise AuthenticationError(
                f"{self.name} rejected the credentials (401)",
                details={"response": response.text[:500]}
            )
        if response.status_code >= 400:
            raise EmailSendError(
                f"{self.name} API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                details={"response": response.text[:500]}
            )


# =============================================================================
# HTTP API providers
# =============================================================================

class SendGridProvider(EmailProvider):
    """SendGrid v3 mail/send"""

    name = EmailProviderName.SENDGRID.value

    def is_configured(self) -> bool:
        return bool(self.settings.sendgrid_api_key)

    def build_payload(self, data: EmailData) -> Dict[str, Any]:
        personalization: Dict[str, Any] = {"to": [{"email": address} for address in parse_recipients(data.to)]}
        cc = parse_recipients(data.cc)
        bcc = parse_recipients(data.bcc)
        if cc:
            personalization["cc"] = [{"email": address} for address in cc]
        if bcc:
            personalization["bcc"] = [{"email": address} for address in bcc]

        content = [{"type": "text/plain", "value": data.text}]
        if data.html:
            content.append({"type": "text/html", "value": data.html})

        return {
            "personalizations": [personalization],
            "from": {"email": data.from_},
            "subject": data.subject,
            "content": content,
        }

    async def _deliver(self, data: EmailData) -> Optional[str]:
        async with self._client() as client:
            response = await client.post(
                SENDGRID_SEND_URL,
                headers={"Authorization": f"Bearer {self.settings.sendgrid_api_key}"},
                json=self.build_payload(data)
            )
        self._check_response(response)
        return response.headers.get("X-Message-Id")


class MailgunProvider(EmailProvider):
    """Mailgun messages API (form encoded)"""

    name = EmailProviderName.MAILGUN.value

    def is_configured(self) -> bool:
        return bool(self.settings.mailgun_api_key and self.settings.mailgun_domain)

    def build_payload(self, data: EmailData) -> Dict[str, str]:
        payload = {
            "from": data.from_,
            "to": data.to,
            "subject": data.subject,
            "text": data.text,
        }
        if data.html:
            payload["html"] = data.html
        if data.cc:
            payload["cc"] = data.cc
        if data.bcc:
            payload["bcc"] = data.bcc
        return payload

    async def _deliver(self, data: EmailData) -> Optional[str]:
        base_url = self.settings.mailgun_base_url.rstrip("/")
        async with self._client() as client:
            response = await client.post(
                f"{base_url}/{self.settings.mailgun_domain}/messages",
                auth=("api", self.settings.mailgun_api_key),
                data=self.build_payload(data)
            )
        self._check_response(response)
        try:
            return response.json().get("id")
        except ValueError:
            return None


class MailjetProvider(EmailProvider):
    """Mailjet Send API v3.1"""

    name = EmailProviderName.MAILJET.value

    def is_configured(self) -> bool:
        return bool(self.settings.mailjet_api_key and self.settings.mailjet_api_secret)

    def build_payload(self, data: EmailData) -> Dict[str, Any]:
        message: Dict[str, Any] = {
            "From": {"Email": data.from_},
            "To": [{"Email": address} for address in parse_recipients(data.to)],
            "Subject": data.subject,
            "TextPart": data.text,
        }
        if data.html:
            message["HTMLPart"] = data.html
        cc = parse_recipients(data.cc)
        bcc = parse_recipients(data.bcc)
        if cc:
            message["Cc"] = [{"Email": address} for address in cc]
        if bcc:
            message["Bcc"] = [{"Email": address} for address in bcc]
        return {"Messages": [message]}

    async def _deliver(self, data: EmailData) -> Optional[str]:
        async with self._client() as client:
            response = await client.post(
                MAILJET_SEND_URL,
                auth=(self.settings.mailjet_api_key, self.settings.mailjet_api_secret),
                json=self.build_payload(data)
            )
        self._check_response(response)
        return None


class ElasticEmailProvider(EmailProvider):
    """Elastic Email v2 (form encoded, errors reported in the body)"""

    name = EmailProviderName.ELASTIC.value

    def is_configured(self) -> bool:
        return bool(self.settings.elastic_email_api_key)

    def build_payload(self, data: EmailData) -> Dict[str, str]:
        payload = {
            "apikey": self.settings.elastic_email_api_key,
            "from": data.from_,
            "to": data.to,
            "subject": data.subject,
            "bodyText": data.text,
        }
        if data.html:
            payload["bodyHtml"] = data.html
        if data.cc:
            payload["cc"] = data.cc
        if data.bcc:
            payload["bcc"] = data.bcc
        return payload

    async def _deliver(self, data: EmailData) -> Optional[str]:
        async with self._client() as client:
            response = await client.post(ELASTIC_SEND_URL, data=self.build_payload(data))
        self._check_response(response)

        body = response.json()
        if not body.get("success"):
            raise EmailSendError(f"Elastic Email error: {body.get('error')}", status_code=response.status_code)
        return (body.get("data") or {}).get("messageid")


# =============================================================================
# SMTP
# =============================================================================

class SmtpProvider(EmailProvider):
    """Direct SMTP delivery (blocking client run in a worker thread)"""

    name = EmailProviderName.SMTP.value

    def is_configured(self) -> bool:
        return bool(
            self.settings.smtp_host and self.settings.smtp_username and self.settings.smtp_password
        )

    def build_message(self, data: EmailData) -> EmailMessage:
        message = EmailMessage()
        message["From"] = data.from_
        message["To"] = data.to
        if data.cc:
            message["Cc"] = data.cc
        message["Subject"] = data.subject
        message.set_content(data.text)
        if data.html:
            message.add_alternative(data.html, subtype="html")
        return message

    async def _deliver(self, data: EmailData) -> Optional[str]:
        timeout = self.settings.email_timeout_seconds
        await asyncio.wait_for(asyncio.to_thread(self._send_blocking, data), timeout=timeout + 1)
        return None

    def _send_blocking(self, data: EmailData) -> None:
        message = self.build_message(data)
        recipients = parse_recipients(data.to) + parse_recipients(data.cc) + parse_recipients(data.bcc)

        server = self._connect()
        try:
            if not self.settings.smtp_secure:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
            server.login(self.settings.smtp_username, self.settings.smtp_password)
            server.send_message(message, from_addr=data.from_, to_addrs=recipients)
        except smtplib.SMTPAuthenticationError as e:
            raise AuthenticationError(f"SMTP authentication failed: {e.smtp_code}")
        except smtplib.SMTPRecipientsRefused as e:
            raise EmailSendError(f"SMTP recipients refused: {sorted(e.recipients)}")
        except smtplib.SMTPResponseException as e:
            raise EmailSendError(f"SMTP error: {e.smtp_code}", status_code=e.smtp_code)
        finally:
            try:
                server.quit()
            except (smtplib.SMTPException, OSError):
                pass

    def _connect(self) -> smtplib.SMTP:
        """
        Open the SMTP session

        Raises:
            ConnectionFailureError: Server refused or dropped the connection
            ConnectionTimeoutError: No answer within email_timeout_seconds
        """
        host, port = self.settings.smtp_host, self.settings.smtp_port
        timeout = self.settings.email_timeout_seconds
        try:
            if self.settings.smtp_secure:
                return smtplib.SMTP_SSL(host, port, timeout=timeout, context=ssl.create_default_context())
            return smtplib.SMTP(host, port, timeout=timeout)
        except smtplib.SMTPConnectError as e:
            raise ConnectionFailureError(f"SMTP connection refused: {e.smtp_code}")
        except (socket.timeout, TimeoutError) as e:
            raise ConnectionTimeoutError(f"SMTP connection to {host}:{port} timed out: {e}")
        except (ConnectionError, socket.gaierror, smtplib.SMTPServerDisconnected) as e:
            raise ConnectionFailureError(f"Cannot reach SMTP server {host}:{port}: {e}")


PROVIDER_CLASSES: Dict[str, Type[EmailProvider]] = {
    EmailProviderName.SENDGRID.value: SendGridProvider,
    EmailProviderName.MAILGUN.value: MailgunProvider,
    EmailProviderName.MAILJET.value: MailjetProvider,
    EmailProviderName.ELASTIC.value: ElasticEmailProvider,
    EmailProviderName.SMTP.value: SmtpProvider,
}


def build_email_providers(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, EmailProvider]:
    """Instantiate every provider once from settings"""
    return {name: cls(settings, transport) for name, cls in PROVIDER_CLASSES.items()}
