"""
Email Service Module
====================

Transport selection for simulation mail. Every transport exposes
`send(to, from_addr, subject, text, html) -> Result` and never raises:
a refused connection or bad credential comes back as Result.fail(TransportError).
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from phishtrain.core import Result, TransportError

logger = logging.getLogger(__name__)

DEFAULT_SENDER = 'security-training@example.com'


class ConsoleTransport:
    """Logs the message instead of delivering it. Always succeeds."""

    name = 'console'

    def send(self, to: str, from_addr: str, subject: str, text: str,
             html: Optional[str] = None) -> Result:
        logger.info(f"Simulated email send (console transport): to={to} from={from_addr} subject={subject}")
        logger.debug(f"Simulated email body:\n{text}")
        return Result.ok('console-transport')


class SmtpTransport:
    """Send one message per connection via SMTP.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS when the
    server offers it. Credentials are only used when both user and password are set.
    """

    name = 'smtp'

    def __init__(self, host: Optional[str], port: Optional[int], user: Optional[str] = None,
                 password: Optional[str] = None, timeout: float = 30):
        self.host = host
        try:
            self.port = int(port) if port else 587
        except (TypeError, ValueError):
            self.host = None
            self.port = None
        self.user = user or None
        self.password = password or None
        self.timeout = timeout

    def _build_message(self, to, from_addr, subject, text, html):
        msg = MIMEMultipart('alternative')
        msg['From'] = from_addr
        msg['To'] = to
        msg['Subject'] = subject
        msg.attach(MIMEText(text or '', 'plain', 'utf-8'))
        if html:
            msg.attach(MIMEText(html, 'html', 'utf-8'))
        return msg

    def send(self, to: str, from_addr: str, subject: str, text: str,
             html: Optional[str] = None) -> Result:
        if not self.host:
            return Result.fail(TransportError('SMTP host/port not configured'))

        msg = self._build_message(to, from_addr, subject, text, html)
        try:
            if self.port == 465:
                server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            with server:
                if self.port != 465:
                    server.ehlo()
                    if server.has_extn('starttls'):
                        server.starttls()
                        server.ehlo()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)

            logger.info(f"SMTP email sent to {to}")
            return Result.ok(msg.get('Message-ID'))
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error for {to}: {e}")
            return Result.fail(TransportError(str(e)))


class EmailService:
    """
    Builds transports for campaigns.

    Configuration (set in Flask app.config):
        MAIL_FROM: fallback sender when a campaign has no from address
        SMTP_TIMEOUT_SECONDS: socket timeout for SMTP transports (default: 30)
    """

    def __init__(self, app=None):
        self.default_sender = DEFAULT_SENDER
        self.timeout = 30
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize email service with Flask app configuration"""
        self.default_sender = app.config.get('MAIL_FROM') or DEFAULT_SENDER
        self.timeout = int(app.config.get('SMTP_TIMEOUT_SECONDS', 30))
        logger.info(f"Email service initialised (default sender: {self.default_sender})")

    def sender_for(self, campaign: Dict[str, Any]) -> str:
        return campaign.get('from_email') or self.default_sender

    def create_transport(self, campaign: Dict[str, Any]):
        """Console transport unless the campaign explicitly enables sending. Never raises."""
        if not campaign.get('enable_sending'):
            return ConsoleTransport()
        return SmtpTransport(
            host=campaign.get('smtp_host'),
            port=campaign.get('smtp_port'),
            user=campaign.get('smtp_user'),
            password=campaign.get('smtp_pass'),
            timeout=self.timeout,
        )

