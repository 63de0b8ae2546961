from abc import ABC, abstractmethod
from email.message import EmailMessage
from html import escape
import asyncio
import logging
import smtplib

from smartroommate.config import SMTPConfig


class BaseNotifier(ABC):
    @abstractmethod
    async def notify(self, email: str, subject: str, text: str, html: str) -> None:
        """
        Delivers a notification to one address.
        :param email:
        :param subject:
        :param text: plain text body
        :param html: html body
        :return:
        """
        raise NotImplementedError()


class MailNotifier(BaseNotifier):
    """
    Sends notifications over SMTP.

    smtplib is blocking, so every send runs in the default executor.
    Without SMTP credentials the notifier only logs what it would have sent.
    """

    def __init__(self, config: SMTPConfig, logger: logging.Logger | None = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    async def notify(self, email: str, subject: str, text: str, html: str) -> None:
        if not email:
            return
        if not self.config.enabled:
            self.logger.info("[MAIL NO-OP] to=%s subject=%s", email, subject)
            return

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._send, email, subject, text, html)

    def _build_message(self, email: str, subject: str, text: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.from_address
        message["To"] = email
        message["Subject"] = subject
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    def _send(self, email: str, subject: str, text: str, html: str) -> None:
        message = self._build_message(email, subject, text, html)
        if self.config.secure:
            with smtplib.SMTP_SSL(self.config.host, self.config.port, timeout=10) as client:
                client.login(self.config.user, self.config.password)
                client.send_message(message)
        else:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=10) as client:
                client.starttls()
                client.login(self.config.user, self.config.password)
                client.send_message(message)
        self.logger.debug("Mail sent to %s", email)


def new_message_mail(sender_name: str, body: str) -> tuple[str, str, str]:
    """Subject, text and html of the mail announcing a new message."""
    subject = f"New message from {sender_name}"
    text = f'{sender_name} sent you a message: "{body}"'
    html = (
        f"<p><strong>{escape(sender_name)}</strong> sent you a message:</p>"
        f"<p>{escape(body)}</p>"
        "<p>Open SmartRoommate to reply.</p>"
    )
    return subject, text, html


def password_reset_mail(reset_link: str) -> tuple[str, str, str]:
    subject = "Reset your SmartRoommate password"
    text = f"Reset your password using this link: {reset_link}"
    html = (
        "<p>Reset your password using this link:</p>"
        f'<p><a href="{escape(reset_link)}">{escape(reset_link)}</a></p>'
    )
    return subject, text, html
