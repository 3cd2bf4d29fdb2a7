import logging
from typing import Iterable, Optional

from flask import current_app
from flask_mail import Message

from extensions import mail

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, text: str, html: Optional[str] = None,
               attachments: Optional[Iterable[tuple]] = None) -> None:
    """
    Send a single message through the configured SMTP transport.

    ``attachments`` is an iterable of ``(filename, content_type, data)``.
    Transport errors propagate to the caller.
    """
    msg = Message(
        subject=subject,
        recipients=[to],
        body=text,
        html=html,
        sender=current_app.config.get("MAIL_DEFAULT_SENDER"),
    )
    for filename, content_type, data in attachments or ():
        msg.attach(filename, content_type, data)
    mail.send(msg)
    logger.info("mail sent subject=%r", subject)
