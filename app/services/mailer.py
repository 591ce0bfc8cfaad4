from __future__ import annotations

import smtplib
from collections.abc import Sequence
from dataclasses import dataclass
from email.message import EmailMessage

from app.core.logging import get_logger
from app.core.settings import settings

log = get_logger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: str
    content_type: str = "text/plain"


def _build_message(
    subject: str,
    to: Sequence[str],
    html: str,
    text: str | None = None,
    attachments: Sequence[Attachment] = (),
) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f"{settings.MAIL_FROM_NAME} <{settings.MAIL_FROM}>"
    msg["To"] = ", ".join(to)
    # sempre tenha uma parte text por compatibilidade mínima
    msg.set_content(text or "Please view this email in an HTML-capable client.")
    msg.add_alternative(html, subtype="html")
    for att in attachments:
        maintype, _, subtype = att.content_type.partition("/")
        msg.add_attachment(
            att.content.encode("utf-8"),
            maintype=maintype,
            subtype=subtype or "plain",
            filename=att.filename,
        )
    return msg


def send_email(
    subject: str,
    to: Sequence[str],
    html: str,
    text: str | None = None,
    attachments: Sequence[Attachment] = (),
) -> None:
    """Envia via SMTP. Erros de transporte sobem para quem chamou."""
    msg = _build_message(subject, to, html, text, attachments)

    if not settings.MAIL_ENABLED:
        log.info("email.mock", to=list(to), subject=subject)
        return

    with smtplib.SMTP(settings.MAIL_HOST, settings.MAIL_PORT) as s:
        if settings.MAIL_TLS:
            s.starttls()
        if settings.MAIL_USER:
            s.login(settings.MAIL_USER, settings.MAIL_PASS)
        s.send_message(msg)
    log.info("email.sent", to=list(to), subject=subject)
