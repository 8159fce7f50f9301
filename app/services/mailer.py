# app/services/mailer.py
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable

from app.core.config import settings

logger = logging.getLogger(__name__)

# assinatura do colaborador de e-mail: (to, subject, html) -> enviado?
Mailer = Callable[[str, str, str], bool]


def send_mail(to: str, subject: str, html: str) -> bool:
    """
    Envia um e-mail HTML via SMTP. 465 = SMTPS; outras portas usam STARTTLS.
    Sem SMTP configurado apenas registra no log e devolve False.
    """
    if not settings.MAIL_HOST or not settings.MAIL_USER:
        logger.warning("MAIL_NOT_CONFIGURED skipping email to=%s subject=%s", to, subject)
        return False

    msg = EmailMessage()
    msg["From"] = settings.MAIL_FROM or settings.MAIL_USER
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content("Abra este e-mail em um cliente com suporte a HTML.")
    msg.add_alternative(html, subtype="html")

    context = ssl.create_default_context()
    if settings.MAIL_PORT == 465:
        with smtplib.SMTP_SSL(settings.MAIL_HOST, settings.MAIL_PORT, context=context, timeout=20) as server:
            server.login(settings.MAIL_USER, settings.MAIL_PASSWORD or "")
            server.send_message(msg)
    else:
        with smtplib.SMTP(settings.MAIL_HOST, settings.MAIL_PORT, timeout=20) as server:
            server.starttls(context=context)
            server.login(settings.MAIL_USER, settings.MAIL_PASSWORD or "")
            server.send_message(msg)

    logger.info("MAIL_SENT to=%s subject=%s", to, subject)
    return True
