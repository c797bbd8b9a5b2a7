import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import os
from typing import Optional

from services.code_issuer import CODE_EXPIRY_MINUTES
from templates.verification_email_template import render_verification_email
from utils.logger_factory import new_logger


def send_email(to_email: str, subject: str, html: str, text: Optional[str] = None) -> bool:
    """
    Deliver one message over SMTP with STARTTLS.

    Returns True on success. Transport failures are logged and reported as
    False so callers can decide whether delivery is fatal.
    """
    log = new_logger("send_email")
    from_email = os.environ.get("EMAIL_FROM", "onboarding@recruiter-portal.local")
    smtp_user = os.environ.get("EMAIL_SERVER_USER")
    password = os.environ.get("EMAIL_SERVER_PASS")
    smtp_server = os.environ.get("EMAIL_SERVER_HOST", "smtp.gmail.com")
    smtp_port = int(os.environ.get("EMAIL_SERVER_PORT", 587))

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = from_email
    msg["To"] = to_email
    # Attach text first, then HTML (some clients pick the first alternative)
    if text:
        msg.attach(MIMEText(text, "plain"))
    msg.attach(MIMEText(html, "html"))

    try:
        with smtplib.SMTP(smtp_server, smtp_port, timeout=10) as server:
            server.starttls()
            if smtp_user and password:
                server.login(smtp_user, password)
            server.sendmail(from_email, to_email, msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        log.error(f"Email delivery to {to_email} failed: {e}")
        return False
    log.info(f"Email sent successfully to {to_email}")
    return True


def send_verification_code(to_email: str, code: str) -> bool:
    portal_name = os.environ.get("PORTAL_NAME", "Recruiter Training Portal")
    subject, html, text = render_verification_email(code, portal_name, CODE_EXPIRY_MINUTES)
    return send_email(to_email, subject, html, text)
