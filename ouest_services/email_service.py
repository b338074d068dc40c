"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import asyncio
import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import ADMIN_EMAIL, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    code_email,
    contact_admin_template,
    contact_client_template,
    email_changed_template,
    invoice_ready_template,
    reply_template,
    reservation_admin_template,
    reservation_client_template,
    signin_link_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns an object with .html and .errors
        errors = getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        html = getattr(result, "html", None)
        if html is None and isinstance(result, dict):
            html = result.get("html", "")
        return html if html is not None else str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        attachments: Optional list of {"filename", "content"} attachments

    Returns:
        Send response dict
    """
    html_content = compile_mjml_to_html(mjml_content)

    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        email_data = {
            "from": sender,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }

        if attachments:
            email_data["attachments"] = [
                {"filename": attachment["filename"], "content": attachment["content"]}
                for attachment in attachments
            ]

        response = await asyncio.to_thread(resend.Emails.send, email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Pre-built emails for common events
# ============================================


async def send_code_email(to: str, kind: str, name: str, code: str, ttl_minutes: int) -> dict:
    """Send a one-shot code (verification, reset, email change)"""
    subject, mjml_content = code_email(kind, name, code, ttl_minutes)
    return await send_email(to=to, subject=subject, mjml_content=mjml_content)


async def send_email_changed_notice(to: str, name: str, new_email: str) -> dict:
    return await send_email(
        to=to,
        subject="Votre email a été mis à jour",
        mjml_content=email_changed_template(name, new_email),
    )


async def send_signin_link_email(to: str, name: str, link: str) -> dict:
    return await send_email(
        to=to,
        subject="Connectez-vous à L&L Ouest Services",
        mjml_content=signin_link_template(name, link),
    )


async def send_reservation_client_confirmation(reservation) -> dict:
    return await send_email(
        to=reservation.email,
        subject="Confirmation de votre demande de réservation",
        mjml_content=reservation_client_template(reservation),
    )


async def send_reservation_admin_notification(reservation) -> dict:
    return await send_email(
        to=ADMIN_EMAIL,
        subject=f"Nouvelle réservation : {reservation.service_name} - {reservation.name}",
        mjml_content=reservation_admin_template(reservation),
    )


async def send_contact_client_confirmation(contact) -> dict:
    return await send_email(
        to=contact.email,
        subject="Nous avons bien reçu votre message",
        mjml_content=contact_client_template(contact),
    )


async def send_contact_admin_notification(contact) -> dict:
    return await send_email(
        to=ADMIN_EMAIL,
        subject=f"Nouveau message de contact : {contact.name}",
        mjml_content=contact_admin_template(contact),
    )


async def send_reply_email(to: str, name: str, original_message: str, reply: str, subject_label: str) -> dict:
    return await send_email(
        to=to,
        subject="Réponse de L&L Ouest Services",
        mjml_content=reply_template(name, original_message, reply, subject_label),
    )


async def send_invoice_email(
    to: str, name: str, invoice_id: str, amount: float, due_date: str, url: Optional[str]
) -> dict:
    return await send_email(
        to=to,
        subject="Nouvelle facture disponible",
        mjml_content=invoice_ready_template(name, invoice_id, amount, due_date, url),
    )
