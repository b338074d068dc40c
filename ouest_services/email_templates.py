"""
MJML Email Templates
All transactional emails (codes, reservations, contacts, invoices) in MJML
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

# Brand colors - Navy/Sky scheme
THEME = {
    "primary": "#1e40af",
    "primary_dark": "#1e3a8a",
    "primary_light": "#dbeafe",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}

COMPANY_NAME = "L&L Ouest Services"
SUPPORT_PHONE = "+33 1 23 45 67 89"
SUPPORT_EMAIL = "contact@llouestservices.fr"
LOGO_URL = f"{FRONTEND_URL}/assets/images/logo.png"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px">
          <mj-column>
            <mj-image src="{LOGO_URL}" alt="{escape(COMPANY_NAME)}" width="140px" href="{FRONTEND_URL}" padding="0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 32px 0" />
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Une question ? {SUPPORT_PHONE} · <a href="mailto:{SUPPORT_EMAIL}" style="color: #64748b;">{SUPPORT_EMAIL}</a>
            </mj-text>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="12px 0 0 0">
              © {escape(COMPANY_NAME)}. Tous droits réservés.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _code_block(code: str, ttl_minutes: int) -> str:
    return f"""
    <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" text-transform="uppercase" letter-spacing="1px" font-weight="600" padding="16px 0 8px 0">
      Votre code
    </mj-text>
    <mj-text align="center" font-size="36px" font-weight="700" color="{THEME['text_primary']}" letter-spacing="8px" font-family="'Courier New', monospace" padding="0 0 16px 0">
      {code}
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Ce code expire dans {ttl_minutes} minutes. Si vous n'êtes pas à l'origine de cette demande, ignorez cet email.
    </mj-text>
    """


# Subject and intro per code purpose
CODE_EMAILS = {
    "email_verification": (
        f"Vérifiez votre email pour {COMPANY_NAME}",
        "Vérifiez votre adresse email",
        "Merci pour votre inscription. Saisissez ce code pour confirmer votre adresse email.",
    ),
    "password_reset": (
        f"Réinitialisez votre mot de passe pour {COMPANY_NAME}",
        "Réinitialisation du mot de passe",
        "Vous avez demandé à réinitialiser votre mot de passe. Saisissez ce code pour continuer.",
    ),
    "email_change_current": (
        f"Vérifiez votre email actuel pour {COMPANY_NAME}",
        "Confirmez votre adresse actuelle",
        "Vous avez demandé à changer d'adresse email. Confirmez d'abord votre adresse actuelle.",
    ),
    "email_change_new": (
        f"Confirmez votre nouvel email pour {COMPANY_NAME}",
        "Confirmez votre nouvelle adresse",
        "Saisissez ce code pour confirmer votre nouvelle adresse email.",
    ),
}


def code_email(kind: str, name: str, code: str, ttl_minutes: int) -> tuple[str, str]:
    """Return (subject, mjml) for a one-shot code email"""
    subject, title, intro = CODE_EMAILS[kind]
    content = f"""
    <mj-text>Bonjour {escape(name or 'Utilisateur')},</mj-text>
    <mj-text>{intro}</mj-text>
    {_code_block(code, ttl_minutes)}
    """
    return subject, get_base_template(
        title=title,
        preview_text=f"Votre code : {code}",
        content_sections=content,
    )


def email_changed_template(name: str, new_email: str) -> str:
    content = f"""
    <mj-text>Bonjour {escape(name)},</mj-text>
    <mj-text>
      L'adresse email de votre compte a été remplacée par <strong>{escape(new_email)}</strong>.
    </mj-text>
    <mj-text color="{THEME['danger']}" font-size="14px">
      Si vous n'êtes pas à l'origine de ce changement, contactez-nous immédiatement.
    </mj-text>
    """
    return get_base_template(
        title="Votre email a été mis à jour",
        preview_text="Changement d'adresse email",
        content_sections=content,
    )


def signin_link_template(name: str, link: str) -> str:
    content = f"""
    <mj-text>Bonjour {escape(name)},</mj-text>
    <mj-text>Cliquez sur le bouton ci-dessous pour vous connecter sans mot de passe.</mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">Ce lien est à usage unique.</mj-text>
    """
    return get_base_template(
        title=f"Connexion à {COMPANY_NAME}",
        preview_text="Votre lien de connexion",
        content_sections=content,
        cta_url=link,
        cta_label="Se connecter",
    )


def _details_rows(rows: list[tuple[str, Optional[str]]]) -> str:
    lines = "<br/>".join(
        f"<strong>{escape(label)} :</strong> {escape(str(value))}" for label, value in rows if value
    )
    return f"""
    <mj-text font-size="14px" color="{THEME['text_secondary']}" padding="8px 0 16px 0">
      {lines}
    </mj-text>
    """


def reservation_client_template(reservation) -> str:
    rows = [
        ("Service", reservation.service_name),
        ("Catégorie", reservation.service_category),
        ("Date souhaitée", reservation.date),
        ("Fréquence", reservation.frequency),
        ("Adresse", reservation.address),
        ("Téléphone", reservation.phone),
        ("Options", ", ".join((reservation.options or "").split("-")) if reservation.options else None),
    ]
    content = f"""
    <mj-text>Bonjour {escape(reservation.name)},</mj-text>
    <mj-text>
      Nous avons bien reçu votre demande de réservation. Notre équipe vous recontacte rapidement pour la confirmer.
    </mj-text>
    {_details_rows(rows)}
    <mj-text font-size="14px" color="{THEME['text_muted']}">Votre message : {escape(reservation.message)}</mj-text>
    """
    return get_base_template(
        title="Demande de réservation reçue",
        preview_text=f"Réservation {reservation.service_name}",
        content_sections=content,
    )


def reservation_admin_template(reservation) -> str:
    rows = [
        ("Client", reservation.name),
        ("Email", reservation.email),
        ("Téléphone", reservation.phone),
        ("Service", f"{reservation.service_name} ({reservation.service_category})"),
        ("Date", reservation.date),
        ("Fréquence", reservation.frequency),
        ("Adresse", reservation.address),
        ("Options", reservation.options),
        ("Référence", reservation.id),
    ]
    content = f"""
    <mj-text>Une nouvelle demande de réservation vient d'être déposée.</mj-text>
    {_details_rows(rows)}
    <mj-text font-size="14px">{escape(reservation.message)}</mj-text>
    """
    return get_base_template(
        title="Nouvelle réservation",
        preview_text=f"{reservation.name} - {reservation.service_name}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard.html",
        cta_label="Ouvrir le tableau de bord",
    )


def contact_client_template(contact) -> str:
    content = f"""
    <mj-text>Bonjour {escape(contact.name)},</mj-text>
    <mj-text>Merci pour votre message. Nous vous répondrons dans les plus brefs délais.</mj-text>
    <mj-text font-size="14px" color="{THEME['text_muted']}">Votre message : {escape(contact.message)}</mj-text>
    """
    return get_base_template(
        title="Message bien reçu",
        preview_text="Nous avons bien reçu votre message",
        content_sections=content,
    )


def contact_admin_template(contact) -> str:
    rows = [
        ("Nom", contact.name),
        ("Email", contact.email),
        ("Téléphone", contact.phone),
        ("Sujets", contact.subjects),
        ("Référence", contact.id),
    ]
    content = f"""
    <mj-text>Un nouveau message de contact a été envoyé.</mj-text>
    {_details_rows(rows)}
    <mj-text font-size="14px">{escape(contact.message)}</mj-text>
    """
    return get_base_template(
        title="Nouveau message de contact",
        preview_text=f"Message de {contact.name}",
        content_sections=content,
    )


def reply_template(name: str, original_message: str, reply: str, subject_label: str) -> str:
    content = f"""
    <mj-text>Bonjour {escape(name)},</mj-text>
    <mj-text>{escape(reply)}</mj-text>
    <mj-divider border-color="{THEME['border']}" border-width="1px" padding="16px 0" />
    <mj-text font-size="13px" color="{THEME['text_muted']}">
      En réponse à votre {escape(subject_label)} : {escape(original_message)}
    </mj-text>
    """
    return get_base_template(
        title=f"Réponse de {COMPANY_NAME}",
        preview_text=reply[:80],
        content_sections=content,
    )


def invoice_ready_template(name: str, invoice_id: str, amount: float, due_date: str, url: Optional[str]) -> str:
    due = f"<br/>Échéance : {escape(due_date)}" if due_date else ""
    content = f"""
    <mj-text>Bonjour {escape(name)},</mj-text>
    <mj-text>Une nouvelle facture est disponible dans votre espace client.</mj-text>
    <mj-text align="center" font-size="32px" font-weight="700" color="{THEME['text_primary']}" padding="20px 0">
      {amount:,.2f} €
    </mj-text>
    <mj-text font-size="14px" color="{THEME['text_muted']}">
      Facture : {escape(invoice_id)}{due}
    </mj-text>
    """
    return get_base_template(
        title="Nouvelle facture",
        preview_text=f"Facture de {amount:,.2f} €",
        content_sections=content,
        cta_url=url,
        cta_label="Télécharger la facture" if url else None,
    )
