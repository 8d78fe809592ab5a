from email.message import EmailMessage
from typing import Optional
import logging

import aiosmtplib

from app.config import settings

logger = logging.getLogger(__name__)


async def send_email_async(subject: str, email_to: str, body: str, html: Optional[str] = None) -> bool:
    """
    Envoie un email via SMTP.

    Retourne False sans rien envoyer quand SEND_EMAILS est désactivé.
    """
    if not settings.SEND_EMAILS:
        logger.info(f"📭 Envoi d'email désactivé, message non envoyé à {email_to} : {subject}")
        return False

    message = EmailMessage()
    message["From"] = settings.MAIL_FROM
    message["To"] = email_to
    message["Subject"] = subject
    message.set_content(body)
    if html:
        message.add_alternative(html, subtype="html")

    await aiosmtplib.send(
        message,
        hostname=settings.MAIL_SERVER,
        port=settings.MAIL_PORT,
        username=settings.MAIL_USERNAME,
        password=settings.MAIL_PASSWORD,
        start_tls=True,
    )
    logger.info(f"📧 Email envoyé à {email_to} : {subject}")
    return True


async def send_email_safe(subject: str, email_to: str, body: str) -> None:
    # Utilisé dans les BackgroundTasks: une erreur SMTP ne doit pas remonter
    try:
        await send_email_async(subject, email_to, body)
    except Exception as e:
        logger.error(f"❌ Échec d'envoi d'email à {email_to} : {e}")


# ===============================
# NOTIFICATIONS
# ===============================

async def notify_inscription_invite(
    email_to: str, first_name: str, concert_title: str, status_label: str, manage_url: str
) -> None:
    subject = f"Votre inscription à {concert_title}"
    body = (
        f"Bonjour {first_name},\n\n"
        f"Votre inscription au concert « {concert_title} » est enregistrée.\n"
        f"Statut : {status_label}\n\n"
        f"Vous pouvez modifier ou annuler votre inscription ici :\n{manage_url}\n\n"
        "À bientôt !"
    )
    await send_email_safe(subject, email_to, body)


async def notify_inscription_organisateur(
    email_to: str, concert_title: str, guest_name: str, party_size: int, status_label: str
) -> None:
    subject = f"Nouvelle inscription : {concert_title}"
    body = (
        f"{guest_name} s'est inscrit(e) à « {concert_title} » "
        f"pour {party_size} personne(s).\nStatut : {status_label}"
    )
    await send_email_safe(subject, email_to, body)


async def notify_promotion(email_to: str, first_name: str, concert_title: str, manage_url: str) -> None:
    subject = f"Une place s'est libérée pour {concert_title}"
    body = (
        f"Bonjour {first_name},\n\n"
        f"Bonne nouvelle : votre inscription à « {concert_title} » est maintenant confirmée.\n"
        f"Gérer votre inscription : {manage_url}"
    )
    await send_email_safe(subject, email_to, body)


async def notify_devis(email_to: str, requester_name: str, message: str) -> None:
    subject = f"Nouvelle demande de devis de {requester_name}"
    body = f"Vous avez reçu une demande de devis.\n\n{message}"
    await send_email_safe(subject, email_to, body)


async def notify_avis(email_to: str, author_name: str, note: int) -> None:
    subject = "Vous avez reçu un nouvel avis"
    body = f"{author_name} vous a laissé un avis : {note}/5."
    await send_email_safe(subject, email_to, body)


async def send_verification_email(email_to: str, token: str) -> None:
    link = f"{settings.APP_URL}/verify-email?token={token}"
    body = f"Bienvenue sur Concert Chaussettes !\n\nConfirmez votre adresse email :\n{link}"
    await send_email_safe("Confirmez votre adresse email", email_to, body)


async def send_password_reset_email(email_to: str, token: str) -> None:
    link = f"{settings.APP_URL}/reset-password?token={token}"
    body = (
        "Vous avez demandé la réinitialisation de votre mot de passe.\n"
        f"Ce lien expire dans 1 heure :\n{link}"
    )
    await send_email_safe("Réinitialisation de mot de passe", email_to, body)
