"""
Insère les genres musicaux et les templates de messages par défaut.
Usage : python seed_templates.py
"""
import asyncio
import logging

from sqlalchemy import select

from app.db.session import AsyncSessionLocal
import app.db.all_models  # noqa: F401
from app.groupes.models import Genre
from app.messages.models import MessageTemplate, TemplateType

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("seed_templates")

DEFAULT_GENRES = [
    "Rock", "Pop", "Jazz", "Blues", "Folk", "Classique", "Chanson française", "Reggae",
    "Soul", "Funk", "Électro", "Hip-hop", "Metal", "Punk", "Indie", "World",
    "Bossa Nova", "Swing", "Acoustic", "Singer-songwriter",
]

DEFAULT_TEMPLATES = [
    # --- EMAIL ---
    {
        "name": "Invitation concert",
        "type": TemplateType.EMAIL,
        "subject": "🎵 Invitation : {{titre_concert}} - {{date_concert}}",
        "content": """Bonjour {{prenom}},

J'ai le plaisir de vous inviter à un concert privé que j'organise chez moi :

🎤 {{titre_concert}}
📅 {{date_concert}} à {{heure_concert}}
📍 {{ville_concert}}

{{description_concert}}

Pour vous inscrire, cliquez sur ce lien :
{{lien_inscription}}

Les places sont limitées, n'attendez pas trop !

À très bientôt,
{{nom_organisateur}}""",
    },
    {
        "name": "Rappel concert (J-3)",
        "type": TemplateType.EMAIL,
        "subject": "🎵 Rappel : {{titre_concert}} dans 3 jours !",
        "content": """Bonjour {{prenom}},

Un petit rappel que le concert approche !

🎤 {{titre_concert}}
📅 {{date_concert}} à {{heure_concert}}
📍 {{adresse_complete}}

Merci de confirmer votre présence en répondant à ce mail.

À très bientôt !
{{nom_organisateur}}""",
    },
    {
        "name": "Remerciement après concert",
        "type": TemplateType.EMAIL,
        "subject": "Merci d'être venu(e) ! 🎶",
        "content": """Bonjour {{prenom}},

Merci infiniment d'avoir participé au concert {{titre_concert}} !

J'espère que vous avez passé une belle soirée. N'hésitez pas à me faire part de vos retours.

À bientôt !
{{nom_organisateur}}""",
    },
    # --- SMS ---
    {
        "name": "Invitation concert (SMS)",
        "type": TemplateType.SMS,
        "subject": None,
        "content": """🎵 Concert privé !
{{titre_concert}}
📅 {{date_concert}}
📍 {{ville_concert}}
Inscription : {{lien_inscription}}""",
    },
    {
        "name": "Rappel concert (SMS)",
        "type": TemplateType.SMS,
        "subject": None,
        "content": """Rappel : {{titre_concert}} c'est {{date_concert}} à {{heure_concert}} !
📍 {{adresse_complete}}
À bientôt ! 🎶""",
    },
    # --- WHATSAPP ---
    {
        "name": "Invitation concert (WhatsApp)",
        "type": TemplateType.WHATSAPP,
        "subject": None,
        "content": """Salut ! 👋

Je t'invite à un concert privé chez moi :

🎤 *{{titre_concert}}*
📅 {{date_concert}} à {{heure_concert}}
📍 {{ville_concert}}

{{description_concert}}

Pour t'inscrire 👉 {{lien_inscription}}

Dis-moi si tu peux venir ! 🎶""",
    },
    {
        "name": "Rappel concert (WhatsApp)",
        "type": TemplateType.WHATSAPP,
        "subject": None,
        "content": """Hey ! 🎵

Petit rappel pour le concert *{{titre_concert}}* !

📅 {{date_concert}} à {{heure_concert}}
📍 {{adresse_complete}}

Tu viens toujours ? Confirme-moi ! 😊""",
    },
]


async def seed_genres(db) -> int:
    result = await db.execute(select(Genre.name))
    existing = set(result.scalars().all())
    missing = [name for name in DEFAULT_GENRES if name not in existing]
    for name in missing:
        db.add(Genre(name=name, is_custom=False))
    return len(missing)


async def seed_templates(db) -> int:
    result = await db.execute(select(MessageTemplate.id).where(MessageTemplate.is_default.is_(True)))
    if result.first() is not None:
        logger.info("✅ Les templates par défaut existent déjà.")
        return 0
    for data in DEFAULT_TEMPLATES:
        db.add(MessageTemplate(
            organisateur_id=None,
            name=data["name"],
            subject=data["subject"],
            content=data["content"],
            type=data["type"].value,
            is_default=True,
        ))
    return len(DEFAULT_TEMPLATES)


async def main():
    async with AsyncSessionLocal() as db:
        genres = await seed_genres(db)
        templates = await seed_templates(db)
        await db.commit()
    logger.info(f"🌱 {genres} genre(s) et {templates} template(s) insérés.")


if __name__ == "__main__":
    asyncio.run(main())
