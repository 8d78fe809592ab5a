from datetime import datetime
from types import SimpleNamespace

from app.messages import rendering

APP_URL = "https://concerts.exemple.fr"


def make_concert(**overrides):
    values = dict(
        title="Concert au salon",
        date=datetime(2026, 3, 14, 20, 30),
        city="Lyon",
        full_address="12 rue des Tisserands, 69004 Lyon",
        public_address="Croix-Rousse",
        description="Soirée acoustique",
        slug="concert-au-salon-1a2b3c4d",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_render_replaces_all_placeholders():
    context = rendering.build_context(make_concert(), "Jeanne", APP_URL, "Alice")
    text = (
        "{{prenom}} : {{titre_concert}} le {{date_concert}} à {{heure_concert}}, "
        "{{ville_concert}} ({{adresse_complete}}). {{description_concert}} "
        "{{lien_inscription}} - {{nom_organisateur}}"
    )

    assert rendering.render(text, context) == (
        "Alice : Concert au salon le samedi 14 mars 2026 à 20:30, Lyon "
        "(12 rue des Tisserands, 69004 Lyon). Soirée acoustique "
        "https://concerts.exemple.fr/concert/concert-au-salon-1a2b3c4d - Jeanne"
    )


def test_render_fallbacks():
    concert = make_concert(city=None, full_address=None, public_address=None, description=None)
    context = rendering.build_context(concert, None, APP_URL)

    assert rendering.render("{{ville_concert}}|{{adresse_complete}}|{{prenom}}", context) == (
        "À définir|À définir|[Prénom]"
    )


def test_adresse_complete_falls_back_to_public_address():
    context = rendering.build_context(make_concert(full_address=None), "Jeanne", APP_URL)
    assert context["adresse_complete"] == "Croix-Rousse"


def test_unknown_placeholder_left_untouched():
    context = rendering.build_context(make_concert(), "Jeanne", APP_URL)
    assert rendering.render("Bonjour {{inconnu}}", context) == "Bonjour {{inconnu}}"
    assert rendering.render(None, context) == ""


def test_whatsapp_url_strips_phone_formatting():
    url = rendering.whatsapp_url("Salut !", "+33 (6) 12-34-56-78")
    assert url == "https://wa.me/33612345678?text=Salut%20!"
    assert rendering.whatsapp_url("Salut") == "https://wa.me/?text=Salut"


def test_sms_and_gmail_urls():
    assert rendering.sms_url("A bientôt", "0612345678") == "sms:0612345678?body=A%20bient%C3%B4t"

    url = rendering.gmail_url("Invitation", "Ligne 1\nLigne 2", ["a@exemple.fr", "b@exemple.fr"])
    assert url.startswith("https://mail.google.com/mail/u/0/?view=cm&fs=1&tf=1")
    assert "&to=a@exemple.fr,b@exemple.fr" in url
    assert "&su=Invitation" in url
    assert "&body=Ligne%201%0ALigne%202" in url
