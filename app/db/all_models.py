# Importe tous les modules de modèles pour enregistrer les tables dans Base.metadata
# et permettre la résolution des relations déclarées par nom.
import app.auth.models  # noqa: F401
import app.avis.models  # noqa: F401
import app.concerts.models  # noqa: F401
import app.contacts.models  # noqa: F401
import app.devis.models  # noqa: F401
import app.groupes.models  # noqa: F401
import app.inscriptions.models  # noqa: F401
import app.messages.models  # noqa: F401
import app.moderation.models  # noqa: F401
import app.organisateurs.models  # noqa: F401
