import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pathlib import Path

from app.config import settings
from app.analytics.api import router as analytics_router
from app.auth.api import router as auth_router
from app.avis.api import router as avis_router
from app.concerts.api import router as concerts_router
from app.contacts.api import router as contacts_router
from app.devis.api import router as devis_router
from app.groupes.api import router as groupes_router
from app.inscriptions.api import router as inscriptions_router
from app.messages.api import router as messages_router
from app.moderation.api import router as moderation_router
from app.organisateurs.api import router as organisateurs_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Concert Chaussettes API")

# Création dossier statique uploads
upload_dir = Path("static/upload/groupes")
upload_dir.mkdir(parents=True, exist_ok=True)

# Monture des fichiers statiques
app.mount("/static", StaticFiles(directory="static"), name="static")

app.include_router(auth_router)
app.include_router(groupes_router)
app.include_router(organisateurs_router)
app.include_router(concerts_router)
app.include_router(inscriptions_router)
app.include_router(contacts_router)
app.include_router(avis_router)
app.include_router(messages_router)
app.include_router(devis_router)
app.include_router(moderation_router)
app.include_router(analytics_router)

# Middleware CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Erreur non gérée sur {request.method} {request.url.path} : {exc}")
    return JSONResponse(status_code=500, content={"detail": "Erreur interne du serveur"})


@app.get("/")
async def root():
    return {"message": "Bienvenue sur l'API Concert Chaussettes !"}
