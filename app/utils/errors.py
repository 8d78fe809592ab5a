from fastapi import HTTPException, status


class ServiceError(Exception):
    """Erreur métier levée par les services, convertie en réponse HTTP par les routers."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Requête invalide"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Ressource non trouvée"


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Accès interdit"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflit avec une ressource existante"


class GoneError(ServiceError):
    status_code = status.HTTP_410_GONE
    default_message = "Ressource expirée"


def to_http_exception(error: ServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
