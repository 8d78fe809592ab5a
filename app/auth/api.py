from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.auth import schemas, jwt_handler
from app.auth.dependencies import get_current_user
from app.auth.models import User
from app.auth.services import AuthService
from app.db.session import get_db
from app.utils.audit import AuditAction, log_audit
from app.utils.email import send_verification_email, send_password_reset_email
from app.utils.errors import ServiceError, to_http_exception
from app.utils.rate_limit import auth_rate_limiter, get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_response(user: User) -> dict:
    access_token = jwt_handler.create_access_token(user.id, user.role)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": schemas.UserOut.model_validate(user),
    }


@router.post(
    "/register",
    response_model=schemas.TokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limiter)],
)
async def register(
    data: schemas.UserRegister,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    try:
        user, token = await AuthService(db).register(data)
    except ServiceError as e:
        raise to_http_exception(e)

    background_tasks.add_task(send_verification_email, user.email, token)
    await log_audit(AuditAction.REGISTER, user.id, {"role": user.role}, get_client_ip(request))
    return _token_response(user)


@router.post("/login", response_model=schemas.TokenResponse, dependencies=[Depends(auth_rate_limiter)])
async def login(data: schemas.UserLogin, request: Request, db: AsyncSession = Depends(get_db)):
    try:
        user = await AuthService(db).authenticate(data.email, data.password)
    except ServiceError as e:
        await log_audit(AuditAction.LOGIN_FAILED, None, {"email": data.email}, get_client_ip(request))
        raise to_http_exception(e)

    await log_audit(AuditAction.LOGIN, user.id, None, get_client_ip(request))
    return _token_response(user)


@router.get("/me", response_model=schemas.UserOut)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/verify-email", response_model=schemas.MessageResponse)
async def verify_email(data: schemas.VerifyEmailRequest, request: Request, db: AsyncSession = Depends(get_db)):
    try:
        user = await AuthService(db).verify_email(data.token)
    except ServiceError as e:
        raise to_http_exception(e)

    await log_audit(AuditAction.EMAIL_VERIFIED, user.id, None, get_client_ip(request))
    return {"msg": "Adresse email vérifiée"}


@router.post("/resend-verification", response_model=schemas.MessageResponse)
async def resend_verification(
    data: schemas.EmailRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    token = await AuthService(db).resend_verification(data.email)
    if token:
        background_tasks.add_task(send_verification_email, data.email, token)
    return {"msg": "Si un compte non vérifié existe, un email a été envoyé"}


@router.post(
    "/forgot-password",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(auth_rate_limiter)],
)
async def forgot_password(
    data: schemas.EmailRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    # Même réponse que le compte existe ou non
    token = await AuthService(db).request_password_reset(data.email)
    if token:
        background_tasks.add_task(send_password_reset_email, data.email, token)
    else:
        logger.info(f"Demande de réinitialisation pour un email inconnu : {data.email}")
    return {"msg": "Si un compte existe, un email de réinitialisation a été envoyé"}


@router.post("/reset-password", response_model=schemas.MessageResponse)
async def reset_password(data: schemas.ResetPasswordRequest, request: Request, db: AsyncSession = Depends(get_db)):
    try:
        user = await AuthService(db).reset_password(data.token, data.new_password)
    except ServiceError as e:
        raise to_http_exception(e)

    await log_audit(AuditAction.PASSWORD_RESET, user.id, None, get_client_ip(request))
    return {"msg": "Mot de passe réinitialisé avec succès"}


@router.put("/role", response_model=schemas.TokenResponse)
async def change_role(
    data: schemas.RoleChangeRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    previous = current_user.role
    try:
        user = await AuthService(db).change_role(current_user, data.role)
    except ServiceError as e:
        raise to_http_exception(e)

    await log_audit(AuditAction.ROLE_CHANGE, user.id, {"from": previous, "to": user.role}, get_client_ip(request))
    # Nouveau token car le rôle est embarqué dans le JWT
    return _token_response(user)


@router.post("/logout", response_model=schemas.MessageResponse)
async def logout(request: Request, current_user: User = Depends(get_current_user)):
    await log_audit(AuditAction.LOGOUT, current_user.id, None, get_client_ip(request))
    return {"msg": "Déconnecté avec succès"}
