from datetime import datetime, timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from auth.models import (
    ChangePasswordRequest,
    LoginRequest,
    PasswordResetRequest,
    ResetPasswordRequest,
    SignupRequest,
    TokenResponse,
    UserResponse,
)
from auth.utils import (
    MIN_PASSWORD_LENGTH,
    create_token,
    generate_reset_code,
    get_current_user,
    hash_password,
    hash_reset_code,
    normalize_email,
    require_rate_limit,
    verify_password,
)
from config import settings
from db.database import get_db
from db.models import User
from services.email_service import (
    send_password_reset_confirmation_email,
    send_password_reset_email,
    send_quietly,
    send_welcome_email,
)
from services.rate_limit_service import AUTH_RULE

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED_MESSAGE = "If an account exists, a verification code was sent."


def user_payload(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, name=user.name or "", coach_persona=user.coach_persona)


def _check_new_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(
    req: SignupRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    email = normalize_email(req.email or "")
    require_rate_limit(AUTH_RULE, request, f"signup:{email}")
    if not email or not req.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")
    _check_new_password(req.password)

    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(req.password),
        name=(req.name or "").strip(),
        coach_persona="calm",
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    background_tasks.add_task(send_quietly, send_welcome_email, user.email, user.name)
    return TokenResponse(message="Account created successfully", token=create_token(user.id), user=user_payload(user))


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, request: Request, db: Session = Depends(get_db)):
    email = normalize_email(req.email or "")
    require_rate_limit(AUTH_RULE, request, f"login:{email}")
    if not email or not req.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return TokenResponse(message="Login successful", token=create_token(user.id), user=user_payload(user))


@router.post("/request-password-reset")
def request_password_reset(
    req: PasswordResetRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    email = normalize_email(req.email or "")
    require_rate_limit(AUTH_RULE, request, f"reset:{email}")
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        return {"message": RESET_REQUESTED_MESSAGE}

    code = generate_reset_code()
    user.reset_code_hash = hash_reset_code(code)
    user.reset_code_expires = datetime.utcnow() + timedelta(minutes=settings.RESET_CODE_TTL_MINUTES)
    db.commit()

    background_tasks.add_task(send_quietly, send_password_reset_email, user.email, code)
    return {"message": RESET_REQUESTED_MESSAGE}


@router.post("/reset-password")
def reset_password(
    req: ResetPasswordRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    email = normalize_email(req.email or "")
    require_rate_limit(AUTH_RULE, request, f"reset-confirm:{email}")
    code = str(req.code if req.code is not None else "").strip()
    if not email or not code or not req.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email, code, and newPassword are required",
        )
    _check_new_password(req.new_password)

    invalid = HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired verification code")
    user = db.query(User).filter(User.email == email).first()
    if not user or not user.reset_code_hash or not user.reset_code_expires:
        raise invalid
    if user.reset_code_expires < datetime.utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Verification code expired")
    if user.reset_code_hash != hash_reset_code(code):
        raise invalid

    user.password_hash = hash_password(req.new_password)
    user.reset_code_hash = None
    user.reset_code_expires = None
    db.commit()

    background_tasks.add_task(send_quietly, send_password_reset_confirmation_email, user.email)
    return {"message": "Password reset successful"}


@router.post("/change-password")
def change_password(
    req: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not req.current_password or not req.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="currentPassword and newPassword are required",
        )
    _check_new_password(req.new_password)
    if not verify_password(req.current_password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")

    user.password_hash = hash_password(req.new_password)
    db.commit()
    return {"message": "Password updated successfully"}
