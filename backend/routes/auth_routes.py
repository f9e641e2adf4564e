import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_user
from backend.auth.passwords import hash_password, verify_password
from backend.core import validation
from backend.core.errors import Conflict, InternalError, InvalidInput, NotFound, Unauthenticated
from backend.core.schemas import CamelModel
from backend.database import get_db
from backend.models.user import User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid credentials'


class RegisterRequest(CamelModel):
    full_name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class ProfileUpdateRequest(CamelModel):
    full_name: str | None = None
    email: str | None = None
    password: str | None = None


class UserResponse(CamelModel):
    id: str
    full_name: str
    email: str


class UserEnvelope(CamelModel):
    user: UserResponse


class MessageUserResponse(UserEnvelope):
    message: str


class AuthResponse(MessageUserResponse):
    token: str


def build_auth_response(user: User, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=jwt_handler.create_access_token(subject=user.id),
        user=UserResponse.model_validate(user),
    )


@router.post('/register', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    error = validation.validate_registration(data.full_name, data.email, data.password)
    if error:
        raise InvalidInput(error)

    email = validation.normalize_email(data.email)

    try:
        if db.query(User).filter(User.email == email).first():
            raise Conflict('User already exists')

        user = User(
            full_name=data.full_name.strip(),
            email=email,
            password_hash=hash_password(data.password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise Conflict('User already exists') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Registration failed for %s', email)
        raise InternalError() from exc

    logger.info('Registered user %s', user.id)
    return build_auth_response(user, 'Registered successfully')


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    error = validation.validate_login(data.email, data.password)
    if error:
        raise InvalidInput(error)

    try:
        user = db.query(User).filter(User.email == validation.normalize_email(data.email)).first()
    except SQLAlchemyError as exc:
        logger.exception('Login lookup failed')
        raise InternalError() from exc

    # Same message for unknown email and wrong password.
    if user is None or not verify_password(data.password, user.password_hash):
        raise Unauthenticated(INVALID_CREDENTIALS)

    logger.info('User %s logged in', user.id)
    return build_auth_response(user, 'Login success')


@router.get('/me', response_model=UserEnvelope)
def me(current_user: User = Depends(get_current_user)):
    return UserEnvelope(user=UserResponse.model_validate(current_user))


@router.put('/profile', response_model=MessageUserResponse)
def update_profile(
    data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    error = validation.validate_profile_update(data.full_name, data.email, data.password)
    if error:
        raise InvalidInput(error)

    try:
        user = db.query(User).filter(User.id == current_user.id).first()
        if user is None:
            raise NotFound('User not found')

        if data.email is not None:
            email = validation.normalize_email(data.email)
            existing = db.query(User).filter(User.email == email, User.id != user.id).first()
            if existing:
                raise Conflict('Email already in use')
            user.email = email

        if data.full_name is not None:
            user.full_name = data.full_name.strip()

        if data.password:
            user.password_hash = hash_password(data.password)

        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise Conflict('Email already in use') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Profile update failed for user %s', current_user.id)
        raise InternalError() from exc

    return MessageUserResponse(message='Profile updated', user=UserResponse.model_validate(user))
