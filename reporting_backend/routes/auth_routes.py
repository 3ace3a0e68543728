import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reporting_backend.auth.dependencies import get_caller, get_session_token
from reporting_backend.auth.sessions import CallerContext, SessionRegistry, get_session_registry
from reporting_backend.core.errors import InternalError, ValidationError
from reporting_backend.database import get_db
from reporting_backend.models.user import ROLES, User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


def _required(value: str, label: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError(f'{label} is required.')
    return normalized


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str
    role: str
    full_name: str

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _required(value, 'Username')

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = _required(value, 'Email').lower()
        if '@' not in normalized:
            raise ValueError('Email address is invalid.')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        return value

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in ROLES:
            raise ValueError('Invalid role.')
        return normalized

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        return _required(value, 'Full name')


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _required(value, 'Username')


class RegisterResponse(BaseModel):
    message: str
    user_id: int


class LoginResponse(BaseModel):
    token: str
    user: CallerContext


class MessageResponse(BaseModel):
    message: str


@router.post('/register', response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    try:
        existing = db.query(User.id).filter(
            or_(User.username == payload.username, User.email == payload.email)
        ).first()
        if existing:
            raise ValidationError('User already exists')

        user = User(
            username=payload.username,
            email=payload.email,
            role=payload.role,
            full_name=payload.full_name,
        )
        user.set_password(payload.password)
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError('User already exists') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Registration failed for %s', payload.username)
        raise InternalError() from exc

    logger.info('Registered %s as %s', user.username, user.role)
    return RegisterResponse(message='User registered successfully', user_id=user.id)


@router.post('/login', response_model=LoginResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        user = db.query(User).filter(User.username == payload.username).first()
    except SQLAlchemyError as exc:
        logger.exception('Login lookup failed for %s', payload.username)
        raise InternalError() from exc

    if user is None or not user.check_password(payload.password):
        raise ValidationError('Invalid credentials')

    snapshot = CallerContext.model_validate(user)
    token = registry.create(snapshot)
    return LoginResponse(token=token, user=snapshot)


@router.post('/logout', response_model=MessageResponse)
def logout(
    token: str | None = Depends(get_session_token),
    registry: SessionRegistry = Depends(get_session_registry),
):
    if token:
        registry.invalidate(token)
    return MessageResponse(message='Logged out successfully')


@router.get('/me', response_model=CallerContext)
def me(caller: CallerContext = Depends(get_caller)):
    return caller
