"""
Authentication service for ClassPulse

``PrincipalResolver`` turns an opaque bearer credential into a ``Principal``.
It only consumes the "verify token -> user id" capability; the bundled
``JwtCredentialVerifier`` is one implementation of it. ``AuthService`` is the
thin account layer (register/login) that issues those credentials.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol

import jwt
from sqlalchemy.exc import IntegrityError

from ..exceptions import (
    AccountExists,
    InvalidCredential,
    InvalidLogin,
    NoCredential,
    UnknownPrincipal,
    ValidationError,
)
from ..models import User, UserRole, utcnow
from ..roles import parse_user_role
from .database import get_db_service
from .logging import get_logging_service
from .settings_config_service import get_settings_service


@dataclass(frozen=True)
class Principal:
    """The authenticated actor of one request"""

    id: int
    role: UserRole
    display_name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        role = parse_user_role(user.role)
        if role is None:
            raise UnknownPrincipal("Account has no valid role")
        return cls(
            id=user.id, role=role, display_name=user.display_name, email=user.email
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "display_name": self.display_name,
            "email": self.email,
        }


class CredentialVerifier(Protocol):
    def verify(self, credential: str) -> int:
        """Return the user id the credential was issued for, or raise InvalidCredential."""
        ...


class JwtCredentialVerifier:
    """HS256 JWT issuance and verification"""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        expiry_minutes: Optional[int] = None,
    ):
        from ..security import get_or_create_jwt_secret

        defaults = get_settings_service().get_security_defaults()
        self.secret = secret or get_or_create_jwt_secret()
        self.algorithm = algorithm or defaults["jwt_algorithm"]
        self.expiry_minutes = expiry_minutes or defaults["token_expiry_minutes"]

    def issue(self, user_id: int, role: UserRole) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "role": role.value,
            "iat": now,
            "exp": now + timedelta(minutes=self.expiry_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, credential: str) -> int:
        try:
            # Tokens minted without exp would never expire
            payload = jwt.decode(
                credential,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidCredential("Token has expired")
        except jwt.InvalidTokenError:
            raise InvalidCredential()

        user_id = payload.get("user_id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidCredential()
        return user_id


class PrincipalResolver:
    """Resolve a bearer credential into a Principal (read-only)"""

    def __init__(self, verifier: Optional[CredentialVerifier] = None):
        self.verifier = verifier or JwtCredentialVerifier()
        self.log = get_logging_service()

    @property
    def db_service(self):
        # Tests replace the global database service between runs
        return get_db_service()

    def resolve(self, credential: Optional[str]) -> Principal:
        if credential is None or not credential.strip():
            self.log.log_auth_event("resolve", success=False, reason="no_credential")
            raise NoCredential()

        try:
            user_id = self.verifier.verify(credential.strip())
        except InvalidCredential:
            self.log.log_auth_event(
                "resolve", success=False, reason="invalid_credential"
            )
            raise

        user = self.db_service.get_user_by_id(user_id)
        if user is None or not user.active:
            self.log.log_auth_event(
                "resolve", user_id=user_id, success=False, reason="unknown_principal"
            )
            raise UnknownPrincipal()

        return Principal.from_user(user)


class AuthService:
    """Account registration and login"""

    def __init__(self, verifier: Optional[JwtCredentialVerifier] = None):
        self.verifier = verifier or JwtCredentialVerifier()
        self.password_min_length = get_settings_service().get_security_defaults()[
            "password_min_length"
        ]
        self.log = get_logging_service()

    @property
    def db_service(self):
        return get_db_service()

    def register_user(
        self,
        email: str,
        password: str,
        display_name: str,
        role: UserRole,
    ) -> Dict[str, Any]:
        """Register a new account"""
        from ..security import hash_password, validate_password

        email = (email or "").strip().lower()
        display_name = (display_name or "").strip()
        if not email:
            raise ValidationError("Email is required")
        if not display_name:
            raise ValidationError("Display name is required")
        if not validate_password(password, self.password_min_length):
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters "
                "and contain uppercase, lowercase, digit, and special character"
            )

        with self.db_service.get_session() as session:
            if session.query(User).filter_by(email=email).first():
                raise AccountExists()

            user = User(
                email=email,
                password_hash=hash_password(password),
                display_name=display_name,
                role=role,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise AccountExists()
            session.refresh(user)

            self.log.log_crud_operation(
                "create", "user", user.id, user_id=user.id, role=role.value
            )
            return user.to_dict()

    def login_user(self, email: str, password: str) -> Dict[str, Any]:
        """Authenticate and return a signed bearer token"""
        from ..security import verify_password

        email = (email or "").strip().lower()
        with self.db_service.get_session() as session:
            user = session.query(User).filter_by(email=email, active=True).first()
            if user is None or not verify_password(password, user.password_hash):
                self.log.log_auth_event(
                    "login", user_id=user.id if user else None, success=False
                )
                raise InvalidLogin()

            user.last_login = utcnow()
            session.commit()
            session.refresh(user)

            token = self.verifier.issue(user.id, user.role)
            self.log.log_auth_event("login", user_id=user.id)
            return {
                "user": user.to_dict(),
                "token": token,
                "expires_at": (
                    datetime.now(timezone.utc)
                    + timedelta(minutes=self.verifier.expiry_minutes)
                ).isoformat(),
            }


_auth_service: Optional[AuthService] = None
_principal_resolver: Optional[PrincipalResolver] = None


def get_auth_service() -> AuthService:
    """Get the global authentication service instance"""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service


def get_principal_resolver() -> PrincipalResolver:
    """Get the global principal resolver instance"""
    global _principal_resolver
    if _principal_resolver is None:
        _principal_resolver = PrincipalResolver()
    return _principal_resolver
