from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr

from classpulse.api.security import (
    get_current_principal,
    get_optional_principal,
    principal_role_str,
)
from classpulse.core.exceptions import Forbidden, ValidationError
from classpulse.core.models import UserRole
from classpulse.core.roles import parse_user_role
from classpulse.core.services.auth import AuthService, Principal, get_auth_service

# Models


class UserRegister(BaseModel):
    email: EmailStr
    password: str
    display_name: str
    role: str = "student"


class Token(BaseModel):
    access_token: str
    token_type: str
    expires_at: str
    user: dict


class PrincipalResponse(BaseModel):
    id: int
    email: str
    display_name: str
    role: str


router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=dict)
async def register(
    user_data: UserRegister,
    current: Optional[Principal] = Depends(get_optional_principal),
    auth_service: AuthService = Depends(get_auth_service),
):
    role_enum = parse_user_role(user_data.role)
    if role_enum is None:
        raise ValidationError(f"Invalid role: {user_data.role}")

    # Role-based creation policy:
    # - Unauthenticated self-registration: teacher/student only
    # - Admins can create admin/teacher/student
    # - Teachers can create students only
    # - Students cannot create users
    if current is None:
        if role_enum == UserRole.ADMIN:
            raise Forbidden("Admin account creation requires authentication")
    elif current.role == UserRole.ADMIN:
        pass
    elif current.role == UserRole.TEACHER:
        if role_enum != UserRole.STUDENT:
            raise Forbidden("Teachers can only create student accounts")
    else:
        raise Forbidden("Students cannot create user accounts")

    return auth_service.register_user(
        email=str(user_data.email),
        password=user_data.password,
        display_name=user_data.display_name,
        role=role_enum,
    )


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    auth_service: AuthService = Depends(get_auth_service),
):
    # OAuth2 form: the e-mail travels in the "username" field
    result = auth_service.login_user(form_data.username, form_data.password)
    return {
        "access_token": result["token"],
        "token_type": "bearer",
        "expires_at": result["expires_at"],
        "user": result["user"],
    }


@router.get("/me", response_model=PrincipalResponse)
async def read_principal_me(principal: Principal = Depends(get_current_principal)):
    return {
        "id": principal.id,
        "email": principal.email,
        "display_name": principal.display_name,
        "role": principal_role_str(principal),
    }
