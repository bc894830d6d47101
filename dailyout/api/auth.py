from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dailyout.api.deps import get_services
from dailyout.core.auth import get_current_user_id, get_optional_user_id
from dailyout.core.container import Services
from dailyout.core.errors import NotFoundError, ValidationError

router = APIRouter(prefix="/api/auth", tags=["auth"])


class CredentialsRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


def _require_credentials(req: CredentialsRequest) -> None:
    if not req.email or not req.password:
        raise ValidationError("Email and password are required")


@router.post("/register")
def register(
    req: CredentialsRequest,
    user_id: Optional[str] = Depends(get_optional_user_id),
    services: Services = Depends(get_services),
):
    """
    Create an account. When the caller already has an identity (anonymous
    X-Anon-Id or a token), the email/password is linked to it instead, so the
    existing history carries over.
    """
    _require_credentials(req)
    user, token = services.users.register(req.email, req.password, existing_user_id=user_id)
    return {"user": user.public_dict(), "token": token}


@router.post("/login")
def login(req: CredentialsRequest, services: Services = Depends(get_services)):
    _require_credentials(req)
    user, token = services.users.login(req.email, req.password)
    return {"user": user.public_dict(), "token": token}


@router.get("/me")
def me(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    user = services.users.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return {"id": user.id, "email": user.email, "hasPassword": user.has_password}
