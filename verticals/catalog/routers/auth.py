"""Account endpoints — registration, login and token introspection."""

from fastapi import APIRouter, Depends, status
from starlette.concurrency import run_in_threadpool

from api.auth import get_config, get_current_identity
from core.config import CatalogConfig
from core.errors import AuthenticationError, ValidationError
from core.security import Identity, hash_password, issue_token, verify_password
from verticals.catalog.models.schemas import AuthResponse, LoginRequest, RegisterRequest, Role
from verticals.catalog.repository import UserRepository, get_user_repository
from verticals.catalog.rules import is_email, is_non_empty, normalize_email

router = APIRouter()


def _auth_response(user: dict, config: CatalogConfig) -> AuthResponse:
    identity = Identity(
        user_id=user["user_id"],
        username=user["username"],
        email=user["email"],
        role=user["role"],
    )
    token = issue_token(identity, config.auth.secret, config.auth.token_ttl_seconds)
    return AuthResponse(token=token, user=identity.to_dict())


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=AuthResponse)
async def register(
    request: RegisterRequest,
    config: CatalogConfig = Depends(get_config),
    repo: UserRepository = Depends(get_user_repository),
):
    """Create a reader account and return a bearer token."""
    email = normalize_email(request.email)
    if not is_non_empty(request.username) or not is_email(email) or not is_non_empty(request.password):
        raise ValidationError("Invalid registration data")

    password_hash = await run_in_threadpool(
        hash_password, request.password, config.auth.hash_iterations
    )
    user = await repo.register(
        username=request.username.strip(),
        email=email,
        password_hash=password_hash,
        role=Role.USER.value,
    )
    return _auth_response(user, config)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    config: CatalogConfig = Depends(get_config),
    repo: UserRepository = Depends(get_user_repository),
):
    email = normalize_email(request.email)
    if not is_email(email) or not is_non_empty(request.password):
        raise ValidationError("Invalid login data")

    user = await repo.get_by_email(email)
    if user is None:
        raise AuthenticationError("Invalid email or password")

    ok = await run_in_threadpool(verify_password, request.password, user.password_hash)
    if not ok and request.password.strip() != request.password:
        ok = await run_in_threadpool(verify_password, request.password.strip(), user.password_hash)
    if not ok:
        raise AuthenticationError("Invalid email or password")

    return _auth_response({**user.to_dict(), "email": normalize_email(user.email)}, config)


@router.get("/me")
async def me(identity: Identity = Depends(get_current_identity)):
    return {"user": identity.to_dict()}
