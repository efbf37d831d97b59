"""
Registration, login and current-user endpoints.
"""

from fastapi import APIRouter, status
from starlette.concurrency import run_in_threadpool

from ...core.exceptions import AuthenticationError, NotFoundError
from ...infrastructure.monitoring.logging import get_logger
from ...infrastructure.monitoring.metrics import metrics
from ..auth import create_access_token, hash_password, verify_password
from ..deps import Config, CurrentUser, Users
from ..schemas import AuthResponse, LoginRequest, MeResponse, RegisterRequest, UserOut

logger = get_logger(__name__)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, users: Users, config: Config):
    """Register a new user"""
    password_hash = await run_in_threadpool(hash_password, body.password, config.auth.bcrypt_rounds)
    user = await users.create(body.username, body.email, password_hash)

    token = create_access_token(user, config.auth)
    metrics.record_request("register", "success")
    logger.info("User registered", user_id=user["id"], username=user["username"])

    return AuthResponse(message="User registered successfully", user=UserOut(**user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, users: Users, config: Config):
    """Login with email and password"""
    user = await users.get_credentials(body.email)
    valid = user is not None and await run_in_threadpool(
        verify_password, body.password, user["password_hash"]
    )
    if not valid:
        metrics.record_request("login", "rejected")
        logger.info("Login failed", email=body.email)
        raise AuthenticationError("Invalid credentials")

    token = create_access_token(user, config.auth)
    metrics.record_request("login", "success")

    user.pop("password_hash")
    return AuthResponse(message="Login successful", user=UserOut(**user), token=token)


@router.get("/me", response_model=MeResponse)
async def me(current_user: CurrentUser, users: Users):
    """Get current user information"""
    user = await users.get_by_id(current_user["id"])
    if user is None:
        raise NotFoundError("User not found")
    return MeResponse(user=UserOut(**user))
