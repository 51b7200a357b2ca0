"""
Registration and login endpoints.

Both return a bearer token together with the profile so a client can
start an authenticated session with a single round trip.
"""

from fastapi import APIRouter, HTTPException, status

from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.security import create_access_token
from campus_market_api.app.schemas.profile import AuthResponse, ProfileLogin, ProfileRegister
from campus_market_api.app.services.profile_service import ProfileService


router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: ProfileRegister) -> AuthResponse:
    """Create a profile for a college email address and sign it in."""
    try:
        profile = await ProfileService.register(data)
    except ValueError as e:
        raise to_http_exception(e)
    token = create_access_token({"sub": profile.id})
    return AuthResponse(access_token=token, profile=profile)


@router.post("/login", response_model=AuthResponse)
async def login(data: ProfileLogin) -> AuthResponse:
    try:
        profile = await ProfileService.authenticate(data.email, data.password)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = create_access_token({"sub": profile.id})
    return AuthResponse(access_token=token, profile=profile)
