# idp/adapters/inbound/api/v1/endpoints/auth_endpoint.py (async version)

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Cookie, Depends, Form, HTTPException, Response, status
from fastapi.responses import JSONResponse

from idp.adapters.inbound.api.deps import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    get_access_token,
    get_auth_service,
    get_current_user_id,
    set_token_cookie,
)
from idp.application.dtos.user_dto import (
    MessageResponse,
    RefreshTokenRequest,
    TokenData,
    UserCreate,
    UserOutput,
)
from idp.application.ports.inbound import IAuthUseCase
from idp.domain.exceptions import IDPException, InvalidTokenException

logger = logging.getLogger(__name__)
router = APIRouter()


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.exception(f"Unhandled error in {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error."
    )


@router.post(
    "/register",
    response_model=UserOutput,
    status_code=status.HTTP_201_CREATED,
    summary="Register User - Creates a new user",
    responses={
        409: {
            "description": "Email already in use",
            "content": {
                "application/json": {
                    "example": {"detail": "User with email 'user@example.com' already exists"}
                }
            }
        }
    }
)
async def register_user(
        user_input: UserCreate,
        service: IAuthUseCase = Depends(get_auth_service),
):
    try:
        return await service.register(user_input)

    except IDPException as e:
        logger.warning(f"Registration rejected: {e}")
        raise

    except Exception as e:
        raise _internal_error("registration", e)


@router.post(
    "/login",
    response_model=TokenData,
    summary="Login User - Generates access and refresh tokens",
    description=(
            "Authenticates a user (email/password form) and returns a JWT pair. "
            "Both tokens are also set as HttpOnly cookies. Repeated failures "
            "block the account for an exponentially growing time."
    ),
)
async def login_user(
        response: Response,
        email: str = Form(...),
        password: str = Form(...),
        service: IAuthUseCase = Depends(get_auth_service),
):
    try:
        tokens = await service.login(email, password)

    except IDPException as e:
        logger.warning(f"Login rejected for {email}: {e.internal_code}")
        raise

    except Exception as e:
        raise _internal_error("login", e)

    set_token_cookie(response, ACCESS_TOKEN_COOKIE, tokens.access_token, tokens.expires_at)
    set_token_cookie(response, REFRESH_TOKEN_COOKIE, tokens.refresh_token, tokens.refresh_expires_at)
    return tokens


@router.post(
    "/refresh",
    response_model=TokenData,
    summary="Refresh Token - Renews the access token",
    description=(
            "Generates a new access token from a valid refresh token given in the "
            "body or in the refresh_token cookie. The refresh token is not rotated."
    ),
)
async def refresh_token(
        response: Response,
        refresh_data: Optional[RefreshTokenRequest] = None,
        refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
        service: IAuthUseCase = Depends(get_auth_service),
):
    token = (refresh_data.refresh_token if refresh_data else None) or refresh_cookie
    if not token:
        raise InvalidTokenException(detail="Missing refresh token")

    try:
        tokens = await service.refresh_token(token)

    except IDPException as e:
        logger.warning(f"Invalid refresh: {e}")
        raise

    except Exception as e:
        raise _internal_error("token refresh", e)

    set_token_cookie(response, ACCESS_TOKEN_COOKIE, tokens.access_token, tokens.expires_at)
    return tokens


@router.get(
    "/logout",
    response_model=MessageResponse,
    summary="Logout - Revoke current tokens",
    description="Adds the access token and its refresh token to the block list until they expire.",
)
async def logout_user(
        response: Response,
        token: str = Depends(get_access_token),
        service: IAuthUseCase = Depends(get_auth_service),
):
    try:
        await service.logout(token)

    except IDPException as e:
        logger.warning(f"Logout rejected: {e}")
        raise

    except Exception as e:
        raise _internal_error("logout", e)

    response.delete_cookie(ACCESS_TOKEN_COOKIE, path="/")
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")
    return MessageResponse(detail="Logged out successfully")


@router.get(
    "/is-user-authenticated",
    summary="Authentication check",
    description=(
            "Returns 200 when the access_token cookie is valid. Otherwise tries the "
            "refresh_token cookie and, on success, sets a new access_token cookie."
    ),
    responses={401: {"description": "Not authenticated"}},
)
async def is_user_authenticated(
        access_token: Optional[str] = Cookie(None),
        refresh_token: Optional[str] = Cookie(None),
        service: IAuthUseCase = Depends(get_auth_service),
):
    try:
        auth_status = await service.is_user_authenticated(access_token, refresh_token)

    except IDPException as e:
        logger.error(f"Authentication check failed: {e}")
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"authenticated": False})

    if not auth_status.authenticated:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"authenticated": False})

    response = JSONResponse(status_code=status.HTTP_200_OK, content={"authenticated": True})
    if auth_status.access_token:
        set_token_cookie(response, ACCESS_TOKEN_COOKIE, auth_status.access_token, auth_status.expires_at)
    return response


@router.post(
    "/request-password-reset",
    response_model=MessageResponse,
    summary="Request a password reset token",
    description="Issues a reset token and publishes it for delivery to the account owner.",
)
async def request_password_reset(
        email: str = Form(...),
        service: IAuthUseCase = Depends(get_auth_service),
):
    try:
        await service.request_password_reset(email)

    except IDPException as e:
        logger.warning(f"Password reset request failed: {e}")
        raise

    except Exception as e:
        raise _internal_error("password reset request", e)

    return MessageResponse(detail="Password reset token sent successfully")


@router.post(
    "/confirm-password-reset/{reset_token}",
    response_model=MessageResponse,
    summary="Confirm a password reset",
)
async def confirm_password_reset(
        reset_token: str,
        new_password: str = Form(..., min_length=1),
        service: IAuthUseCase = Depends(get_auth_service),
):
    try:
        await service.confirm_password_reset(reset_token, new_password)

    except IDPException as e:
        logger.warning(f"Password reset confirmation failed: {e}")
        raise

    except Exception as e:
        raise _internal_error("password reset confirmation", e)

    return MessageResponse(detail="Password reset successfully")


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change the password of the authenticated user",
)
async def change_password(
        new_password: str = Form(..., min_length=1),
        user_id: UUID = Depends(get_current_user_id),
        service: IAuthUseCase = Depends(get_auth_service),
):
    try:
        await service.change_password(user_id, new_password)

    except IDPException as e:
        logger.warning(f"Password change failed for {user_id}: {e}")
        raise

    except Exception as e:
        raise _internal_error("password change", e)

    return MessageResponse(detail="Password changed successfully")
