# idp/adapters/inbound/api/v1/endpoints/user_endpoint.py (async version)

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from idp.adapters.inbound.api.deps import get_auth_service, get_current_user_id
from idp.application.dtos.user_dto import UserOutput, UserUpdate
from idp.application.ports.inbound import IAuthUseCase
from idp.domain.exceptions import IDPException

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/me",
    response_model=UserOutput,
    summary="Current user - Profile of the authenticated user",
)
async def read_current_user(
        user_id: UUID = Depends(get_current_user_id),
        service: IAuthUseCase = Depends(get_auth_service),
):
    return await service.get_current_user(user_id)


@router.patch(
    "/",
    response_model=UserOutput,
    summary="Update current user - Changes e-mail and/or password",
    responses={
        409: {
            "description": "E-mail already used by another account",
            "content": {
                "application/json": {
                    "example": {"detail": "User with email 'user@example.com' already exists"}
                }
            }
        }
    }
)
async def update_current_user(
        user_input: UserUpdate,
        user_id: UUID = Depends(get_current_user_id),
        service: IAuthUseCase = Depends(get_auth_service),
):
    try:
        return await service.update_current_user(user_id, user_input)

    except IDPException as e:
        logger.warning(f"Profile update rejected for {user_id}: {e}")
        raise

    except Exception as e:
        logger.exception(f"Unhandled error in profile update: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error."
        )
