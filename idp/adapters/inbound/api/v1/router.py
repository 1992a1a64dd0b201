# idp/adapters/inbound/api/v1/router.py

from fastapi import APIRouter
from idp.adapters.inbound.api.v1.endpoints import auth_endpoint, user_endpoint

api_router = APIRouter()

api_router.include_router(auth_endpoint.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(user_endpoint.router, prefix="/user", tags=["User"])
