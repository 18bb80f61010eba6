from fastapi import APIRouter

api_router = APIRouter()


def include_routers():
    from app.api.auth import router as auth_router

    api_router.include_router(auth_router, tags=["Authentication"])

    return api_router
