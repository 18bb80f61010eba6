from app.models.user import User, RefreshSession


__all__ = [
    "User",
    "RefreshSession",
]
