from models.repositories.refresh_session import RefreshSessionRepository, SQLRefreshSessionRepository
from models.repositories.user import SQLUserRepository, UserRepository

__all__ = [
    "RefreshSessionRepository",
    "SQLRefreshSessionRepository",
    "SQLUserRepository",
    "UserRepository",
]
