from api.services.auth_service import AuthResult, AuthService, IssuedSession

__all__ = ["AuthResult", "AuthService", "IssuedSession"]
