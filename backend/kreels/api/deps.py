"""
Shared route dependencies: the authenticated user id and the notification service.

Tokens are the API's own JWTs (HS256, payload {"id": <user id>, "email": ...}).
Settings and the service are read from app.state (set in the lifespan, see kreels.main).
"""
import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from kreels.config import Settings
from kreels.services.notification_service import NotificationService

_bearer = HTTPBearer(auto_error=False)


def decode_user_id(token: str, app_settings: Settings) -> str | None:
    """User id from a JWT, or None if the token is invalid, expired or has no id."""
    try:
        payload = jwt.decode(token, app_settings.jwt_secret, algorithms=[app_settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None
    user_id = payload.get("id")
    return str(user_id) if user_id else None


def current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    user_id = decode_user_id(credentials.credentials, request.app.state.settings)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user_id


def get_notification_service(request: Request) -> NotificationService:
    """The app's NotificationService, for action handlers (pass it to kreels.services builders)."""
    return request.app.state.notification_service
