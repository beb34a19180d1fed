"""Push notification registration: Expo device tokens per user."""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from kreels.api.deps import current_user_id
from kreels.core.errors import InvalidPushTokenError, error_to_http
from kreels.db.session import get_db
from kreels.services.push_tokens import deactivate_push_token, register_push_token

router = APIRouter()
logger = logging.getLogger(__name__)


class RegisterPushBody(BaseModel):
    token: str = Field(..., min_length=1, max_length=256, description="Expo push token (ExponentPushToken[...])")
    platform: str | None = Field(default=None, max_length=16)
    device_id: str | None = Field(default=None, max_length=128)


class DeactivatePushBody(BaseModel):
    token: str | None = Field(default=None, max_length=256)


@router.post("/push-token")
def register_token(
    body: RegisterPushBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """
    Register a device for push notifications.
    Call this from the app after Expo hands out the push token.
    Idempotent: the same token is upserted (reactivated, last_used_at refreshed).
    """
    try:
        row = register_push_token(db, user_id, body.token, platform=body.platform, device_id=body.device_id)
    except InvalidPushTokenError as e:
        raise error_to_http(e)
    except Exception as e:
        logger.exception("Error registering push token: %s", e)
        raise error_to_http(e, "Failed to register push token")
    return {
        "success": True,
        "data": {
            "token": row.token,
            "platform": row.platform,
            "device_id": row.device_id,
            "is_active": row.is_active,
        },
    }


@router.delete("/push-token")
def deactivate_token(
    body: DeactivatePushBody | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Deactivate a token on logout. A missing or unknown token is not an error."""
    deactivated = 0
    if body and body.token:
        try:
            deactivated = deactivate_push_token(db, body.token)
        except Exception as e:
            logger.exception("Error deactivating push token: %s", e)
            raise error_to_http(e, "Failed to deactivate push token")
    return {"success": True, "data": {"deactivated": deactivated}}
