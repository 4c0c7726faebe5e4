"""Token utilities backed by Firebase Authentication.

These routes do not require a bearer token, except the account status switch
which is reserved for teachers.
"""

import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from learning_platform import config, firebase
from learning_platform.deps import require_teacher
from learning_platform.errors import NotFound, ValidationError
from learning_platform.models import User
from learning_platform.schemas import CustomTokenIn, UserStatusIn, VerifyTokenIn

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/verify")
def verify_token(payload: VerifyTokenIn = Body(...)):
    if not payload.token:
        raise ValidationError("Token is required")

    try:
        claims = firebase.verify_id_token(payload.token)
    except (firebase.FirebaseError, ValueError) as e:
        logger.warning(f"Token verification error: {e}")
        return JSONResponse(
            status_code=401, content={"valid": False, "error": "Invalid or expired token"}
        )

    return {
        "valid": True,
        "uid": claims.get("uid"),
        "email": claims.get("email"),
        "email_verified": claims.get("email_verified", False),
    }


@router.post("/custom-token")
def custom_token(payload: CustomTokenIn = Body(...)):
    """Mint a custom token for local testing; disabled unless explicitly allowed."""
    if not config.ALLOW_CUSTOM_TOKENS:
        raise NotFound("Route not found")
    if not payload.uid:
        raise ValidationError("UID is required")

    token = firebase.create_custom_token(payload.uid, payload.additional_claims)
    return {"custom_token": token}


@router.get("/user/{uid}")
def get_auth_user(uid: str):
    try:
        return firebase.get_user(uid)
    except firebase.UserNotFoundError:
        raise NotFound("User not found")


@router.patch("/user/{uid}/status")
def set_user_status(
    uid: str,
    payload: UserStatusIn = Body(...),
    current_user: User = Depends(require_teacher),
):
    if not isinstance(payload.disabled, bool):
        raise ValidationError("Disabled status must be a boolean")

    try:
        firebase.update_user(uid, disabled=payload.disabled)
    except firebase.UserNotFoundError:
        raise NotFound("User not found")

    logger.info(f"User {uid} {'disabled' if payload.disabled else 'enabled'} by {current_user.uid}")
    state = "disabled" if payload.disabled else "enabled"
    return {"message": f"User {state} successfully"}
