"""Thin wrapper around the Firebase Admin SDK.

Only Firebase Authentication is used: ID token verification plus a handful of
account management calls. Everything else lives in our own database.
"""

import logging
import os

import firebase_admin
from firebase_admin import auth, credentials, exceptions

from learning_platform import config

logger = logging.getLogger(__name__)

FirebaseError = exceptions.FirebaseError
InvalidIdTokenError = auth.InvalidIdTokenError
UserNotFoundError = auth.UserNotFoundError


def _service_account_info() -> dict | None:
    if config.FIREBASE_PROJECT_ID:
        private_key = (config.FIREBASE_PRIVATE_KEY or "").replace("\\n", "\n")
        return {
            "type": "service_account",
            "project_id": config.FIREBASE_PROJECT_ID,
            "private_key_id": config.FIREBASE_PRIVATE_KEY_ID,
            "private_key": private_key,
            "client_email": config.FIREBASE_CLIENT_EMAIL,
            "client_id": config.FIREBASE_CLIENT_ID,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    return None


def initialize_firebase() -> bool:
    """Initialize the default Firebase app once; return whether it is usable."""
    if firebase_admin._apps:
        return True

    info = _service_account_info()
    try:
        if info is not None:
            cred = credentials.Certificate(info)
        elif os.path.exists(config.FIREBASE_SERVICE_ACCOUNT_FILE):
            cred = credentials.Certificate(config.FIREBASE_SERVICE_ACCOUNT_FILE)
        else:
            logger.warning(
                "Firebase credentials not configured; set FIREBASE_PROJECT_ID and friends "
                f"or provide {config.FIREBASE_SERVICE_ACCOUNT_FILE}"
            )
            return False
        firebase_admin.initialize_app(cred)
    except (ValueError, OSError) as e:
        logger.error(f"Failed to initialize Firebase: {e}")
        return False

    logger.info("Firebase Admin SDK initialized")
    return True


def verify_id_token(token: str) -> dict:
    """Return the decoded claims for a Firebase ID token.

    Raises InvalidIdTokenError (or a subclass) when the token is bad.
    """
    initialize_firebase()
    return auth.verify_id_token(token, check_revoked=False)


def get_user(uid: str) -> dict:
    initialize_firebase()
    record = auth.get_user(uid)
    return {
        "uid": record.uid,
        "email": record.email,
        "display_name": record.display_name,
        "photo_url": record.photo_url,
        "email_verified": record.email_verified,
        "disabled": record.disabled,
        "metadata": {
            "creation_timestamp": record.user_metadata.creation_timestamp,
            "last_sign_in_timestamp": record.user_metadata.last_sign_in_timestamp,
        },
    }


def update_user(uid: str, **fields) -> None:
    initialize_firebase()
    auth.update_user(uid, **fields)


def delete_user(uid: str) -> None:
    initialize_firebase()
    auth.delete_user(uid)


def create_custom_token(uid: str, additional_claims: dict | None = None) -> str:
    initialize_firebase()
    token = auth.create_custom_token(uid, additional_claims)
    return token.decode("utf-8") if isinstance(token, bytes) else token
