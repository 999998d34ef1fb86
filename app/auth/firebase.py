from typing import Optional

import firebase_admin
from firebase_admin import credentials

from app.config import settings
from app.logger.logger import logger

_firebase_app: Optional[firebase_admin.App] = None


def get_firebase_app() -> firebase_admin.App:
    """Initialise the Firebase admin app once per process."""
    global _firebase_app

    if _firebase_app is None:
        options = (
            {"projectId": settings.FIREBASE_PROJECT_ID}
            if settings.FIREBASE_PROJECT_ID
            else None
        )
        if settings.FIREBASE_CREDENTIALS_PATH:
            cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
        else:
            cred = credentials.ApplicationDefault()
        _firebase_app = firebase_admin.initialize_app(cred, options)
        logger.debug("Firebase admin app initialized")

    return _firebase_app
