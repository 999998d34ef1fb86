import asyncio
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth

from app.auth.firebase import get_firebase_app
from app.logger.logger import logger
from app.schemas import CurrentUser


class AuthHandler:
    """FastAPI dependency that turns a Firebase ID token into a CurrentUser."""

    security = HTTPBearer(auto_error=False)

    async def __call__(
        self,
        credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    ) -> CurrentUser:
        if credentials is None or not credentials.credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Please log in"
            )
        return await self.decode_token(credentials.credentials)

    async def decode_token(self, token: str) -> CurrentUser:
        try:
            claims = await asyncio.to_thread(
                firebase_auth.verify_id_token, token, get_firebase_app()
            )
        except (
            firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError,
            firebase_auth.InvalidIdTokenError,
        ) as e:
            logger.warning(f"Rejected ID token: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Please log in",
            )

        return CurrentUser(
            uid=claims["uid"], email=claims.get("email"), name=claims.get("name")
        )
