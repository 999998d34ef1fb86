from fastapi import Depends, HTTPException, status

from app.auth.auth_handler import AuthHandler
from app.config import settings
from app.schemas import CurrentUser


def has_admin_access(user: CurrentUser) -> bool:
    if not user or not user.email:
        return False

    admin_emails = {email.lower() for email in settings.ADMIN_EMAILS}
    return user.email.lower() in admin_emails


async def get_current_user(user: CurrentUser = Depends(AuthHandler())) -> CurrentUser:
    """
    Dependency for getting the current authenticated user.

    Returns:
        CurrentUser: uid and email from the verified identity token
    """
    return user


async def get_current_admin_user(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Dependency for getting the current admin user.

    The capability is recomputed on every request and never cached.

    Raises:
        HTTPException: If the user is not an admin
    """
    if not has_admin_access(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin access required.",
        )

    return user
