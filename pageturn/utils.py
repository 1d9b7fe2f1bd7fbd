from fastapi import Depends, HTTPException, status
from fastapi_users import models

from .users import fastapi_users


# Dependency to get the currently authenticated user (None for anonymous readers)
async def get_current_user(
    user: models.UP = Depends(fastapi_users.current_user(optional=True)),
):
    return user


# Dependency to enforce authentication
async def require_authenticated_user(
    user: models.UP = Depends(fastapi_users.current_user(active=True)),
):
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


async def require_creator(user: models.UP = Depends(require_authenticated_user)):
    if not getattr(user, "is_creator", False):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Creator account required")
    return user
