# mentorly/utils/security.py
"""
Caller identity for the HTTP layer.

Authentication is delegated to the gateway in front of this service; it
forwards the authenticated user's id in the ``X-User-Id`` header.
"""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from mentorly import models
from mentorly.crud import user as user_crud
from mentorly.database import get_db


def get_current_user(
    x_user_id: int = Header(..., alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> models.User:
    user = user_crud.get_user(db, x_user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive user",
        )
    return user
