"""Request identity supplied by the upstream auth middleware.

The gateway authenticates the user and forwards ``X-User-Id`` and
``X-User-Role``. Both are trusted as-is.
"""

from fastapi import Header, HTTPException
from pydantic import BaseModel

from marketplace.roles import normalize_role


class Actor(BaseModel):
    user_id: str
    role: str


async def current_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    return Actor(user_id=x_user_id, role=normalize_role(x_user_role))
