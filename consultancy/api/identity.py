"""
Identity API.

POST /v1/identity/anonymous: Issue an identity for a new browser tab
"""

import logging
import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_db
from ..core.flags import get_flags
from ..models.user import User

logger = logging.getLogger(__name__)

identity_router = APIRouter(prefix="/identity", tags=["identity"])


class IdentityOut(BaseModel):
    user_id: str
    registered: bool


@identity_router.post("/anonymous", response_model=IdentityOut)
async def anonymous_identity(db: AsyncSession = Depends(get_db)):
    """
    Anonymous sign-in. With FF_USE_ANONYMOUS_AUTH off, hand out a local
    UUID instead; the session store will refuse to open a session for it.
    """
    if not get_flags().use_anonymous_auth:
        user_id = str(uuid.uuid4())
        logger.info("Anonymous auth disabled, issued unregistered id %s", user_id)
        return IdentityOut(user_id=user_id, registered=False)

    user = User(is_anonymous=True)
    db.add(user)
    await db.commit()
    logger.info("Registered anonymous user %s", user.id)
    return IdentityOut(user_id=user.id, registered=True)
