from fastapi import APIRouter, Depends, Request

from learnpath.db import documents
from learnpath.db.database import get_db
from learnpath.errors import NotFound
from learnpath.routes.auth import get_current_user

router = APIRouter(prefix="/user-profile", tags=["user-profile"])


@router.get("/{user_id}")
async def get_user_profile(user_id: str, request: Request, db=Depends(get_db)):
    await get_current_user(request)

    profile = await documents.get_user_profile(db, user_id)
    if profile is None:
        raise NotFound("User profile not found")
    return profile
