from fastapi import APIRouter, Depends, HTTPException

from dataBase import get_db
from dependencies import get_current_user, is_admin, require_admin
from models.profile_model import UserProfile
from models.update_profile_model import UpdateUserProfile
from services import review_engine, stats, user_directory
from utils import serialize_document

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_own_profile(current_user: dict = Depends(get_current_user)):
    return {"user": serialize_document(current_user)}


@router.put("/profile")
async def update_user_profile(
    updated_data: UpdateUserProfile,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    fields = {
        k: str(v) if k == "avatar" and v is not None else v
        for k, v in updated_data.dict(exclude_unset=True).items()
    }
    user = await user_directory.update_profile(db, current_user["_id"], fields)
    return {"message": "Profile updated successfully", "user": serialize_document(user)}


@router.get("/stats/overview")
async def get_user_stats(admin: dict = Depends(require_admin), db=Depends(get_db)):
    return {"stats": await stats.user_overview(db)}


@router.get("/profile/{user_id}")
async def get_user_profile(user_id: str, db=Depends(get_db)):
    user = await user_directory.get_user(db, user_id)
    profile = UserProfile(**serialize_document(user))
    reviews, _ = await review_engine.list_user_reviews(db, user_id, page=1, limit=50)
    return {
        "user": profile,
        "reviews": [serialize_document(review) for review in reviews],
    }


@router.get("/{user_id}")
async def get_user(user_id: str, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    if str(current_user["_id"]) != user_id and not is_admin(current_user):
        raise HTTPException(status_code=403, detail="Access denied")
    user = await user_directory.get_user(db, user_id)
    return {"user": serialize_document(user)}
