from fastapi import APIRouter, Depends, Query

from dataBase import get_db
from dependencies import get_current_user, is_admin
from models.review_models import ReviewCreate, ReviewUpdate
from services import review_engine
from utils import pagination_info, serialize_document

router = APIRouter(prefix="/reviews", tags=["reviews"])


async def serialize_review(db, review: dict) -> dict:
    data = serialize_document(review)
    reviewer = await db.users.find_one({"_id": review["reviewer"]})
    data["reviewerInfo"] = {
        "username": reviewer.get("username") if reviewer else "Unknown User",
        "avatar": reviewer.get("avatar") if reviewer else None,
    }
    return data


@router.post("", status_code=201)
async def create_review(
    review: ReviewCreate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    created = await review_engine.create_review(
        db, current_user, review.swapId, review.revieweeId, review.rating, review.comment
    )
    return {
        "message": "Review created successfully",
        "review": await serialize_review(db, created),
    }


@router.get("/user/{user_id}")
async def get_user_reviews(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db=Depends(get_db),
):
    reviews, total = await review_engine.list_user_reviews(db, user_id, page=page, limit=limit)
    rating_stats = await review_engine.calculate_user_rating(db, user_id)
    return {
        "reviews": [await serialize_review(db, review) for review in reviews],
        "ratingStats": rating_stats,
        "pagination": pagination_info(page, limit, total),
    }


@router.get("/swap/{swap_id}/eligible")
async def check_review_eligibility(
    swap_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await review_engine.check_eligibility(db, swap_id, current_user["_id"])


@router.get("/{review_id}")
async def get_review(review_id: str, db=Depends(get_db)):
    review = await review_engine.get_review(db, review_id)
    return {"review": await serialize_review(db, review)}


@router.put("/{review_id}")
async def update_review(
    review_id: str,
    update: ReviewUpdate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    review = await review_engine.update_review(
        db, review_id, current_user, rating=update.rating, comment=update.comment
    )
    return {"message": "Review updated successfully", "review": await serialize_review(db, review)}


@router.delete("/{review_id}")
async def delete_review(review_id: str, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    await review_engine.delete_review(db, review_id, current_user, moderator=is_admin(current_user))
    return {"message": "Review deleted successfully"}
