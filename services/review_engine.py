"""
Review and rating engine.

A user's ``rating`` and ``totalRatings`` are derived from the active reviews
where that user is the reviewee. They are recomputed by a full aggregation
pass, synchronously, after every review create, rating change and soft
delete, so a reader never sees a review write without the matching aggregate.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from models.notification_models import NotificationType
from models.swap_models import SwapStatus
from utils import parse_object_id
from . import user_directory
from .exceptions import ConflictError, ForbiddenError, NotFoundError, PreconditionFailedError
from .notifications import notify
from .swap_workflow import get_swap, is_party, other_party

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500


def round_rating(value: float) -> float:
    """Round half up to one decimal, e.g. 4.25 -> 4.3."""
    return math.floor(value * 10 + 0.5) / 10


def _validate(rating: Optional[int], comment: Optional[str]) -> None:
    if rating is not None and not (1 <= rating <= 5):
        raise PreconditionFailedError("Rating must be between 1 and 5")
    if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
        raise PreconditionFailedError("Comment must be less than 500 characters")


async def calculate_user_rating(db, user_id) -> Dict[str, Any]:
    pipeline = [
        {"$match": {"reviewee": parse_object_id(user_id, "user id"), "isActive": True}},
        {
            "$group": {
                "_id": None,
                "averageRating": {"$avg": "$rating"},
                "totalReviews": {"$sum": 1},
            }
        },
    ]
    async for row in db.reviews.aggregate(pipeline):
        # An empty match can still yield a group row with a null average.
        if row.get("averageRating") is None or not row.get("totalReviews"):
            break
        return {
            "averageRating": round_rating(row["averageRating"]),
            "totalReviews": row["totalReviews"],
        }
    return {"averageRating": 0, "totalReviews": 0}


async def recompute_rating(db, user_id) -> Dict[str, Any]:
    stats = await calculate_user_rating(db, user_id)
    await user_directory.set_rating(
        db, parse_object_id(user_id, "user id"), stats["averageRating"], stats["totalReviews"]
    )
    logger.info(
        "Rating for user %s recomputed: %s over %s reviews",
        user_id, stats["averageRating"], stats["totalReviews"],
    )
    return stats


async def create_review(
    db, reviewer: Dict[str, Any], swap_id, reviewee_id, rating: int, comment: str = ""
) -> Dict[str, Any]:
    _validate(rating, comment)
    swap = await get_swap(db, swap_id)
    reviewer_id = reviewer["_id"]
    reviewee_oid = parse_object_id(reviewee_id, "reviewee id")

    if swap["status"] != SwapStatus.COMPLETED.value:
        raise PreconditionFailedError("Can only review completed swaps")
    if not is_party(swap, reviewer_id):
        raise ForbiddenError("Not authorized to review this swap")
    if other_party(swap, reviewer_id) != reviewee_oid:
        raise PreconditionFailedError("Invalid reviewee for this swap")

    existing = await db.reviews.find_one({
        "reviewer": reviewer_id,
        "reviewee": reviewee_oid,
        "swap": swap["_id"],
    })
    if existing:
        raise ConflictError("You have already reviewed this swap")

    now = datetime.utcnow()
    review = {
        "reviewer": reviewer_id,
        "reviewee": reviewee_oid,
        "swap": swap["_id"],
        "rating": rating,
        "comment": (comment or "").strip(),
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db.reviews.insert_one(review)
    except DuplicateKeyError:
        raise ConflictError("You have already reviewed this swap")
    review["_id"] = result.inserted_id

    await recompute_rating(db, reviewee_oid)

    await notify(
        db,
        reviewee_oid,
        NotificationType.REVIEW_RECEIVED,
        "New Review",
        f"{reviewer.get('username', 'Someone')} rated your swap {rating}/5",
        {"review_id": str(review["_id"]), "swap_id": str(swap["_id"])},
    )
    return review


async def get_review(db, review_id) -> Dict[str, Any]:
    review = await db.reviews.find_one({"_id": parse_object_id(review_id, "review id")})
    if not review or not review.get("isActive", True):
        raise NotFoundError("Review not found")
    return review


async def update_review(
    db, review_id, actor: Dict[str, Any], rating: Optional[int] = None, comment: Optional[str] = None
) -> Dict[str, Any]:
    _validate(rating, comment)
    review = await get_review(db, review_id)
    if review["reviewer"] != actor["_id"]:
        raise ForbiddenError("Not authorized to edit this review")

    fields: Dict[str, Any] = {}
    if rating is not None:
        fields["rating"] = rating
    if comment is not None:
        fields["comment"] = comment.strip()
    if not fields:
        return review

    fields["updatedAt"] = datetime.utcnow()
    await db.reviews.update_one({"_id": review["_id"]}, {"$set": fields})
    if rating is not None and rating != review["rating"]:
        await recompute_rating(db, review["reviewee"])

    review.update(fields)
    return review


async def delete_review(db, review_id, actor: Dict[str, Any], moderator: bool = False) -> None:
    """Soft-delete a review. Allowed for its reviewer or a moderator."""
    review = await get_review(db, review_id)
    if review["reviewer"] != actor["_id"] and not moderator:
        raise ForbiddenError("Not authorized to delete this review")

    await db.reviews.update_one(
        {"_id": review["_id"]},
        {"$set": {"isActive": False, "updatedAt": datetime.utcnow()}},
    )
    logger.info("Review %s soft-deleted by %s (moderator=%s)", review["_id"], actor["_id"], moderator)
    await recompute_rating(db, review["reviewee"])


async def check_eligibility(db, swap_id, actor_id) -> Dict[str, Any]:
    swap = await get_swap(db, swap_id)
    if swap["status"] != SwapStatus.COMPLETED.value:
        return {"canReview": False, "reason": "Swap not completed"}
    if not is_party(swap, actor_id):
        return {"canReview": False, "reason": "Not involved in swap"}

    reviewee_id = other_party(swap, actor_id)
    existing = await db.reviews.find_one({
        "reviewer": actor_id,
        "reviewee": reviewee_id,
        "swap": swap["_id"],
    })
    if existing:
        return {"canReview": False, "reason": "Already reviewed"}

    return {
        "canReview": True,
        "revieweeId": str(reviewee_id),
        "swap": {
            "id": str(swap["_id"]),
            "requestedBook": str(swap["requestedBook"]),
            "offeredBook": str(swap["offeredBook"]),
        },
    }


async def _page(db, query: Dict[str, Any], page: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
    reviews = []
    cursor = db.reviews.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
    async for review in cursor:
        reviews.append(review)
    total = await db.reviews.count_documents(query)
    return reviews, total


async def list_user_reviews(db, user_id, page: int = 1, limit: int = 10) -> Tuple[List[Dict[str, Any]], int]:
    query = {"reviewee": parse_object_id(user_id, "user id"), "isActive": True}
    return await _page(db, query, page, limit)


async def list_all_reviews(
    db, rating: Optional[int] = None, page: int = 1, limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    query: Dict[str, Any] = {"isActive": True}
    if rating:
        query["rating"] = rating
    return await _page(db, query, page, limit)
