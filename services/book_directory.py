"""Book Directory: book records, listing queries and the workflow-owned mutations."""

import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId

from models.post_book_model import BookCondition
from utils import parse_object_id
from .exceptions import ConflictError, ForbiddenError, NotFoundError, SideEffectError

logger = logging.getLogger(__name__)

LIVE_SWAP_STATUSES = ["pending", "accepted"]

CONDITION_ALIASES = {
    "excellent": BookCondition.VERY_GOOD,
    "very good": BookCondition.VERY_GOOD,
    "good": BookCondition.GOOD,
    "fair": BookCondition.FAIR,
    "poor": BookCondition.POOR,
    "new": BookCondition.NEW,
    "like new": BookCondition.LIKE_NEW,
}


def normalize_condition(value: Optional[str]) -> str:
    if not value:
        return BookCondition.GOOD.value
    return CONDITION_ALIASES.get(str(value).strip().lower(), BookCondition.GOOD).value


def _contains(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


async def find_book(db, book_id) -> Optional[Dict[str, Any]]:
    return await db.books.find_one({"_id": parse_object_id(book_id, "book id")})


async def get_book(db, book_id) -> Dict[str, Any]:
    book = await find_book(db, book_id)
    if not book or not book.get("isActive", True):
        raise NotFoundError("Book not found")
    return book


def is_owned_by(book: Dict[str, Any], user_id) -> bool:
    owner = book.get("owner")
    return owner is not None and str(owner) == str(user_id)


async def create_book(db, data: Dict[str, Any], owner: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    now = datetime.utcnow()
    book = {
        "title": (data.get("title") or "").strip() or "Untitled",
        "author": (data.get("author") or "").strip() or "Unknown",
        "genre": (data.get("genre") or "").strip() or "General",
        "language": (data.get("language") or "").strip() or "English",
        "condition": normalize_condition(data.get("condition")),
        "description": data.get("description") or "",
        "isbn": data.get("isbn"),
        "publishedYear": data.get("publishedYear"),
        "publisher": data.get("publisher"),
        "pageCount": data.get("pageCount"),
        "tags": data.get("tags") or [],
        "coverImage": data.get("coverImage"),
        "images": data.get("images") or [],
        "owner": owner["_id"] if owner else None,
        "ownerEmail": (owner or {}).get("email") or data.get("email"),
        "location": (owner or {}).get("location") or "",
        "isAvailable": True,
        "isActive": True,
        "viewCount": 0,
        "swapCount": 0,
        "createdAt": now,
        "updatedAt": now,
    }
    if book["ownerEmail"]:
        book["ownerEmail"] = book["ownerEmail"].strip().lower()

    result = await db.books.insert_one(book)
    book["_id"] = result.inserted_id
    logger.info("Book %s listed by %s", book["_id"], book["owner"] or book["ownerEmail"])
    return book


async def update_book(db, book_id, actor_id, fields: Dict[str, Any]) -> Dict[str, Any]:
    book = await get_book(db, book_id)
    if not is_owned_by(book, actor_id):
        raise ForbiddenError("Not authorized to edit this book")

    if "condition" in fields:
        fields["condition"] = normalize_condition(fields["condition"])
    if not fields:
        return book

    fields["updatedAt"] = datetime.utcnow()
    await db.books.update_one({"_id": book["_id"]}, {"$set": fields})
    return await db.books.find_one({"_id": book["_id"]})


async def count_live_swaps(db, book_id: ObjectId) -> int:
    return await db.swaps.count_documents({
        "$or": [{"requestedBook": book_id}, {"offeredBook": book_id}],
        "status": {"$in": LIVE_SWAP_STATUSES},
    })


async def soft_delete_book(db, book_id, actor_id=None, moderator: bool = False) -> None:
    book = await get_book(db, book_id)
    if not moderator and not is_owned_by(book, actor_id):
        raise ForbiddenError("Not authorized to delete this book")

    if await count_live_swaps(db, book["_id"]) > 0:
        raise ConflictError("Cannot delete book with active swap requests")

    await db.books.update_one(
        {"_id": book["_id"]},
        {"$set": {"isActive": False, "updatedAt": datetime.utcnow()}},
    )
    logger.info("Book %s soft-deleted (moderator=%s)", book["_id"], moderator)


async def increment_view_count(db, book_id: ObjectId) -> None:
    await db.books.update_one({"_id": book_id}, {"$inc": {"viewCount": 1}})


async def _page(db, query: Dict[str, Any], page: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
    skip = (page - 1) * limit
    books = []
    cursor = db.books.find(query).sort("createdAt", -1).skip(skip).limit(limit)
    async for book in cursor:
        books.append(book)
    total = await db.books.count_documents(query)
    return books, total


async def list_available_books(
    db,
    search: Optional[str] = None,
    genre: Optional[str] = None,
    condition: Optional[str] = None,
    language: Optional[str] = None,
    location: Optional[str] = None,
    page: int = 1,
    limit: int = 12,
) -> Tuple[List[Dict[str, Any]], int]:
    query: Dict[str, Any] = {"isAvailable": True, "isActive": True}
    if genre:
        query["genre"] = genre
    if condition:
        query["condition"] = condition
    if language:
        query["language"] = language
    if location:
        query["location"] = _contains(location)
    if search:
        query["$or"] = [
            {"title": _contains(search)},
            {"author": _contains(search)},
            {"description": _contains(search)},
            {"tags": _contains(search)},
        ]
    return await _page(db, query, page, limit)


async def list_user_books(
    db, user_id, available: Optional[bool] = None, page: int = 1, limit: int = 12
) -> Tuple[List[Dict[str, Any]], int]:
    query: Dict[str, Any] = {"owner": parse_object_id(user_id, "user id"), "isActive": True}
    if available is not None:
        query["isAvailable"] = available
    return await _page(db, query, page, limit)


async def list_all_books(
    db,
    search: Optional[str] = None,
    genre: Optional[str] = None,
    availability: str = "all",
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Dict[str, Any]], int]:
    query: Dict[str, Any] = {"isActive": True}
    if availability == "available":
        query["isAvailable"] = True
    elif availability == "unavailable":
        query["isAvailable"] = False
    if genre:
        query["genre"] = _contains(genre)
    if search:
        query["$or"] = [{"title": _contains(search)}, {"author": _contains(search)}, {"isbn": _contains(search)}]
    return await _page(db, query, page, limit)


async def list_genres(db) -> List[str]:
    genres = await db.books.distinct("genre", {"isActive": True, "isAvailable": True})
    return sorted(genre for genre in genres if genre and genre.strip())


# Workflow-owned mutations. Only the swap workflow writes isAvailable and swapCount.

async def set_availability(db, book_ids: Iterable[ObjectId], available: bool) -> None:
    book_ids = list(book_ids)
    query: Dict[str, Any] = {"_id": {"$in": book_ids}}
    if not available:
        # A book already taken by another accepted swap must not be claimed twice.
        query["isAvailable"] = True
    result = await db.books.update_many(
        query,
        {"$set": {"isAvailable": available, "updatedAt": datetime.utcnow()}},
    )
    if result.matched_count != len(book_ids):
        raise SideEffectError(
            f"Availability update matched {result.matched_count} of {len(book_ids)} books"
        )


async def increment_swap_count(db, book_ids: Iterable[ObjectId]) -> None:
    book_ids = list(book_ids)
    result = await db.books.update_many({"_id": {"$in": book_ids}}, {"$inc": {"swapCount": 1}})
    if result.matched_count != len(book_ids):
        raise SideEffectError(
            f"Swap count update matched {result.matched_count} of {len(book_ids)} books"
        )
