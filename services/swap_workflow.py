"""
Swap workflow engine.

Owns the swap state machine::

    pending --accept--> accepted --complete--> completed
    pending --decline--> declined
    pending|accepted --cancel--> cancelled

Every transition is a compare-and-set on the stored status, so two concurrent
requests against the same swap cannot both move it out of the same state.
Side effects run after the status write, in a fixed order: status, then book
availability, then swap counters. A side effect that does not apply is raised
as SideEffectError rather than left silent.

Expiry is evaluated lazily when an accept is attempted. Nothing rewrites an
expired swap, so a stale pending record keeps reading ``pending`` in storage.
"""

import logging
import os
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pymongo import ReturnDocument

from models.notification_models import NotificationType
from models.swap_models import LIVE_STATUSES, SwapListType, SwapStatus
from utils import parse_object_id
from . import book_directory, user_directory
from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    SideEffectError,
)
from .notifications import notify

logger = logging.getLogger(__name__)

SWAP_EXPIRY_DAYS = int(os.getenv("SWAP_EXPIRY_DAYS", 7))

LIVE_STATUS_VALUES = [status.value for status in LIVE_STATUSES]


def is_requester(swap: Dict[str, Any], user_id) -> bool:
    return str(swap["requester"]) == str(user_id)


def is_owner(swap: Dict[str, Any], user_id) -> bool:
    return str(swap["owner"]) == str(user_id)


def is_party(swap: Dict[str, Any], user_id) -> bool:
    return is_requester(swap, user_id) or is_owner(swap, user_id)


def other_party(swap: Dict[str, Any], user_id):
    return swap["owner"] if is_requester(swap, user_id) else swap["requester"]


def is_expired(swap: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()
    return swap["status"] == SwapStatus.PENDING.value and swap["expiresAt"] <= now


async def get_swap(db, swap_id) -> Dict[str, Any]:
    swap = await db.swaps.find_one({"_id": parse_object_id(swap_id, "swap id")})
    if not swap or not swap.get("isActive", True):
        raise NotFoundError("Swap not found")
    return swap


async def get_swap_for_participant(db, swap_id, actor_id) -> Dict[str, Any]:
    swap = await get_swap(db, swap_id)
    if not is_party(swap, actor_id):
        raise ForbiddenError("Not authorized to view this swap")
    return swap


def _ensure_swappable(book: Optional[Dict[str, Any]], label: str) -> None:
    if not book or not book.get("isActive", True) or not book.get("isAvailable", True):
        raise PreconditionFailedError(f"{label} book is not available")


async def create_swap(
    db, requester: Dict[str, Any], requested_book_id, offered_book_id, message: str = ""
) -> Dict[str, Any]:
    requester_id = requester["_id"]
    requested_book = await book_directory.find_book(db, requested_book_id)
    offered_book = await book_directory.find_book(db, offered_book_id)

    _ensure_swappable(requested_book, "Requested")
    _ensure_swappable(offered_book, "Offered")

    if not book_directory.is_owned_by(offered_book, requester_id):
        raise ForbiddenError("You can only offer books you own")
    if book_directory.is_owned_by(requested_book, requester_id):
        raise PreconditionFailedError("You cannot request your own book")
    if requested_book.get("owner") is None:
        raise PreconditionFailedError("Requested book has no registered owner")

    existing = await db.swaps.find_one({
        "requester": requester_id,
        "requestedBook": requested_book["_id"],
        "offeredBook": offered_book["_id"],
        "status": {"$in": LIVE_STATUS_VALUES},
        "isActive": True,
    })
    if existing:
        raise ConflictError("You already have a live swap request for these books")

    now = datetime.utcnow()
    swap = {
        "requester": requester_id,
        "owner": requested_book["owner"],
        "requestedBook": requested_book["_id"],
        "offeredBook": offered_book["_id"],
        "status": SwapStatus.PENDING.value,
        "message": (message or "").strip(),
        "responseMessage": "",
        "meetingLocation": None,
        "meetingDate": None,
        "completedAt": None,
        "expiresAt": now + timedelta(days=SWAP_EXPIRY_DAYS),
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db.swaps.insert_one(swap)
    swap["_id"] = result.inserted_id
    logger.info(
        "Swap %s created: %s offers %s for %s",
        swap["_id"], requester_id, offered_book["_id"], requested_book["_id"],
    )

    await notify(
        db,
        swap["owner"],
        NotificationType.SWAP_REQUEST,
        "New Swap Request",
        f"{requester.get('username', 'Someone')} wants to swap for your book '{requested_book['title']}'",
        {"swap_id": str(swap["_id"])},
    )
    return swap


async def _transition(
    db, swap: Dict[str, Any], target: SwapStatus, fields: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Move ``swap`` to ``target`` only if its stored status still matches what we read."""
    update = {"status": target.value, "updatedAt": datetime.utcnow()}
    update.update(fields or {})
    updated = await db.swaps.find_one_and_update(
        {"_id": swap["_id"], "status": swap["status"]},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise InvalidTransitionError(
            f"Swap is no longer {swap['status']}; it was modified by another request"
        )
    logger.info("Swap %s: %s -> %s", swap["_id"], swap["status"], target.value)
    return updated


async def _apply_side_effects(swap: Dict[str, Any], *effects: Callable[[], Awaitable[None]]) -> None:
    for effect in effects:
        try:
            await effect()
        except SideEffectError:
            logger.error("Swap %s is %s but a follow-up write did not apply", swap["_id"], swap["status"])
            raise
        except Exception as exc:
            logger.exception("Swap %s is %s but a follow-up write failed", swap["_id"], swap["status"])
            raise SideEffectError(f"Swap {swap['_id']} is {swap['status']} but a follow-up write failed") from exc


def _book_ids(swap: Dict[str, Any]) -> List:
    return [swap["requestedBook"], swap["offeredBook"]]


async def accept_swap(
    db,
    swap_id,
    actor: Dict[str, Any],
    response_message: str = "",
    meeting_location: Optional[str] = None,
    meeting_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    swap = await get_swap(db, swap_id)
    if not is_owner(swap, actor["_id"]):
        raise ForbiddenError("Only the book owner can accept swap requests")
    if swap["status"] != SwapStatus.PENDING.value:
        raise InvalidTransitionError("This swap request is no longer pending")
    if is_expired(swap):
        raise InvalidTransitionError("This swap request has expired")

    for book_id, label in zip(_book_ids(swap), ("Requested", "Offered")):
        _ensure_swappable(await book_directory.find_book(db, book_id), label)

    fields: Dict[str, Any] = {"responseMessage": (response_message or "").strip()}
    if meeting_location:
        fields["meetingLocation"] = meeting_location.strip()
    if meeting_date:
        fields["meetingDate"] = meeting_date

    swap = await _transition(db, swap, SwapStatus.ACCEPTED, fields)
    await _apply_side_effects(
        swap,
        lambda: book_directory.set_availability(db, _book_ids(swap), False),
    )

    await notify(
        db,
        swap["requester"],
        NotificationType.SWAP_ACCEPTED,
        "Swap Request Accepted",
        "Your swap request has been accepted!",
        {"swap_id": str(swap["_id"])},
    )
    return swap


async def decline_swap(db, swap_id, actor: Dict[str, Any], response_message: str = "") -> Dict[str, Any]:
    swap = await get_swap(db, swap_id)
    if not is_owner(swap, actor["_id"]):
        raise ForbiddenError("Only the book owner can decline swap requests")
    if swap["status"] != SwapStatus.PENDING.value:
        raise InvalidTransitionError("This swap request is no longer pending")

    swap = await _transition(
        db, swap, SwapStatus.DECLINED, {"responseMessage": (response_message or "").strip()}
    )

    await notify(
        db,
        swap["requester"],
        NotificationType.SWAP_DECLINED,
        "Swap Request Declined",
        "Your swap request was declined.",
        {"swap_id": str(swap["_id"])},
    )
    return swap


async def complete_swap(db, swap_id, actor: Dict[str, Any]) -> Dict[str, Any]:
    swap = await get_swap(db, swap_id)
    if not is_party(swap, actor["_id"]):
        raise ForbiddenError("Not authorized to complete this swap")
    if swap["status"] != SwapStatus.ACCEPTED.value:
        raise InvalidTransitionError("Only accepted swaps can be completed")

    swap = await _transition(db, swap, SwapStatus.COMPLETED, {"completedAt": datetime.utcnow()})
    # Books stay unavailable: they have changed hands.
    await _apply_side_effects(
        swap,
        lambda: book_directory.increment_swap_count(db, _book_ids(swap)),
        lambda: user_directory.increment_total_swaps(db, [swap["requester"], swap["owner"]]),
    )

    await notify(
        db,
        other_party(swap, actor["_id"]),
        NotificationType.SWAP_COMPLETED,
        "Swap Completed",
        "Your swap has been marked as completed. You can now leave a review.",
        {"swap_id": str(swap["_id"])},
    )
    return swap


async def cancel_swap(db, swap_id, actor: Dict[str, Any]) -> Dict[str, Any]:
    swap = await get_swap(db, swap_id)
    if not is_requester(swap, actor["_id"]):
        raise ForbiddenError("Only the requester can cancel swap requests")
    if swap["status"] not in LIVE_STATUS_VALUES:
        raise InvalidTransitionError("This swap cannot be cancelled")

    was_accepted = swap["status"] == SwapStatus.ACCEPTED.value
    swap = await _transition(db, swap, SwapStatus.CANCELLED)
    if was_accepted:
        await _apply_side_effects(
            swap,
            lambda: book_directory.set_availability(db, _book_ids(swap), True),
        )

    await notify(
        db,
        swap["owner"],
        NotificationType.SWAP_CANCELLED,
        "Swap Request Cancelled",
        "A swap request for your book was cancelled.",
        {"swap_id": str(swap["_id"])},
    )
    return swap


async def list_user_swaps(
    db,
    user_id,
    status: Optional[SwapStatus] = None,
    list_type: SwapListType = SwapListType.ALL,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Dict[str, Any]], int]:
    query: Dict[str, Any] = {"isActive": True}
    if list_type == SwapListType.SENT:
        query["requester"] = user_id
    elif list_type == SwapListType.RECEIVED:
        query["owner"] = user_id
    else:
        query["$or"] = [{"requester": user_id}, {"owner": user_id}]
    if status:
        query["status"] = SwapStatus(status).value

    return await _page(db, query, page, limit)


async def list_pending_received(db, user_id) -> List[Dict[str, Any]]:
    swaps = []
    cursor = db.swaps.find({
        "owner": user_id,
        "status": SwapStatus.PENDING.value,
        "isActive": True,
        "expiresAt": {"$gt": datetime.utcnow()},
    }).sort("createdAt", -1)
    async for swap in cursor:
        swaps.append(swap)
    return swaps


async def list_all_swaps(
    db, status: Optional[str] = None, page: int = 1, limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    query: Dict[str, Any] = {}
    if status and status != "all":
        query["status"] = status
    return await _page(db, query, page, limit)


async def _page(db, query: Dict[str, Any], page: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
    swaps = []
    cursor = db.swaps.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
    async for swap in cursor:
        swaps.append(swap)
    total = await db.swaps.count_documents(query)
    return swaps, total
