from fastapi import APIRouter, Depends, Query
from typing import Optional

from dataBase import get_db
from dependencies import get_current_user
from models.swap_models import SwapAcceptance, SwapDecline, SwapListType, SwapRequest, SwapStatus
from services import swap_workflow
from utils import pagination_info, serialize_document

router = APIRouter(prefix="/swaps", tags=["swaps"])


async def describe_swap(db, swap: dict) -> dict:
    """Serialize a swap with short summaries of its books and parties."""
    data = serialize_document(swap)

    for field in ("requestedBook", "offeredBook"):
        book = await db.books.find_one({"_id": swap[field]})
        data[f"{field}Info"] = {
            "title": book.get("title", "Unknown Book") if book else "Unknown Book",
            "author": book.get("author", "Unknown Author") if book else "Unknown Author",
            "condition": book.get("condition", "") if book else "",
            "coverImage": book.get("coverImage") if book else None,
        }

    for field in ("requester", "owner"):
        user = await db.users.find_one({"_id": swap[field]})
        data[f"{field}Info"] = {
            "username": user.get("username", "Unknown User") if user else "Unknown User",
            "name": f"{user.get('firstName', '')} {user.get('lastName', '')}".strip() if user else "",
            "avatar": user.get("avatar") if user else None,
            "rating": user.get("rating", 0) if user else 0,
        }

    data["isExpired"] = swap_workflow.is_expired(swap)
    return data


@router.get("")
async def get_user_swaps(
    status: Optional[SwapStatus] = None,
    type: SwapListType = SwapListType.ALL,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    swaps, total = await swap_workflow.list_user_swaps(
        db, current_user["_id"], status=status, list_type=type, page=page, limit=limit
    )
    return {
        "message": f"Found {total} swaps",
        "swaps": [await describe_swap(db, swap) for swap in swaps],
        "pagination": pagination_info(page, limit, total),
    }


@router.get("/pending/received")
async def get_pending_received(current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    swaps = await swap_workflow.list_pending_received(db, current_user["_id"])
    return {
        "message": f"Found {len(swaps)} pending swaps",
        "swaps": [await describe_swap(db, swap) for swap in swaps],
    }


@router.get("/{swap_id}")
async def get_swap(swap_id: str, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    swap = await swap_workflow.get_swap_for_participant(db, swap_id, current_user["_id"])
    return {"swap": await describe_swap(db, swap)}


@router.post("", status_code=201)
async def request_swap(
    request: SwapRequest,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    swap = await swap_workflow.create_swap(
        db, current_user, request.requestedBookId, request.offeredBookId, request.message
    )
    return {
        "message": "Swap request sent successfully",
        "swap": await describe_swap(db, swap),
    }


@router.put("/{swap_id}/accept")
async def accept_swap(
    swap_id: str,
    response: Optional[SwapAcceptance] = None,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    response = response or SwapAcceptance()
    swap = await swap_workflow.accept_swap(
        db,
        swap_id,
        current_user,
        response_message=response.responseMessage,
        meeting_location=response.meetingLocation,
        meeting_date=response.meetingDate,
    )
    return {
        "message": "Swap request accepted successfully",
        "swap": await describe_swap(db, swap),
    }


@router.put("/{swap_id}/decline")
async def decline_swap(
    swap_id: str,
    response: Optional[SwapDecline] = None,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    response = response or SwapDecline()
    swap = await swap_workflow.decline_swap(db, swap_id, current_user, response.responseMessage)
    return {"message": "Swap request declined", "swap": await describe_swap(db, swap)}


@router.put("/{swap_id}/complete")
async def complete_swap(swap_id: str, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    swap = await swap_workflow.complete_swap(db, swap_id, current_user)
    return {"message": "Swap marked as completed", "swap": await describe_swap(db, swap)}


@router.put("/{swap_id}/cancel")
async def cancel_swap(swap_id: str, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    swap = await swap_workflow.cancel_swap(db, swap_id, current_user)
    return {"message": "Swap request cancelled", "swap": await describe_swap(db, swap)}
