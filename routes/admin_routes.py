from fastapi import APIRouter, Depends, Query
from typing import Optional

from dataBase import get_db
from dependencies import require_admin
from models.admin_models import BlockUser, RoleUpdate, StatusUpdate
from services import book_directory, review_engine, stats, swap_workflow, user_directory
from utils import pagination_info, serialize_document

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard")
async def get_dashboard(admin: dict = Depends(require_admin), db=Depends(get_db)):
    return serialize_document(await stats.dashboard(db))


@router.get("/users")
async def get_users(
    search: Optional[str] = None,
    status: str = Query("all", pattern="^(active|blocked|all)$"),
    role: str = Query("all", pattern="^(user|admin|all)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    users, total = await user_directory.list_users(
        db, search=search, status=status, role=role, page=page, limit=limit
    )
    return {
        "users": serialize_document(users),
        "pagination": pagination_info(page, limit, total),
    }


@router.put("/users/{user_id}/block")
async def block_user(
    user_id: str,
    body: BlockUser,
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    user = await user_directory.set_blocked(db, admin, user_id, body.blocked, body.reason.strip())
    return {
        "message": f"User {'blocked' if body.blocked else 'unblocked'} successfully",
        "user": {
            "id": str(user["_id"]),
            "username": user.get("username"),
            "email": user.get("email"),
            "isBlocked": user["isBlocked"],
            "blockReason": user.get("blockReason"),
        },
    }


@router.put("/users/{user_id}/role")
async def change_role(
    user_id: str,
    body: RoleUpdate,
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    user = await user_directory.set_role(db, admin, user_id, body.role.value)
    return {
        "message": f"User role updated to {body.role.value} successfully",
        "user": {"id": str(user["_id"]), "username": user.get("username"), "role": user["role"]},
    }


@router.put("/users/{user_id}/status")
async def change_status(
    user_id: str,
    body: StatusUpdate,
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    user = await user_directory.set_active(db, admin, user_id, body.isActive)
    return {
        "message": f"User {'activated' if body.isActive else 'deactivated'} successfully",
        "user": serialize_document(user),
    }


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, admin: dict = Depends(require_admin), db=Depends(get_db)):
    await user_directory.delete_user(db, admin, user_id)
    return {"message": "User deleted successfully"}


@router.get("/books")
async def get_books(
    search: Optional[str] = None,
    genre: Optional[str] = None,
    availability: str = Query("all", pattern="^(available|unavailable|all)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    books, total = await book_directory.list_all_books(
        db, search=search, genre=genre, availability=availability, page=page, limit=limit
    )

    return {
        "books": serialize_document(books),
        "pagination": pagination_info(page, limit, total),
    }


@router.delete("/books/{book_id}")
async def delete_book(book_id: str, admin: dict = Depends(require_admin), db=Depends(get_db)):
    await book_directory.soft_delete_book(db, book_id, moderator=True)
    return {"message": "Book deleted successfully"}


@router.get("/swaps")
async def get_swaps(
    status: str = Query("all", pattern="^(pending|accepted|declined|completed|cancelled|all)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    swaps, total = await swap_workflow.list_all_swaps(db, status=status, page=page, limit=limit)
    return {
        "swaps": serialize_document(swaps),
        "pagination": pagination_info(page, limit, total),
    }


@router.get("/reviews")
async def get_reviews(
    rating: Optional[int] = Query(None, ge=1, le=5),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    reviews, total = await review_engine.list_all_reviews(db, rating=rating, page=page, limit=limit)
    return {
        "reviews": serialize_document(reviews),
        "pagination": pagination_info(page, limit, total),
    }


@router.delete("/reviews/{review_id}")
async def delete_review(review_id: str, admin: dict = Depends(require_admin), db=Depends(get_db)):
    await review_engine.delete_review(db, review_id, admin, moderator=True)
    return {"message": "Review deleted successfully"}
