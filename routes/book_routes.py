from fastapi import APIRouter, Depends, Query
from typing import Optional

from dataBase import get_db
from dependencies import get_current_user, get_optional_user
from models.post_book_model import BookCondition, PostBookModel
from models.update_book_model import UpdateBookModel
from services import book_directory
from services.exceptions import PreconditionFailedError
from utils import pagination_info, serialize_document

router = APIRouter(prefix="/books", tags=["books"])


async def serialize_book(db, book: dict) -> dict:
    data = serialize_document(book)
    owner = await db.users.find_one({"_id": book["owner"]}) if book.get("owner") else None
    data["ownerInfo"] = {
        "username": owner.get("username") if owner else None,
        "name": f"{owner.get('firstName', '')} {owner.get('lastName', '')}".strip() if owner else "Anonymous",
        "location": owner.get("location") if owner else None,
        "rating": owner.get("rating", 0) if owner else 0,
    }
    return data


@router.get("")
async def get_books(
    search: Optional[str] = None,
    genre: Optional[str] = None,
    condition: Optional[BookCondition] = None,
    language: Optional[str] = None,
    location: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    db=Depends(get_db),
):
    books, total = await book_directory.list_available_books(
        db,
        search=search.strip() if search else None,
        genre=genre,
        condition=condition.value if condition else None,
        language=language,
        location=location,
        page=page,
        limit=limit,
    )
    return {
        "message": "Books fetched successfully",
        "books": [await serialize_book(db, book) for book in books],
        "pagination": pagination_info(page, limit, total),
    }


@router.get("/genres/list")
async def get_genres(db=Depends(get_db)):
    genres = await book_directory.list_genres(db)
    return {"message": f"Found {len(genres)} unique genres", "genres": genres}


@router.get("/user/{user_id}")
async def get_user_books(
    user_id: str,
    available: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    db=Depends(get_db),
):
    books, total = await book_directory.list_user_books(
        db, user_id, available=available, page=page, limit=limit
    )
    return {
        "message": "Books fetched successfully",
        "books": [await serialize_book(db, book) for book in books],
        "pagination": pagination_info(page, limit, total),
    }


@router.get("/{book_id}")
async def get_book_details(book_id: str, db=Depends(get_db)):
    book = await book_directory.get_book(db, book_id)
    await book_directory.increment_view_count(db, book["_id"])
    book["viewCount"] = book.get("viewCount", 0) + 1
    return {"book": await serialize_book(db, book)}


@router.post("", status_code=201)
async def add_new_book(
    book: PostBookModel,
    current_user: Optional[dict] = Depends(get_optional_user),
    db=Depends(get_db),
):
    if current_user is None and not book.email:
        raise PreconditionFailedError("An email is required to list a book without an account")
    created = await book_directory.create_book(db, book.dict(), owner=current_user)
    return {
        "message": "Book added successfully",
        "book": await serialize_book(db, created),
    }


@router.put("/{book_id}")
async def update_book(
    book_id: str,
    updated_data: UpdateBookModel,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    fields = updated_data.dict(exclude_unset=True)
    book = await book_directory.update_book(db, book_id, current_user["_id"], fields)
    return {"message": "Book updated successfully", "book": await serialize_book(db, book)}


@router.delete("/{book_id}")
async def delete_book(book_id: str, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    await book_directory.soft_delete_book(db, book_id, actor_id=current_user["_id"])
    return {"message": "Book deleted successfully"}
