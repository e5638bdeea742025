from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from dataBase import get_db
from main import app
from services import swap_workflow
from utils import create_access_token

BASE = "http://test"


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    return AsyncMongoMockClient()["bookswap_test"]


@pytest.fixture
def make_user(db):
    async def _make_user(username, role="user", **extra):
        now = datetime.utcnow()
        user = {
            "email": f"{username}@example.com",
            "username": username,
            "firstName": username.capitalize(),
            "lastName": "Reader",
            "role": role,
            "location": "",
            "isActive": True,
            "isBlocked": False,
            "rating": 0.0,
            "totalRatings": 0,
            "totalSwaps": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        user.update(extra)
        result = await db.users.insert_one(user)
        user["_id"] = result.inserted_id
        return user

    return _make_user


@pytest.fixture
def make_book(db):
    async def _make_book(owner, title="Dune", **extra):
        now = datetime.utcnow()
        book = {
            "title": title,
            "author": "Frank Herbert",
            "genre": "Science Fiction",
            "language": "English",
            "condition": "Good",
            "description": "",
            "tags": [],
            "owner": owner["_id"] if owner else None,
            "ownerEmail": owner["email"] if owner else "anon@example.com",
            "location": "",
            "isAvailable": True,
            "isActive": True,
            "viewCount": 0,
            "swapCount": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        book.update(extra)
        result = await db.books.insert_one(book)
        book["_id"] = result.inserted_id
        return book

    return _make_book


@pytest.fixture
def make_completed_swap(db, make_book):
    """Run a swap between two users all the way to completed."""
    async def _make_completed_swap(requester, owner):
        wanted = await make_book(owner, title=f"Wanted {owner['username']}")
        offered = await make_book(requester, title=f"Offered {requester['username']}")
        swap = await swap_workflow.create_swap(db, requester, wanted["_id"], offered["_id"])
        await swap_workflow.accept_swap(db, swap["_id"], owner)
        return await swap_workflow.complete_swap(db, swap["_id"], requester)

    return _make_completed_swap


@pytest.fixture
async def client(db):
    async def override_get_db():
        return db

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=BASE) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token({"user_id": str(user["_id"])})
    return {"Authorization": f"Bearer {token}"}
