"""User Directory: profiles, moderation flags and the derived aggregate fields."""

import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId

from utils import hash_password, parse_object_id, verify_password
from .exceptions import ConflictError, ForbiddenError, NotFoundError, SideEffectError

logger = logging.getLogger(__name__)


async def find_user(db, user_id) -> Optional[Dict[str, Any]]:
    return await db.users.find_one({"_id": parse_object_id(user_id, "user id")})


async def get_user(db, user_id) -> Dict[str, Any]:
    user = await find_user(db, user_id)
    if not user or not user.get("isActive", True):
        raise NotFoundError("User not found")
    return user


async def register_user(db, data: Dict[str, Any]) -> Dict[str, Any]:
    email = data["email"].strip().lower()
    username = data["username"].strip()
    existing = await db.users.find_one({"$or": [{"email": email}, {"username": username}]})
    if existing:
        raise ConflictError("Email or username already registered")

    now = datetime.utcnow()
    user = {
        "email": email,
        "username": username,
        "firstName": data["firstName"],
        "lastName": data["lastName"],
        "password": hash_password(data["password"]),
        "bio": "",
        "location": data.get("location") or "",
        "phone": None,
        "avatar": None,
        "favoriteGenres": [],
        "role": "user",
        "isActive": True,
        "isBlocked": False,
        "blockReason": None,
        "rating": 0.0,
        "totalRatings": 0,
        "totalSwaps": 0,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db.users.insert_one(user)
    user["_id"] = result.inserted_id
    logger.info("Registered user %s (%s)", user["_id"], username)
    return user


async def authenticate_credentials(db, email: str, password: str) -> Optional[Dict[str, Any]]:
    user = await db.users.find_one({"email": email.strip().lower()})
    if not user or not verify_password(password, user["password"]):
        return None
    return user


async def update_profile(db, user_id, fields: Dict[str, Any]) -> Dict[str, Any]:
    user = await get_user(db, user_id)
    if fields:
        fields["updatedAt"] = datetime.utcnow()
        await db.users.update_one({"_id": user["_id"]}, {"$set": fields})
    return await db.users.find_one({"_id": user["_id"]})


async def list_users(
    db,
    search: Optional[str] = None,
    status: str = "all",
    role: str = "all",
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Dict[str, Any]], int]:
    query: Dict[str, Any] = {"isActive": True}
    if status == "blocked":
        query["isBlocked"] = True
    elif status == "active":
        query["isBlocked"] = False
    if role != "all":
        query["role"] = role
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [
            {"username": pattern},
            {"email": pattern},
            {"firstName": pattern},
            {"lastName": pattern},
        ]

    users = []
    cursor = db.users.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
    async for user in cursor:
        users.append(user)
    total = await db.users.count_documents(query)
    return users, total


# Moderation

async def set_blocked(db, actor: Dict[str, Any], user_id, blocked: bool, reason: str = "") -> Dict[str, Any]:
    user = await get_user(db, user_id)
    if user.get("role") == "admin" and user["_id"] != actor["_id"]:
        raise ForbiddenError("Cannot block other administrators")

    update = {"isBlocked": blocked, "blockReason": reason if blocked and reason else None}
    await db.users.update_one({"_id": user["_id"]}, {"$set": update})
    logger.info("User %s %s by %s", user["_id"], "blocked" if blocked else "unblocked", actor["_id"])
    user.update(update)
    return user


async def set_role(db, actor: Dict[str, Any], user_id, role: str) -> Dict[str, Any]:
    user = await get_user(db, user_id)
    if user["_id"] == actor["_id"]:
        raise ForbiddenError("Cannot change your own role")
    await db.users.update_one({"_id": user["_id"]}, {"$set": {"role": role}})
    user["role"] = role
    return user


async def set_active(db, actor: Dict[str, Any], user_id, active: bool) -> Dict[str, Any]:
    user = await find_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user["_id"] == actor["_id"] and not active:
        raise ForbiddenError("Cannot deactivate your own account")
    await db.users.update_one({"_id": user["_id"]}, {"$set": {"isActive": active}})
    user["isActive"] = active
    return user


async def delete_user(db, actor: Dict[str, Any], user_id) -> None:
    user = await find_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user["_id"] == actor["_id"]:
        raise ForbiddenError("Cannot delete your own account")
    await db.users.delete_one({"_id": user["_id"]})
    logger.warning("User %s permanently removed by %s", user["_id"], actor["_id"])


# Derived fields. Written only by the swap workflow and the rating engine.

async def increment_total_swaps(db, user_ids: Iterable[ObjectId]) -> None:
    user_ids = list(user_ids)
    result = await db.users.update_many({"_id": {"$in": user_ids}}, {"$inc": {"totalSwaps": 1}})
    if result.matched_count != len(user_ids):
        raise SideEffectError(
            f"Swap total update matched {result.matched_count} of {len(user_ids)} users"
        )


async def set_rating(db, user_id: ObjectId, rating: float, total_ratings: int) -> None:
    await db.users.update_one(
        {"_id": user_id},
        {"$set": {"rating": rating, "totalRatings": total_ratings}},
    )
