"""Aggregate counts for the admin dashboard."""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List


async def _recent(cursor) -> List[Dict[str, Any]]:
    return [doc async for doc in cursor]


async def dashboard(db) -> Dict[str, Any]:
    (
        total_users,
        active_users,
        blocked_users,
        total_books,
        available_books,
        total_swaps,
        pending_swaps,
        completed_swaps,
        total_reviews,
    ) = await asyncio.gather(
        db.users.count_documents({"isActive": True}),
        db.users.count_documents({"isActive": True, "isBlocked": False}),
        db.users.count_documents({"isBlocked": True}),
        db.books.count_documents({"isActive": True}),
        db.books.count_documents({"isActive": True, "isAvailable": True}),
        db.swaps.count_documents({}),
        db.swaps.count_documents({"status": "pending"}),
        db.swaps.count_documents({"status": "completed"}),
        db.reviews.count_documents({"isActive": True}),
    )

    recent_users = await _recent(
        db.users.find({"isActive": True}, {"username": 1, "email": 1, "firstName": 1, "lastName": 1, "createdAt": 1})
        .sort("createdAt", -1).limit(5)
    )
    recent_books = await _recent(
        db.books.find({"isActive": True}, {"title": 1, "author": 1, "genre": 1, "owner": 1, "createdAt": 1})
        .sort("createdAt", -1).limit(5)
    )
    recent_swaps = await _recent(
        db.swaps.find({}, {"status": 1, "requester": 1, "owner": 1, "createdAt": 1})
        .sort("createdAt", -1).limit(5)
    )

    return {
        "statistics": {
            "users": {"total": total_users, "active": active_users, "blocked": blocked_users},
            "books": {"total": total_books, "available": available_books},
            "swaps": {"total": total_swaps, "pending": pending_swaps, "completed": completed_swaps},
            "reviews": {"total": total_reviews},
        },
        "recent": {
            "users": recent_users,
            "books": recent_books,
            "swaps": recent_swaps,
        },
    }


async def user_overview(db) -> Dict[str, Any]:
    since = datetime.utcnow() - timedelta(days=30)
    total, active, admins, recent = await asyncio.gather(
        db.users.count_documents({}),
        db.users.count_documents({"isActive": True}),
        db.users.count_documents({"role": "admin"}),
        db.users.count_documents({"createdAt": {"$gte": since}}),
    )
    return {
        "totalUsers": total,
        "activeUsers": active,
        "inactiveUsers": total - active,
        "adminUsers": admins,
        "regularUsers": total - admins,
        "recentRegistrations": recent,
    }
