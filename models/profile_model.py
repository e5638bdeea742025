from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class UserProfile(BaseModel):
    id: str
    username: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    favoriteGenres: List[str] = []
    rating: float = 0
    totalRatings: int = 0
    totalSwaps: int = 0
    createdAt: Optional[datetime] = None
