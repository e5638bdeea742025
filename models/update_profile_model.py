from pydantic import BaseModel, Field, HttpUrl
from typing import List, Optional


class UpdateUserProfile(BaseModel):
    firstName: Optional[str] = Field(None, min_length=1, max_length=50)
    lastName: Optional[str] = Field(None, min_length=1, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    favoriteGenres: Optional[List[str]] = None
    avatar: Optional[HttpUrl] = None
