from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from enum import Enum


class BookCondition(str, Enum):
    NEW = "New"
    LIKE_NEW = "Like New"
    VERY_GOOD = "Very Good"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class PostBookModel(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    author: Optional[str] = Field(None, max_length=100)
    genre: Optional[str] = Field(None, max_length=50)
    condition: Optional[str] = None  # normalized, e.g. "excellent" -> "Very Good"
    language: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = Field(None, max_length=1000)
    isbn: Optional[str] = None
    publishedYear: Optional[int] = Field(None, ge=1000)
    publisher: Optional[str] = Field(None, max_length=100)
    pageCount: Optional[int] = Field(None, ge=1)
    tags: List[str] = []
    coverImage: Optional[str] = None
    images: List[str] = []
    email: Optional[EmailStr] = None  # contact for anonymous listings
