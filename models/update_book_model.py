from pydantic import BaseModel, Field
from typing import List, Optional


class UpdateBookModel(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    author: Optional[str] = Field(None, max_length=100)
    genre: Optional[str] = Field(None, max_length=50)
    condition: Optional[str] = None
    language: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = Field(None, max_length=1000)
    publisher: Optional[str] = Field(None, max_length=100)
    pageCount: Optional[int] = Field(None, ge=1)
    tags: Optional[List[str]] = None
    coverImage: Optional[str] = None
    images: Optional[List[str]] = None
