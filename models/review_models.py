from pydantic import BaseModel, Field
from typing import Optional


class ReviewCreate(BaseModel):
    swapId: str
    revieweeId: str
    rating: int = Field(ge=1, le=5)
    comment: str = Field("", max_length=500)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)
