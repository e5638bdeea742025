from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class RegisterUser(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=30)
    firstName: str = Field(alias='firstname', min_length=1, max_length=50)
    lastName: str = Field(alias='lastname', min_length=1, max_length=50)
    password: str = Field(min_length=6)
    location: Optional[str] = Field(None, max_length=100)

    class Config:
        populate_by_name = True
