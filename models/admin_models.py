from pydantic import BaseModel, Field
from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class BlockUser(BaseModel):
    blocked: bool
    reason: str = Field("", max_length=200)


class RoleUpdate(BaseModel):
    role: UserRole


class StatusUpdate(BaseModel):
    isActive: bool
