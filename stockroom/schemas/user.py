# stockroom/schemas/user.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from stockroom.schemas.common import ApiModel, QueryFilters


class UserLevel(ApiModel):
    id: str
    level_name: str
    description: Optional[str] = None


class User(ApiModel):
    id: str
    username: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    user_level_id: str
    department: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    user_level: Optional[UserLevel] = Field(None, alias="UserLevel")


# Schema for creating a user account
class UserCreate(ApiModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=3)
    full_name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    password: str = Field(min_length=6)
    confirm_password: str = Field(exclude=True)
    user_level_id: str
    department: Optional[str] = None
    is_active: bool = True
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("password and confirm_password do not match")
        return self


# Schema for partial user updates
class UserUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    username: Optional[str] = Field(None, min_length=3)
    full_name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    user_level_id: Optional[str] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class UserFilters(QueryFilters):
    search: Optional[str] = None
    user_level_id: Optional[str] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None
    sort_by: Optional[Literal["username", "full_name", "email", "created_at", "last_login"]] = None
    sort_order: Optional[Literal["ASC", "DESC"]] = None
