"""Domain Entities - Users"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional


class User(BaseModel):
    """User Entity - acts as guest, host, or both"""
    user_id: UUID = Field(default_factory=uuid4)
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool = False
    registered_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True


class UserInDB(User):
    """User with hashed password for storage"""
    hashed_password: str

    def to_public(self) -> User:
        return User(**self.model_dump(exclude={"hashed_password"}))
