from datetime import datetime, timezone

from pydantic import EmailStr
from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel

from app.ids import new_object_id


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


class TaskBase(SQLModel):
    """Base model with shared fields"""

    title: str = Field(min_length=1, max_length=200)
    comment: str = Field(default="", max_length=2000)


class Task(TaskBase, table=True):
    """Database model"""

    __tablename__ = "tasks"

    id: str = Field(default_factory=new_object_id, primary_key=True, max_length=24)
    owner_id: str = Field(index=True, max_length=24)
    done: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class TaskCreate(TaskBase):
    """Schema for creating a task"""

    pass


class TaskUpdate(SQLModel):
    """Schema for updating a task - all fields optional"""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    comment: str | None = Field(default=None, max_length=2000)
    done: bool | None = None


class TaskResponse(TaskBase):
    """Schema for task responses, and the shape stored in the cache"""

    id: str
    owner_id: str
    done: bool
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class UpdateResult(SQLModel):
    matched_count: int
    modified_count: int


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_object_id, primary_key=True, max_length=24)
    username: str = Field(index=True, unique=True, max_length=100)
    email: str = Field(index=True, unique=True, max_length=320)
    password_hash: str
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class SignUp(SQLModel):
    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class SignIn(SQLModel):
    username: str
    password: str
