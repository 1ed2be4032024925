"""Pydantic schemas for books on the reading list."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ReadingStatus(str, Enum):
    """Where a book sits on the reading list."""

    TO_READ = "to_read"
    READING = "reading"
    FINISHED = "finished"


class BookCreate(BaseModel):
    """Schema for adding a book to the list."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    isbn: Optional[str] = Field(None, max_length=13)
    cover: Optional[str] = None  # URL
    status: ReadingStatus = ReadingStatus.TO_READ
    date_added: Optional[date] = None

    @field_validator("title", "author")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip surrounding whitespace from required text fields."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class BookResponse(BaseModel):
    """Response schema for a book."""

    id: str
    title: str
    author: str
    description: Optional[str]
    isbn: Optional[str]
    cover: Optional[str]
    status: ReadingStatus
    date_added: Optional[str]

    model_config = {"from_attributes": True}
