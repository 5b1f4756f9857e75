"""Pydantic models for bibliographic lookups."""

from pydantic import BaseModel, Field


class WorkRecord(BaseModel):
    """Normalized bibliographic details of one published work."""

    doi: str
    authors: list[str] = Field(default_factory=lambda: list[str]())
    title: str = ""
    publisher: str = ""
    year: str = ""
