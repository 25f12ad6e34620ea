"""Room Schemas — request models for rooms and room content."""

from pydantic import BaseModel, Field


class RoomCreate(BaseModel):
    name: str = Field(max_length=1000)


class RoomJoin(BaseModel):
    join_code: str = Field(max_length=64)


class CommentCreate(BaseModel):
    content: str = Field(max_length=10_000)
