"""Client Schemas — request models for client sessions, auth and navigation.

Invariants:
    - Credentials are stripped of surrounding whitespace (email only; passwords verbatim)
    - Navigation paths must be absolute ("/...")

Design Decisions:
    - Business validation (password length, username rules) stays in services so the
      same messages reach every caller; schemas only bound transport sizes
"""

from pydantic import BaseModel, Field, field_validator


class ClientOpen(BaseModel):
    """Open a new client session, or resume one by id."""
    client_id: str | None = Field(None, min_length=8, max_length=64)


class Credentials(BaseModel):
    email: str = Field(max_length=320)
    password: str = Field(max_length=1024)

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        return v.strip()


class UsernameUpdate(BaseModel):
    username: str = Field(max_length=256)


class NavigateRequest(BaseModel):
    path: str = Field(min_length=1, max_length=2048)
    replace: bool = False

    @field_validator("path")
    @classmethod
    def require_absolute(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith("/"):
            raise ValueError("path must start with '/'")
        return v
