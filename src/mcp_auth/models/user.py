from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """An authenticated user.

    Provider-specific claims are kept as extra fields.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    username: str
    email: str = ""
    name: str | None = None
    groups: list[str] = Field(default_factory=list)
