"""Session identity models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """The signed-in user whose id is stamped on created records."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    email: str
    name: str


__all__ = ["Identity"]
