"""Shared Pydantic base model for Hefsek schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class HefsekBase(BaseModel):
    """Base model with shared config for all Hefsek schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        frozen=True,
    )
