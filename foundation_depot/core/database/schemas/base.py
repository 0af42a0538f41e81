"""Pydantic base schema for depot request models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all depot request schemas.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Reject unknown fields so malformed requests fail at the boundary.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )
