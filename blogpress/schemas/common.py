"""
Shared pydantic base classes.

The dashboard and tracking script speak camelCase JSON; Python code uses
snake_case attributes. CamelModel bridges the two: fields are populated
and serialized by their camelCase alias, but can still be set by name.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response base — camelCase on the wire, from_attributes for ORM rows."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CamelInput(BaseModel):
    """Request base — unknown fields are rejected, not silently ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class SuccessOut(BaseModel):
    success: bool = True
    message: str | None = None
