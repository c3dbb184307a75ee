"""Base Pydantic models for HMR test elements.

This module defines the foundational model classes shared by the spec
AST, compiled expectations, commands and command definitions. Models are
immutable and reject unknown fields, so that compiled specs and yielded
commands can not be altered while a test is in flight.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all HMR test elements.

    Design principles enforced by this model:
        - Immutability: elements can not be modified after creation.
          A command is consumed exactly once and a compiled spec is
          read-only after registration.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos in command payloads.

    Arbitrary types are allowed because steps and commands carry
    callables, generator functions and compiled regular expressions.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class DescribedMixin(SchemaModel):
    """Mixin providing an optional human-readable title."""

    title: str | None = Field(
        default=None,
        title='Title',
        description='Short human-readable title of the element.',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Resolved settings can not be modified after creation, while unknown
    environment variables or configuration keys are ignored.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
