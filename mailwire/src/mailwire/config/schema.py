"""Pydantic models describing mailwire configuration documents."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BackendSelection(BaseModel):
    """One backend family entry: a kind name plus its settings."""

    model_config = ConfigDict(extra="forbid")

    method: str
    settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("method")
    @classmethod
    def _method_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("method must not be empty")
        return value

    @field_validator("settings")
    @classmethod
    def _settings_are_flat(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        for key, item in value.items():
            if not (item is None or isinstance(item, (str, int, float, bool, list))):
                raise ValueError(f"setting {key!r} must be a scalar, list or null")
        return value


class MailwireConfig(BaseModel):
    """Root of ``mailwire.yaml``; both families are optional."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    delivery: Optional[BackendSelection] = None
    retriever: Optional[BackendSelection] = None

    @field_validator("version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value != 1:
            raise ValueError("only version 1 is supported")
        return value
