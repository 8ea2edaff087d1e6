from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .ids import generate_id


class StoreOptions(BaseModel):
    """
    Immutable per-store configuration.

    `load_from_disk` defaults to whatever `write_to_disk` is. `write_delay` is in
    milliseconds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    write_to_disk: bool = True
    load_from_disk: bool = True
    root_path: Path | None = None
    db_path: str | None = None
    write_delay: int = Field(default=0, ge=0)
    pretty_print: bool = True
    pk: str = "id"
    id_func: Callable[[Any], str] = generate_id

    @model_validator(mode="before")
    @classmethod
    def _default_load_from_disk(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("load_from_disk") is None:
            data = {k: v for k, v in data.items() if k != "load_from_disk"}
            data["load_from_disk"] = data.get("write_to_disk", True)
        return data

    @field_validator("pk")
    @classmethod
    def _validate_pk(cls, v: str) -> str:
        if not v:
            raise ValueError("pk must be a non-empty field name")
        return v

    @classmethod
    def build(cls, defaults: dict[str, Any] | None = None, **overrides: Any) -> "StoreOptions":
        """Merge caller overrides over `defaults`, ignoring overrides that are None."""
        merged: dict[str, Any] = dict(defaults or {})
        merged.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(merged)
