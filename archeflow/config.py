"""Engine configuration.

Settings are read from ``ARCHEFLOW_*`` environment variables and validated
by a frozen pydantic model, so one instance can be shared by every flow of
a host process.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

_TRUTHY = ("1", "true", "yes", "on")


class EngineSettings(BaseModel, frozen=True):
    accept_defaults: bool = Field(
        default=False,
        description="Bind declared defaults without waiting for an answer (batch mode)",
    )
    max_context_size: int = Field(
        default=1000, ge=1, description="Upper bound on the number of bound context paths"
    )

    @field_validator("accept_defaults", mode="before")
    @classmethod
    def coerce_flag(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in _TRUTHY
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        """Build settings from the process environment (or ``environ``)."""
        env = os.environ if environ is None else environ
        data = {}
        if "ARCHEFLOW_ACCEPT_DEFAULTS" in env:
            data["accept_defaults"] = env["ARCHEFLOW_ACCEPT_DEFAULTS"]
        if "ARCHEFLOW_MAX_CONTEXT_SIZE" in env:
            data["max_context_size"] = env["ARCHEFLOW_MAX_CONTEXT_SIZE"]
        return cls.model_validate(data)
