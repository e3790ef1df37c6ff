"""Logging configuration primitives for structured logging."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class LogConfig(BaseModel):
    """Sinks for the JSON event stream of materialization passes and CLI commands.

    ``console_stream`` defaults to whatever ``sys.stderr`` is at write time.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    level: str = "INFO"
    console_output: bool = True
    console_stream: Any = None
    file_output: bool = False
    file_path: str | None = None


__all__ = ["LogConfig"]
