"""Framework-neutral data aliases."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

type Handler = Callable[..., Any | Awaitable[Any]]
