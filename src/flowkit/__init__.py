"""Flowkit - typed actions, traced invocations and tool-calling generation."""

from .action import Action, ActionKind
from .config import Settings, get_settings
from .framework import Flowkit
from .registry import Registry

__version__ = "0.1.0"

__all__ = ["Action", "ActionKind", "Flowkit", "Registry", "Settings", "get_settings"]
