"""Configuration loaders for the scheduler."""

from .loader import ConfigLoader
from .programs import ProgramConfig
from .rooms import RoomConfig
from .teachers import TeacherConfig

__all__ = [
    "ConfigLoader",
    "ProgramConfig",
    "RoomConfig",
    "TeacherConfig",
]
