"""xorooms package exposing the board engine, rooms, and sessions.

The web application lives in :mod:`xorooms.server`; it is not imported here
so that loading the package never reads the environment.
"""

from .board import evaluate
from .rooms import Room, RoomRegistry
from .sessions import SessionManager

__all__ = ["Room", "RoomRegistry", "SessionManager", "evaluate"]
