"""Membrane construction routines."""

from sequester.broker import MembraneBroker
from sequester.environment import VirtualEnvironment

__all__: list[str] = [
    "MembraneBroker",
    "VirtualEnvironment",
]
