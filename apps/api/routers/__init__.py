"""Routers package."""

from . import (
    health,
    topics,
    reference_notes,
    connection,
)
