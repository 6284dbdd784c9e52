"""Routers package."""

from . import (
    health,
    auth,
    topics,
    blogs,
    notes,
    leetcode,
    interviews,
    comments,
    study_rooms,
    uploads,
    admin,
)
