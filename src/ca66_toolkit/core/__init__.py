"""Core models shared by the overlay engine and its tooling."""

from .models import PagePlacement, Position

__all__ = ["PagePlacement", "Position"]
