"""
Controllers translating user input into session changes.
"""
from .interaction_controller import InteractionController, PendingStroke

__all__ = ["InteractionController", "PendingStroke"]
