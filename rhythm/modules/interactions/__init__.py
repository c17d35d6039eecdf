"""Generic interaction ledger shared by calendar events and other timeline records."""

from rhythm.modules.interactions.models import Interaction, InteractionType

__all__ = ["Interaction", "InteractionType"]
