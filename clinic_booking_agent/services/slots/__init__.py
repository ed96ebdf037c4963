"""
Time-slot generation.
"""

from .generator import SlotGenerator, generate_slots

__all__ = ["SlotGenerator", "generate_slots"]
