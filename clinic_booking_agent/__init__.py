"""
Conversational appointment-booking assistant for clinics.
"""

__version__ = "1.0.0"
