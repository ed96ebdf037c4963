"""
Configuration package for the clinic booking agent.
"""

from .settings import Settings, get_settings
from .appointment_settings import (
    AppointmentSettings,
    TimeSlotOption,
    DurationOption,
    TimeWindow,
    load_appointment_settings,
)
from .providers import ProviderConfig, build_provider_configs

__all__ = [
    "Settings",
    "get_settings",
    "AppointmentSettings",
    "TimeSlotOption",
    "DurationOption",
    "TimeWindow",
    "load_appointment_settings",
    "ProviderConfig",
    "build_provider_configs",
]
