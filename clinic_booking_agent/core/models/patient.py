"""
Patient-related data models.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Patient(BaseModel):
    """Patient record from the clinic database."""

    model_config = ConfigDict(extra="ignore")

    id: str
    visible_id: Optional[str] = None
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    recent_appointment_types: List[str] = Field(default_factory=list)
