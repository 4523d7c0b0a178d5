"""Pricing schemas"""

from pydantic import BaseModel, Field


class AddonSelection(BaseModel):
    addon_id: int
    quantity: int = Field(1, ge=1)
