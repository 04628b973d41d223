"""
Cart API Pydantic Models
"""
from typing import Any

from pydantic import BaseModel, ConfigDict


class UpdateCartRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Validated by the endpoint so a non-list gets the 400 clients expect
    items: Any = None


class UpdateCartResponse(BaseModel):
    success: bool
    message: str
    items: int
