"""Outward user projection; it has no password field."""

from typing import Optional

from ._strict_base import StrictModel


class UserResponse(StrictModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
