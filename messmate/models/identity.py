"""Read-only views of user and mess records owned by the profile services."""

from typing import Optional
from pydantic import BaseModel


class UserIdentity(BaseModel):
    id: str
    email: str
    name: Optional[str] = None


class MessIdentity(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    mess_name: Optional[str] = None
    price_per_meal: Optional[float] = None
    subscription_plan: Optional[int] = None  # day count, or a flat fee above 100
