"""User Pydantic Schemas"""

from typing import Optional
from pydantic import BaseModel


class IdentityProfile(BaseModel):
    """Profile returned by the identity provider for a verified token subject"""
    external_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
