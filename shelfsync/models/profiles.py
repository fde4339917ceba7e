"""
Profile Models for Shelf Sync

- Principal: the signed-in identity, supplied by the external auth layer
- UserProfile: the small per-principal profile document (users/{uid})

The profile document is separate from the state documents so it can be
touched on every login without rewriting the library.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


# ============================================================================
# Principal
# ============================================================================

class Principal(BaseModel):
    """
    The authenticated identity that owns a namespace of stored documents.

    Not owned by this package: the identity layer builds it after a
    successful sign-in and drops it on sign-out.
    """
    uid: str = Field(..., min_length=1, description="Opaque, stable identifier")
    email: Optional[str] = Field(default=None, description="Display email")
    display_name: Optional[str] = None


# ============================================================================
# User Profile
# ============================================================================

class UserProfile(BaseModel):
    """Profile document: {email, createdAt, lastLogin}"""
    model_config = {"populate_by_name": True}

    email: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    last_login: Optional[datetime] = Field(default=None, alias="lastLogin")
