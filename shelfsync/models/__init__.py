"""
Models package - Pydantic data models for Shelf Sync

Re-exports all models for cleaner imports:
    from shelfsync.models import ApplicationState, Book, Series
    from shelfsync.models import Principal, UserProfile
"""

from shelfsync.models.models import *
from shelfsync.models.profiles import (
    Principal,
    UserProfile,
)
