"""
Pydantic data models for Shelf Sync

Typed view over the documents the library app keeps in Firestore. The stored
form is camelCase JSON (shared with the web client), so every model here
dumps by alias. Unknown keys are kept: the web client adds fields faster than
this package learns about them, and a sync layer must never drop them.

STORED STATE KEYS
=================

| Key                   | Model field              | Domain document |
|-----------------------|--------------------------|-----------------|
| books                 | books                    | books           |
| sagas                 | sagas                    | sagas           |
| config                | config                   | config          |
| scanHistory           | scan_history             | history         |
| searchHistory         | search_history           | history         |
| currentPoints         | current_points           | points          |
| pointsEarned          | points_earned            | points          |
| booksBoughtWithPoints | books_bought_with_points | points          |
| currentMoney          | current_money            | points          |
| moneyEarned           | money_earned             | points          |
| booksBoughtWithMoney  | books_bought_with_money  | points          |
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any
from datetime import datetime
from enum import Enum


# ============================================================================
# Enums
# ============================================================================

class BookStatus(str, Enum):
    TBR = "tbr"
    READING = "reading"
    READ = "read"
    ABANDONED = "abandoned"
    WISHLIST = "wishlist"
    BOUGHT = "bought"
    LOANED = "loaned"


class SeriesStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class BookFormat(str, Enum):
    PHYSICAL = "physical"
    DIGITAL = "digital"
    AUDIOBOOK = "audiobook"


# ============================================================================
# Base model
# ============================================================================

class StoredModel(BaseModel):
    """Base for every model persisted as a camelCase Firestore map."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
        "use_enum_values": True,
    }

    def to_document(self) -> Dict[str, Any]:
        """Dump to the stored form. None-valued optional fields are left out."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# Book Models
# ============================================================================

class StatusChange(StoredModel):
    """One entry of a book's status history"""
    status: BookStatus
    date: int = Field(..., description="Epoch millis")
    notes: Optional[str] = None


class Quote(StoredModel):
    id: int
    text: str
    page: Optional[int] = None
    chapter: Optional[str] = None
    date: int
    notes: Optional[str] = None
    favorite: Optional[bool] = None


class Reading(StoredModel):
    """A single read-through of a book (books can be re-read)"""
    id: int
    start_date: int
    end_date: Optional[int] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    pages_read: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    quotes: Optional[List[Quote]] = None


class Book(StoredModel):
    """
    A book in the user's library.

    `id` is unique within one principal's state; `saga_id` links it to a
    Series. Dates are epoch millis, as written by the web client.
    """
    id: int = Field(..., description="Unique within a principal's library")
    title: str = Field(..., min_length=1)
    author: Optional[str] = None
    pages: Optional[int] = Field(default=None, ge=0)
    saga_id: Optional[int] = None
    saga_name: Optional[str] = None
    reading_order: Optional[int] = None

    # Lifecycle dates
    date_added: Optional[int] = None
    start_date: Optional[int] = None
    end_date: Optional[int] = None
    abandoned_date: Optional[int] = None
    purchase_date: Optional[int] = None

    # Metadata
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    notes: Optional[str] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    language: Optional[str] = None
    genre: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    categories: Optional[List[str]] = None
    format: Optional[BookFormat] = None
    thumbnail: Optional[str] = None
    custom_image: Optional[str] = None
    tags: Optional[List[str]] = None

    # Loans
    loaned_to: Optional[str] = None
    loan_date: Optional[int] = None

    status: BookStatus = BookStatus.TBR
    status_history: List[StatusChange] = Field(default_factory=list)
    readings: List[Reading] = Field(default_factory=list)
    quotes: Optional[List[Quote]] = None


# ============================================================================
# Series Models
# ============================================================================

class Series(StoredModel):
    """A saga: an ordered grouping of books. Names are unique per principal."""
    id: int
    name: str = Field(..., min_length=1)
    count: int = Field(default=0, ge=0)
    is_complete: bool = False
    books: List[int] = Field(default_factory=list, description="Book ids in this saga")
    order: Optional[List[int]] = None
    status: SeriesStatus = SeriesStatus.ACTIVE
    author: Optional[str] = None
    genre: Optional[str] = None
    description: Optional[str] = None
    created_date: Optional[int] = None
    completed_date: Optional[int] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None


# ============================================================================
# History Models
# ============================================================================

class ScanEvent(StoredModel):
    """A barcode scan attempt"""
    id: int
    isbn: str
    title: Optional[str] = None
    author: Optional[str] = None
    timestamp: int
    success: bool
    error_message: Optional[str] = None


# ============================================================================
# Configuration
# ============================================================================

class Configuration(StoredModel):
    """
    User preferences. Every field is optional; the web client owns the
    full list and extra keys are preserved.
    """
    auto_save_enabled: Optional[bool] = None
    auto_save_interval: Optional[int] = None
    search_history_enabled: Optional[bool] = None
    scan_history_enabled: Optional[bool] = None
    statistics_enabled: Optional[bool] = None
    export_format: Optional[str] = None

    yearly_reading_goal: Optional[int] = None
    yearly_pages_goal: Optional[int] = None
    reading_reminder: Optional[bool] = None
    reading_reminder_interval: Optional[int] = None

    saga_notifications: Optional[bool] = None
    goal_notifications: Optional[bool] = None
    loan_notifications: Optional[bool] = None

    # Points / money reward system
    points_system_enabled: Optional[bool] = None
    money_mode: Optional[bool] = None
    points_per_book: Optional[int] = None
    points_per_saga: Optional[int] = None
    points_per_page: Optional[int] = None
    points_to_buy: Optional[int] = None

    @classmethod
    def defaults(cls) -> "Configuration":
        """Preferences a brand-new library starts with."""
        return cls(
            auto_save_enabled=True,
            auto_save_interval=30000,
            search_history_enabled=True,
            scan_history_enabled=True,
            statistics_enabled=True,
            export_format="json",
            yearly_reading_goal=12,
            yearly_pages_goal=4000,
            reading_reminder=True,
            reading_reminder_interval=86400000,  # 24 hours
            saga_notifications=True,
            goal_notifications=True,
            loan_notifications=True,
            points_system_enabled=True,
            points_per_book=10,
            points_per_saga=50,
            points_per_page=1,
            points_to_buy=25,
        )


# ============================================================================
# Points
# ============================================================================

class PointsCounters(StoredModel):
    """Loyalty counters, stored together in the `points` document"""
    current_points: int = Field(default=0, ge=0)
    points_earned: int = Field(default=0, ge=0)
    books_bought_with_points: int = Field(default=0, ge=0)
    current_money: float = Field(default=0.0, ge=0)
    money_earned: float = Field(default=0.0, ge=0)
    books_bought_with_money: int = Field(default=0, ge=0)


# Stored keys of PointsCounters, in document order
POINTS_FIELDS = [
    "currentPoints",
    "pointsEarned",
    "booksBoughtWithPoints",
    "currentMoney",
    "moneyEarned",
    "booksBoughtWithMoney",
]


# ============================================================================
# Application State
# ============================================================================

class ApplicationState(PointsCounters):
    """
    The aggregate the user edits.

    Invariants (checked by `check_state_invariants` before every save):
    - book ids are unique
    - saga names are unique
    """
    books: List[Book] = Field(default_factory=list)
    sagas: List[Series] = Field(default_factory=list)
    config: Configuration = Field(default_factory=Configuration)
    scan_history: List[ScanEvent] = Field(default_factory=list)
    search_history: List[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "ApplicationState":
        """Convenience constructor for a fresh state with default preferences."""
        return cls(config=Configuration.defaults())

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "ApplicationState":
        """Validate a loaded state mapping into a typed state."""
        return cls.model_validate(data)


# ============================================================================
# Backups
# ============================================================================

class BackupSnapshot(BaseModel):
    """
    Immutable copy of a full state, as listed from the `backups` collection.

    `state` holds the denormalized state keys exactly as stored.
    """
    id: str = Field(..., description="Store-assigned document id")
    created_at: datetime
    version: str
    timestamp: int = Field(..., description="Client epoch millis at creation")
    state: Dict[str, Any] = Field(default_factory=dict)
