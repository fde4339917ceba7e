"""
Centralized Storage Limits

Document names, collection names and store limits in one place.
Import these in the services and in tests instead of repeating literals.
"""

# =============================================================================
# FIRESTORE LAYOUT
# =============================================================================

# Root collection holding one profile document per principal
USERS_COLLECTION = "users"

# Sub-collection holding the state documents (consolidated and per-domain)
DATA_COLLECTION = "data"

# Sub-collection holding append-only backup snapshots
BACKUPS_COLLECTION = "backups"

# Consolidated document name
APP_STATE_DOCUMENT = "appState"

# Pseudo-domain addressing the profile document itself (users/{uid})
PROFILE_DOCUMENT = "profile"

# Domain documents written by the sync coordinator
BOOKS_DOCUMENT = "books"
SAGAS_DOCUMENT = "sagas"
CONFIG_DOCUMENT = "config"
HISTORY_DOCUMENT = "history"
POINTS_DOCUMENT = "points"

# =============================================================================
# METADATA FIELDS
# =============================================================================

# Consolidated document: server timestamp + literal version tag
LAST_UPDATED_FIELD = "lastUpdated"
VERSION_FIELD = "version"

# Domain documents: client epoch millis
UPDATED_AT_FIELD = "updatedAt"

# Backup snapshots are ordered on this field
CREATED_AT_FIELD = "createdAt"

# =============================================================================
# STORE LIMITS
# =============================================================================

# Firestore rejects maps/arrays nested deeper than 20 levels
MAX_NESTING_DEPTH = 20

# Backups returned by a listing
BACKUP_PAGE_SIZE = 10
