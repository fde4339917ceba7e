"""
Firestore gateway for Shelf Sync

Lowest-level document primitives addressed by (principal_id, domain).
No business logic: callers sanitize before writing and interpret what they read.

Layout:
    users/{uid}                    profile document
    users/{uid}/data/{domain}      state documents (appState, books, sagas, ...)
    users/{uid}/backups/{auto-id}  append-only snapshots
"""

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions
from google.cloud.firestore import Query
from typing import Optional, Dict, Any, List, Tuple
import os
import time
import asyncio
import threading
import logging
from concurrent.futures import ThreadPoolExecutor

from shelfsync.config.limits import (
    USERS_COLLECTION,
    DATA_COLLECTION,
    PROFILE_DOCUMENT,
)
from shelfsync.services.errors import DocumentMissing, StoreUnavailable, Unauthenticated

logger = logging.getLogger(__name__)


def document_path(principal_id: str, domain: str) -> str:
    """Slash path of a state or profile document, for logs and errors."""
    if domain == PROFILE_DOCUMENT:
        return f"{USERS_COLLECTION}/{principal_id}"
    return f"{USERS_COLLECTION}/{principal_id}/{DATA_COLLECTION}/{domain}"


class FirestoreGateway:
    """Per-document Firestore reads and writes, namespaced by principal"""

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials_dict: Optional[Dict[str, Any]] = None,
        credentials_path: Optional[str] = None,
        client=None,
        logger=None,
        max_workers: int = 10,
    ):
        """
        Initialize the gateway.

        Args:
            project_id: Google Cloud project holding the Firestore database
            credentials_dict: Optional dict with service account credentials
            credentials_path: Optional path to a service account JSON file
            client: Optional ready-made Firestore client (skips initialize())
            logger: Optional ShelfSyncLogger for storage debug logging
            max_workers: Thread pool size for the blocking SDK calls
        """
        self.project_id = project_id
        self.credentials_dict = credentials_dict
        self.credentials_path = credentials_path
        self.logger = logger
        self.db = client
        self._initialized = client is not None
        self._init_lock = threading.Lock()
        # Thread pool for async Firestore operations (firebase_admin is synchronous)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="firestore")

    @classmethod
    def from_settings(cls, settings, logger=None) -> "FirestoreGateway":
        """Build a gateway from Settings (credentials from env, file or ADC)."""
        return cls(
            project_id=settings.firebase_project_id,
            credentials_dict=settings.get_firebase_credentials_dict(),
            credentials_path=settings.google_application_credentials,
            logger=logger,
            max_workers=settings.firestore_max_workers,
        )

    async def _run_sync(self, func, *args, **kwargs):
        """Run a synchronous Firestore operation in the thread pool to avoid blocking."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, lambda: func(*args, **kwargs))

    def shutdown(self):
        """Shutdown the thread pool executor. Call during app shutdown."""
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None

    def initialize(self):
        """Initialize the Firebase app and Firestore client (call once at startup)"""
        # Concurrent first calls from the thread pool must not initialize twice
        with self._init_lock:
            if self._initialized:
                return

            try:
                # Check if app already exists
                firebase_admin.get_app()
                logger.info("Firebase app already initialized")
            except ValueError:
                if self.credentials_dict:
                    logger.info("Initializing Firebase with credentials from environment variables")
                    cred = credentials.Certificate(self.credentials_dict)
                elif self.credentials_path and os.path.exists(self.credentials_path):
                    # Path redacted for security
                    logger.info("Initializing Firebase with credentials file: [REDACTED]")
                    cred = credentials.Certificate(self.credentials_path)
                else:
                    logger.info("Initializing Firebase with Application Default Credentials")
                    cred = credentials.ApplicationDefault()

                options = {"projectId": self.project_id} if self.project_id else None
                firebase_admin.initialize_app(cred, options)

            self.db = firestore.client()
            self._initialized = True

    # ========================================================================
    # References
    # ========================================================================
    # Built inside the blocking calls, after _call has initialized the client.

    @staticmethod
    def _check_principal(principal_id: str):
        if not principal_id:
            raise Unauthenticated("Storage access without a principal id")

    def _user_ref(self, principal_id: str):
        return self.db.collection(USERS_COLLECTION).document(principal_id)

    def _doc_ref(self, principal_id: str, domain: str):
        user_ref = self._user_ref(principal_id)
        if domain == PROFILE_DOCUMENT:
            return user_ref
        return user_ref.collection(DATA_COLLECTION).document(domain)

    async def _ensure_initialized(self, path: str):
        if self._initialized:
            return
        try:
            await self._run_sync(self.initialize)
        except (google_auth_exceptions.GoogleAuthError, google_exceptions.GoogleAPIError, ValueError) as e:
            # Missing credentials, bad service account or no project id
            raise StoreUnavailable(f"Firestore client could not be initialized for {path}: {e}", path=path) from e

    async def _call(self, path: str, func):
        """Initialize if needed, run a blocking call and translate Google errors."""
        await self._ensure_initialized(path)
        try:
            return await self._run_sync(func)
        except google_exceptions.NotFound as e:
            raise DocumentMissing(path) from e
        except (google_exceptions.GoogleAPIError, google_auth_exceptions.GoogleAuthError) as e:
            raise StoreUnavailable(f"Firestore call failed for {path}: {e}", path=path) from e

    def _log_write(self, operation: str, path: str, data: Any, start_time: float):
        if self.logger:
            self.logger.storage_operation(
                operation=operation,
                path=path,
                data_summary=f"Fields: {', '.join(sorted(data))}" if isinstance(data, dict) else "",
                size_bytes=len(str(data)),
                duration=time.time() - start_time
            )

    # ========================================================================
    # Document Operations
    # ========================================================================

    async def read_document(self, principal_id: str, domain: str) -> Optional[Dict[str, Any]]:
        """
        Read one document.

        Returns:
            The document fields, or None if the document does not exist

        Raises:
            StoreUnavailable: on transport/backend error
        """
        start_time = time.time()
        self._check_principal(principal_id)
        path = document_path(principal_id, domain)

        def _sync_get():
            snapshot = self._doc_ref(principal_id, domain).get()
            return snapshot.to_dict() if snapshot.exists else None

        data = await self._call(path, _sync_get)

        if self.logger:
            self.logger.storage_read(
                path=path,
                result_summary="Document found" if data is not None else "Document not found",
                size_bytes=len(str(data)) if data else 0,
                duration=time.time() - start_time
            )

        return data

    async def write_document(self, principal_id: str, domain: str, value: Dict[str, Any]) -> None:
        """
        Create or fully replace one document.

        Raises:
            StoreUnavailable: on transport/backend error
        """
        start_time = time.time()
        self._check_principal(principal_id)
        path = document_path(principal_id, domain)

        await self._call(path, lambda: self._doc_ref(principal_id, domain).set(value))
        self._log_write("set", path, value, start_time)

    async def update_fields(self, principal_id: str, domain: str, partial: Dict[str, Any]) -> None:
        """
        Merge named top-level fields into an existing document.

        Raises:
            DocumentMissing: if the document was never written
            StoreUnavailable: on transport/backend error
        """
        start_time = time.time()
        self._check_principal(principal_id)
        path = document_path(principal_id, domain)

        await self._call(path, lambda: self._doc_ref(principal_id, domain).update(partial))
        self._log_write("update", path, partial, start_time)

    # ========================================================================
    # Collection Operations
    # ========================================================================

    async def append_document(self, principal_id: str, collection: str, value: Dict[str, Any]) -> str:
        """
        Add a document with a store-assigned id to a per-principal collection.

        Returns:
            The new document id
        """
        start_time = time.time()
        self._check_principal(principal_id)
        path = f"{USERS_COLLECTION}/{principal_id}/{collection}"

        def _sync_add():
            _, doc_ref = self._user_ref(principal_id).collection(collection).add(value)
            return doc_ref.id

        doc_id = await self._call(path, _sync_add)
        self._log_write("add", f"{path}/{doc_id}", value, start_time)
        return doc_id

    async def list_documents(
        self,
        principal_id: str,
        collection: str,
        order_by: str,
        limit: int,
        descending: bool = True,
    ) -> List[Tuple[str, Dict[str, Any]]]:
        """
        List documents of a per-principal collection.

        Returns:
            (document id, fields) pairs ordered on `order_by`, at most `limit`
        """
        start_time = time.time()
        self._check_principal(principal_id)
        path = f"{USERS_COLLECTION}/{principal_id}/{collection}"
        direction = Query.DESCENDING if descending else Query.ASCENDING

        def _sync_list():
            collection_ref = self._user_ref(principal_id).collection(collection)
            query = collection_ref.order_by(order_by, direction=direction).limit(limit)
            return [(snapshot.id, snapshot.to_dict()) for snapshot in query.stream()]

        documents = await self._call(path, _sync_list)

        if self.logger:
            self.logger.storage_read(
                path=path,
                result_summary=f"{len(documents)} documents",
                size_bytes=len(str(documents)),
                duration=time.time() - start_time
            )

        return documents
