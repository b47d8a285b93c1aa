"""Storage Manager for handling session persistence and retrieval."""

import json
import re
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from ..models.enums import SessionStatus
from ..models.session import AssessmentSession
from ..utils.exceptions import StorageError
from ..utils.logging import get_logger


_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class StorageInterface:
    """Abstract interface for storage operations."""

    async def initialize(self) -> None:
        """Prepare the backing store."""
        return None

    async def save_session(self, session: AssessmentSession) -> bool:
        """Save an assessment session."""
        raise NotImplementedError

    async def load_session(self, session_id: str) -> Optional[AssessmentSession]:
        """Load an assessment session by ID."""
        raise NotImplementedError

    async def list_sessions(
        self,
        user_id: Optional[str] = None,
        status: Optional[SessionStatus] = None,
    ) -> List[AssessmentSession]:
        """List stored sessions, optionally filtered by owner and status."""
        raise NotImplementedError

    async def delete_session(self, session_id: str) -> bool:
        """Delete an assessment session."""
        raise NotImplementedError


def _matches(session: AssessmentSession, user_id: Optional[str], status: Optional[SessionStatus]) -> bool:
    if user_id is not None and session.user_id != user_id:
        return False
    if status is not None and session.status != status:
        return False
    return True


class MemoryStorageManager(StorageInterface):
    """In-process storage that keeps serialized sessions in a dictionary."""

    def __init__(self):
        self._documents: Dict[str, str] = {}
        self.logger = get_logger(__name__)

    async def save_session(self, session: AssessmentSession) -> bool:
        self._documents[session.session_id] = session.model_dump_json()
        self.logger.debug(f"Session {session.session_id} saved in memory")
        return True

    async def load_session(self, session_id: str) -> Optional[AssessmentSession]:
        document = self._documents.get(session_id)
        if document is None:
            return None
        return AssessmentSession.model_validate_json(document)

    async def list_sessions(
        self,
        user_id: Optional[str] = None,
        status: Optional[SessionStatus] = None,
    ) -> List[AssessmentSession]:
        sessions = [AssessmentSession.model_validate_json(doc) for doc in self._documents.values()]
        return [s for s in sessions if _matches(s, user_id, status)]

    async def delete_session(self, session_id: str) -> bool:
        return self._documents.pop(session_id, None) is not None


class FileStorageManager(StorageInterface):
    """File-based storage manager using one JSON document per session."""

    def __init__(self, base_path: str = "data"):
        """Initialize the file storage manager.

        Args:
            base_path: Base directory for storing data files.
        """
        self.base_path = Path(base_path)
        self.sessions_path = self.base_path / "sessions"
        self.logger = get_logger(__name__)

    async def initialize(self) -> None:
        """Ensure the storage directories exist."""
        try:
            await aiofiles.os.makedirs(self.sessions_path, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create storage directories: {str(e)}", file_path=str(self.sessions_path)) from e
        self.logger.info(f"FileStorageManager initialized at {self.sessions_path}")

    def _session_file(self, session_id: str) -> Path:
        return self.sessions_path / f"{session_id}.json"

    async def save_session(self, session: AssessmentSession) -> bool:
        """Save an assessment session to file.

        The document is written to a temporary file first and then moved
        into place, so readers never see a partial write.

        Raises:
            StorageError: If save operation fails.
        """
        session_file = self._session_file(session.session_id)
        temp_file = session_file.with_suffix(".json.tmp")
        try:
            await aiofiles.os.makedirs(self.sessions_path, exist_ok=True)
            async with aiofiles.open(temp_file, "w", encoding="utf-8") as f:
                await f.write(session.model_dump_json(indent=2))
            await aiofiles.os.replace(temp_file, session_file)
        except OSError as e:
            self.logger.error(f"Failed to save session {session.session_id}: {str(e)}")
            raise StorageError(f"Session save failed: {str(e)}", file_path=str(session_file)) from e

        self.logger.debug(f"Session {session.session_id} saved successfully")
        return True

    async def load_session(self, session_id: str) -> Optional[AssessmentSession]:
        """Load an assessment session from file.

        Returns:
            AssessmentSession object if found, None otherwise.

        Raises:
            StorageError: If the file cannot be read or parsed.
        """
        if not _SESSION_ID_PATTERN.match(session_id):
            return None
        session_file = self._session_file(session_id)
        if not await aiofiles.os.path.exists(session_file):
            return None

        try:
            async with aiofiles.open(session_file, "r", encoding="utf-8") as f:
                content = await f.read()
            return AssessmentSession.model_validate(json.loads(content))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            self.logger.error(f"Failed to load session {session_id}: {str(e)}")
            raise StorageError(f"Session load failed: {str(e)}", file_path=str(session_file)) from e

    async def list_sessions(
        self,
        user_id: Optional[str] = None,
        status: Optional[SessionStatus] = None,
    ) -> List[AssessmentSession]:
        """List stored sessions.

        Raises:
            StorageError: If a session file cannot be read.
        """
        if not self.sessions_path.exists():
            return []

        sessions = []
        for session_file in sorted(self.sessions_path.glob("*.json")):
            session = await self.load_session(session_file.stem)
            if session is not None and _matches(session, user_id, status):
                sessions.append(session)

        self.logger.debug(f"Found {len(sessions)} matching sessions")
        return sessions

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session file.

        Returns:
            True if a file was deleted.
        """
        if not _SESSION_ID_PATTERN.match(session_id):
            return False
        session_file = self._session_file(session_id)
        if not await aiofiles.os.path.exists(session_file):
            return False

        try:
            await aiofiles.os.remove(session_file)
        except OSError as e:
            raise StorageError(f"Session deletion failed: {str(e)}", file_path=str(session_file)) from e

        self.logger.info(f"Session {session_id} deleted successfully")
        return True


class StorageManager:
    """Main storage manager that provides a unified interface."""

    def __init__(self, storage_type: str = "file", **kwargs):
        """Initialize the storage manager.

        Args:
            storage_type: Type of storage to use ("file" or "memory").
            **kwargs: Additional configuration parameters.
        """
        self.storage_type = storage_type
        self.storage_interface: StorageInterface

        if storage_type == "file":
            self.storage_interface = FileStorageManager(**kwargs)
        elif storage_type == "memory":
            self.storage_interface = MemoryStorageManager()
        else:
            raise StorageError(f"Unsupported storage type: {storage_type}")

    async def initialize(self) -> None:
        """Initialize the storage manager."""
        await self.storage_interface.initialize()

    async def save_session(self, session: AssessmentSession) -> bool:
        """Save an assessment session."""
        return await self.storage_interface.save_session(session)

    async def load_session(self, session_id: str) -> Optional[AssessmentSession]:
        """Load an assessment session by ID."""
        return await self.storage_interface.load_session(session_id)

    async def list_sessions(
        self,
        user_id: Optional[str] = None,
        status: Optional[SessionStatus] = None,
    ) -> List[AssessmentSession]:
        """List stored sessions."""
        return await self.storage_interface.list_sessions(user_id=user_id, status=status)

    async def delete_session(self, session_id: str) -> bool:
        """Delete an assessment session."""
        return await self.storage_interface.delete_session(session_id)
