"""Analytics recorders receiving session lifecycle events."""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os
from pydantic import Field

from ..models.base import FrozenModel
from ..models.enums import AnalyticsEventType
from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger


class AnalyticsEvent(FrozenModel):
    """A session lifecycle event."""

    event_type: AnalyticsEventType
    session_id: str
    user_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    payload: Dict[str, Any] = Field(default_factory=dict)


class AnalyticsRecorder(ABC):
    """Receives session lifecycle events for external reporting."""

    @abstractmethod
    async def record(self, event: AnalyticsEvent) -> None:
        """Record one event."""
        pass

    async def close(self) -> None:
        """Release recorder resources."""
        return None


class NullAnalyticsRecorder(AnalyticsRecorder):
    """Discards every event."""

    async def record(self, event: AnalyticsEvent) -> None:
        return None


class LoggingAnalyticsRecorder(AnalyticsRecorder):
    """Writes events to the ``analytics`` logger."""

    def __init__(self):
        self.logger = get_logger("analytics")

    async def record(self, event: AnalyticsEvent) -> None:
        self.logger.info(
            f"Analytics event {event.event_type.value} for session {event.session_id}",
            extra={
                "event_type": event.event_type.value,
                "session_id": event.session_id,
                "user_id": event.user_id,
                "payload": event.payload,
            },
        )


class JsonlAnalyticsRecorder(AnalyticsRecorder):
    """Appends events as JSON lines to a file."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = asyncio.Lock()
        self.logger = get_logger("analytics.jsonl")

    async def record(self, event: AnalyticsEvent) -> None:
        line = event.model_dump_json() + "\n"
        async with self._lock:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
                await f.write(line)


def create_analytics_recorder(backend: str, path: Optional[str] = None) -> AnalyticsRecorder:
    """Build the recorder named by ``backend`` ("logging", "jsonl" or "none")."""
    if backend == "logging":
        return LoggingAnalyticsRecorder()
    if backend == "jsonl":
        if not path:
            raise ConfigurationError("analytics_path is required for the jsonl recorder", config_key="engine.analytics_path")
        return JsonlAnalyticsRecorder(path)
    if backend == "none":
        return NullAnalyticsRecorder()
    raise ConfigurationError(f"Unknown analytics backend: {backend}", config_key="engine.analytics_backend")
