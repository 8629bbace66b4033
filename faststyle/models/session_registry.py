"""
Session Registry

Lazily loads and caches one inference session per style. A registry is an
explicit object owned by whoever builds the service, so tests and
long-running processes control its lifetime and can evict everything.

Per-style lifecycle:

    ABSENT -> LOADING -> READY      (until evict_all)
    ABSENT -> LOADING -> ABSENT     (load failed, retryable)

Concurrent first access to a style shares a single load task, so the
artifact is parsed at most once no matter how many callers race for it.
"""

import asyncio
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

import structlog

from .backends import InferenceBackend, get_backend
from .types import StyleName, StyleSession
from ..utils.config import InferenceSettings, get_settings
from ..utils.errors import ModelLoadError
from ..utils.monitoring import record_error, record_model_load, set_cached_sessions

logger = structlog.get_logger()


class SessionState(Enum):
    """Lifecycle state of one style entry."""
    ABSENT = "absent"
    LOADING = "loading"
    READY = "ready"


def _consume_exception(task: asyncio.Task) -> None:
    # A load nobody awaits any more must not log "exception never retrieved"
    if not task.cancelled():
        task.exception()


class SessionRegistry:
    """
    Process-scoped cache of inference sessions keyed by style.

    Usage:
        registry = SessionRegistry(settings.inference)
        session = await registry.acquire(StyleName.MOSAIC)
        ...
        registry.evict_all()
    """

    def __init__(
        self,
        settings: Optional[InferenceSettings] = None,
        backend: Optional[InferenceBackend] = None
    ):
        self.settings = settings or get_settings().inference
        self.backend = backend or get_backend(self.settings)

        if self.settings.serialize_inference is None:
            self.serialize_inference = not self.backend.thread_safe
        else:
            self.serialize_inference = self.settings.serialize_inference

        self._sessions: Dict[StyleName, StyleSession] = {}
        self._loading: Dict[StyleName, asyncio.Task] = {}
        # Bumped by evict_all; loads started under an older value are not cached
        self._generation = 0

    def artifact_path(self, style: Union[StyleName, str]) -> Path:
        """Deterministic location of the model artifact for a style."""
        style = StyleName.parse(style)
        file_name = self.settings.artifact_template.format(style=style.value)
        return Path(self.settings.models_dir) / file_name

    def state(self, style: Union[StyleName, str]) -> SessionState:
        style = StyleName.parse(style)
        if style in self._sessions:
            return SessionState.READY
        if style in self._loading:
            return SessionState.LOADING
        return SessionState.ABSENT

    def cached_styles(self) -> List[StyleName]:
        return list(self._sessions)

    async def acquire(self, style: Union[StyleName, str]) -> StyleSession:
        """
        Get the session for a style, loading it on first use.

        Raises:
            ModelLoadError: if the artifact is missing or rejected by the
                backend. The entry returns to ABSENT so a later call retries.
        """
        style = StyleName.parse(style)

        session = self._sessions.get(style)
        if session is not None:
            return session

        task = self._loading.get(style)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._load(style))
            task.add_done_callback(_consume_exception)
            self._loading[style] = task
            logger.debug("Session load started", style=style.value)

        # Cancelling one waiter must not abort a load other waiters share
        return await asyncio.shield(task)

    async def _load(self, style: StyleName) -> StyleSession:
        path = self.artifact_path(style)
        generation = self._generation

        try:
            if not path.is_file():
                raise ModelLoadError(
                    f"Model artifact for style '{style.value}' not found: {path}",
                    style=style.value,
                    path=path
                )

            start_time = time.perf_counter()
            loop = asyncio.get_running_loop()
            try:
                handle = await loop.run_in_executor(None, self.backend.load_session, path)
                inputs = handle.get_inputs()
                outputs = handle.get_outputs()
            except Exception as e:
                raise ModelLoadError(
                    f"Failed to load model for style '{style.value}': {e}",
                    style=style.value,
                    path=path
                ) from e
            load_time = time.perf_counter() - start_time

            if not inputs or not outputs:
                raise ModelLoadError(
                    f"Model for style '{style.value}' declares no inputs or outputs",
                    style=style.value,
                    path=path
                )

            # Only the first input and output are bound
            session = StyleSession(
                style=style,
                handle=handle,
                input_name=inputs[0].name,
                output_name=outputs[0].name,
                artifact_path=path,
                load_time=load_time,
                lock=threading.Lock() if self.serialize_inference else None
            )
            if generation != self._generation:
                # Evicted mid-load: only this load's own waiters get the session
                logger.info("Session loaded after eviction, not cached",
                            style=style.value,
                            path=str(path))
                return session

            self._sessions[style] = session

            record_model_load(style.value, load_time)
            set_cached_sessions(len(self._sessions))
            logger.info("Inference session created",
                        style=style.value,
                        path=str(path),
                        input_name=session.input_name,
                        output_name=session.output_name,
                        load_time=load_time)
            return session

        except ModelLoadError as e:
            logger.error("Model load failed", **e.to_dict())
            record_error(e, component="session_registry")
            raise

        finally:
            if self._loading.get(style) is asyncio.current_task():
                del self._loading[style]

    def evict_all(self) -> int:
        """
        Release every cached session. Later acquire calls reload from disk.

        Loads already in flight are not interrupted. Their session still
        reaches the callers already waiting on them but is never cached, and
        the next acquire starts a fresh load.

        Returns:
            Number of sessions released
        """
        sessions = list(self._sessions.values())
        self._sessions.clear()
        self._loading.clear()
        self._generation += 1

        for session in sessions:
            self.backend.release_session(session.handle)

        set_cached_sessions(0)
        logger.info("Session cache cleared", released=len(sessions))
        return len(sessions)
