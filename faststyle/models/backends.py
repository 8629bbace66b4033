"""
Abstract base class and implementations for inference backends.

A backend turns a model artifact on disk into a session handle exposing the
ONNX Runtime session surface: ``get_inputs()``, ``get_outputs()`` and
``run(output_names, input_feed)``.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import namedtuple
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from ..utils.config import InferenceSettings

logger = logging.getLogger(__name__)


class InferenceBackend(ABC):
    """Abstract base class for inference backends."""

    # Whether one session may be run from several threads at once
    thread_safe: bool = True

    @abstractmethod
    def load_session(self, path: Path) -> Any:
        """Parse and compile a model artifact. Blocking."""
        pass

    def release_session(self, handle: Any) -> None:
        """Free resources held by a session handle."""
        pass

    @abstractmethod
    def get_backend_info(self) -> Dict[str, Any]:
        """Get backend information and capabilities."""
        pass


class OnnxRuntimeBackend(InferenceBackend):
    """ONNX Runtime backend; sessions are safe for concurrent ``run`` calls."""

    thread_safe = True

    _OPTIMIZATION_LEVELS = {
        "disable": "ORT_DISABLE_ALL",
        "basic": "ORT_ENABLE_BASIC",
        "extended": "ORT_ENABLE_EXTENDED",
        "all": "ORT_ENABLE_ALL",
    }

    def __init__(
        self,
        providers: Optional[List[str]] = None,
        graph_optimization_level: str = "all",
        intra_op_num_threads: int = 0
    ):
        import onnxruntime as ort

        self._ort = ort
        self.graph_optimization_level = graph_optimization_level
        self.intra_op_num_threads = intra_op_num_threads

        available = ort.get_available_providers()
        requested = providers or ["CPUExecutionProvider"]
        self.providers = [p for p in requested if p in available]
        if not self.providers:
            logger.warning("None of the requested execution providers %s are available, "
                           "using CPUExecutionProvider", requested)
            self.providers = ["CPUExecutionProvider"]

        logger.info("ONNX Runtime backend initialized with providers: %s", self.providers)

    def load_session(self, path: Path) -> Any:
        options = self._ort.SessionOptions()
        options.graph_optimization_level = getattr(
            self._ort.GraphOptimizationLevel,
            self._OPTIMIZATION_LEVELS[self.graph_optimization_level]
        )
        if self.intra_op_num_threads:
            options.intra_op_num_threads = self.intra_op_num_threads

        return self._ort.InferenceSession(
            str(path),
            sess_options=options,
            providers=self.providers
        )

    def get_backend_info(self) -> Dict[str, Any]:
        return {
            "name": "onnxruntime",
            "version": self._ort.__version__,
            "providers": list(self.providers),
            "graph_optimization_level": self.graph_optimization_level,
            "thread_safe": self.thread_safe,
        }


NodeArg = namedtuple("NodeArg", ["name", "shape", "type"])


class MockSession:
    """
    Stand-in for an ONNX Runtime session.

    Applies a fixed per-channel colour shift to the input so results are
    distinguishable from the source, and records how many ``run`` calls
    overlap in time.
    """

    def __init__(self, path: Path, delay: float = 0.0):
        self.path = path
        self.delay = delay
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.fail_with: Optional[Exception] = None
        self.output_override: Optional[np.ndarray] = None
        self._counter_lock = threading.Lock()

    def get_inputs(self) -> List[NodeArg]:
        return [NodeArg("input1", [1, 3, 224, 224], "tensor(float)")]

    def get_outputs(self) -> List[NodeArg]:
        return [NodeArg("output1", [1, 3, 224, 224], "tensor(float)")]

    def run(self, output_names: List[str], input_feed: Dict[str, np.ndarray]) -> List[np.ndarray]:
        with self._counter_lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.fail_with is not None:
                raise self.fail_with
            if self.output_override is not None:
                return [self.output_override]

            data = input_feed["input1"]
            if data.shape != (1, 3, 224, 224):
                raise ValueError(f"Got invalid dimensions for input: input1 {data.shape}")
            shift = np.array([40.0, -20.0, 10.0], dtype=np.float32).reshape(1, 3, 1, 1)
            return [data + shift]
        finally:
            with self._counter_lock:
                self.active -= 1


class MockBackend(InferenceBackend):
    """Mock implementation for testing purposes."""

    thread_safe = False

    def __init__(self, load_delay: float = 0.0, run_delay: float = 0.0):
        self.load_delay = load_delay
        self.run_delay = run_delay
        self.load_count = 0
        self.loaded_paths: List[Path] = []
        self.released: List[MockSession] = []
        self._lock = threading.Lock()

    def load_session(self, path: Path) -> MockSession:
        with self._lock:
            self.load_count += 1
            self.loaded_paths.append(path)
        if self.load_delay:
            time.sleep(self.load_delay)

        if path.read_bytes().startswith(b"corrupt"):
            raise RuntimeError(f"Load model from {path} failed: protobuf parsing failed")

        logger.info("Mock session created for %s", path)
        return MockSession(path, delay=self.run_delay)

    def release_session(self, handle: MockSession) -> None:
        self.released.append(handle)

    def get_backend_info(self) -> Dict[str, Any]:
        return {
            "name": "mock",
            "providers": ["MockExecutionProvider"],
            "thread_safe": self.thread_safe,
        }


def get_backend(settings: Optional[InferenceSettings] = None) -> InferenceBackend:
    """Factory function to get an inference backend."""
    settings = settings or InferenceSettings()

    if settings.backend == "onnxruntime":
        return OnnxRuntimeBackend(
            providers=settings.providers,
            graph_optimization_level=settings.graph_optimization_level,
            intra_op_num_threads=settings.intra_op_num_threads
        )
    if settings.backend == "mock":
        return MockBackend()

    raise ValueError(f"Unknown backend type: {settings.backend}. Available: ['onnxruntime', 'mock']")
