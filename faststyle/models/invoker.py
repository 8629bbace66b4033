"""
Inference Invoker

Runs one inference call against a loaded session in a worker thread and
measures its wall-clock duration.
"""

import asyncio
import time
from concurrent.futures import Executor
from typing import Optional

import numpy as np
import structlog

from .types import InferenceResult, StyleSession
from ..utils.errors import InferenceError
from ..utils.monitoring import record_error, record_inference

logger = structlog.get_logger()


class InferenceInvoker:
    """
    Execute inference on a StyleSession.

    Sessions carrying a lock are entered by one call at a time. The lock is
    a thread lock taken inside the worker, so it is free of any event loop
    and stays held until the backend call has actually returned, even when
    the awaiting caller is cancelled.
    """

    def __init__(self, executor: Optional[Executor] = None):
        self.executor = executor

    async def run(self, session: StyleSession, tensor: np.ndarray) -> InferenceResult:
        """
        Run the model on one input tensor.

        Args:
            session: Session from the registry
            tensor: Model input, bound to the session's first input

        Returns:
            InferenceResult with the first output and elapsed seconds

        Raises:
            InferenceError: if the backend call fails for any reason
        """
        style = session.style.value
        feeds = {session.input_name: tensor}
        loop = asyncio.get_running_loop()

        start_time = time.perf_counter()
        future = loop.run_in_executor(self.executor, _call, session, feeds)
        try:
            outputs = await asyncio.shield(future)
        except asyncio.CancelledError:
            await asyncio.wait([future])
            raise
        except Exception as e:
            record_inference(style, 'error')
            record_error(e, component="inference")
            logger.error("Inference failed", style=style, error=str(e))
            raise InferenceError(f"Inference failed for style '{style}': {e}") from e
        inference_time = time.perf_counter() - start_time

        record_inference(style, 'success', inference_time)
        logger.info("Style transfer completed", style=style, inference_time=inference_time)

        return InferenceResult(tensor=np.asarray(outputs[0]), inference_time=inference_time)


def _call(session: StyleSession, feeds):
    # Runs in a worker thread
    if session.lock is None:
        return session.handle.run([session.output_name], feeds)
    with session.lock:
        return session.handle.run([session.output_name], feeds)


async def run(session: StyleSession, tensor: np.ndarray) -> InferenceResult:
    """Run inference with the default thread pool."""
    return await InferenceInvoker().run(session, tensor)
