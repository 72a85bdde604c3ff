"""
Recording run: global setup and teardown around a test suite.

One RecordingRun owns the HeadSpin session and the label queue for a whole
test run. It is created once, handed to the tests, and torn down at the end.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional

import httpx

from .config import HeadspinConfig
from .exceptions import HeadspinError, LabelFlushError
from .labels import Label, LabelKind, LabelOptions, LabelQueue, LabelSpan
from .session import HeadspinSession

logger = logging.getLogger(__name__)


class RecordingRun:
    """Lock/start before the suite, stop/unlock and push labels after it."""

    def __init__(
        self,
        session: HeadspinSession,
        labels: Optional[LabelQueue] = None,
        *,
        pre_test_buffer_seconds: float = 5.0,
        settle_seconds: float = 10.0,
    ) -> None:
        self.session = session
        self.labels = labels if labels is not None else LabelQueue()
        self.pre_test_buffer_seconds = pre_test_buffer_seconds
        self.settle_seconds = settle_seconds

    @classmethod
    def from_config(
        cls, config: HeadspinConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> "RecordingRun":
        token, device_id = config.require_credentials()
        session = HeadspinSession(
            token,
            device_id,
            api_host=config.api_host,
            ui_host=config.ui_host,
            timeout_seconds=config.timeout_seconds,
            transport=transport,
        )
        return cls(
            session,
            pre_test_buffer_seconds=config.pre_test_buffer_seconds,
            settle_seconds=config.settle_seconds,
        )

    async def setup(self) -> None:
        """Lock the device and start recording; unlock again if starting fails."""
        try:
            await self.session.lock_device()
            try:
                await self.session.start()
                # Some video before the first test
                await asyncio.sleep(self.pre_test_buffer_seconds)
            except BaseException:
                await self.session.unlock_device()
                raise
        finally:
            await self.session.aclose()

    async def teardown(self) -> List[Label]:
        """Stop recording, always unlock, then push every queued label.

        Returns:
            The labels that were submitted
        """
        try:
            try:
                await self.session.stop()
            finally:
                await self.session.unlock_device()

            # Give HeadSpin time to finish processing the recording
            await asyncio.sleep(self.settle_seconds)
            return await self.flush_labels()
        finally:
            await self.session.aclose()

    async def flush_labels(self) -> List[Label]:
        """
        Submit all queued labels concurrently.

        Every submission runs to completion; failures are collected and raised
        together as a LabelFlushError. Labels that were never stamped (for
        example on a skipped test) are left out.
        """
        pending: List[Label] = []
        for label in self.labels:
            if label.is_complete:
                pending.append(label)
            else:
                logger.warning(f"Skipping label {label.name!r}: its work never ran to completion")

        results = await asyncio.gather(*(self.session.push_label(label) for label in pending), return_exceptions=True)

        errors: List[HeadspinError] = []
        for result in results:
            if isinstance(result, HeadspinError):
                errors.append(result)
            elif isinstance(result, BaseException):
                raise result
        if errors:
            raise LabelFlushError(errors, total=len(pending))

        logger.info(f"Pushed {len(pending)} labels to HeadSpin")
        return pending

    def setup_sync(self) -> None:
        asyncio.run(self.setup())

    def teardown_sync(self) -> List[Label]:
        return asyncio.run(self.teardown())

    def span(self, kind: LabelKind, options: LabelOptions) -> LabelSpan:
        return self.labels.span(kind, options)

    async def page_load_test(self, options: LabelOptions, work: Callable[[], Any]) -> Any:
        return await self.labels.page_load_test(options, work)

    async def video_quality_test(self, options: LabelOptions, work: Callable[[], Any]) -> Any:
        return await self.labels.video_quality_test(options, work)

    async def audio_activity_test(self, options: LabelOptions, work: Callable[[], Any]) -> Any:
        return await self.labels.audio_activity_test(options, work)

    async def user_label(self, options: LabelOptions, work: Callable[[], Any]) -> Any:
        return await self.labels.user_label(options, work)


__all__ = ["RecordingRun"]
