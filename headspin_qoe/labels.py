"""
Label model and lifecycle helpers.

A label is a named time interval inside a capture session. Helpers register the
label in a queue as soon as it is created, stamp the start right before the
wrapped work runs and stamp the end on every exit path, so a failing unit of
work still yields a timed label.
"""

from __future__ import annotations

import inspect
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Mapping, NamedTuple, Optional, TypeVar, Union

from pydantic import BaseModel, Field

T = TypeVar("T")

LabelOptions = Union[str, Mapping[str, Any]]
Clock = Callable[[], int]


def now_ms() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class LabelKind(str, Enum):
    """Kinds of labels understood by the HeadSpin session API."""

    PAGE_LOAD = "page-load"
    VIDEO_CONTENT = "video-content"
    AUDIO_ACTIVITY = "audio-activity"
    USER = "user"

    @property
    def label_type(self) -> str:
        return LABEL_KINDS[self].label_type

    @property
    def default_category(self) -> Optional[str]:
        return LABEL_KINDS[self].default_category


class LabelKindInfo(NamedTuple):
    label_type: str
    default_category: Optional[str]


LABEL_KINDS: Dict[LabelKind, LabelKindInfo] = {
    LabelKind.PAGE_LOAD: LabelKindInfo("page-load-request", "Performance testing"),
    LabelKind.VIDEO_CONTENT: LabelKindInfo("video-content", "Video quality"),
    LabelKind.AUDIO_ACTIVITY: LabelKindInfo("audio-activity-request", "Video quality"),
    LabelKind.USER: LabelKindInfo("user", None),
}


class Label(BaseModel):
    """A named interval of test work, timestamped in wall-clock milliseconds."""

    kind: LabelKind = Field(..., description="Label kind")
    options: Dict[str, Any] = Field(default_factory=dict, description="Name, category and custom label data")
    start_time: Optional[int] = Field(None, description="Start timestamp (ms since epoch)")
    end_time: Optional[int] = Field(None, description="End timestamp (ms since epoch)")

    @classmethod
    def create(cls, kind: LabelKind, options: LabelOptions) -> "Label":
        """Build a label from a name or an options mapping."""
        if isinstance(options, str):
            return cls(kind=kind, options={"name": options})
        return cls(kind=kind, options=dict(options))

    @property
    def name(self) -> Optional[str]:
        return self.options.get("name")

    @property
    def is_complete(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    def start(self, at: Optional[int] = None) -> None:
        self.start_time = now_ms() if at is None else at

    def end(self, at: Optional[int] = None) -> None:
        self.end_time = now_ms() if at is None else at


class LabelSpan:
    """Brackets a block of work with a label's start and end stamps.

    Usable with both ``with`` and ``async with``. The end stamp is written on
    every exit path and the block's exception is never suppressed.
    """

    def __init__(self, label: Label, clock: Clock = now_ms) -> None:
        self.label = label
        self._clock = clock

    def __enter__(self) -> Label:
        self.label.start(self._clock())
        return self.label

    def __exit__(self, exc_type, exc, tb) -> None:
        self.label.end(self._clock())

    async def __aenter__(self) -> Label:
        return self.__enter__()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.__exit__(exc_type, exc, tb)


class LabelQueue:
    """Labels recorded during one test run, in insertion order."""

    def __init__(self, clock: Clock = now_ms) -> None:
        self._labels: List[Label] = []
        self._clock = clock

    def __len__(self) -> int:
        return len(self._labels)

    def __iter__(self) -> Iterator[Label]:
        return iter(list(self._labels))

    @property
    def labels(self) -> List[Label]:
        return list(self._labels)

    def add(self, label: Label) -> Label:
        self._labels.append(label)
        return label

    def create(self, kind: LabelKind, options: LabelOptions) -> Label:
        """Create a label and register it immediately."""
        return self.add(Label.create(kind, options))

    def span(self, kind: LabelKind, options: LabelOptions) -> LabelSpan:
        return LabelSpan(self.create(kind, options), self._clock)

    def page_load(self, options: LabelOptions) -> LabelSpan:
        return self.span(LabelKind.PAGE_LOAD, options)

    def video_quality(self, options: LabelOptions) -> LabelSpan:
        return self.span(LabelKind.VIDEO_CONTENT, options)

    def audio_activity(self, options: LabelOptions) -> LabelSpan:
        return self.span(LabelKind.AUDIO_ACTIVITY, options)

    def user(self, options: LabelOptions) -> LabelSpan:
        return self.span(LabelKind.USER, options)

    async def run(self, kind: LabelKind, options: LabelOptions, work: Callable[[], Union[Awaitable[T], T]]) -> T:
        """
        Run ``work`` inside a label of the given kind.

        Args:
            kind: Label kind to attach
            options: Label name or options mapping (name, category, custom fields)
            work: Zero-argument callable; may return an awaitable

        Returns:
            Whatever ``work`` returned (awaited if needed)
        """
        async with self.span(kind, options):
            result = work()
            if inspect.isawaitable(result):
                result = await result
            return result

    async def page_load_test(self, options: LabelOptions, work: Callable[[], Any]) -> Any:
        return await self.run(LabelKind.PAGE_LOAD, options, work)

    async def video_quality_test(self, options: LabelOptions, work: Callable[[], Any]) -> Any:
        return await self.run(LabelKind.VIDEO_CONTENT, options, work)

    async def audio_activity_test(self, options: LabelOptions, work: Callable[[], Any]) -> Any:
        return await self.run(LabelKind.AUDIO_ACTIVITY, options, work)

    async def user_label(self, options: LabelOptions, work: Callable[[], Any]) -> Any:
        return await self.run(LabelKind.USER, options, work)


__all__ = [
    "Label",
    "LabelKind",
    "LabelKindInfo",
    "LABEL_KINDS",
    "LabelOptions",
    "LabelQueue",
    "LabelSpan",
    "now_ms",
]
