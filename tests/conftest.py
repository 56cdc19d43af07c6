"""Shared fakes for the translation pipeline tests."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from novella.providers import SegmentTranslator
from novella.segmenter import create_length_segmentor
from novella.structures import (
    RemoteChapter,
    RemoteNovelMetadata,
    SegmentContext,
    TocItem,
    TranslatedMetadata,
)

DEGENERATE = 10**6


class LogRecorder:
    """Collects ``log(message, detail)`` calls."""

    def __init__(self) -> None:
        self.entries: List[Tuple[str, Optional[List[str]]]] = []

    def __call__(self, message: str, detail: Optional[List[str]] = None) -> None:
        self.entries.append((message, detail))

    @property
    def messages(self) -> List[str]:
        return [message for message, _ in self.entries]


class FakeCompletions:
    """Replays scripted ``(content, completion_tokens)`` responses."""

    def __init__(self, responses: Sequence[Tuple[str, int]]) -> None:
        self.responses = list(responses)
        self.calls: List[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        content, tokens = self.responses.pop(0)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
            usage=SimpleNamespace(completion_tokens=tokens),
        )


class FakeModels:
    def __init__(self, models: Optional[List[SimpleNamespace]] = None, error: Optional[Exception] = None) -> None:
        self.models = models or []
        self.error = error
        self.calls: List[dict] = []

    async def list(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=self.models)


def make_openai_client(
    responses: Sequence[Tuple[str, int]] = (),
    *,
    models: Optional[List[SimpleNamespace]] = None,
    models_error: Optional[Exception] = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        chat=SimpleNamespace(completions=FakeCompletions(responses)),
        models=FakeModels(models, models_error),
    )


class RecordingTranslator(SegmentTranslator):
    """Segment translator that upper-cases lines and remembers its inputs."""

    id = "recording"

    def __init__(self, log, *, max_length: int = 500, upload: bool = True) -> None:
        super().__init__(log)
        self.segmentor = create_length_segmentor(max_length)
        self.upload = upload
        self.calls: List[Tuple[List[str], SegmentContext]] = []

    def allow_upload(self) -> bool:
        return self.upload

    async def translate(self, seg, context):
        self.calls.append((list(seg), context))
        return [line.upper() for line in seg]


class FakeSource:
    def __init__(self, metadata: RemoteNovelMetadata, chapters: Dict[str, List[str]]) -> None:
        self.metadata = metadata
        self.chapters = chapters
        self.requested: List[str] = []

    async def get_metadata(self) -> RemoteNovelMetadata:
        return self.metadata

    async def get_chapter(self, chapter_id: str) -> RemoteChapter:
        self.requested.append(chapter_id)
        return RemoteChapter(paragraphs=self.chapters.get(chapter_id, []))


class RecordingCallback:
    def __init__(self) -> None:
        self.logs = LogRecorder()
        self.total: Optional[int] = None
        self.metadata: Optional[TranslatedMetadata] = None
        self.successes: Dict[str, List[str]] = {}
        self.failures: List[Tuple[str, str]] = []

    def log(self, message: str, detail: Optional[List[str]] = None) -> None:
        self.logs(message, detail)

    def on_start(self, total: int) -> None:
        self.total = total

    def on_metadata_translated(self, metadata: TranslatedMetadata) -> None:
        self.metadata = metadata

    def on_chapter_success(self, chapter_id: str, lines: List[str]) -> None:
        self.successes[chapter_id] = lines

    def on_chapter_failure(self, chapter_id: str, reason: str) -> None:
        self.failures.append((chapter_id, reason))


@pytest.fixture
def log() -> LogRecorder:
    return LogRecorder()


@pytest.fixture
def callback() -> RecordingCallback:
    return RecordingCallback()


@pytest.fixture
def novel_source() -> FakeSource:
    metadata = RemoteNovelMetadata(
        title="タイトル",
        authors=["作者"],
        introduction="あらすじ一\nあらすじ二",
        toc=[
            TocItem(title="第一章"),
            TocItem(title="一話", chapter_id="c1"),
            TocItem(title="二話", chapter_id="c2"),
            TocItem(title="三話", chapter_id="c3"),
        ],
    )
    chapters = {
        "c1": ["one", "", "two"],
        "c2": ["three"],
        "c3": ["four", "five"],
    }
    return FakeSource(metadata, chapters)
