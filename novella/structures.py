"""Core data structures for the Novella translation pipeline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Literal, Optional, Protocol, Sequence, Union


Glossary = Dict[str, str]
Segmentor = Callable[[Sequence[str]], List[List[str]]]
Logger = Callable[..., None]
"""Logging callback invoked as ``log(message, detail=None)``."""

TaskType = Literal["web", "wenku", "local"]


@dataclass
class SegmentContext:
    """Per-segment translation input shared with the backend."""

    glossary: Glossary
    prev_segs: List[List[str]] = field(default_factory=list)
    signal: Optional[asyncio.Event] = None


@dataclass(frozen=True)
class ModelInfo:
    """A detected model id together with its fingerprint metadata."""

    id: str
    meta: Dict[str, int]


@dataclass(frozen=True)
class BaiduConfig:
    id: Literal["baidu"] = "baidu"


@dataclass(frozen=True)
class SakuraConfig:
    endpoint: str
    seg_length: Optional[int] = None
    prev_seg_length: Optional[int] = None
    id: Literal["sakura"] = "sakura"


@dataclass(frozen=True)
class EchoConfig:
    id: Literal["echo"] = "echo"


TranslatorConfig = Union[BaiduConfig, SakuraConfig, EchoConfig]


@dataclass
class TocItem:
    title: str
    chapter_id: Optional[str] = None
    create_at: Optional[datetime] = None


@dataclass
class RemoteNovelMetadata:
    """Novel metadata as yielded by an upstream content provider."""

    title: str
    authors: List[str] = field(default_factory=list)
    introduction: str = ""
    toc: List[TocItem] = field(default_factory=list)


@dataclass
class RemoteChapter:
    paragraphs: List[str]


class ContentSource(Protocol):
    """Upstream collaborator supplying the documents to translate."""

    async def get_metadata(self) -> RemoteNovelMetadata: ...

    async def get_chapter(self, chapter_id: str) -> RemoteChapter: ...


@dataclass
class TaskDesc:
    """Identifies the kind of content a translation task works on."""

    type: TaskType
    provider_id: Optional[str] = None
    novel_id: Optional[str] = None
    volume_id: Optional[str] = None


@dataclass
class TaskParams:
    source: ContentSource
    glossary: Glossary = field(default_factory=dict)
    start: int = 0
    end: Optional[int] = None
    translate_metadata: bool = True


@dataclass
class TranslatedMetadata:
    title: str
    introduction: str
    toc_titles: List[str]


class TaskCallback(Protocol):
    """Progress reporting hooks invoked by the task drivers."""

    def log(self, message: str, detail: Optional[List[str]] = None) -> None: ...

    def on_start(self, total: int) -> None: ...

    def on_metadata_translated(self, metadata: TranslatedMetadata) -> None: ...

    def on_chapter_success(self, chapter_id: str, lines: List[str]) -> None: ...

    def on_chapter_failure(self, chapter_id: str, reason: str) -> None: ...
