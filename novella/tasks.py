"""Task dispatch: backend construction, upload gate and content drivers."""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from .cancellation import CancelSignal, run_cancellable
from .errors import NovellaError, TranslationCancelled
from .structures import (
    RemoteNovelMetadata,
    TaskCallback,
    TaskDesc,
    TaskParams,
    TaskType,
    TranslatedMetadata,
    TranslatorConfig,
)
from .translator import Translator

Driver = Callable[
    [TaskDesc, TaskParams, TaskCallback, Translator, Optional[CancelSignal]],
    Awaitable[None],
]

UPLOAD_TASK_TYPES = {"web", "wenku"}


async def translate(
    task_desc: TaskDesc,
    task_params: TaskParams,
    callback: TaskCallback,
    translator_config: TranslatorConfig,
    signal: Optional[CancelSignal] = None,
    *,
    debug: bool = False,
) -> None:
    """Run one translation task. Failures are reported through ``callback``."""

    def log(message: str, detail: Optional[List[str]] = None) -> None:
        callback.log("  " + message, detail)

    try:
        translator = await Translator.create(translator_config, log, debug=debug)
    except NovellaError as exc:
        callback.log(f"Error occurred, unable to create translator: {exc}")
        return

    try:
        if task_desc.type in UPLOAD_TASK_TYPES and not translator.allow_upload():
            return

        driver = DRIVERS[task_desc.type]
        await driver(task_desc, task_params, callback, translator, signal)
    finally:
        await translator.aclose()


async def translate_web(
    task_desc: TaskDesc,
    task_params: TaskParams,
    callback: TaskCallback,
    translator: Translator,
    signal: Optional[CancelSignal],
) -> None:
    metadata = await _fetch_metadata(task_params, callback, signal)
    if metadata is None:
        return

    if task_params.translate_metadata:
        try:
            translated = await _translate_metadata(metadata, task_params, translator, signal)
        except TranslationCancelled:
            callback.log("Translation cancelled.")
            return
        except NovellaError as exc:
            callback.log(f"Metadata translation failed: {exc}")
            return
        callback.on_metadata_translated(translated)

    chapter_ids = [item.chapter_id for item in metadata.toc if item.chapter_id]
    await _translate_chapters(chapter_ids, task_params, callback, translator, signal)


async def translate_wenku(
    task_desc: TaskDesc,
    task_params: TaskParams,
    callback: TaskCallback,
    translator: Translator,
    signal: Optional[CancelSignal],
) -> None:
    metadata = await _fetch_metadata(task_params, callback, signal)
    if metadata is None:
        return
    chapter_ids = [item.chapter_id for item in metadata.toc if item.chapter_id]
    await _translate_chapters(chapter_ids, task_params, callback, translator, signal)


async def translate_local(
    task_desc: TaskDesc,
    task_params: TaskParams,
    callback: TaskCallback,
    translator: Translator,
    signal: Optional[CancelSignal],
) -> None:
    metadata = await _fetch_metadata(task_params, callback, signal)
    if metadata is None:
        return
    chapter_ids = [item.chapter_id for item in metadata.toc if item.chapter_id]
    await _translate_chapters(chapter_ids, task_params, callback, translator, signal)


DRIVERS: Dict[TaskType, Driver] = {
    "web": translate_web,
    "wenku": translate_wenku,
    "local": translate_local,
}


async def _fetch_metadata(
    task_params: TaskParams,
    callback: TaskCallback,
    signal: Optional[CancelSignal],
) -> Optional[RemoteNovelMetadata]:
    try:
        return await run_cancellable(task_params.source.get_metadata(), signal)
    except TranslationCancelled:
        callback.log("Translation cancelled.")
    except NovellaError as exc:
        callback.log(f"Unable to fetch metadata: {exc}")
    return None


async def _translate_metadata(
    metadata: RemoteNovelMetadata,
    task_params: TaskParams,
    translator: Translator,
    signal: Optional[CancelSignal],
) -> TranslatedMetadata:
    intro_lines = metadata.introduction.split("\n") if metadata.introduction else []
    toc_titles = [item.title for item in metadata.toc]
    source = [metadata.title, *intro_lines, *toc_titles]

    translated = await translator.translate(
        source, glossary=task_params.glossary, signal=signal
    )

    intro_end = 1 + len(intro_lines)
    return TranslatedMetadata(
        title=translated[0],
        introduction="\n".join(translated[1:intro_end]),
        toc_titles=translated[intro_end:],
    )


async def _translate_chapters(
    chapter_ids: Sequence[str],
    task_params: TaskParams,
    callback: TaskCallback,
    translator: Translator,
    signal: Optional[CancelSignal],
) -> None:
    selected = list(chapter_ids[task_params.start:task_params.end])
    callback.on_start(len(selected))

    for chapter_id in selected:
        try:
            chapter = await run_cancellable(
                task_params.source.get_chapter(chapter_id), signal
            )
            lines = await translator.translate(
                chapter.paragraphs,
                glossary=task_params.glossary,
                signal=signal,
            )
        except TranslationCancelled:
            callback.log("Translation cancelled.")
            return
        except NovellaError as exc:
            callback.log(f"Chapter {chapter_id} failed, stopping task: {exc}")
            callback.on_chapter_failure(chapter_id, str(exc))
            return
        callback.on_chapter_success(chapter_id, lines)
