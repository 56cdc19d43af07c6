"""Command line interface for the Novella translator."""

from __future__ import annotations

import argparse
import asyncio
import json
import pathlib
import sys
from typing import Dict, Iterable, List, Optional

from .configuration import build_translator_config, get_settings
from .errors import NovellaError
from .structures import (
    Glossary,
    RemoteChapter,
    RemoteNovelMetadata,
    TaskDesc,
    TaskParams,
    TocItem,
    TranslatedMetadata,
    TranslatorConfig,
)
from .tasks import translate
from .translator import Translator

LOCAL_CHAPTER_ID = "0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="novella",
        description="Translate a text file line by line through a translation backend.",
    )
    parser.add_argument(
        "input_file",
        nargs="?",
        help="UTF-8 text file, one paragraph per line.",
    )
    parser.add_argument(
        "-t",
        "--translator",
        choices=["baidu", "sakura", "echo"],
        help="Translation backend (default: NOVELLA_TRANSLATOR setting).",
    )
    parser.add_argument(
        "-e",
        "--endpoint",
        help="Base URL of the Sakura OpenAI-compatible server.",
    )
    parser.add_argument(
        "--seg-length",
        type=int,
        help="Maximum characters per Sakura segment (default: 500).",
    )
    parser.add_argument(
        "--prev-seg-length",
        type=int,
        help="Characters of previous translation given as context (default: 500).",
    )
    parser.add_argument(
        "-g",
        "--glossary",
        help="JSON file mapping source terms to target terms.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file path. Defaults to appending '_en' to the input name.",
    )
    parser.add_argument(
        "--check-upload",
        action="store_true",
        help="Only report whether the configured backend may upload results.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show retry details for every segment.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


class FileSource:
    """Serves one local text file as a single-chapter volume."""

    def __init__(self, path: pathlib.Path) -> None:
        self.path = path

    async def get_metadata(self) -> RemoteNovelMetadata:
        return RemoteNovelMetadata(
            title=self.path.stem,
            toc=[TocItem(title=self.path.stem, chapter_id=LOCAL_CHAPTER_ID)],
        )

    async def get_chapter(self, chapter_id: str) -> RemoteChapter:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise NovellaError(f"Could not read {self.path}: {exc}") from exc
        return RemoteChapter(paragraphs=text.splitlines())


class ConsoleCallback:
    """Prints task progress and collects translated chapters."""

    def __init__(self, *, verbose: bool) -> None:
        self.verbose = verbose
        self.chapters: Dict[str, List[str]] = {}
        self.failures: List[str] = []

    def log(self, message: str, detail: Optional[List[str]] = None) -> None:
        print(message)
        if self.verbose and detail:
            for block in detail:
                for line in block.splitlines():
                    print(f"    | {line}")

    def on_start(self, total: int) -> None:
        if self.verbose:
            print(f"Translating {total} chapter(s).")

    def on_metadata_translated(self, metadata: TranslatedMetadata) -> None:
        print(f"Title: {metadata.title}")

    def on_chapter_success(self, chapter_id: str, lines: List[str]) -> None:
        self.chapters[chapter_id] = lines

    def on_chapter_failure(self, chapter_id: str, reason: str) -> None:
        self.failures.append(reason)


def load_glossary(path: Optional[str]) -> Glossary:
    if not path:
        return {}
    try:
        data = json.loads(pathlib.Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise NovellaError(f"Could not read glossary {path}: {exc}") from exc
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise NovellaError("Glossary must be a JSON object of string to string.")
    return data


def derive_output_path(input_path: pathlib.Path) -> pathlib.Path:
    return input_path.with_name(f"{input_path.stem}_en{input_path.suffix}")


def _print_log(message: str, detail: Optional[List[str]] = None) -> None:
    print(message)


async def check_upload(config: TranslatorConfig, *, debug: bool) -> int:
    translator = await Translator.create(config, _print_log, debug=debug)
    try:
        allowed = translator.allow_upload()
    finally:
        await translator.aclose()
    print(f"Upload {'allowed' if allowed else 'not allowed'} for {translator.id}.")
    return 0 if allowed else 1


def execute_translation(
    *,
    input_file: str,
    output_file: Optional[str],
    config: TranslatorConfig,
    glossary: Glossary,
    verbose: bool,
    provider_debug: bool,
) -> tuple[int, Optional[str]]:
    """Run a local translation task and return the exit code and a message."""

    input_path = pathlib.Path(input_file).expanduser().resolve()
    if not input_path.is_file():
        return 1, "Input file not found. Please provide a readable text file."
    output_path = (
        pathlib.Path(output_file).expanduser().resolve()
        if output_file
        else derive_output_path(input_path)
    )
    if input_path == output_path:
        return 1, "The output path matches the input file. Refusing to overwrite it."

    callback = ConsoleCallback(verbose=verbose)
    task_params = TaskParams(source=FileSource(input_path), glossary=glossary)

    try:
        asyncio.run(
            translate(
                TaskDesc(type="local", volume_id=input_path.name),
                task_params,
                callback,
                config,
                debug=provider_debug,
            )
        )
    except KeyboardInterrupt:
        return 2, "Translation interrupted by user."

    lines = callback.chapters.get(LOCAL_CHAPTER_ID)
    if lines is None:
        reason = callback.failures[0] if callback.failures else "see the log above"
        return 1, f"Translation failed ({reason}); no output was written."

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return 0, f"Translation written to {output_path}"


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = get_settings()
        config = build_translator_config(
            settings,
            translator=args.translator,
            endpoint=args.endpoint,
            seg_length=args.seg_length,
            prev_seg_length=args.prev_seg_length,
        )
        glossary = load_glossary(args.glossary)
    except NovellaError as exc:
        print(exc)
        return 1

    provider_debug = bool(args.debug_provider or settings.NOVELLA_PROVIDER_DEBUG)

    if args.check_upload:
        try:
            return asyncio.run(check_upload(config, debug=provider_debug))
        except NovellaError as exc:
            print(f"Unable to create translator: {exc}")
            return 1

    if args.input_file is None:
        parser.error("the following arguments are required: input_file")

    exit_code, message = execute_translation(
        input_file=args.input_file,
        output_file=args.output,
        config=config,
        glossary=glossary,
        verbose=args.verbose,
        provider_debug=provider_debug,
    )
    if message:
        print(message)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
