"""Document-level orchestration over a segment translation backend."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .cancellation import CancelSignal, raise_if_cancelled
from .errors import NovellaError, TranslationProviderError, TranslatorConstructionError
from .providers import SegmentTranslator, build_translator
from .structures import Glossary, Logger, SegmentContext, TranslatorConfig


class Translator:
    """Walks a document through one backend, segment by segment."""

    def __init__(self, segment_translator: SegmentTranslator, log: Logger) -> None:
        self.segment_translator = segment_translator
        self.log = log

    @classmethod
    async def create(
        cls,
        config: TranslatorConfig,
        log: Logger,
        *,
        debug: bool = False,
    ) -> "Translator":
        try:
            segment_translator = await build_translator(config, log, debug=debug)
        except TranslatorConstructionError:
            raise
        except NovellaError as exc:
            raise TranslatorConstructionError(str(exc)) from exc
        return cls(segment_translator, log)

    @property
    def id(self) -> str:
        return self.segment_translator.id

    def allow_upload(self) -> bool:
        return self.segment_translator.allow_upload()

    async def aclose(self) -> None:
        await self.segment_translator.aclose()

    async def translate(
        self,
        lines: Sequence[str],
        *,
        glossary: Optional[Glossary] = None,
        signal: Optional[CancelSignal] = None,
    ) -> List[str]:
        """Translate ``lines`` and return a result of the same length.

        Blank lines are never sent to the backend; they are restored at their
        original positions.
        """

        glossary = glossary or {}
        content_indexes = [idx for idx, line in enumerate(lines) if line.strip()]
        content = [lines[idx] for idx in content_indexes]

        translated_segs: List[List[str]] = []
        for seg in self.segment_translator.segmentor(content):
            raise_if_cancelled(signal)
            context = SegmentContext(
                glossary=glossary,
                prev_segs=list(translated_segs),
                signal=signal,
            )
            translated = await self.segment_translator.translate(seg, context)
            if len(translated) != len(seg):
                raise TranslationProviderError(
                    f"Translator {self.id} returned {len(translated)} lines "
                    f"for a segment of {len(seg)} lines."
                )
            translated_segs.append(translated)

        result = list(lines)
        flat = [line for seg in translated_segs for line in seg]
        for idx, line in zip(content_indexes, flat):
            result[idx] = line
        return result
