"""Translation backend abstractions."""

from __future__ import annotations

import json
import sys
from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from .errors import TranslationProviderConfigurationError
from .segmenter import create_length_segmentor
from .structures import (
    BaiduConfig,
    EchoConfig,
    Logger,
    SakuraConfig,
    SegmentContext,
    Segmentor,
    TranslatorConfig,
)


class SegmentTranslator(ABC):
    """Capability contract shared by every translation backend."""

    id: str
    segmentor: Segmentor

    def __init__(self, log: Logger, *, debug: bool = False) -> None:
        self.log = log
        self.debug = debug

    async def init(self) -> "SegmentTranslator":
        """Perform any network warm-up needed before the first translate call."""

        return self

    def allow_upload(self) -> bool:
        return True

    async def aclose(self) -> None:
        """Release network clients held by the backend."""

    @abstractmethod
    async def translate(
        self,
        seg: Sequence[str],
        context: SegmentContext,
    ) -> List[str]:
        """Translate one segment and return a line-aligned result."""

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[novella][provider-debug] {label}:\n{message}", file=sys.stderr)


class EchoTranslator(SegmentTranslator):
    """A backend that returns the original text (stands in for the offline model)."""

    id = "echo"

    def __init__(self, log: Logger, *, debug: bool = False) -> None:
        super().__init__(log, debug=debug)
        self.segmentor = create_length_segmentor(500)

    def allow_upload(self) -> bool:
        self.log("Echo translator output is never uploaded")
        return False

    async def translate(
        self,
        seg: Sequence[str],
        context: SegmentContext,
    ) -> List[str]:
        return list(seg)


async def build_translator(
    config: TranslatorConfig,
    log: Logger,
    *,
    debug: bool = False,
) -> SegmentTranslator:
    """Factory to create and initialise backends from their configuration."""

    translator: SegmentTranslator
    if isinstance(config, BaiduConfig):
        from .baidu import BaiduTranslator

        translator = BaiduTranslator(log, debug=debug)
    elif isinstance(config, SakuraConfig):
        from .sakura import SakuraTranslator

        translator = SakuraTranslator(log, config, debug=debug)
    elif isinstance(config, EchoConfig):
        translator = EchoTranslator(log, debug=debug)
    else:
        raise TranslationProviderConfigurationError(
            f"Unknown translator configuration '{config!r}'."
        )

    try:
        return await translator.init()
    except Exception:
        await translator.aclose()
        raise
