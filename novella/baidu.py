"""Generic web machine-translation backend built on Baidu's public endpoint."""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from .cancellation import CancelSignal, run_cancellable
from .errors import TranslationProviderError, TranslatorConstructionError, error_for_status
from .glossary import create_glossary_wrapper
from .providers import SegmentTranslator
from .segmenter import create_length_segmentor, has_han, has_hangul, has_kana, has_latin
from .structures import Logger, SegmentContext

BAIDU_BASE_URL = "https://fanyi.baidu.com"
BAIDU_SEGMENT_LENGTH = 3500


class BaiduApi:
    """Thin async client for the web translation endpoints."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        base_url: str = BAIDU_BASE_URL,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url)

    async def sug(self, signal: Optional[CancelSignal] = None) -> Dict[str, Any]:
        response = await run_cancellable(
            self._client.post("/sug", data={"kw": "你好"}),
            signal,
        )
        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as exc:
            raise TranslationProviderError(
                f"Translation service returned an unexpected warm-up reply: {exc}"
            ) from exc

    async def translate(
        self,
        query: str,
        from_lang: str,
        to_lang: str,
        signal: Optional[CancelSignal] = None,
    ) -> List[Dict[str, Any]]:
        payload = {
            "query": query,
            "from": from_lang,
            "to": to_lang,
            "reference": "",
            "corpusIds": [],
            "needPhonetic": False,
            "domain": "common",
            "milliTimestamp": int(time.time() * 1000),
        }
        response = await run_cancellable(
            self._client.post("/ait/text/translate", json=payload),
            signal,
        )
        self._raise_for_status(response)
        return parse_event_stream(response.text)

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise error_for_status(response.status_code, response.text[:200] or None)


def parse_event_stream(body: str) -> List[Dict[str, Any]]:
    """Decode the ``data:`` lines of a server-sent event stream."""

    chunks: List[Dict[str, Any]] = []
    for raw_line in body.splitlines():
        line = raw_line.strip()
        if not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if not data:
            continue
        try:
            chunks.append(json.loads(data))
        except json.JSONDecodeError as exc:
            raise TranslationProviderError(
                f"Translation service returned a malformed event: {exc}"
            ) from exc
    return chunks


def detect_source_language(text: str) -> str:
    """Guess the Baidu source language code. Best effort for mixed scripts."""

    if has_hangul(text):
        return "kor"
    if has_kana(text) or has_han(text):
        return "jp"
    if has_latin(text):
        return "en"
    return "jp"


def collect_line_parts(chunks: Iterable[Dict[str, Any]]) -> List[Tuple[int, str]]:
    """Pull (paragraph index, fragment) pairs out of the Translating events."""

    parts: List[Tuple[int, str]] = []
    for chunk in chunks:
        data = chunk.get("data") or {}
        if data.get("event") != "Translating":
            continue
        for item in data.get("list") or []:
            try:
                para_idx = int(item["paraIdx"])
            except (KeyError, TypeError, ValueError) as exc:
                raise TranslationProviderError(
                    f"Translation service returned a fragment without a paragraph index: {item!r}"
                ) from exc
            parts.append((para_idx, item.get("dst", "")))
    return parts


def rebuild_lines(parts: Sequence[Tuple[int, str]]) -> List[str]:
    """Join fragments sharing a paragraph index; a new index starts a new line."""

    lines: List[str] = []
    current_idx = 0
    current_line = ""
    for para_idx, dst in parts:
        if para_idx == current_idx:
            current_line += dst
        else:
            lines.append(current_line)
            current_idx = para_idx
            current_line = dst
    lines.append(current_line)
    return lines


class BaiduTranslator(SegmentTranslator):
    id = "baidu"

    def __init__(
        self,
        log: Logger,
        *,
        api: Optional[BaiduApi] = None,
        debug: bool = False,
    ) -> None:
        super().__init__(log, debug=debug)
        self.api = api or BaiduApi()
        self.segmentor = create_length_segmentor(BAIDU_SEGMENT_LENGTH)

    async def init(self) -> "BaiduTranslator":
        try:
            await self.api.sug()
        except (httpx.HTTPError, TranslationProviderError) as exc:
            raise TranslatorConstructionError(
                f"Baidu warm-up request failed: {exc}"
            ) from exc
        return self

    async def aclose(self) -> None:
        await self.api.aclose()

    async def translate(
        self,
        seg: Sequence[str],
        context: SegmentContext,
    ) -> List[str]:
        wrapper = create_glossary_wrapper(context.glossary)
        return await wrapper(seg, lambda replaced: self._translate_inner(replaced, context.signal))

    async def _translate_inner(
        self,
        seg: Sequence[str],
        signal: Optional[CancelSignal],
    ) -> List[str]:
        query = "\n".join(seg)
        from_lang = detect_source_language(query)
        self._log_debug("provider.request.query", {"from": from_lang, "query": query})

        try:
            chunks = await self.api.translate(query, from_lang, "en", signal)
        except httpx.HTTPError as exc:
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.chunks", chunks)

        return rebuild_lines(collect_line_parts(chunks))
