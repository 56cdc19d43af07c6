"""Sakura backend: a fine-tuned translation model behind an OpenAI-style API."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from .cancellation import CancelSignal, run_cancellable
from .errors import (
    AccessDeniedError,
    DegenerationError,
    RateLimitedError,
    TranslationProviderError,
)
from .glossary import create_glossary_wrapper, create_hint_wrapper
from .prompts import HINT_VERSIONS, build_messages
from .providers import SegmentTranslator
from .segmenter import create_length_segmentor
from .structures import Logger, ModelInfo, SakuraConfig, SegmentContext

DEFAULT_SEG_LENGTH = 500
DEFAULT_PREV_SEG_LENGTH = 500
DEFAULT_VERSION = "0.9"
LATEST_VERSION = "1.0"
VERSION_MARKERS = ("0.8", "0.9", "0.10", "1.0")

MAX_BATCH_ATTEMPTS = 3
DEGENERATION_LIMIT = 2
END_OF_TURN = "<|im_end|>"
MODEL_FILE_SUFFIX = ".gguf"

TEMPERATURE = 0.1
TOP_P = 0.3
FREQUENCY_PENALTY_RETRY = 0.2

# Pinned model builds whose output may be shared.
ALLOWED_MODELS: Dict[str, Dict[str, Any]] = {
    "sakura-14b-qwen2.5-v1.0-iq4xs": {
        "repo": "SakuraLLM/Sakura-14B-Qwen2.5-v1.0-GGUF",
        "meta": {
            "vocab_type": 2,
            "n_vocab": 152064,
            "n_ctx_train": 131072,
            "n_embd": 5120,
            "n_params": 14770033664,
            "size": 8180228096,
        },
    },
    "sakura-14b-qwen2.5-v1.0-q6k": {
        "repo": "SakuraLLM/Sakura-14B-Qwen2.5-v1.0-GGUF",
        "meta": {
            "vocab_type": 2,
            "n_vocab": 152064,
            "n_ctx_train": 131072,
            "n_embd": 5120,
            "n_params": 14770033664,
            "size": 12118716416,
        },
    },
    "sakura-14b-qwen2beta-v0.9.2-iq4xs": {
        "repo": "SakuraLLM/Sakura-14B-Qwen2beta-v0.9.2-GGUF",
        "meta": {
            "vocab_type": 2,
            "n_vocab": 152064,
            "n_ctx_train": 32768,
            "n_embd": 5120,
            "n_params": 14167290880,
            "size": 7908392960,
        },
    },
    "sakura-32b-qwen2beta-v0.9-iq4xs": {
        "repo": "SakuraLLM/Sakura-32B-Qwen2beta-v0.9-GGUF",
        "meta": {
            "vocab_type": 2,
            "n_vocab": 152064,
            "n_ctx_train": 32768,
            "n_embd": 5120,
            "n_params": 32512218112,
            "size": 17728790528,
        },
    },
}


@dataclass(frozen=True)
class SakuraState:
    """Backend state fixed at initialisation and passed to every call."""

    version: str = DEFAULT_VERSION
    model: Optional[ModelInfo] = None
    seg_length: int = DEFAULT_SEG_LENGTH
    prev_seg_length: int = DEFAULT_PREV_SEG_LENGTH


@dataclass(frozen=True)
class ChatResult:
    text: str
    has_degradation: bool


def detect_version(model_id: Optional[str], default: str = DEFAULT_VERSION) -> str:
    """Guess the prompt protocol from markers in the model id.

    Markers are checked in a fixed order, so an id carrying several of them
    resolves to the first match.
    """

    if model_id is None:
        return default
    for marker in VERSION_MARKERS:
        if marker in model_id:
            return marker
    return LATEST_VERSION


def check_upload(state: SakuraState, log: Logger) -> bool:
    """Decide whether output from this exact configuration may be uploaded."""

    if state.seg_length != DEFAULT_SEG_LENGTH:
        log(f"Segment length is not {DEFAULT_SEG_LENGTH}")
        return False
    if state.prev_seg_length != DEFAULT_PREV_SEG_LENGTH:
        log(f"Previous segment length is not {DEFAULT_PREV_SEG_LENGTH}")
        return False
    if state.model is None:
        log("Unable to get model data")
        return False

    expected = ALLOWED_MODELS.get(state.model.id)
    if expected is None:
        log(f"Model is {state.model.id}, upload prohibited")
        return False

    # Only keys of the reference record are compared.
    for key, value in expected["meta"].items():
        if state.model.meta.get(key) != value:
            log("Model check failed, do not try to deceive model check")
            return False

    log(f"Model is {state.model.id}, upload allowed")
    return True


def previous_context(state: SakuraState, prev_segs: Sequence[Sequence[str]]) -> str:
    """Join the trailing translated segments that fit the context window."""

    count = math.ceil(state.prev_seg_length / state.seg_length)
    if count == 0:
        return ""
    return "\n".join(line for seg in prev_segs[-count:] for line in seg)


def max_new_tokens(text: str) -> int:
    """Generation budget for ``text``; a reply that uses all of it is degenerate."""

    return max(math.ceil(len(text) * 1.7), 100)


def _api_base(endpoint: str) -> str:
    base = endpoint.rstrip("/")
    if not base.endswith("/v1"):
        base += "/v1"
    return base


class SakuraTranslator(SegmentTranslator):
    id = "sakura"

    def __init__(
        self,
        log: Logger,
        config: SakuraConfig,
        *,
        client: Any = None,
        debug: bool = False,
    ) -> None:
        super().__init__(log, debug=debug)
        self._owns_client = client is None
        self.client = client or AsyncOpenAI(
            base_url=_api_base(config.endpoint),
            api_key="no-key",
            timeout=None,
        )
        seg_length = config.seg_length if config.seg_length is not None else DEFAULT_SEG_LENGTH
        prev_seg_length = (
            config.prev_seg_length
            if config.prev_seg_length is not None
            else DEFAULT_PREV_SEG_LENGTH
        )
        self.state = SakuraState(seg_length=seg_length, prev_seg_length=prev_seg_length)
        self.segmentor = create_length_segmentor(seg_length)

    async def init(self) -> "SakuraTranslator":
        model = await self._detect_model()
        version = detect_version(model.id if model else None, self.state.version)
        self.state = replace(self.state, model=model, version=version)
        self._log_debug("provider.model", self.state)
        return self

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.close()

    def allow_upload(self) -> bool:
        return check_upload(self.state, self.log)

    async def translate(
        self,
        seg: Sequence[str],
        context: SegmentContext,
    ) -> List[str]:
        state = self.state
        if state.version in HINT_VERSIONS:
            hinted = create_hint_wrapper(context.glossary)
            return await hinted(
                seg,
                lambda lines, hint: self._translate_segment(state, lines, hint, context),
            )
        substituted = create_glossary_wrapper(context.glossary)
        return await substituted(
            seg,
            lambda lines: self._translate_segment(state, lines, "", context),
        )

    async def _translate_segment(
        self,
        state: SakuraState,
        seg: Sequence[str],
        hint: str,
        context: SegmentContext,
    ) -> List[str]:
        concated_seg = "\n".join(seg)
        concated_prev = previous_context(state, context.prev_segs)

        has_degradation = False
        for attempt in range(1, MAX_BATCH_ATTEMPTS + 1):
            result = await self._create_chat_completion(
                state,
                concated_seg,
                hint,
                concated_prev,
                context.signal,
                penalize=has_degradation,
            )
            split_text = result.text.replace(END_OF_TURN, "").split("\n")
            lines_not_matched = len(split_text) != len(seg)

            if result.has_degradation:
                outcome = "degenerated"
            elif lines_not_matched:
                outcome = "line count mismatch"
            else:
                outcome = "succeeded"
            self.log(f"Attempt {attempt} {outcome}", [concated_seg, result.text])

            if not result.has_degradation and not lines_not_matched:
                return split_text
            has_degradation = has_degradation or result.has_degradation

        return await self._translate_per_line(state, seg, hint, context, concated_prev)

    async def _translate_per_line(
        self,
        state: SakuraState,
        seg: Sequence[str],
        hint: str,
        context: SegmentContext,
        concated_prev: str,
    ) -> List[str]:
        self.log("Falling back to line-by-line translation")
        degenerated_lines = 0
        result_per_line: List[str] = []
        for line in seg:
            prev_text = "\n".join(
                part for part in [concated_prev, *result_per_line] if part
            )
            result = await self._create_chat_completion(
                state,
                line,
                hint,
                prev_text,
                context.signal,
                penalize=True,
            )
            if result.has_degradation:
                degenerated_lines += 1
                self.log(f"Line degenerated {degenerated_lines} time(s)", [line, result.text])
                if degenerated_lines >= DEGENERATION_LIMIT:
                    raise DegenerationError(
                        f"{degenerated_lines} lines of a single segment degenerated, "
                        "the Sakura translator may be malfunctioning",
                        degenerated_lines=degenerated_lines,
                    )
                result_per_line.append(line)
            else:
                cleaned = result.text.replace(END_OF_TURN, "")
                result_per_line.append(" ".join(part for part in cleaned.split("\n") if part))
        return result_per_line

    async def _detect_model(self) -> Optional[ModelInfo]:
        try:
            page = await self.client.models.list(
                extra_headers={"ngrok-skip-browser-warning": "69420"},
            )
        except openai.OpenAIError as exc:
            self.log(f"Failed to fetch model data: {exc}")
            return None

        models = list(getattr(page, "data", None) or [])
        if not models:
            return None
        model = models[0]
        model_id = model.id
        if model_id.endswith(MODEL_FILE_SUFFIX):
            model_id = model_id[: -len(MODEL_FILE_SUFFIX)]
        meta = getattr(model, "meta", None) or {}
        return ModelInfo(id=model_id, meta=dict(meta))

    async def _create_chat_completion(
        self,
        state: SakuraState,
        text: str,
        hint: str,
        prev_text: str,
        signal: Optional[CancelSignal],
        *,
        penalize: bool,
    ) -> ChatResult:
        messages, prepared = build_messages(state.version, text, hint, prev_text)
        max_tokens = max_new_tokens(prepared)
        request = {
            "model": state.model.id if state.model else "",
            "messages": messages,
            "temperature": TEMPERATURE,
            "top_p": TOP_P,
            "max_tokens": max_tokens,
            "frequency_penalty": FREQUENCY_PENALTY_RETRY if penalize else 0.0,
        }
        self._log_debug("provider.request.payload", request)

        try:
            completion = await run_cancellable(
                self.client.chat.completions.create(**request),
                signal,
            )
        except openai.RateLimitError as exc:
            raise RateLimitedError(f"Sakura endpoint rate limited: {exc}") from exc
        except (openai.PermissionDeniedError, openai.AuthenticationError) as exc:
            raise AccessDeniedError(f"Sakura endpoint denied access: {exc}") from exc
        except openai.OpenAIError as exc:
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc

        if not completion.choices:
            raise TranslationProviderError("Sakura endpoint returned no choices.")
        content = completion.choices[0].message.content or ""
        completion_tokens = completion.usage.completion_tokens if completion.usage else 0
        self._log_debug(
            "provider.response.raw",
            {"content": content, "completion_tokens": completion_tokens},
        )
        return ChatResult(text=content, has_degradation=completion_tokens >= max_tokens)
