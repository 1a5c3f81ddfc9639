"""
Text Extraction Module
======================

Turns raw PDF bytes into plain text with a layered fallback:

1. Heuristic scan of printable byte runs (literal content streams)
2. Vision OCR through the configured LLM provider
3. Failure sentinel with a human-readable reason

The fallback is an explicit state machine. ``transition`` is pure; the
``TextExtractor`` driver performs the I/O and feeds it events.

Version: 0.1.0
"""

import re
from dataclasses import dataclass, replace
from enum import Enum

from shared.config import ExtractionFailurePolicy, settings
from shared.llm import LLMAttachment, LLMProvider
from shared.logging import get_logger

logger = get_logger(__name__)


NO_TEXT_SENTINEL = "NO_TEXT_CONTENT"

_PRINTABLE_RUN = re.compile(r"[ -~]{4,}")
_WHITESPACE = re.compile(r"\s+")
_SENTINEL_PATTERN = re.compile(NO_TEXT_SENTINEL, re.IGNORECASE)


OCR_SYSTEM_PROMPT = (
    "You are a document transcription engine for medical device regulatory files. "
    "Return only the text you read, never commentary."
)

OCR_PROMPT = f"""Extract all text from this PDF document.

Rules:
- Preserve reading order, page by page
- Start each page with a line "--- Page N ---"
- Keep table rows on one line with cells separated by " | "
- Keep the original language; do not translate or summarise
- If the document contains no readable text at all, reply with exactly: {NO_TEXT_SENTINEL}
"""


class ExtractionStage(str, Enum):
    """States of the extraction state machine."""

    HEURISTIC = "heuristic"
    FALLBACK_PENDING = "fallback_pending"
    RESOLVED = "resolved"


class ExtractionMethod(str, Enum):
    """Which stage produced the accepted text."""

    HEURISTIC = "heuristic"
    VISION_OCR = "vision_ocr"


class FailureReason(str, Enum):
    """Why no usable text was recovered."""

    NO_CREDENTIAL = "no_credential"
    CALL_FAILED = "call_failed"
    DECLARED_NO_TEXT = "declared_no_text"
    TOO_SHORT = "too_short"


REASON_MESSAGES: dict[FailureReason, str] = {
    FailureReason.NO_CREDENTIAL: (
        "The PDF has no extractable text layer and vision OCR is not configured "
        "(no API key for the LLM provider)."
    ),
    FailureReason.CALL_FAILED: "Vision OCR request failed",
    FailureReason.DECLARED_NO_TEXT: (
        "Vision OCR reported that the document contains no readable text "
        "(blank or image-only pages)."
    ),
    FailureReason.TOO_SHORT: "Vision OCR returned fewer than {min_chars} characters of text.",
}


# ============================================================================
# State Machine
# ============================================================================


@dataclass(frozen=True)
class ExtractionState:
    """Snapshot of the extraction state machine."""

    stage: ExtractionStage = ExtractionStage.HEURISTIC
    text: str = ""
    has_text_content: bool = False
    method: ExtractionMethod | None = None
    failure: FailureReason | None = None
    detail: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.stage == ExtractionStage.RESOLVED


@dataclass(frozen=True)
class HeuristicCompleted:
    """Stage 1 finished with the given text."""

    text: str


@dataclass(frozen=True)
class HeuristicSkipped:
    """Stage 1 deliberately not run (forced OCR)."""


@dataclass(frozen=True)
class FallbackUnavailable:
    """No OCR provider is configured."""


@dataclass(frozen=True)
class FallbackFailed:
    """The OCR call raised."""

    error: str


@dataclass(frozen=True)
class FallbackReturned:
    """The OCR call returned text."""

    text: str


ExtractionEvent = (
    HeuristicCompleted | HeuristicSkipped | FallbackUnavailable | FallbackFailed | FallbackReturned
)


class InvalidTransitionError(ValueError):
    """Raised when an event does not apply to the current state."""


def _resolve_failure(
    state: ExtractionState,
    reason: FailureReason,
    detail: str | None = None,
) -> ExtractionState:
    return replace(
        state,
        stage=ExtractionStage.RESOLVED,
        has_text_content=False,
        method=None,
        failure=reason,
        detail=detail,
    )


def transition(
    state: ExtractionState,
    event: ExtractionEvent,
    min_chars: int = 50,
) -> ExtractionState:
    """
    Apply one event to the extraction state.

    Args:
        state: Current state
        event: Event produced by the driver
        min_chars: Minimum viable text length

    Returns:
        The next state

    Raises:
        InvalidTransitionError: If the event is not valid in ``state``
    """
    if state.stage == ExtractionStage.HEURISTIC:
        if isinstance(event, HeuristicCompleted):
            if len(event.text) >= min_chars:
                return replace(
                    state,
                    stage=ExtractionStage.RESOLVED,
                    text=event.text,
                    has_text_content=True,
                    method=ExtractionMethod.HEURISTIC,
                )
            return replace(state, stage=ExtractionStage.FALLBACK_PENDING, text=event.text)
        if isinstance(event, HeuristicSkipped):
            return replace(state, stage=ExtractionStage.FALLBACK_PENDING)

    elif state.stage == ExtractionStage.FALLBACK_PENDING:
        if isinstance(event, FallbackUnavailable):
            return _resolve_failure(state, FailureReason.NO_CREDENTIAL)
        if isinstance(event, FallbackFailed):
            return _resolve_failure(state, FailureReason.CALL_FAILED, event.error)
        if isinstance(event, FallbackReturned):
            ocr_text = event.text.strip()
            if _SENTINEL_PATTERN.search(ocr_text):
                return _resolve_failure(state, FailureReason.DECLARED_NO_TEXT)
            if len(ocr_text) < min_chars:
                return _resolve_failure(
                    state, FailureReason.TOO_SHORT, f"{len(ocr_text)} characters"
                )
            return replace(
                state,
                stage=ExtractionStage.RESOLVED,
                text=ocr_text,
                has_text_content=True,
                method=ExtractionMethod.VISION_OCR,
            )

    raise InvalidTransitionError(
        f"Event {type(event).__name__} is not valid in stage {state.stage.value}"
    )


# ============================================================================
# Results
# ============================================================================


@dataclass
class ExtractionResult:
    """Outcome of text extraction."""

    text: str
    has_text_content: bool
    reason: str | None = None
    method: ExtractionMethod | None = None
    failure: FailureReason | None = None

    @property
    def char_count(self) -> int:
        return len(self.text)

    @classmethod
    def from_state(cls, state: ExtractionState, min_chars: int = 50) -> "ExtractionResult":
        """Build the public result from a resolved state."""
        if not state.is_resolved:
            raise InvalidTransitionError("Extraction has not been resolved")

        reason = None
        if state.failure is not None:
            reason = REASON_MESSAGES[state.failure].format(min_chars=min_chars)
            if state.detail:
                reason = f"{reason}: {state.detail}"

        return cls(
            text=state.text,
            has_text_content=state.has_text_content,
            reason=reason,
            method=state.method,
            failure=state.failure,
        )


def placeholder_text(reason: str | None) -> str:
    """Text stored in place of a document whose extraction failed."""
    return f"[No extractable text: {reason or 'unknown reason'}]"


def text_for_chunking(
    result: ExtractionResult,
    policy: ExtractionFailurePolicy,
) -> str | None:
    """
    Apply the failure policy to an extraction result.

    Returns:
        Text to chunk, or None when processing must stop
    """
    if result.has_text_content:
        return result.text
    if policy == ExtractionFailurePolicy.PLACEHOLDER:
        return placeholder_text(result.reason)
    return None


# ============================================================================
# Heuristic pass
# ============================================================================


def heuristic_text(data: bytes) -> str:
    """
    Recover literal text from uncompressed PDF content streams.

    Decodes one byte per character and keeps runs of at least four
    printable ASCII characters, joined and whitespace-collapsed.
    """
    decoded = data.decode("latin-1")
    runs = _PRINTABLE_RUN.findall(decoded)
    return _WHITESPACE.sub(" ", " ".join(runs)).strip()


class TextExtractor:
    """
    Extracts plain text from PDF bytes.

    Extraction never raises for an empty or unreadable document; the
    result carries ``has_text_content=False`` and a reason instead.
    """

    def __init__(
        self,
        ocr_provider: LLMProvider | None = None,
        min_text_chars: int | None = None,
        force_ocr: bool | None = None,
    ) -> None:
        """
        Initialize the extractor.

        Args:
            ocr_provider: Vision-capable LLM provider, None disables OCR
            min_text_chars: Minimum viable text length (default from settings)
            force_ocr: Skip the heuristic pass (default from settings)
        """
        self.ocr_provider = ocr_provider
        self.min_text_chars = (
            min_text_chars if min_text_chars is not None else settings.pipeline.min_text_chars
        )
        self.force_ocr = force_ocr if force_ocr is not None else settings.pipeline.force_ocr

    def _step(self, state: ExtractionState, event: ExtractionEvent) -> ExtractionState:
        return transition(state, event, self.min_text_chars)

    async def extract(self, data: bytes, filename: str = "document.pdf") -> ExtractionResult:
        """
        Extract text from a document.

        Args:
            data: Raw document bytes
            filename: Name passed along with the OCR attachment

        Returns:
            ExtractionResult
        """
        state = ExtractionState()

        if self.force_ocr:
            state = self._step(state, HeuristicSkipped())
        else:
            text = heuristic_text(data)
            logger.debug("heuristic_extraction", chars=len(text))
            state = self._step(state, HeuristicCompleted(text))

        if state.stage == ExtractionStage.FALLBACK_PENDING:
            state = self._step(state, await self._run_fallback(data, filename))

        result = ExtractionResult.from_state(state, self.min_text_chars)

        logger.info(
            "text_extracted",
            method=result.method.value if result.method else None,
            has_text_content=result.has_text_content,
            chars=result.char_count,
            failure=result.failure.value if result.failure else None,
        )
        return result

    async def _run_fallback(self, data: bytes, filename: str) -> ExtractionEvent:
        if self.ocr_provider is None:
            logger.warning("ocr_fallback_unavailable")
            return FallbackUnavailable()

        logger.info("ocr_fallback_started", provider=self.ocr_provider.name, size=len(data))
        try:
            text = await self.ocr_provider.generate_text(
                OCR_PROMPT,
                system_prompt=OCR_SYSTEM_PROMPT,
                attachments=[
                    LLMAttachment(media_type="application/pdf", data=data, filename=filename)
                ],
                temperature=0.0,
            )
        except Exception as e:
            logger.error("ocr_fallback_failed", error=str(e), error_type=type(e).__name__)
            return FallbackFailed(str(e))

        return FallbackReturned(text)
