"""
Tests for Text Extraction
=========================

Covers the heuristic pass, the extraction state machine and the OCR
fallback driver.

Version: 0.1.0
"""

import pytest

from services.compliance_review.pipeline.extraction import (
    ExtractionMethod,
    ExtractionResult,
    ExtractionStage,
    ExtractionState,
    FailureReason,
    FallbackFailed,
    FallbackReturned,
    FallbackUnavailable,
    HeuristicCompleted,
    HeuristicSkipped,
    InvalidTransitionError,
    TextExtractor,
    heuristic_text,
    placeholder_text,
    text_for_chunking,
    transition,
)
from shared.config import ExtractionFailurePolicy
from shared.llm import LLMAttachment
from tests.conftest import ScriptedLLMProvider

OCR_TEXT = (
    "--- Page 1 ---\nDevice name: Sterile wound dressing | Model: WD-200\n"
    "Raw materials: cotton gauze 100%"
)


# ============================================================================
# Heuristic Pass
# ============================================================================


class TestHeuristicText:
    """Tests for printable-run recovery."""

    def test_keeps_printable_runs(self) -> None:
        """Test that runs of four or more printable characters are kept."""
        data = b"\x00\x01Device name\x02\x03ab\x04Model WD-200\xff"
        assert heuristic_text(data) == "Device name Model WD-200"

    def test_drops_short_runs(self) -> None:
        """Test that runs under four characters are discarded."""
        assert heuristic_text(b"ab\x00cd\x00efg") == ""

    def test_collapses_whitespace(self) -> None:
        """Test that whitespace runs collapse to single spaces."""
        assert heuristic_text(b"Sterile    catheter\x00  single   use") == "Sterile catheter single use"


# ============================================================================
# State Machine
# ============================================================================


class TestTransition:
    """Tests for the pure transition function."""

    def test_heuristic_text_at_minimum_resolves(self) -> None:
        """Test that exactly min_chars of heuristic text is accepted."""
        state = transition(ExtractionState(), HeuristicCompleted("a" * 50))

        assert state.stage == ExtractionStage.RESOLVED
        assert state.has_text_content is True
        assert state.method == ExtractionMethod.HEURISTIC

    def test_heuristic_text_below_minimum_goes_to_fallback(self) -> None:
        """Test that 49 characters of heuristic text defers to OCR."""
        state = transition(ExtractionState(), HeuristicCompleted("a" * 49))

        assert state.stage == ExtractionStage.FALLBACK_PENDING
        assert state.is_resolved is False

    def test_skipped_heuristic_goes_to_fallback(self) -> None:
        """Test that forced OCR moves straight to the fallback stage."""
        state = transition(ExtractionState(), HeuristicSkipped())
        assert state.stage == ExtractionStage.FALLBACK_PENDING

    def test_fallback_unavailable(self) -> None:
        """Test that a missing credential resolves as no_credential."""
        pending = ExtractionState(stage=ExtractionStage.FALLBACK_PENDING)
        state = transition(pending, FallbackUnavailable())

        assert state.is_resolved
        assert state.has_text_content is False
        assert state.failure == FailureReason.NO_CREDENTIAL

    def test_fallback_failed_keeps_error_detail(self) -> None:
        """Test that a failed call records the error."""
        pending = ExtractionState(stage=ExtractionStage.FALLBACK_PENDING)
        state = transition(pending, FallbackFailed("HTTP 503"))

        assert state.failure == FailureReason.CALL_FAILED
        assert state.detail == "HTTP 503"

    @pytest.mark.parametrize("reply", ["NO_TEXT_CONTENT", "no_text_content.", "Result: No_Text_Content"])
    def test_sentinel_is_case_insensitive(self, reply: str) -> None:
        """Test that the no-text sentinel is matched in any case."""
        pending = ExtractionState(stage=ExtractionStage.FALLBACK_PENDING)
        state = transition(pending, FallbackReturned(reply))

        assert state.failure == FailureReason.DECLARED_NO_TEXT

    def test_short_ocr_text_rejected(self) -> None:
        """Test that OCR output under min_chars after stripping is rejected."""
        pending = ExtractionState(stage=ExtractionStage.FALLBACK_PENDING)
        state = transition(pending, FallbackReturned("   " + "x" * 49 + "\n\n"))

        assert state.failure == FailureReason.TOO_SHORT
        assert state.detail == "49 characters"

    def test_ocr_text_accepted(self) -> None:
        """Test that sufficient OCR text resolves with the vision method."""
        pending = ExtractionState(stage=ExtractionStage.FALLBACK_PENDING)
        state = transition(pending, FallbackReturned(f"  {OCR_TEXT}  "))

        assert state.has_text_content is True
        assert state.method == ExtractionMethod.VISION_OCR
        assert state.text == OCR_TEXT

    def test_resolved_state_rejects_events(self) -> None:
        """Test that a resolved state accepts no further events."""
        resolved = transition(ExtractionState(), HeuristicCompleted("a" * 60))

        with pytest.raises(InvalidTransitionError):
            transition(resolved, FallbackReturned(OCR_TEXT))

    def test_fallback_event_invalid_in_heuristic_stage(self) -> None:
        """Test that fallback events are rejected before the heuristic ran."""
        with pytest.raises(InvalidTransitionError):
            transition(ExtractionState(), FallbackUnavailable())


class TestExtractionResult:
    """Tests for result construction and the failure policy."""

    def test_unresolved_state_rejected(self) -> None:
        """Test that a pending state cannot become a result."""
        with pytest.raises(InvalidTransitionError):
            ExtractionResult.from_state(ExtractionState())

    def test_reason_includes_minimum(self) -> None:
        """Test that the too-short reason names the threshold."""
        state = ExtractionState(
            stage=ExtractionStage.RESOLVED,
            failure=FailureReason.TOO_SHORT,
            detail="12 characters",
        )
        result = ExtractionResult.from_state(state, min_chars=50)

        assert "50" in result.reason
        assert result.reason.endswith("12 characters")

    def test_abort_policy_stops_processing(self) -> None:
        """Test that the abort policy yields no text to chunk."""
        result = ExtractionResult(text="", has_text_content=False, reason="blank scan")
        assert text_for_chunking(result, ExtractionFailurePolicy.ABORT) is None

    def test_placeholder_policy_substitutes_text(self) -> None:
        """Test that the placeholder policy chunks a marker naming the reason."""
        result = ExtractionResult(text="", has_text_content=False, reason="blank scan")
        text = text_for_chunking(result, ExtractionFailurePolicy.PLACEHOLDER)

        assert text == placeholder_text("blank scan")
        assert "blank scan" in text

    def test_successful_result_passes_through(self) -> None:
        """Test that extracted text is returned regardless of policy."""
        result = ExtractionResult(text=OCR_TEXT, has_text_content=True)
        assert text_for_chunking(result, ExtractionFailurePolicy.ABORT) == OCR_TEXT


# ============================================================================
# Driver
# ============================================================================


class TestTextExtractor:
    """Tests for the extraction driver."""

    @pytest.mark.asyncio
    async def test_fifty_chars_skips_fallback(self) -> None:
        """Test that 50 characters of text layer never calls OCR."""
        llm = ScriptedLLMProvider([OCR_TEXT])
        extractor = TextExtractor(ocr_provider=llm, min_text_chars=50, force_ocr=False)

        result = await extractor.extract(b"a" * 50)

        assert result.has_text_content is True
        assert result.method == ExtractionMethod.HEURISTIC
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_forty_nine_chars_invokes_fallback(self) -> None:
        """Test that 49 characters of text layer triggers OCR."""
        llm = ScriptedLLMProvider([OCR_TEXT])
        extractor = TextExtractor(ocr_provider=llm, min_text_chars=50, force_ocr=False)

        result = await extractor.extract(b"a" * 49, filename="scan.pdf")

        assert len(llm.calls) == 1
        assert result.method == ExtractionMethod.VISION_OCR
        assert result.text == OCR_TEXT

    @pytest.mark.asyncio
    async def test_fallback_sends_pdf_attachment(self) -> None:
        """Test that the OCR call carries the original bytes as a PDF."""
        llm = ScriptedLLMProvider([OCR_TEXT])
        extractor = TextExtractor(ocr_provider=llm, min_text_chars=50, force_ocr=False)
        data = b"%PDF\x00\x01"

        await extractor.extract(data, filename="scan.pdf")

        user_message = llm.calls[0][-1]
        assert user_message.attachments == [
            LLMAttachment(media_type="application/pdf", data=data, filename="scan.pdf")
        ]

    @pytest.mark.asyncio
    async def test_no_provider_reports_reason(self) -> None:
        """Test that a missing OCR provider yields a no-credential result."""
        extractor = TextExtractor(ocr_provider=None, min_text_chars=50, force_ocr=False)

        result = await extractor.extract(b"\x00\x01\x02")

        assert result.has_text_content is False
        assert result.failure == FailureReason.NO_CREDENTIAL
        assert result.reason

    @pytest.mark.asyncio
    async def test_provider_error_is_captured(self) -> None:
        """Test that an OCR exception becomes a call_failed result."""
        llm = ScriptedLLMProvider([RuntimeError("gateway timeout")])
        extractor = TextExtractor(ocr_provider=llm, min_text_chars=50, force_ocr=False)

        result = await extractor.extract(b"\x00")

        assert result.has_text_content is False
        assert result.failure == FailureReason.CALL_FAILED
        assert "gateway timeout" in result.reason

    @pytest.mark.asyncio
    async def test_force_ocr_skips_text_layer(self) -> None:
        """Test that forced OCR ignores a usable text layer."""
        llm = ScriptedLLMProvider([OCR_TEXT])
        extractor = TextExtractor(ocr_provider=llm, min_text_chars=50, force_ocr=True)

        result = await extractor.extract(b"a" * 500)

        assert len(llm.calls) == 1
        assert result.text == OCR_TEXT
