"""
Compliance Analyzer
===================

Model-driven compliance analysis of a submission against the regulation
corpus. Two retrieval modes:

- per_chunk: each submission chunk is matched against the regulation
  index and analysed with one model call, concurrently
- whole_document: the whole submission and every active regulation go
  into a single prompt, truncated from the tail

Model output is free text expected to contain a JSON array of issues.
Unparseable responses are logged and dropped.

Version: 0.1.0
"""

import json
from collections.abc import Sequence
from typing import Any

from services.compliance_review.models.domain import ChunkRecord, RegulationPassage, RegulationRecord
from services.compliance_review.pipeline.concurrency import gather_bounded
from services.compliance_review.pipeline.embeddings import EmbeddingService
from services.compliance_review.pipeline.issues import Citation, Issue
from services.compliance_review.repository.base import RegulationIndex
from shared.config import AnalysisMode, settings
from shared.llm import LLMProvider
from shared.logging import get_logger

logger = get_logger(__name__)

TRUNCATION_MARKER = "...(truncated)"
NO_REGULATION_DATA = "No regulation data available."


def truncate(text: str, limit: int) -> str:
    """Tail-cut ``text`` to ``limit`` characters, appending the truncation marker."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]} {TRUNCATION_MARKER}"


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    return text


def _balanced_array_end(text: str, start: int) -> int | None:
    """Index just past the bracket closing the array opened at ``start``."""
    depth = 0
    in_string = False
    escaped = False
    for position in range(start, len(text)):
        char = text[position]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return position + 1
    return None


def extract_json_array(text: str) -> list[Any]:
    """
    Parse the first top-level JSON array embedded in a model response.

    Surrounding prose and markdown code fences are ignored. Candidates
    that are bracket-balanced but not valid JSON are skipped.

    Args:
        text: Free-text model output

    Returns:
        Parsed array

    Raises:
        ValueError: If no parseable array is present
    """
    text = _strip_code_fence(text)
    start = text.find("[")
    while start >= 0:
        end = _balanced_array_end(text, start)
        if end is None:
            break
        try:
            parsed = json.loads(text[start:end])
        except json.JSONDecodeError:
            start = text.find("[", start + 1)
            continue
        if isinstance(parsed, list):
            return parsed
        start = text.find("[", end)
    raise ValueError("No JSON array found in model response")


def parse_issues(text: str, call: str) -> list[Issue]:
    """Parse and coerce the issues in one model response; failures yield []."""
    try:
        payloads = extract_json_array(text)
    except ValueError as e:
        logger.warning(
            "analysis_response_unparseable",
            call=call,
            error=str(e),
            response_chars=len(text),
        )
        return []

    issues = [issue for issue in map(Issue.from_model_payload, payloads) if issue is not None]
    dropped = len(payloads) - len(issues)
    if dropped:
        logger.info("analysis_issues_dropped", call=call, dropped=dropped, kept=len(issues))
    return issues


def group_passages(passages: Sequence[RegulationPassage]) -> str:
    """Render passages grouped under one metadata header per regulation."""
    sections: list[str] = []
    current: str | None = None
    for passage in passages:
        if passage.regulation.id != current:
            current = passage.regulation.id
            sections.append(passage.regulation.header())
        sections.append(passage.content)
    return "\n\n".join(sections)


def attach_regulation(issue: Issue, regulations: dict[str, RegulationRecord]) -> Issue:
    """
    Fill regulation metadata on an issue from the known corpus.

    The regulation is identified by the issue's ``regulation_id`` or, failing
    that, by its first citation naming a known regulation. Citations that
    name a known regulation get their missing metadata filled too.
    """
    citations = [
        _fill_citation(citation, regulations.get(citation.doc_id or ""))
        for citation in issue.citations
    ]

    regulation = regulations.get(issue.regulation_id or "")
    if regulation is None:
        regulation = next(
            (regulations[c.doc_id] for c in citations if c.doc_id in regulations),
            None,
        )

    updates: dict[str, Any] = {"citations": citations}
    if regulation is not None:
        updates.update(
            regulation_id=regulation.id,
            regulation=issue.regulation or regulation.title,
            regulation_title=issue.regulation_title or regulation.title,
            regulation_category=issue.regulation_category or regulation.category,
            regulation_version=issue.regulation_version or regulation.version,
            regulation_effective_date=issue.regulation_effective_date
            or (regulation.effective_date.isoformat() if regulation.effective_date else None),
            regulation_status=issue.regulation_status or regulation.status.value,
        )
    return issue.model_copy(update=updates)


def _fill_citation(citation: Citation, regulation: RegulationRecord | None) -> Citation:
    if regulation is None:
        return citation
    return citation.model_copy(
        update={
            "title": citation.title or regulation.title,
            "category": citation.category or regulation.category,
            "version": citation.version or regulation.version,
            "effective_date": citation.effective_date
            or (regulation.effective_date.isoformat() if regulation.effective_date else None),
            "status": citation.status or regulation.status.value,
        }
    )


class ComplianceAnalyzer:
    """
    Produces model-generated issues for a submission's chunks.

    The retrieval mode follows ``PIPELINE_ANALYSIS_MODE``; ``auto`` uses
    per-chunk retrieval whenever an embedding service is available.
    """

    SYSTEM_PROMPT = (
        "You are a medical device regulation compliance expert. "
        "Analyze submissions and return findings as valid JSON arrays only."
    )

    CHUNK_PROMPT = """Analyze the following excerpt of a medical device submission against the regulation passages retrieved for it and identify any compliance issues.

Submission Excerpt (part {chunk_number}):
{chunk}

Relevant Regulation Passages:
{regulations}

For each issue found, provide:
1. category (e.g., "Safety Requirements", "Documentation", "Testing", "Labeling")
2. severity (error, warning, or info)
3. title (brief description)
4. description (detailed explanation)
5. location (section or part of submission)
6. suggestion (how to fix)
7. regulation (which regulation is violated)
8. regulation_id (the id shown in the passage header)
9. submission_highlight (exact quoted text from the excerpt, under 200 characters)
10. regulation_highlight (exact quoted text from the regulation passage, under 200 characters)

Return the analysis as a JSON array of issues. If no issues are found, return an empty array."""

    DOCUMENT_PROMPT = """You are a medical device regulation compliance expert. Analyze the following medical device submission content against relevant regulations and identify any compliance issues.

Submission Content:
{submission}

Relevant Regulations:
{regulations}

Analyze the submission for compliance with the regulations. For each issue found, provide:
1. category (e.g., "Safety Requirements", "Documentation", "Testing", "Labeling")
2. severity (error, warning, or info)
3. title (brief description)
4. description (detailed explanation)
5. location (section or part of submission)
6. suggestion (how to fix)
7. regulation (which regulation is violated)
8. regulation_id, regulation_title, regulation_category, regulation_version, regulation_effective_date, regulation_status (from the regulation header)
9. submission_highlight (exact quoted text from the submission that shows the issue, under 200 characters)
10. regulation_highlight (exact quoted text from the regulation that serves as the basis, under 200 characters)
11. citations (list of {{"doc_id", "title", "section_path", "snippet", "score"}} for each supporting regulation passage, score between 0 and 1)
12. notes (anything a reviewer should double-check)

IMPORTANT: For highlights, extract the EXACT relevant text from the documents. These will be shown to users as evidence.

Return the analysis as a JSON array of issues. If no issues are found, return an empty array."""

    def __init__(
        self,
        llm: LLMProvider,
        index: RegulationIndex,
        embeddings: EmbeddingService | None = None,
        mode: AnalysisMode | None = None,
        similarity_threshold: float | None = None,
        match_count: int | None = None,
        submission_context_chars: int | None = None,
        regulation_context_chars: int | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        pipeline = settings.pipeline
        self.llm = llm
        self.index = index
        self.embeddings = embeddings
        self.mode = mode or pipeline.analysis_mode
        self.similarity_threshold = (
            pipeline.similarity_threshold if similarity_threshold is None else similarity_threshold
        )
        self.match_count = match_count or pipeline.match_count
        self.submission_context_chars = submission_context_chars or pipeline.submission_context_chars
        self.regulation_context_chars = regulation_context_chars or pipeline.regulation_context_chars
        self.max_concurrency = max_concurrency or pipeline.max_concurrency

    def resolve_mode(self) -> AnalysisMode:
        """Concrete retrieval mode for this run."""
        if self.mode != AnalysisMode.AUTO:
            return self.mode
        return AnalysisMode.PER_CHUNK if self.embeddings is not None else AnalysisMode.WHOLE_DOCUMENT

    async def analyze(self, chunks: Sequence[ChunkRecord]) -> list[Issue]:
        """
        Analyse a submission's chunks.

        Args:
            chunks: Submission chunks in index order

        Returns:
            Model issues, in chunk order for per-chunk mode
        """
        mode = self.resolve_mode()
        logger.info("analysis_started", mode=mode.value, chunks=len(chunks))

        if mode == AnalysisMode.PER_CHUNK:
            issues = await self._analyze_per_chunk(chunks)
        else:
            issues = await self._analyze_whole_document(chunks)

        logger.info("analysis_finished", mode=mode.value, issues=len(issues))
        return issues

    # ------------------------------------------------------------------
    # Per-chunk retrieval
    # ------------------------------------------------------------------

    async def _analyze_per_chunk(self, chunks: Sequence[ChunkRecord]) -> list[Issue]:
        outcomes = await gather_bounded(
            chunks,
            self._analyze_chunk,
            self.max_concurrency,
            operation="analyze_chunk",
        )
        issues: list[Issue] = []
        for outcome in outcomes:
            if outcome.ok and outcome.value:
                issues.extend(outcome.value)
        return issues

    async def _embedding_for(self, chunk: ChunkRecord) -> list[float]:
        if chunk.embedding is not None:
            return chunk.embedding
        if self.embeddings is None:
            raise ValueError(f"Chunk {chunk.index} has no embedding and no embedding service is configured")
        return await self.embeddings.embed_text(chunk.content)

    async def _analyze_chunk(self, chunk: ChunkRecord) -> list[Issue]:
        embedding = await self._embedding_for(chunk)
        matches = await self.index.query_nearest(
            embedding,
            threshold=self.similarity_threshold,
            k=self.match_count,
        )
        if not matches:
            logger.debug("chunk_without_matches", chunk_index=chunk.index)
            return []

        context = "\n\n".join(
            f"{m.regulation.header()} | similarity: {m.similarity:.3f}\n{m.content}"
            if m.similarity is not None
            else f"{m.regulation.header()}\n{m.content}"
            for m in matches
        )
        prompt = self.CHUNK_PROMPT.format(
            chunk_number=chunk.index + 1,
            chunk=chunk.content,
            regulations=context,
        )
        response = await self.llm.generate_text(prompt, system_prompt=self.SYSTEM_PROMPT)

        regulations = {m.regulation.id: m.regulation for m in matches}
        issues = []
        for issue in parse_issues(response, call=f"chunk_{chunk.index}"):
            if issue.location is None:
                issue = issue.model_copy(update={"location": f"Part {chunk.index + 1}"})
            issues.append(attach_regulation(issue, regulations))
        return issues

    # ------------------------------------------------------------------
    # Whole-document retrieval
    # ------------------------------------------------------------------

    async def regulation_context(self) -> tuple[str, dict[str, RegulationRecord]]:
        """Every active regulation chunk under its metadata header, truncated."""
        passages = await self.index.active_passages()
        if not passages:
            logger.info("regulation_corpus_empty")
            return NO_REGULATION_DATA, {}
        regulations = {p.regulation.id: p.regulation for p in passages}
        return truncate(group_passages(passages), self.regulation_context_chars), regulations

    async def _analyze_whole_document(self, chunks: Sequence[ChunkRecord]) -> list[Issue]:
        submission = truncate(
            "\n\n".join(c.content for c in chunks),
            self.submission_context_chars,
        )
        context, regulations = await self.regulation_context()

        prompt = self.DOCUMENT_PROMPT.format(submission=submission, regulations=context)
        response = await self.llm.generate_text(prompt, system_prompt=self.SYSTEM_PROMPT)

        return [attach_regulation(issue, regulations) for issue in parse_issues(response, "document")]
