"""
Tests for Issue Aggregation
===========================

Version: 0.1.0
"""

from unittest.mock import AsyncMock

import pytest

from services.compliance_review.models.domain import SubmissionStatus, Verdict
from services.compliance_review.pipeline.aggregator import IssueAggregator, compute_verdict, rank_issues
from services.compliance_review.pipeline.issues import Issue, IssueSeverity, IssueSource
from services.compliance_review.repository import InMemoryReviewRepository


def make_issue(severity: IssueSeverity, title: str, source: IssueSource = IssueSource.MODEL) -> Issue:
    return Issue(
        category="Documentation",
        severity=severity,
        title=title,
        description=f"{title} description",
        source=source,
    )


class TestComputeVerdict:
    """Tests for the verdict function."""

    @pytest.mark.parametrize(
        ("severities", "expected"),
        [
            ([], Verdict.COMPLIANT),
            ([IssueSeverity.INFO], Verdict.COMPLIANT),
            ([IssueSeverity.WARNING], Verdict.NEEDS_REVIEW),
            ([IssueSeverity.INFO, IssueSeverity.WARNING], Verdict.NEEDS_REVIEW),
            ([IssueSeverity.ERROR, IssueSeverity.WARNING], Verdict.NON_COMPLIANT),
            ([IssueSeverity.INFO, IssueSeverity.ERROR], Verdict.NON_COMPLIANT),
        ],
    )
    def test_verdict(self, severities: list[IssueSeverity], expected: Verdict) -> None:
        """Test the verdict for each severity mix."""
        issues = [make_issue(s, f"issue {i}") for i, s in enumerate(severities)]
        assert compute_verdict(issues) == expected


class TestRankIssues:
    """Tests for issue ordering."""

    def test_severity_first(self) -> None:
        """Test that errors precede warnings precede info."""
        ranked = rank_issues(
            [make_issue(IssueSeverity.INFO, "rule info", IssueSource.RULE)],
            [make_issue(IssueSeverity.ERROR, "model error"), make_issue(IssueSeverity.WARNING, "model warning")],
        )
        assert [i.title for i in ranked] == ["model error", "model warning", "rule info"]

    def test_rule_issues_lead_within_severity(self) -> None:
        """Test that rule issues come before model issues of equal severity."""
        ranked = rank_issues(
            [make_issue(IssueSeverity.WARNING, "rule a", IssueSource.RULE),
             make_issue(IssueSeverity.WARNING, "rule b", IssueSource.RULE)],
            [make_issue(IssueSeverity.WARNING, "model a")],
        )
        assert [i.title for i in ranked] == ["rule a", "rule b", "model a"]


class TestIssueAggregator:
    """Tests for aggregation and persistence."""

    def test_aggregate(self) -> None:
        """Test that aggregate ranks and derives the verdict."""
        aggregator = IssueAggregator(InMemoryReviewRepository())

        verdict, issues = aggregator.aggregate(
            [make_issue(IssueSeverity.WARNING, "rule", IssueSource.RULE)],
            [make_issue(IssueSeverity.ERROR, "model")],
        )

        assert verdict == Verdict.NON_COMPLIANT
        assert [i.title for i in issues] == ["model", "rule"]

    @pytest.mark.asyncio
    async def test_persist(self, repository: InMemoryReviewRepository) -> None:
        """Test that persist stores result and issues and completes the submission."""
        submission = await repository.create_submission("user-1", "Catheter", "user-1/a.pdf")
        issues = [make_issue(IssueSeverity.WARNING, "Missing storage conditions")]

        outcome = await IssueAggregator(repository).persist(submission.id, Verdict.NEEDS_REVIEW, issues)

        assert outcome.issues_found == 1
        assert outcome.overall_status == Verdict.NEEDS_REVIEW
        assert repository.results[outcome.analysis_id] == (submission.id, Verdict.NEEDS_REVIEW)
        assert repository.issues[outcome.analysis_id] == issues
        assert repository.submissions[submission.id].status == SubmissionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_issue_insert_failure_keeps_result(self, repository: InMemoryReviewRepository) -> None:
        """Test that a failed issue insert is logged and the submission still completes."""
        submission = await repository.create_submission("user-1", "Catheter", "user-1/a.pdf")
        repository.add_issues = AsyncMock(side_effect=RuntimeError("constraint violation"))

        outcome = await IssueAggregator(repository).persist(
            submission.id,
            Verdict.NON_COMPLIANT,
            [make_issue(IssueSeverity.ERROR, "Biocompatibility standard missing")],
        )

        assert outcome.analysis_id in repository.results
        assert outcome.issues_found == 1
        assert repository.submissions[submission.id].status == SubmissionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_status_failure_still_returns(self, repository: InMemoryReviewRepository) -> None:
        """Test that a failed status update does not lose the outcome."""
        submission = await repository.create_submission("user-1", "Catheter", "user-1/a.pdf")
        repository.update_submission_status = AsyncMock(side_effect=RuntimeError("connection reset"))

        outcome = await IssueAggregator(repository).persist(submission.id, Verdict.COMPLIANT, [])

        assert outcome.overall_status == Verdict.COMPLIANT
        assert repository.issues[outcome.analysis_id] == []
