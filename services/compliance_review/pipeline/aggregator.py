"""
Issue Aggregation
=================

Merges rule-based and model-generated issues, derives the verdict and
persists the analysis.

Version: 0.1.0
"""

from collections.abc import Sequence
from dataclasses import dataclass

from services.compliance_review.models.domain import SubmissionStatus, Verdict
from services.compliance_review.pipeline.issues import Issue, IssueSeverity
from services.compliance_review.repository.base import ReviewRepository
from shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AnalysisOutcome:
    """Result of analysing one submission."""

    analysis_id: str
    overall_status: Verdict
    issues_found: int


def compute_verdict(issues: Sequence[Issue]) -> Verdict:
    """Any error -> non_compliant, else any warning -> needs_review, else compliant."""
    severities = {issue.severity for issue in issues}
    if IssueSeverity.ERROR in severities:
        return Verdict.NON_COMPLIANT
    if IssueSeverity.WARNING in severities:
        return Verdict.NEEDS_REVIEW
    return Verdict.COMPLIANT


def rank_issues(rule_issues: Sequence[Issue], model_issues: Sequence[Issue]) -> list[Issue]:
    """Order by severity; within a severity, rule issues come before model issues."""
    return sorted([*rule_issues, *model_issues], key=lambda issue: issue.rank)


class IssueAggregator:
    """Combines the two issue streams and writes the analysis result."""

    def __init__(self, repository: ReviewRepository) -> None:
        self.repository = repository

    def aggregate(
        self,
        rule_issues: Sequence[Issue],
        model_issues: Sequence[Issue],
    ) -> tuple[Verdict, list[Issue]]:
        issues = rank_issues(rule_issues, model_issues)
        return compute_verdict(issues), issues

    async def persist(
        self,
        submission_id: str,
        verdict: Verdict,
        issues: list[Issue],
    ) -> AnalysisOutcome:
        """
        Write the result row, then its issues, then mark the submission completed.

        Each write commits on its own. A failed issue insert or status update
        is logged and the result row stays in place.

        Args:
            submission_id: Submission being analysed
            verdict: Overall verdict
            issues: Ranked issues

        Returns:
            AnalysisOutcome for the stored result
        """
        analysis_id = await self.repository.create_analysis_result(submission_id, verdict)

        try:
            await self.repository.add_issues(analysis_id, issues)
        except Exception as e:
            logger.error(
                "analysis_issues_insert_failed",
                submission_id=submission_id,
                analysis_id=analysis_id,
                issues=len(issues),
                error=str(e),
            )

        try:
            await self.repository.update_submission_status(submission_id, SubmissionStatus.COMPLETED)
        except Exception as e:
            logger.error(
                "submission_status_update_failed",
                submission_id=submission_id,
                status=SubmissionStatus.COMPLETED.value,
                error=str(e),
            )

        logger.info(
            "analysis_persisted",
            submission_id=submission_id,
            analysis_id=analysis_id,
            overall_status=verdict.value,
            issues_found=len(issues),
        )
        return AnalysisOutcome(
            analysis_id=analysis_id,
            overall_status=verdict,
            issues_found=len(issues),
        )
