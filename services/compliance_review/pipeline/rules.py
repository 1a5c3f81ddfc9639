"""
Rule-Based Compliance Checks
============================

A fixed, ordered battery of deterministic text checks that run
independently of any model call. Markers are matched in English and
Korean.

Check groups:
- Sterility labelling conflicts
- Units of measure
- Material safety disclosures
- Instructions for use
- Prohibited promotional terminology

Version: 0.1.0
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from services.compliance_review.pipeline.issues import Issue, IssueSeverity, IssueSource
from shared.logging import get_logger

logger = get_logger(__name__)


class RuleTier(str, Enum):
    """Rule severity tiers."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


TIER_SEVERITY: dict[RuleTier, IssueSeverity] = {
    RuleTier.HIGH: IssueSeverity.ERROR,
    RuleTier.MEDIUM: IssueSeverity.WARNING,
    RuleTier.LOW: IssueSeverity.INFO,
}


@dataclass(frozen=True)
class RuleFinding:
    """A single rule violation."""

    code: str
    citation: str
    tier: RuleTier
    category: str
    title: str
    message: str
    suggestion: str
    excerpt: str | None = None

    @property
    def severity(self) -> IssueSeverity:
        return TIER_SEVERITY[self.tier]

    def to_issue(self) -> Issue:
        """Convert to a persisted issue."""
        return Issue(
            category=self.category,
            severity=self.severity,
            title=self.title,
            description=self.message,
            suggestion=self.suggestion,
            regulation=self.citation,
            submission_highlight=self.excerpt,
            issue_code=self.code,
            source=IssueSource.RULE,
        )


RuleCheck = Callable[[str], list[RuleFinding]]


# ============================================================================
# Patterns
# ============================================================================

_I = re.IGNORECASE

STERILE = re.compile(r"(?<!non-)(?<!non )\bsterile\b|(?<!비)(?<!비 )멸균", _I)
NON_STERILE = re.compile(r"\bnon[-\s]?sterile\b|비\s?멸균", _I)

UNITS_HEADER_MM = re.compile(
    r"(?:\bunits?\b|단위)\s*[:：(\[]?\s*(?:mm|millimet(?:er|re)s?)\b", _I
)
# Case-sensitive so molar "M" is not read as metres
CM_OR_M_LITERAL = re.compile(r"(?<![\w.])\d+(?:[.,]\d+)?\s?(?:cm|m)\b")

MATERIAL_HEADER = re.compile(r"\b(?:raw\s+)?materials?\b|\bcomposition\b|원재료|원자재|재질", _I)
SECTION_BREAK = re.compile(
    r"\b(?:instructions?\s+for\s+use|directions\s+for\s+use|storage|packaging|shelf\s+life)\b"
    r"|사용\s?방법|보관|포장|저장\s?방법",
    _I,
)
IFU_HEADER = re.compile(
    r"\b(?:instructions?\s+for\s+use|directions\s+for\s+use|IFU)\b|사용\s?방법", _I
)
IFU_BREAK = re.compile(r"\b(?:storage|packaging|shelf\s+life)\b|보관|포장|저장\s?방법", _I)

LATEX = re.compile(r"\b(?:natural\s+rubber\s+)?latex\b|라텍스|천연\s?고무", _I)
ALLERGY = re.compile(r"allerg|hypersensitiv|알레르기|알러지|과민", _I)
ALLERGY_WINDOW = 200

CAS_NUMBER = re.compile(r"\b\d{2,7}-\d{2}-\d\b")

# Named chemicals and their CAS registry numbers
NAMED_CHEMICALS: tuple[tuple[str, re.Pattern[str], str], ...] = (
    ("DEHP", re.compile(r"\bDEHP\b|di\s?\(2-ethylhexyl\)\s?phthalate", _I), "117-81-7"),
    ("bisphenol A", re.compile(r"\bbisphenol[\s-]?A\b|\bBPA\b|비스페놀\s?A", _I), "80-05-7"),
    ("formaldehyde", re.compile(r"\bformaldehyde\b|포름알데히드", _I), "50-00-0"),
    ("ethylene oxide", re.compile(r"\bethylene\s+oxide\b|산화에틸렌", _I), "75-21-8"),
    ("toluene", re.compile(r"\btoluene\b|톨루엔", _I), "108-88-3"),
    ("titanium dioxide", re.compile(r"\btitanium\s+dioxide\b|\bTiO2\b|이산화티타늄", _I), "13463-67-7"),
)

PERCENT_LITERAL = re.compile(r"(?<![\d.])(\d{1,3}(?:\.\d+)?)\s?%")
COMPOSITION_MIN = Decimal("99.5")
COMPOSITION_MAX = Decimal("100.5")

HUMAN_CONTACT = re.compile(
    r"\b(?:patient|skin|body|tissue|mucosal|blood)[-\s]contact(?:ing)?\b"
    r"|\bcontact\s+(?:duration|with\s+(?:the\s+)?(?:skin|body|patient|tissue|mucosa))\b"
    r"|인체\s?접촉|피부\s?접촉|접촉\s?부위|접촉\s?기간",
    _I,
)

TRADEMARK = re.compile(r"([A-Za-z][\w-]*)\s?(?:®|™|\(R\)|\(TM\))")
TRADEMARK_WINDOW = 60

GENERIC_NAME = re.compile(
    r"\bpoly(?:propylene|ethylene|urethane|carbonate|amide|ester|styrene|vinyl\s+chloride"
    r"|methyl\s+methacrylate|tetrafluoroethylene)\b"
    r"|\b(?:silicone|stainless\s+steel|titanium(?:\s+alloy)?|nitrile|nylon|cotton|rayon"
    r"|cellulose|PVC|PTFE|PMMA|PET|ABS|TPE)\b"
    r"|폴리프로필렌|폴리에틸렌|폴리우레탄|폴리카보네이트|폴리염화비닐|실리콘|스테인리스|티타늄|나일론",
    _I,
)

ADDITIVE = re.compile(
    r"\b(?:additives?|pigments?|colou?rants?|dyes?|plasticizers?|stabili[sz]ers?)\b"
    r"|첨가제|안료|착색제|염료|가소제",
    _I,
)
PURPOSE = re.compile(
    r"\b(?:purpose|used\s+(?:for|as|to)|function|role|in\s+order\s+to)\b|용도|목적|기능",
    _I,
)
PURPOSE_WINDOW = 150

# Acronyms are case-sensitive to avoid matching ordinary words
STANDARD_CITATION = re.compile(r"\b(?:ISO|IEC|ASTM|USP|KS|EN|AAMI|ANSI/AAMI)\s?(?:[A-Z]\s?)?\d{2,}")
SELF_CERTIFIED = re.compile(r"in-house\s+standard|self[-\s]certif|자사\s?기준|자가\s?기준|자체\s?기준", _I)

CONFIRMATION = re.compile(r"\bconfirm(?:s|ed|ation)?\b|확인", _I)
CONFIRMATION_LIMIT = 3

SINGLE_USE = re.compile(
    r"\bsingle[-\s]use\b|\bdo\s+not\s+re-?use\b|\bdisposable\b|\bone[-\s]time\s+use\b"
    r"|일회용|1회용|재사용\s?금지|재사용하지",
    _I,
)

PROHIBITED_TERMS: tuple[str, ...] = (
    "100% safe",
    "completely safe",
    "no side effects",
    "risk-free",
    "guaranteed",
    "miracle",
    "permanent cure",
    "부작용 없음",
    "100% 안전",
    "완치",
    "최고의",
)


def _term_pattern(term: str) -> re.Pattern[str]:
    body = re.escape(term).replace(r"\ ", r"\s*")
    if term[0].isascii() and term[-1].isascii():
        body = rf"(?<!\w){body}(?!\w)"
    return re.compile(body, _I)


_PROHIBITED_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (term, _term_pattern(term)) for term in PROHIBITED_TERMS
)


# ============================================================================
# Helpers
# ============================================================================


def _excerpt(text: str, start: int, end: int, pad: int = 40) -> str:
    left = max(start - pad, 0)
    right = min(end + pad, len(text))
    return " ".join(text[left:right].split())


def _window(text: str, start: int, end: int, size: int) -> str:
    return text[max(start - size, 0) : min(end + size, len(text))]


def _section(
    text: str,
    header: re.Pattern[str],
    terminator: re.Pattern[str],
) -> tuple[int, int] | None:
    """Span from the first header match to the next terminator (or end of text)."""
    start = header.search(text)
    if start is None:
        return None
    stop = terminator.search(text, start.end())
    return start.start(), stop.start() if stop else len(text)


def material_section(text: str) -> tuple[int, int] | None:
    """Span of the material/composition section, if any."""
    return _section(text, MATERIAL_HEADER, SECTION_BREAK)


def ifu_section(text: str) -> tuple[int, int] | None:
    """Span of the instructions-for-use section, if any."""
    return _section(text, IFU_HEADER, IFU_BREAK)


def format_decimal(value: Decimal) -> str:
    """Render a decimal without exponent or trailing zeros."""
    rendered = f"{value:f}"
    if "." in rendered:
        rendered = rendered.rstrip("0").rstrip(".")
    return rendered


# ============================================================================
# Checks
# ============================================================================


def check_sterile_conflict(text: str) -> list[RuleFinding]:
    sterile = STERILE.search(text)
    non_sterile = NON_STERILE.search(text)
    if not (sterile and non_sterile):
        return []
    return [
        RuleFinding(
            code="sterile_conflict",
            citation="Labeling: sterility status",
            tier=RuleTier.HIGH,
            category="Sterility",
            title="Conflicting sterility claims",
            message="The document describes the device as both sterile and non-sterile.",
            suggestion="State a single sterility status consistently across all sections.",
            excerpt=_excerpt(text, non_sterile.start(), non_sterile.end()),
        )
    ]


def check_unit_mismatch(text: str) -> list[RuleFinding]:
    header = UNITS_HEADER_MM.search(text)
    if header is None:
        return []
    literal = CM_OR_M_LITERAL.search(text)
    if literal is None:
        return []
    return [
        RuleFinding(
            code="unit_mismatch",
            citation="Technical documentation: units of measure",
            tier=RuleTier.MEDIUM,
            category="Units",
            title="Dimensions mix millimetres with centimetres or metres",
            message=(
                f"Units are declared in millimetres but the value \"{literal.group(0)}\" "
                "uses a different unit."
            ),
            suggestion="Express all dimensions in millimetres or declare each unit explicitly.",
            excerpt=_excerpt(text, literal.start(), literal.end()),
        )
    ]


def check_latex_allergy(text: str) -> list[RuleFinding]:
    span = material_section(text)
    if span is None:
        return []
    for match in LATEX.finditer(text, *span):
        if not ALLERGY.search(_window(text, match.start(), match.end(), ALLERGY_WINDOW)):
            return [
                RuleFinding(
                    code="latex_allergy_warning_missing",
                    citation="Labeling: natural rubber latex warning",
                    tier=RuleTier.HIGH,
                    category="Material Safety",
                    title="Latex without allergy warning",
                    message="Latex is listed as a material without an accompanying allergy warning.",
                    suggestion="Add a latex allergy warning next to the latex material entry.",
                    excerpt=_excerpt(text, match.start(), match.end()),
                )
            ]
    return []


def check_chemical_registry(text: str) -> list[RuleFinding]:
    span = material_section(text)
    if span is None:
        return []
    section = text[span[0] : span[1]]
    findings = []
    for name, pattern, cas in NAMED_CHEMICALS:
        match = pattern.search(section)
        if match and cas not in text:
            findings.append(
                RuleFinding(
                    code="chemical_cas_missing",
                    citation="Raw materials: CAS registry number",
                    tier=RuleTier.MEDIUM,
                    category="Material Safety",
                    title=f"CAS number missing for {name}",
                    message=f"{name} is named without its CAS registry number ({cas}).",
                    suggestion=f"Cite CAS No. {cas} alongside {name}.",
                    excerpt=_excerpt(section, match.start(), match.end()),
                )
            )
    return findings


def check_composition_sum(text: str) -> list[RuleFinding]:
    span = material_section(text)
    if span is None:
        return []
    values = [Decimal(m.group(1)) for m in PERCENT_LITERAL.finditer(text, *span)]
    if not values:
        return []
    total = sum(values, Decimal("0"))
    if COMPOSITION_MIN <= total <= COMPOSITION_MAX:
        return []
    rendered = format_decimal(total)
    return [
        RuleFinding(
            code="composition_sum_mismatch",
            citation="Raw materials: composition ratio",
            tier=RuleTier.MEDIUM,
            category="Material Safety",
            title="Material composition does not total 100%",
            message=f"Material composition percentages sum to {rendered}% instead of 100%.",
            suggestion="Correct the composition table so component percentages total 100%.",
        )
    ]


def check_contact_disclosure(text: str) -> list[RuleFinding]:
    if material_section(text) is None or HUMAN_CONTACT.search(text):
        return []
    return [
        RuleFinding(
            code="human_contact_undisclosed",
            citation="Raw materials: human contact",
            tier=RuleTier.LOW,
            category="Material Safety",
            title="Human contact not described",
            message="The document does not state whether or how materials contact the human body.",
            suggestion="Describe the contact type (skin, mucosa, tissue, blood) and duration.",
        )
    ]


def check_trademark_generic(text: str) -> list[RuleFinding]:
    span = material_section(text)
    if span is None:
        return []
    findings = []
    for match in TRADEMARK.finditer(text, *span):
        trailing = text[match.end() : match.end() + TRADEMARK_WINDOW]
        if GENERIC_NAME.search(trailing) or CAS_NUMBER.search(trailing):
            continue
        brand = match.group(1)
        findings.append(
            RuleFinding(
                code="trade_name_without_generic",
                citation="Raw materials: generic name for trade names",
                tier=RuleTier.MEDIUM,
                category="Material Safety",
                title=f"Trade name {brand} lacks a generic name",
                message=f"The trade name \"{match.group(0)}\" is not followed by a generic name or CAS number.",
                suggestion="Give the generic chemical name or CAS number right after the trade name.",
                excerpt=_excerpt(text, match.start(), match.end()),
            )
        )
    return findings


def check_additive_purpose(text: str) -> list[RuleFinding]:
    span = material_section(text)
    if span is None:
        return []
    missing: list[str] = []
    for match in ADDITIVE.finditer(text, *span):
        if PURPOSE.search(_window(text, match.start(), match.end(), PURPOSE_WINDOW)):
            continue
        term = match.group(0).lower()
        if term not in missing:
            missing.append(term)
    if not missing:
        return []
    return [
        RuleFinding(
            code="additive_purpose_missing",
            citation="Raw materials: purpose of additives",
            tier=RuleTier.MEDIUM,
            category="Material Safety",
            title="Additive purpose not stated",
            message=f"No purpose is given for: {', '.join(missing)}.",
            suggestion="State why each additive or pigment is used (e.g. colouring, plasticising).",
        )
    ]


def check_generic_name_present(text: str) -> list[RuleFinding]:
    if material_section(text) is None:
        return []
    if GENERIC_NAME.search(text) or CAS_NUMBER.search(text):
        return []
    return [
        RuleFinding(
            code="generic_name_missing",
            citation="Raw materials: generic name or CAS number",
            tier=RuleTier.MEDIUM,
            category="Material Safety",
            title="No generic material names",
            message="Materials are not identified by generic name or CAS registry number.",
            suggestion="Identify each material by its generic name and, for chemicals, CAS number.",
        )
    ]


def check_standard_citation(text: str) -> list[RuleFinding]:
    if material_section(text) is None:
        return []
    if STANDARD_CITATION.search(text) or SELF_CERTIFIED.search(text):
        return []
    return [
        RuleFinding(
            code="material_standard_missing",
            citation="Raw materials: applicable standard",
            tier=RuleTier.MEDIUM,
            category="Material Safety",
            title="No material standard cited",
            message="No recognised standard (ISO, IEC, ASTM, USP, KS, EN) or in-house standard is cited.",
            suggestion="Cite the standard each material conforms to, or declare an in-house standard.",
        )
    ]


def check_ifu_confirmation(text: str) -> list[RuleFinding]:
    span = ifu_section(text)
    if span is None:
        return []
    count = sum(1 for _ in CONFIRMATION.finditer(text, *span))
    if count < CONFIRMATION_LIMIT:
        return []
    return [
        RuleFinding(
            code="ifu_redundant_confirmation",
            citation="Instructions for use: clarity",
            tier=RuleTier.LOW,
            category="Instructions for Use",
            title="Repetitive confirmation steps",
            message=f"The instructions repeat a confirmation step {count} times.",
            suggestion="Merge repeated confirmation steps into one clear instruction.",
        )
    ]


def check_single_use(text: str) -> list[RuleFinding]:
    if ifu_section(text) is None or SINGLE_USE.search(text):
        return []
    return [
        RuleFinding(
            code="single_use_statement_missing",
            citation="Instructions for use: reuse statement",
            tier=RuleTier.MEDIUM,
            category="Instructions for Use",
            title="No single-use declaration",
            message="The instructions for use do not state whether the device is single-use.",
            suggestion="Add a single-use / do-not-reuse statement, or describe reprocessing.",
        )
    ]


def check_prohibited_terms(text: str) -> list[RuleFinding]:
    findings = []
    for term, pattern in _PROHIBITED_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue
        findings.append(
            RuleFinding(
                code="prohibited_term",
                citation="Advertising and labeling: prohibited expressions",
                tier=RuleTier.HIGH,
                category="Prohibited Terminology",
                title=f"Prohibited expression \"{term}\"",
                message=f"The document uses the prohibited expression \"{term}\".",
                suggestion="Remove absolute or exaggerated efficacy and safety claims.",
                excerpt=_excerpt(text, match.start(), match.end()),
            )
        )
    return findings


DEFAULT_CHECKS: tuple[RuleCheck, ...] = (
    check_sterile_conflict,
    check_unit_mismatch,
    check_latex_allergy,
    check_chemical_registry,
    check_composition_sum,
    check_contact_disclosure,
    check_trademark_generic,
    check_additive_purpose,
    check_generic_name_present,
    check_standard_citation,
    check_ifu_confirmation,
    check_single_use,
    check_prohibited_terms,
)


class RuleEngine:
    """
    Runs the rule battery in its fixed order.

    Checks never see each other's output, so the same text always yields
    the same findings in the same order.
    """

    def __init__(self, checks: Sequence[RuleCheck] | None = None) -> None:
        self.checks: tuple[RuleCheck, ...] = tuple(checks) if checks is not None else DEFAULT_CHECKS

    def run(self, text: str) -> list[RuleFinding]:
        """
        Run every check over ``text``.

        Args:
            text: Full submission text

        Returns:
            Findings in check order
        """
        findings: list[RuleFinding] = []
        for check in self.checks:
            findings.extend(check(text))

        logger.info(
            "rules_evaluated",
            checks=len(self.checks),
            findings=len(findings),
            codes=[f.code for f in findings],
        )
        return findings

    def run_issues(self, text: str) -> list[Issue]:
        """Run the battery and convert findings to issues."""
        return [finding.to_issue() for finding in self.run(text)]
