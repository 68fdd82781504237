"""Company and role extraction from job application emails."""

import re
from typing import Optional, Pattern, Sequence

from .models import ExtractionResult, NormalizedEmail

UNKNOWN = "Unknown"
MAX_ROLE_LENGTH = 50

GENERIC_EMAIL_PROVIDERS = frozenset(
    ["gmail", "yahoo", "hotmail", "outlook", "aol", "mail", "icloud", "protonmail"]
)

# Display names containing one of these are treated as an organization, not a person.
ORGANIZATION_KEYWORDS = ("Team", "Recruiting", "Careers", "HR", "Talent", "Hiring")

_SENDER_DOMAIN = re.compile(r"@([^.>]+)\.")
_DISPLAY_NAME = re.compile(r'^"?([^"<]+)"?\s*<')
_ORGANIZATION_TOKENS = re.compile(
    r"(Team|Recruiting|Careers|HR|Talent|Hiring|Jobs|Recruitment)", re.IGNORECASE
)

SUBJECT_ROLE_PATTERNS = (
    re.compile(
        r"(?:for|re:|regarding|about)\s+(?:the\s+)?(?:position\s+(?:of\s+)?)?(.+?)"
        r"(?:\s+(?:position|role|at|-))",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:application|applied|interview|offer)\s+(?:for\s+)?(?:the\s+)?(.+?)"
        r"(?:\s+(?:position|role|at|-))",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:software|senior|junior|lead|staff|principal|full[- ]?stack|front[- ]?end|"
        r"back[- ]?end|data|product|project|engineering|design|marketing|sales|devops|"
        r"cloud|ml|ai|mobile|ios|android|web|qa|test|security)\s+\w+(?:\s+\w+)?",
        re.IGNORECASE,
    ),
)

BODY_ROLE_PATTERNS = (
    re.compile(
        r"(?:position|role|opportunity)\s+(?:of|for|as)\s+(?:a\s+)?(.+?)(?:\.|,|\n)",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:applied for|applying for|interest in)\s+(?:the\s+)?(?:a\s+)?(.+?)"
        r"(?:\s+(?:position|role|at|\.|\n))",
        re.IGNORECASE,
    ),
)


class JobInfoExtractor:
    """Derives company and role strings from sender, subject and body text."""

    def __init__(
        self,
        subject_patterns: Sequence[Pattern] = SUBJECT_ROLE_PATTERNS,
        body_patterns: Sequence[Pattern] = BODY_ROLE_PATTERNS,
        max_role_length: int = MAX_ROLE_LENGTH,
    ):
        self.subject_patterns = subject_patterns
        self.body_patterns = body_patterns
        self.max_role_length = max_role_length

    def extract_company(self, sender: str) -> str:
        """Guess the company from the From header.

        Precedence: keyword-stripped display name, then sender domain, then raw
        display name.
        """
        company = UNKNOWN

        domain_match = _SENDER_DOMAIN.search(sender)
        if domain_match:
            domain = domain_match.group(1)
            if domain.lower() not in GENERIC_EMAIL_PROVIDERS:
                company = domain[:1].upper() + domain[1:]

        name_match = _DISPLAY_NAME.match(sender)
        if name_match:
            display_name = name_match.group(1).strip()
            if any(keyword in display_name for keyword in ORGANIZATION_KEYWORDS):
                stripped = _ORGANIZATION_TOKENS.sub("", display_name)
                stripped = re.sub(r"\s+", " ", stripped).strip()
                if len(stripped) > 1:
                    company = stripped
            elif company == UNKNOWN:
                company = display_name

        return company or UNKNOWN

    def _first_match(
        self, patterns: Sequence[Pattern], text: str, require_group: bool
    ) -> Optional[str]:
        for pattern in patterns:
            match = pattern.search(text)
            if not match:
                continue
            group = match.group(1).strip() if pattern.groups and match.group(1) else ""
            if require_group and not group:
                continue
            role = group or match.group(0).strip()
            if role:
                return role[: self.max_role_length]
        return None

    def extract_role(self, subject: str, body_text: str) -> str:
        """Find the role in the subject line, falling back to the body text."""
        role = self._first_match(self.subject_patterns, subject, require_group=False)
        if role is None:
            role = self._first_match(self.body_patterns, body_text, require_group=True)
        return role or UNKNOWN

    def extract(self, text: str, sender: str, subject: str) -> ExtractionResult:
        """Extract company and role. Never raises; missing values become Unknown."""
        return ExtractionResult(
            company=self.extract_company(sender or ""),
            role=self.extract_role(subject or "", text or ""),
            success=True,
        )

    def extract_email(self, email: NormalizedEmail) -> ExtractionResult:
        return self.extract(email.classification_text, email.sender, email.subject)
