"""
Field extraction from raw CV text.

Line-scoped heuristics and regular expressions that turn extracted text into
a ParsedCandidate: name from the first line, first email and phone anywhere,
current title/employer from the experience section (or the top of the
document), and skill flags from keyword taxonomies.

Everything here is deterministic and never raises for odd input; a missing
signal just leaves the field empty.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from .logging_utils import LOG
from .models import ParsedCandidate, SkillFlags
from .shared import find_email, find_phone, non_empty_lines

MAX_CANDIDATE_LINES = 20
NOTES_LENGTH = 200

# ------------------------- Patterns / keyword lists -------------------------

def _word_list_re(words: Sequence[str]) -> re.Pattern[str]:
    # Longest first so "public relations" wins over "public"
    alternation = "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in sorted(words, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


EXPERIENCE_HEADER_KEYWORDS = (
    "work experience",
    "professional experience",
    "relevant experience",
    "employment history",
    "employment",
    "experience",
    "work history",
    "career history",
    "career",
)

OTHER_SECTION_HEADINGS = {
    "summary", "profile", "personal profile", "professional summary", "objective",
    "about", "about me", "introduction", "skills", "key skills", "core skills",
    "education", "qualifications", "languages", "certifications", "training",
    "references", "referees", "contact", "contact details", "personal details",
    "interests", "achievements", "address", "phone", "email", "location",
}

DOCUMENT_TITLES = {"curriculum vitae", "resume", "résumé", "cv"}

ROLE_KEYWORDS = (
    "manager", "director", "officer", "coordinator", "co-ordinator", "specialist",
    "analyst", "consultant", "advisor", "adviser", "executive", "lead", "head",
    "chief", "assistant", "associate", "intern", "trainee", "engineer",
    "developer", "designer", "researcher", "strategist", "editor", "writer",
    "campaigner", "organiser", "organizer", "secretary", "administrator",
    "president", "partner", "founder", "representative", "agent", "producer",
    "journalist", "spokesperson", "caseworker", "clerk",
)

ENTITY_KEYWORDS = (
    "ltd", "limited", "inc", "incorporated", "plc", "llc", "llp", "gmbh",
    "corp", "corporation", "company", "group", "holdings", "partners",
    "foundation", "trust", "charity", "association", "society", "institute",
    "ministry", "department", "council", "agency", "authority", "commission",
    "union", "bank", "consultancy", "network", "party", "office",
)

EDUCATION_KEYWORDS = ("university", "college", "school", "academy", "polytechnic")

_ROLE_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in ROLE_KEYWORDS) + r")s?\b", re.IGNORECASE
)
_ENTITY_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in ENTITY_KEYWORDS) + r")\b\.?", re.IGNORECASE
)
_LEGAL_SUFFIX_RE = re.compile(
    r"\b(?:ltd|limited|inc|incorporated|plc|llc|llp|gmbh|corp|corporation)\b\.?", re.IGNORECASE
)
_EDUCATION_RE = _word_list_re(EDUCATION_KEYWORDS)

_NAME_RE = re.compile(r"^[A-Z][A-Za-z'’\-.]*(?:\s+[A-Z][A-Za-z'’\-.]*){0,4}$")

# 1-4 capitalized words, no digits
_SHORT_CAP_PHRASE_RE = re.compile(r"^[A-Z][A-Za-z'&/\-]*(?:\s+[A-Z&][A-Za-z'&/\-]*){0,3}$")
# Longer capitalized phrase; lower-case connectors allowed between capitalized words
_LONG_CAP_PHRASE_RE = re.compile(
    r"^[A-Z][A-Za-z'&.\-]*(?:\s+(?:[A-Z&][A-Za-z'&.\-]*|of|and|for|the|in|on|de|la|van|von))+$"
)

_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
_DATE_TAIL_RE = re.compile(
    rf"[\s,(|]*(?:{_MONTH}\s+)?(?:\d{{1,2}}/)?\d{{4}}"
    rf"(?:\s*(?:-|–|—|to)\s*(?:(?:{_MONTH}\s+)?(?:\d{{1,2}}/)?\d{{4}}|present|current|now|date))?\s*\)?\s*$",
    re.IGNORECASE,
)

_AT_SPLIT_RE = re.compile(r"^(?P<title>.+?)\s+(?:at|@)\s+(?P<employer>.+)$", re.IGNORECASE)
_COMMA_SPLIT_RE = re.compile(r"^(?P<first>[^,]+),\s+(?P<second>[^,]+)$")
_DASH_SPLIT_RE = re.compile(r"^(?P<first>.+?)\s+[-–—|]\s+(?P<second>.+)$")

MAX_TITLE_LENGTH = 60
MAX_EMPLOYER_LENGTH = 80

# Skill taxonomy
SKILL_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "communications": (
        "communication", "communications", "comms", "media", "press", "pr",
        "public relations", "marketing", "social media", "content", "editorial",
        "journalism",
    ),
    "campaigns": (
        "campaign", "campaigns", "campaigning", "advocacy", "engagement",
        "grassroots", "activism", "outreach", "mobilisation", "mobilization",
        "organising", "organizing",
    ),
    "policy": (
        "policy", "policies", "briefing", "briefings", "consultation",
        "consultations", "legislative", "legislation", "regulatory", "government",
    ),
    "publicAffairs": (
        "public affairs", "government affairs", "government relations",
        "parliamentary", "stakeholder", "stakeholders", "stakeholder relations",
        "lobbying",
    ),
}
_SKILL_RES: Dict[str, re.Pattern[str]] = {name: _word_list_re(words) for name, words in SKILL_KEYWORDS.items()}

SKILL_TAGS: Dict[str, str] = {
    "communications": "communications",
    "campaigns": "campaigns",
    "policy": "policy",
    "publicAffairs": "public-affairs",
}

# Seniority keywords looked up in the title, in tag order
SENIORITY_TAGS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(?:senior|principal|lead|sr\.?)\b", re.IGNORECASE), "senior"),
    (re.compile(r"\b(?:manager|director|head)\b", re.IGNORECASE), "management"),
    (re.compile(r"\b(?:chief|ceo|cfo|coo|vice president|president)\b", re.IGNORECASE), "executive"),
    (re.compile(r"\b(?:junior|jr\.?|graduate|intern|trainee|assistant)\b", re.IGNORECASE), "junior"),
)

# ------------------------- Name / contact -------------------------

def _is_document_title(line: str) -> bool:
    return line.lower().strip(" :") in DOCUMENT_TITLES


_SENIORITY_PREFIX_RE = re.compile(
    r"^(?:senior|junior|principal|deputy|acting|interim|managing|sr\.?|jr\.?)\b", re.IGNORECASE
)


def _is_name_shaped(line: str) -> bool:
    """
    Capitalized words that read as a person. Role and entity words are
    tolerated as the surname only (Emma Head, Anna Partner); anywhere else,
    or behind a seniority prefix, the line is a job title or organisation.
    """
    if not _NAME_RE.match(line) or _LEGAL_SUFFIX_RE.search(line) or _SENIORITY_PREFIX_RE.match(line):
        return False
    tokens = line.split()
    leading = " ".join(tokens[:-1])
    if _ROLE_RE.search(leading) or _ENTITY_RE.search(leading):
        return False
    if _ROLE_RE.search(tokens[-1]) or _ENTITY_RE.search(tokens[-1]):
        return 2 <= len(tokens) <= 3
    return True


def extract_name(lines: Sequence[str]) -> Tuple[str, str, Optional[int]]:
    """
    Return (first_name, last_name, index of the line used) from the first
    non-empty line. A leading "Curriculum Vitae" style title is skipped.
    """
    idx = 0
    if lines and _is_document_title(lines[0]):
        idx = 1
    if idx >= len(lines):
        return "", "", None

    line = lines[idx]
    if not _is_name_shaped(line):
        return "", "", None
    tokens = line.split()
    return tokens[0], " ".join(tokens[1:]), idx


# ------------------------- Title / employer -------------------------

def is_experience_header(line: str) -> bool:
    """Short heading line naming the employment/experience section."""
    stripped = line.strip().rstrip(":").strip()
    if not stripped or len(stripped) > 40:
        return False
    if re.search(r"[.,;\d@]", stripped):
        return False
    lowered = stripped.lower()
    return any(re.search(rf"\b{re.escape(k)}\b", lowered) for k in EXPERIENCE_HEADER_KEYWORDS)


def _is_other_heading(line: str) -> bool:
    return line.lower().strip(" :") in OTHER_SECTION_HEADINGS


def _strip_date_tail(line: str) -> str:
    return _DATE_TAIL_RE.sub("", line).strip(" ,|-–—(")


def looks_like_title(line: str) -> bool:
    if not line or len(line) > MAX_TITLE_LENGTH or line.endswith("."):
        return False
    if _EDUCATION_RE.search(line) or "@" in line:
        return False
    if _ROLE_RE.search(line):
        return True
    return not re.search(r"\d", line) and bool(_SHORT_CAP_PHRASE_RE.match(line)) and not _ENTITY_RE.search(line)


def looks_like_employer(line: str) -> bool:
    if not line or len(line) > MAX_EMPLOYER_LENGTH:
        return False
    if _EDUCATION_RE.search(line) or "@" in line:
        return False
    if _LEGAL_SUFFIX_RE.search(line):
        return True
    # Role lines are titles, even when they mention an office or a group
    if _ROLE_RE.search(line) or line.endswith("."):
        return False
    if _ENTITY_RE.search(line):
        return True
    return not re.search(r"\d", line) and bool(_LONG_CAP_PHRASE_RE.match(line))


def _split_title_employer(line: str) -> Tuple[str, str]:
    """
    Try the inline forms "Title at Employer", "Title @ Employer",
    "Title, Employer" and "Employer - Title" (either order around the dash).
    """
    m = _AT_SPLIT_RE.match(line)
    if m:
        title, employer = m.group("title").strip(), m.group("employer").strip()
        if _ROLE_RE.search(title) and looks_like_employer(employer):
            return title, employer

    for rx in (_COMMA_SPLIT_RE, _DASH_SPLIT_RE):
        m = rx.match(line)
        if not m:
            continue
        first, second = m.group("first").strip(), m.group("second").strip()
        if _ROLE_RE.search(first) and not _ROLE_RE.search(second) and _is_employerish(second):
            return first, second
        if _ROLE_RE.search(second) and not _ROLE_RE.search(first) and _is_employerish(first):
            return second, first
    return "", ""


def _is_employerish(text: str) -> bool:
    return looks_like_employer(text) or (
        not re.search(r"\d", text) and bool(_SHORT_CAP_PHRASE_RE.match(text)) and not _EDUCATION_RE.search(text)
    )


def _candidate_lines(lines: Sequence[str], start: int, skip_index: Optional[int]) -> List[str]:
    """Up to MAX_CANDIDATE_LINES non-trivial lines from start, minus headings and contact lines."""
    out: List[str] = []
    for i in range(start, len(lines)):
        if len(out) >= MAX_CANDIDATE_LINES:
            break
        line = lines[i]
        if i == skip_index or len(line) < 3:
            continue
        if is_experience_header(line) or _is_other_heading(line) or _is_document_title(line):
            continue
        if find_email(line) or find_phone(line):
            continue
        out.append(line)
    return out


def _scan_title_employer(candidates: Sequence[str], title: str = "", employer: str = "") -> Tuple[str, str]:
    title_at: Optional[int] = None
    for i, raw in enumerate(candidates):
        if title and employer:
            break
        line = _strip_date_tail(raw)
        if not line or _EDUCATION_RE.search(line):
            continue

        split_title, split_employer = _split_title_employer(line)
        if split_title or split_employer:
            if not title:
                title, title_at = split_title, i
            if not employer:
                employer = split_employer
            continue

        if not title and looks_like_title(line):
            title, title_at = line, i
            continue
        if not employer and looks_like_employer(line):
            employer = line
            continue
        # A capitalized line right after the title is usually the organisation
        if not employer and title_at is not None and i == title_at + 1 and _is_employerish(line) \
                and not _ROLE_RE.search(line):
            employer = line
    return title, employer


def extract_title_employer(lines: Sequence[str], name_index: Optional[int] = None) -> Tuple[str, str]:
    """
    Current title and employer: scanned from the experience section header if
    there is one, otherwise (or for whatever is still missing) from the top
    of the document. First qualifying line wins for each field.
    """
    header_at = next((i for i, ln in enumerate(lines) if is_experience_header(ln)), None)

    title, employer = "", ""
    if header_at is not None:
        title, employer = _scan_title_employer(_candidate_lines(lines, header_at + 1, name_index))
    if not title or not employer:
        title, employer = _scan_title_employer(_candidate_lines(lines, 0, name_index), title, employer)
    return title, employer


# ------------------------- Skills / tags -------------------------

def detect_skills(text: str) -> SkillFlags:
    """Case-insensitive keyword-set membership against the whole text."""
    hits: Dict[str, int] = {}
    for name, rx in _SKILL_RES.items():
        matched = {re.sub(r"\s+", " ", m.group(0).lower()) for m in rx.finditer(text or "")}
        hits[name] = len(matched)
    return SkillFlags(
        communications=hits["communications"] > 0,
        campaigns=hits["campaigns"] > 0,
        policy=hits["policy"] > 0,
        public_affairs=hits["publicAffairs"] > 0,
        hits=hits,
    )


def derive_tags(skills: SkillFlags, title: str) -> List[str]:
    tags: List[str] = [SKILL_TAGS[name] for name, present in skills.as_dict().items() if present]
    for rx, tag in SENIORITY_TAGS:
        if title and rx.search(title) and tag not in tags:
            tags.append(tag)
    return tags


# ------------------------- Confidence / entry point -------------------------

def field_confidence(candidate: ParsedCandidate) -> float:
    """Fraction of {name, email, phone, title, employer} that is populated."""
    fields = candidate.contact_fields()
    return sum(1 for v in fields.values() if v) / len(fields)


def make_notes(text: str) -> str:
    text = (text or "").strip()
    return text[:NOTES_LENGTH] + ("..." if len(text) > NOTES_LENGTH else "")


def extract_fields(text: Optional[str]) -> ParsedCandidate:
    """
    Derive the canonical candidate fields from extracted text.

    The returned candidate carries the field-completeness confidence; its
    source is left for the result assembler to set.
    """
    text = text or ""
    lines = non_empty_lines(text)

    first_name, last_name, name_index = extract_name(lines)
    title, employer = extract_title_employer(lines, name_index)
    skills = detect_skills(text)

    candidate = ParsedCandidate(
        first_name=first_name,
        last_name=last_name,
        email=find_email(text),
        phone=find_phone(text),
        current_title=title,
        current_employer=employer,
        skills=skills,
        tags=derive_tags(skills, title),
        notes=make_notes(text),
    )
    confidence = field_confidence(candidate)
    LOG.debug(
        "Fields: name=%r email=%r phone=%r title=%r employer=%r (completeness %.2f)",
        f"{first_name} {last_name}".strip(), candidate.email, candidate.phone, title, employer, confidence,
    )
    return candidate.with_provenance(candidate.source, confidence)
