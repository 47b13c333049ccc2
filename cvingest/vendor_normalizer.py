"""
Vendor response normalizer.

Maps the remote parser's JSON into the same ParsedCandidate the local field
engine produces. The vendor may answer in camelCase or PascalCase, so every
key is looked up through VENDOR_KEYS in a fixed variant order.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .field_extraction import derive_tags, detect_skills, field_confidence, make_notes
from .logging_utils import LOG
from .models import ParsedCandidate
from .shared import find_phone

# Canonical key -> variants tried in order
VENDOR_KEYS: Dict[str, Tuple[str, ...]] = {
    "success": ("success", "Success"),
    "message": ("message", "Message"),
    "status": ("status", "Status"),
    "supportedFormats": ("supportedFormats", "SupportedFormats"),
    "data": ("data", "Data"),
    "rawText": ("rawText", "RawText"),
    "personalInfo": ("personalInfo", "PersonalInfo"),
    "name": ("name", "Name", "fullName", "FullName"),
    "firstName": ("firstName", "FirstName"),
    "lastName": ("lastName", "LastName"),
    "email": ("email", "Email"),
    "phone": ("phone", "Phone"),
    "workExperience": ("workExperience", "WorkExperience"),
    "jobTitle": ("jobTitle", "JobTitle"),
    "company": ("company", "Company"),
    "startDate": ("startDate", "StartDate"),
    "endDate": ("endDate", "EndDate"),
    "isCurrentPosition": ("isCurrentPosition", "IsCurrentPosition"),
    "description": ("description", "Description"),
    "responsibilities": ("responsibilities", "Responsibilities"),
    "skills": ("skills", "Skills"),
    "summary": ("summary", "Summary"),
}

_OPEN_END_DATES = {"present", "current", "now", "ongoing", ""}
_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m", "%m/%Y", "%b %Y", "%B %Y", "%Y")


def _variants(name: str) -> Tuple[str, ...]:
    return VENDOR_KEYS.get(name) or (name, name[:1].upper() + name[1:])


def pick(mapping: Any, *names: str) -> Any:
    """First non-null value for any of names, probing each name's casings in order."""
    if not isinstance(mapping, Mapping):
        return None
    for name in names:
        for key in _variants(name):
            value = mapping.get(key)
            if value is not None:
                return value
    return None


def _pick_str(mapping: Any, *names: str) -> str:
    value = pick(mapping, *names)
    return str(value).strip() if value is not None else ""


def vendor_raw_text(payload: Mapping[str, Any]) -> str:
    """The vendor's raw text if it sent one, else a JSON serialization of the payload."""
    raw = pick(payload, "rawText") or pick(pick(payload, "data"), "rawText")
    if isinstance(raw, str) and raw.strip():
        return raw
    return json.dumps(payload, default=str, ensure_ascii=False)


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    s = str(value).strip()
    try:
        return datetime.fromisoformat(s[:10]).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def _is_open_ended(role: Mapping[str, Any]) -> bool:
    if pick(role, "isCurrentPosition") is True:
        return True
    end = pick(role, "endDate")
    return end is None or str(end).strip().lower() in _OPEN_END_DATES


def _role_sort_key(role: Mapping[str, Any]) -> Tuple[bool, date, date]:
    return (
        _is_open_ended(role),
        _parse_date(pick(role, "endDate")) or date.min,
        _parse_date(pick(role, "startDate")) or date.min,
    )


def most_recent_role(roles: Any) -> Mapping[str, Any]:
    """
    Pick the current role: open-ended roles first, then the latest end date,
    then the latest start date. Roles naming both a title and a company win
    over incomplete ones; ties keep the vendor's order.
    """
    if not isinstance(roles, list):
        return {}
    usable = [r for r in roles if isinstance(r, Mapping)]
    if not usable:
        return {}
    ranked = sorted(usable, key=_role_sort_key, reverse=True)
    complete = [r for r in ranked if _pick_str(r, "jobTitle") and _pick_str(r, "company")]
    return (complete or ranked)[0]


def _split_name(full_name: str) -> Tuple[str, str]:
    tokens = full_name.split()
    if not tokens:
        return "", ""
    return tokens[0], " ".join(tokens[1:])


def _skill_text(data: Mapping[str, Any], roles: Sequence[Any]) -> str:
    parts: List[str] = []
    skills = pick(data, "skills")
    if isinstance(skills, list):
        parts.extend(str(s) for s in skills if s)
    summary = pick(data, "summary")
    if summary:
        parts.append(str(summary))
    for role in roles:
        if not isinstance(role, Mapping):
            continue
        parts.append(_pick_str(role, "jobTitle"))
        parts.append(_pick_str(role, "description"))
        responsibilities = pick(role, "responsibilities")
        if isinstance(responsibilities, list):
            parts.extend(str(r) for r in responsibilities if r)
    return "\n".join(p for p in parts if p)


def normalize(vendor_response: Optional[Mapping[str, Any]]) -> ParsedCandidate:
    """
    Map a vendor parse response into a ParsedCandidate.

    Never raises for odd shapes: missing sections just leave fields empty.
    The returned candidate carries the field-completeness confidence; the
    result assembler sets source and final confidence.
    """
    payload: Mapping[str, Any] = vendor_response if isinstance(vendor_response, Mapping) else {}
    data = pick(payload, "data")
    if not isinstance(data, Mapping):
        data = payload
    info = pick(data, "personalInfo")
    if not isinstance(info, Mapping):
        info = {}

    first_name = _pick_str(info, "firstName")
    last_name = _pick_str(info, "lastName")
    if not first_name and not last_name:
        first_name, last_name = _split_name(_pick_str(info, "name"))

    roles = pick(data, "workExperience")
    roles = roles if isinstance(roles, list) else []
    role = most_recent_role(roles)
    title = _pick_str(role, "jobTitle")

    phone = _pick_str(info, "phone")
    if not phone:
        phone = find_phone(vendor_raw_text(payload))
        if phone:
            LOG.debug("vendor: phone filled from raw payload")

    skills = detect_skills(_skill_text(data, roles))
    summary = _pick_str(data, "summary")

    candidate = ParsedCandidate(
        first_name=first_name,
        last_name=last_name,
        email=_pick_str(info, "email"),
        phone=phone,
        current_title=title,
        current_employer=_pick_str(role, "company"),
        skills=skills,
        tags=derive_tags(skills, title),
        notes=make_notes(summary),
    )
    return candidate.with_provenance(candidate.source, field_confidence(candidate))
