"""
Provider document -> canonical Profile mapping.

Each provider gets one normalization table: canonical field name -> ordered
tuple of upstream keys. ``first_present`` walks the tuple and returns the
first value that is present and non-empty, so adding a new synonym the
upstream starts sending is a one-line change here and nowhere else.
Dotted keys ("geo.country") descend into nested objects.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import re

from ..schemas.profile import (
    Activity,
    Certification,
    Comment,
    ContactInfo,
    DateParts,
    Education,
    Experience,
    Profile,
    Reaction,
    Recommendation,
    VolunteerWork,
)

logger = logging.getLogger(__name__)

Candidates = Tuple[str, ...]

MONTH_NAMES = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")
YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")
NUMERIC_MONTH_RE = re.compile(r"(\d{4})[/-](\d{1,2})")

POST_TEXT_LIMIT = 200
COMMENT_TEXT_LIMIT = 200
REACTION_TEXT_LIMIT = 150


# -----------------------------------------------------------------------------
# Fresh LinkedIn Scraper (RapidAPI)
# -----------------------------------------------------------------------------

FRESH_LINKEDIN_FIELDS: Dict[str, Candidates] = {
    "public_identifier": ("username", "publicIdentifier"),
    "internal_id": ("urn", "entityUrn", "id"),
    "first_name": ("firstName",),
    "last_name": ("lastName",),
    "full_name": ("fullName",),
    "headline": ("headline",),
    "summary": ("summary", "about"),
    "profile_pic_url": (
        "profilePicture",
        "avatar",
        "photo",
        "image",
        "profilePhoto",
        "profile_pic_url",
        "displayPictureUrl",
    ),
    "background_cover_image_url": ("backgroundImage", "coverImage"),
    "country": ("countryCode", "geo.country"),
    "country_full_name": ("country", "geo.country"),
    "city": ("city", "geo.city"),
    "connections": ("connections", "connectionCount"),
    "follower_count": ("followers", "followerCount"),
    "experiences": ("experience", "experiences"),
    "education": ("education",),
    "skills": ("skills",),
    "languages": ("languages",),
    "certifications": ("certifications",),
    "volunteer_work": ("volunteer", "volunteerWork"),
}

FRESH_LINKEDIN_FLAGS: Dict[str, Candidates] = {
    "open_to_work": ("openToWork", "isOpenToWork"),
    "is_premium": ("premium", "isPremium"),
    "is_influencer": ("influencer", "isInfluencer"),
}

FRESH_EXPERIENCE_FIELDS: Dict[str, Candidates] = {
    "company": ("company", "companyName"),
    "company_linkedin_profile_url": ("companyUrl",),
    "title": ("title",),
    "description": ("description",),
    "location": ("location",),
    "starts_at": ("startDate",),
    "ends_at": ("endDate",),
    "logo_url": ("companyLogo",),
}

FRESH_EDUCATION_FIELDS: Dict[str, Candidates] = {
    "school": ("school", "schoolName"),
    "school_linkedin_profile_url": ("schoolUrl",),
    "degree_name": ("degree", "degreeName"),
    "field_of_study": ("field", "fieldOfStudy"),
    "description": ("description",),
    "starts_at": ("startDate",),
    "ends_at": ("endDate",),
    "logo_url": ("schoolLogo",),
}

FRESH_CERTIFICATION_FIELDS: Dict[str, Candidates] = {
    "name": ("name",),
    "authority": ("authority",),
    "starts_at": ("startDate",),
    "ends_at": ("endDate",),
    "url": ("url",),
}

FRESH_VOLUNTEER_FIELDS: Dict[str, Candidates] = {
    "company": ("company",),
    "title": ("title",),
    "description": ("description",),
    "starts_at": ("startDate",),
    "ends_at": ("endDate",),
}


# -----------------------------------------------------------------------------
# Proxycurl (already close to canonical; mostly identity mapping)
# -----------------------------------------------------------------------------

PROXYCURL_FIELDS: Dict[str, Candidates] = {
    "public_identifier": ("public_identifier",),
    "first_name": ("first_name",),
    "last_name": ("last_name",),
    "full_name": ("full_name",),
    "headline": ("headline",),
    "summary": ("summary",),
    "profile_pic_url": ("profile_pic_url",),
    "background_cover_image_url": ("background_cover_image_url",),
    "country": ("country",),
    "country_full_name": ("country_full_name",),
    "city": ("city",),
    "state": ("state",),
    "occupation": ("occupation",),
    "connections": ("connections",),
    "follower_count": ("follower_count",),
    "experiences": ("experiences",),
    "education": ("education",),
    "skills": ("skills",),
    "languages": ("languages",),
    "certifications": ("certifications",),
    "volunteer_work": ("volunteer_work",),
    "recommendations": ("recommendations",),
    "activities": ("activities",),
}


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _lookup(data: Dict[str, Any], key: str) -> Any:
    current: Any = data
    for part in key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def first_present(data: Dict[str, Any] | None, candidates: Iterable[str]) -> Any:
    """Return the first present, non-empty value among ``candidates``."""
    if not isinstance(data, dict):
        return None
    for key in candidates:
        value = _lookup(data, key)
        if not _is_empty(value):
            return value
    return None


def _str_or_none(value: Any) -> Optional[str]:
    if _is_empty(value):
        return None
    return str(value).strip() or None


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _names(values: Any) -> List[str]:
    """Skills/languages arrive either as strings or as {"name": ...} objects."""
    if not isinstance(values, list):
        return []
    out: List[str] = []
    for v in values:
        name = v if isinstance(v, str) else (v.get("name") if isinstance(v, dict) else None)
        if name:
            out.append(str(name))
    return out


def _clip(text: Optional[str], limit: int) -> Optional[str]:
    if text is None:
        return None
    return text[:limit]


def parse_date_string(value: Any) -> Optional[DateParts]:
    """
    Parse "2020-01", "Jan 2020", "January 2020" or "2020" into DateParts.

    "Present" (an ongoing role) and strings without a year yield None.
    Structured {"year": ..} objects are passed through.
    """
    if isinstance(value, dict):
        year = _int_or_none(value.get("year"))
        if not year:
            return None
        return DateParts(
            day=_int_or_none(value.get("day")),
            month=_int_or_none(value.get("month")),
            year=year,
        )

    if not value or not isinstance(value, str):
        return None
    if value.strip().lower() == "present":
        return None

    year_match = YEAR_RE.search(value)
    if not year_match:
        return None
    year = int(year_match.group(0))

    lower = value.lower()
    month: Optional[int] = None
    for idx, name in enumerate(MONTH_NAMES):
        if name in lower:
            month = idx + 1
            break

    if month is None:
        numeric = NUMERIC_MONTH_RE.search(value)
        if numeric:
            candidate = int(numeric.group(2))
            if 1 <= candidate <= 12:
                month = candidate

    return DateParts(day=None, month=month, year=year)


def _map_item(item: Dict[str, Any], table: Dict[str, Candidates]) -> Dict[str, Any]:
    mapped: Dict[str, Any] = {}
    for target, candidates in table.items():
        value = first_present(item, candidates)
        if target in ("starts_at", "ends_at"):
            mapped[target] = parse_date_string(value)
        else:
            mapped[target] = _str_or_none(value)
    return mapped


def _map_items(items: Any, table: Dict[str, Candidates], model, required: Tuple[str, ...] = ()) -> list:
    if not isinstance(items, list):
        return []
    out = []
    for item in items:
        if not isinstance(item, dict):
            continue
        mapped = _map_item(item, table)
        for key in required:
            mapped[key] = mapped.get(key) or ""
        out.append(model(**mapped))
    return out


# -----------------------------------------------------------------------------
# Secondary lookups (best-effort extras keyed by internal id)
# -----------------------------------------------------------------------------

@dataclass
class SecondaryData:
    image_url: Optional[str] = None
    activities: List[Activity] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    reactions: List[Reaction] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    contact: ContactInfo = field(default_factory=ContactInfo)


def _data_list(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    return [d for d in data if isinstance(d, dict)]


def best_image(payload: Any) -> Optional[str]:
    """Largest image by area, else any single-URL field the endpoint sent."""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        return None
    data = payload["data"]
    images = [img for img in (data.get("images") or []) if isinstance(img, dict) and img.get("url")]
    if images:
        images.sort(
            key=lambda img: (_int_or_none(img.get("width")) or 0) * (_int_or_none(img.get("height")) or 0),
            reverse=True,
        )
        return images[0]["url"]
    return _str_or_none(first_present(data, ("profilePicture", "displayImage")))


def posts_to_activities(payload: Any, limit: int) -> List[Activity]:
    return [
        Activity(
            title=_clip(_str_or_none(p.get("text")), POST_TEXT_LIMIT) or "Posted an update",
            activity_status=_str_or_none(p.get("postedAt")) or "Recently",
            link=_str_or_none(p.get("postUrl")),
        )
        for p in _data_list(payload)[:limit]
    ]


def comments_from(payload: Any, limit: int) -> List[Comment]:
    return [
        Comment(
            text=_clip(_str_or_none(c.get("text")), COMMENT_TEXT_LIMIT) or "",
            post_url=_str_or_none(c.get("postUrl")),
            commented_at=_str_or_none(c.get("commentedAt")) or "Recently",
        )
        for c in _data_list(payload)[:limit]
    ]


def reactions_from(payload: Any, limit: int) -> List[Reaction]:
    return [
        Reaction(
            reaction_type=_str_or_none(r.get("reactionType")) or "like",
            post_text=_clip(_str_or_none(r.get("postText")), REACTION_TEXT_LIMIT),
            post_url=_str_or_none(r.get("postUrl")),
        )
        for r in _data_list(payload)[:limit]
    ]


def recommendations_from(payload: Any, limit: int) -> List[Recommendation]:
    return [
        Recommendation(
            text=_str_or_none(r.get("text")) or "",
            recommender_name=_str_or_none(r.get("recommenderName")) or "Anonymous",
            recommender_title=_str_or_none(r.get("recommenderTitle")),
            relationship=_str_or_none(r.get("relationship")),
        )
        for r in _data_list(payload)[:limit]
    ]


def contact_info_from(payload: Any) -> ContactInfo:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        return ContactInfo()
    data = payload["data"]
    emails = [e for e in (data.get("emails") or []) if e]
    phones = [p for p in (data.get("phones") or []) if p]
    email = _str_or_none(data.get("email")) or (emails[0] if emails else None)
    phone = _str_or_none(data.get("phone")) or (phones[0] if phones else None)
    return ContactInfo(
        email=email,
        emails=emails or ([email] if email else []),
        phone=phone,
        phones=phones or ([phone] if phone else []),
        twitter=_str_or_none(data.get("twitter")),
        websites=[w for w in (data.get("websites") or []) if w],
        address=_str_or_none(data.get("address")),
        birthday=_str_or_none(data.get("birthday")),
    )


# -----------------------------------------------------------------------------
# Primary documents
# -----------------------------------------------------------------------------

def fresh_linkedin_internal_id(data: Dict[str, Any]) -> Optional[str]:
    return _str_or_none(first_present(data, FRESH_LINKEDIN_FIELDS["internal_id"]))


def normalize_fresh_linkedin(
    data: Dict[str, Any],
    handle: str,
    extras: SecondaryData | None = None,
) -> Profile:
    extras = extras or SecondaryData()
    f = FRESH_LINKEDIN_FIELDS

    def pick(name: str) -> Any:
        return first_present(data, f[name])

    first_name = _str_or_none(pick("first_name")) or ""
    last_name = _str_or_none(pick("last_name")) or ""
    full_name = _str_or_none(pick("full_name")) or f"{first_name} {last_name}".strip()
    headline = _str_or_none(pick("headline"))

    flags = {
        name: any(bool(data.get(key)) for key in candidates)
        for name, candidates in FRESH_LINKEDIN_FLAGS.items()
    }

    contact = extras.contact
    return Profile(
        public_identifier=_str_or_none(pick("public_identifier")) or handle,
        first_name=first_name,
        last_name=last_name,
        full_name=full_name,
        headline=headline,
        summary=_str_or_none(pick("summary")),
        # Freshly fetched best image wins over anything embedded in the profile
        profile_pic_url=extras.image_url or _str_or_none(pick("profile_pic_url")),
        background_cover_image_url=_str_or_none(pick("background_cover_image_url")),
        country=_str_or_none(pick("country")),
        country_full_name=_str_or_none(pick("country_full_name")),
        city=_str_or_none(pick("city")),
        state=None,
        occupation=headline,
        connections=_int_or_none(pick("connections")),
        follower_count=_int_or_none(pick("follower_count")),
        experiences=_map_items(
            pick("experiences"), FRESH_EXPERIENCE_FIELDS, Experience, required=("company", "title")
        ),
        education=_map_items(pick("education"), FRESH_EDUCATION_FIELDS, Education, required=("school",)),
        skills=_names(pick("skills")),
        languages=_names(pick("languages")),
        certifications=_map_items(
            pick("certifications"), FRESH_CERTIFICATION_FIELDS, Certification, required=("name",)
        ),
        volunteer_work=_map_items(
            pick("volunteer_work"), FRESH_VOLUNTEER_FIELDS, VolunteerWork, required=("company", "title")
        ),
        activities=extras.activities,
        comments=extras.comments,
        reactions=extras.reactions,
        recommendations=[r.text for r in extras.recommendations],
        recommendations_received=extras.recommendations,
        email=contact.email,
        emails=contact.emails,
        phone=contact.phone,
        phones=contact.phones,
        twitter=contact.twitter,
        websites=contact.websites,
        address=contact.address,
        birthday=contact.birthday,
        **flags,
    )


def _proxycurl_items(items: Any, model, required: Tuple[str, ...]) -> list:
    if not isinstance(items, list):
        return []
    out = []
    for item in items:
        if not isinstance(item, dict):
            continue
        mapped = {k: v for k, v in item.items() if k in model.model_fields}
        for key in ("starts_at", "ends_at"):
            if key in model.model_fields:
                mapped[key] = parse_date_string(item.get(key))
        for key in required:
            mapped[key] = mapped.get(key) or ""
        out.append(model(**mapped))
    return out


def normalize_proxycurl(data: Dict[str, Any], handle: str) -> Profile:
    f = PROXYCURL_FIELDS

    def pick(name: str) -> Any:
        return first_present(data, f[name])

    first_name = _str_or_none(pick("first_name")) or ""
    last_name = _str_or_none(pick("last_name")) or ""
    activities = []
    for a in pick("activities") or []:
        if isinstance(a, dict) and a.get("title"):
            activities.append(
                Activity(
                    title=str(a["title"]),
                    activity_status=_str_or_none(a.get("activity_status")) or "Recently",
                    link=_str_or_none(a.get("link")),
                )
            )

    return Profile(
        public_identifier=_str_or_none(pick("public_identifier")) or handle,
        first_name=first_name,
        last_name=last_name,
        full_name=_str_or_none(pick("full_name")) or f"{first_name} {last_name}".strip(),
        headline=_str_or_none(pick("headline")),
        summary=_str_or_none(pick("summary")),
        profile_pic_url=_str_or_none(pick("profile_pic_url")),
        background_cover_image_url=_str_or_none(pick("background_cover_image_url")),
        country=_str_or_none(pick("country")),
        country_full_name=_str_or_none(pick("country_full_name")),
        city=_str_or_none(pick("city")),
        state=_str_or_none(pick("state")),
        occupation=_str_or_none(pick("occupation")),
        connections=_int_or_none(pick("connections")),
        follower_count=_int_or_none(pick("follower_count")),
        experiences=_proxycurl_items(pick("experiences"), Experience, ("company", "title")),
        education=_proxycurl_items(pick("education"), Education, ("school",)),
        skills=_names(pick("skills")),
        languages=_names(pick("languages")),
        certifications=_proxycurl_items(pick("certifications"), Certification, ("name",)),
        volunteer_work=_proxycurl_items(pick("volunteer_work"), VolunteerWork, ("company", "title")),
        recommendations=[str(r) for r in (pick("recommendations") or []) if r],
        activities=activities,
    )
