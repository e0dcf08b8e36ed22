# backend/app/schemas/profile.py
"""
Canonical person profile.

Every profile-provider response is mapped into ``Profile`` before any other
part of the system looks at it; provider-native field names never leave
``services/profile_normalize.py``.
"""
from pydantic import BaseModel, Field


class DateParts(BaseModel):
    day: int | None = None
    month: int | None = None
    year: int


class Experience(BaseModel):
    company: str = ""
    company_linkedin_profile_url: str | None = None
    title: str = ""
    description: str | None = None
    location: str | None = None
    starts_at: DateParts | None = None
    ends_at: DateParts | None = None
    logo_url: str | None = None


class Education(BaseModel):
    school: str = ""
    school_linkedin_profile_url: str | None = None
    degree_name: str | None = None
    field_of_study: str | None = None
    description: str | None = None
    starts_at: DateParts | None = None
    ends_at: DateParts | None = None
    logo_url: str | None = None


class Certification(BaseModel):
    name: str = ""
    authority: str | None = None
    starts_at: DateParts | None = None
    ends_at: DateParts | None = None
    url: str | None = None


class VolunteerWork(BaseModel):
    company: str = ""
    title: str = ""
    description: str | None = None
    starts_at: DateParts | None = None
    ends_at: DateParts | None = None


class Activity(BaseModel):
    title: str
    activity_status: str
    link: str | None = None


class Comment(BaseModel):
    text: str
    post_url: str | None = None
    commented_at: str


class Reaction(BaseModel):
    reaction_type: str
    post_text: str | None = None
    post_url: str | None = None


class Recommendation(BaseModel):
    text: str
    recommender_name: str
    recommender_title: str | None = None
    relationship: str | None = None


class ContactInfo(BaseModel):
    email: str | None = None
    emails: list[str] = Field(default_factory=list)
    phone: str | None = None
    phones: list[str] = Field(default_factory=list)
    twitter: str | None = None
    websites: list[str] = Field(default_factory=list)
    address: str | None = None
    birthday: str | None = None


class Profile(BaseModel):
    public_identifier: str
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    headline: str | None = None
    summary: str | None = None
    profile_pic_url: str | None = None
    background_cover_image_url: str | None = None

    country: str | None = None
    country_full_name: str | None = None
    city: str | None = None
    state: str | None = None
    occupation: str | None = None

    connections: int | None = None
    follower_count: int | None = None

    experiences: list[Experience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    volunteer_work: list[VolunteerWork] = Field(default_factory=list)

    activities: list[Activity] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    reactions: list[Reaction] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    recommendations_received: list[Recommendation] = Field(default_factory=list)

    email: str | None = None
    emails: list[str] = Field(default_factory=list)
    phone: str | None = None
    phones: list[str] = Field(default_factory=list)
    twitter: str | None = None
    websites: list[str] = Field(default_factory=list)
    address: str | None = None
    birthday: str | None = None

    open_to_work: bool = False
    is_premium: bool = False
    is_influencer: bool = False

    @property
    def location(self) -> str | None:
        parts = [p for p in (self.city, self.state, self.country_full_name) if p]
        return ", ".join(parts) or None

    @property
    def current_company(self) -> str | None:
        if self.experiences:
            return self.experiences[0].company or None
        return None
