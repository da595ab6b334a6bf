from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# Canonical sink column order
COLUMNS: List[str] = [
    "name",
    "occupation",
    "location",
    "university_names",
    "linkedin_url",
    "website_url",
]

UNIVERSITY_SEPARATOR = "; "


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class Record(BaseModel):
    """Normalized profile row written to the sink."""

    name: str | None = None
    occupation: str | None = None
    location: str | None = None
    university_names: str | None = None
    linkedin_url: str | None = None
    website_url: str | None = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def placeholder(cls, index: int) -> "Record":
        return cls(name=f"Error_Profile_{index}")

    @property
    def is_placeholder(self) -> bool:
        return bool(self.name and self.name.startswith("Error_Profile_")) and not any(
            [self.occupation, self.location, self.university_names, self.linkedin_url, self.website_url]
        )

    def as_row(self) -> Dict[str, Any]:
        return {col: getattr(self, col) for col in COLUMNS}


class RawItem(BaseModel):
    """Markup-independent view of one listing card, produced only by page drivers.

    The lightweight fingerprint probe fills `index`, `name`, `occupation` and
    `linkedin_url`; full extraction fills everything.
    """

    index: int
    name: str | None = None
    occupation: str | None = None
    location: str | None = None
    university_names: List[str] = Field(default_factory=list)
    linkedin_url: str | None = None
    website_url: str | None = None

    model_config = ConfigDict(extra="ignore")

    def to_record(self) -> Record:
        universities = [u.strip() for u in self.university_names if u and u.strip()]
        return Record(
            name=_clean(self.name),
            occupation=_clean(self.occupation),
            location=_clean(self.location),
            university_names=UNIVERSITY_SEPARATOR.join(universities) or None,
            linkedin_url=_clean(self.linkedin_url),
            website_url=_clean(self.website_url),
        )


class TaggedRecord(BaseModel):
    index: int
    fingerprint: str
    record: Record
