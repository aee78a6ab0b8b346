"""
Review records and record sets produced by an extraction pass.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import urlsplit, urlunsplit

from core.errors import RecordExtractionError

RATING_PATTERN = re.compile(r"Rated\s+(\d+(?:[.,]\d+)?)\s+out of 5", re.IGNORECASE)


def parse_rating(label: Optional[str]) -> float:
    """
    Parse a rating from an accessibility label such as ``"Rated 4.0 out of 5,"``.

    Raises:
        RecordExtractionError: if the label is missing or carries no finite number
    """
    if not label:
        raise RecordExtractionError("Missing rating label")
    match = RATING_PATTERN.search(label)
    if not match:
        raise RecordExtractionError(f"Unparseable rating label: {label!r}")
    value = float(match.group(1).replace(",", "."))
    if not math.isfinite(value):
        raise RecordExtractionError(f"Non-finite rating in label: {label!r}")
    return value


def strip_query(url: Optional[str]) -> Optional[str]:
    """Drop the query string and fragment from a URL."""
    if not url:
        return None
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def identity_from_url(url: Optional[str]) -> Optional[str]:
    """Last non-empty path segment of a reviewer identity URL."""
    if not url:
        return None
    segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    return segments[-1] if segments else None


def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Record:
    """One extracted review."""
    title: str
    rating_value: float
    id: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    profile_url: Optional[str] = None
    published_at: Optional[str] = None

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise RecordExtractionError("Record title is required")
        if not isinstance(self.rating_value, (int, float)) or not math.isfinite(self.rating_value):
            raise RecordExtractionError("Record rating must be a finite number")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the public response field names."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "ratingValue": self.rating_value,
            "imageUrl": self.image_url,
            "profileUrl": self.profile_url,
            "publishedAt": self.published_at,
        }


@dataclass
class RecordSet:
    """Valid records from one extraction pass and how many nodes were dropped."""
    records: List[Record] = field(default_factory=list)
    dropped: int = 0
    attempts: int = 0

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def to_list(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.records]
