from typing import List, Optional

from pydantic import BaseModel, field_validator


class ReviewsRequest(BaseModel):
    """Request body for the reviews endpoint."""
    firm: Optional[str] = None

    @field_validator("firm")
    @classmethod
    def strip_firm(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class Review(BaseModel):
    """One extracted review as returned to clients."""
    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    ratingValue: float
    imageUrl: Optional[str] = None
    profileUrl: Optional[str] = None
    publishedAt: Optional[str] = None


class ReviewsResponse(BaseModel):
    """Response body for a completed or not-found scrape."""
    success: int
    firm_name: str
    message: str
    totalCount: int
    reviews: List[Review] = []


class ErrorResponse(BaseModel):
    """Response body for rejected or failed requests."""
    success: int = 0
    message: str
