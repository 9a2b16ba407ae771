from enum import Enum
from typing import Optional


class ServiceCategory(str, Enum):
    WEBSITE_DESIGN = "Website Design"
    B2B_SALES_CONSULTING = "B2B Sales Consulting"
    OUTBOUND_LEAD_GENERATION = "Outbound Lead Generation"
    SOCIAL_MEDIA_MARKETING = "Social Media Marketing"
    SEO = "SEO"
    TELECALLING = "TeleCalling"
    OTHER = "Other Services"


# Checked in order; first match wins
CATEGORY_ORDER = [
    ServiceCategory.WEBSITE_DESIGN,
    ServiceCategory.B2B_SALES_CONSULTING,
    ServiceCategory.OUTBOUND_LEAD_GENERATION,
    ServiceCategory.SOCIAL_MEDIA_MARKETING,
    ServiceCategory.SEO,
    ServiceCategory.TELECALLING,
]


def classify_service(text: Optional[str]) -> ServiceCategory:
    """
    Map free-form service text to a category by case-insensitive substring
    match in either direction, so "Web" is Website Design.
    """
    if not text or not text.strip():
        return ServiceCategory.OTHER

    needle = text.strip().lower()
    for category in CATEGORY_ORDER:
        name = category.value.lower()
        if name in needle or needle in name:
            return category
    return ServiceCategory.OTHER
