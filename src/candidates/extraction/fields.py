"""Deterministic field extraction that runs before any model call."""

from __future__ import annotations

import re
from dataclasses import dataclass

EMAIL_PATTERN = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
PHONE_PATTERN = re.compile(
    r"(?:\+?\d{1,3}[\s.-]?)?(?:\(\d{2,5}\)|\d{2,5})[\s.-]?\d{3,5}[\s.-]?\d{3,5}"
)

KNOWN_CITIES = (
    "Mumbai", "New Delhi", "Delhi", "Bangalore", "Bengaluru", "Hyderabad",
    "Chennai", "Kolkata", "Pune", "Ahmedabad", "Jaipur", "Lucknow",
    "Gurgaon", "Gurugram", "Noida", "Chandigarh", "Indore", "Bhopal",
    "Nagpur", "Patna", "Kochi", "Coimbatore", "Thiruvananthapuram",
    "Visakhapatnam", "Surat", "Vadodara", "Mysore", "Mysuru",
    "San Francisco", "New York", "London", "Singapore", "Dubai",
    "Toronto", "Sydney", "Berlin", "Amsterdam", "Tokyo", "Paris",
    "Seattle", "Austin", "Chicago", "Boston", "Los Angeles",
)

_CITY_COUNTRY = re.compile(
    r"([A-Z][a-zA-Z ]+),\s*(India|USA|UK|Canada|Australia|Germany|Singapore|UAE|Dubai|[A-Z]{2})\b",
)
_CITY_STATE_COUNTRY = re.compile(
    r"([A-Z][a-zA-Z ]+),\s*([A-Z][a-zA-Z ]+),\s*(India|USA|UK|Canada|Australia)\b",
)
LOCATION_HEADER_CHARS = 500


@dataclass(frozen=True)
class PreExtractedFields:
    email: str | None = None
    phone: str | None = None


def extract_email(text: str) -> str | None:
    match = EMAIL_PATTERN.search(text or "")
    return match.group(0).strip().lower() if match else None


def extract_phone(text: str) -> str | None:
    for match in PHONE_PATTERN.finditer(text or ""):
        candidate = match.group(0).strip()
        # Years ranges such as "2019-2023" also fit the pattern; require a real number length.
        if len(re.sub(r"\D", "", candidate)) >= 7:
            return candidate
    return None


def pre_extract_fields(text: str) -> PreExtractedFields:
    return PreExtractedFields(email=extract_email(text), phone=extract_phone(text))


def extract_location(resume_text: str) -> str | None:
    """Guess the candidate location from the resume header (first 500 chars)."""
    if not resume_text:
        return None
    header = resume_text[:LOCATION_HEADER_CHARS]

    match = _CITY_STATE_COUNTRY.search(header)
    if match:
        return f"{match.group(1).strip()}, {match.group(3).strip()}"

    match = _CITY_COUNTRY.search(header)
    if match:
        city = match.group(1).strip()
        if any(known.lower() in city.lower() for known in KNOWN_CITIES):
            return f"{city}, {match.group(2).strip()}"

    for city in KNOWN_CITIES:
        if re.search(rf"\b{re.escape(city)}\b", header, re.IGNORECASE):
            return city
    return None
