"""
Content analysis for incoming social media posts.

The pipeline only depends on the ``ContentAnalyzer`` interface. The bundled
``KeywordAnalyzer`` scores relevance from keyword lists and pulls location
and vehicle attributes out of the text with regular expressions.
"""

import logging
import re
from datetime import datetime
from typing import Optional, Protocol

from teslajustice.cases.classification import (
    determine_damage_types,
    determine_target_type,
    mentions,
)
from teslajustice.core.config import (
    DEFAULT_COUNTRY,
    FIRST_MODEL_YEAR,
    RELEVANCE_THRESHOLD,
    TESLA_KEYWORDS,
    VANDALISM_KEYWORDS,
    VANDALISM_THRESHOLD,
    VEHICLE_MAKE,
)
from teslajustice.data.schemas import (
    ContentAnalysis,
    Entity,
    LocationInfo,
    MediaAnalysis,
    TargetInfo,
)

logger = logging.getLogger(__name__)


class ContentAnalyzer(Protocol):
    """Anything that can classify post text and media."""

    def analyze(self, text: str) -> ContentAnalysis:
        ...

    def analyze_media(self, url: str, media_type: str) -> MediaAnalysis:
        ...


class KeywordAnalyzer:
    """
    Keyword-based stand-in for a language model.

    Relevance combines a Tesla reference (weight 0.4) and a vandalism
    reference (weight 0.6), each scored 0.8 when present.
    """

    LOCATION_PATTERN = re.compile(r"\bin ([A-Z][A-Za-z]*(?: [A-Z][A-Za-z]*)*),\s*([A-Z]{2})\b")

    MODEL_PATTERNS = [
        (re.compile(r"\bcybertruck\b", re.IGNORECASE), "Cybertruck"),
        (re.compile(r"\bmodel\s*s\b", re.IGNORECASE), "Model S"),
        (re.compile(r"\bmodel\s*3\b", re.IGNORECASE), "Model 3"),
        (re.compile(r"\bmodel\s*x\b", re.IGNORECASE), "Model X"),
        (re.compile(r"\bmodel\s*y\b", re.IGNORECASE), "Model Y"),
    ]

    COLOR_PATTERNS = [
        (re.compile(r"\bwhite\b", re.IGNORECASE), "white"),
        (re.compile(r"\bblack\b", re.IGNORECASE), "black"),
        (re.compile(r"\bred\b", re.IGNORECASE), "red"),
        (re.compile(r"\bblue\b", re.IGNORECASE), "blue"),
        (re.compile(r"\bsilver\b", re.IGNORECASE), "silver"),
        (re.compile(r"\b(?:gray|grey)\b", re.IGNORECASE), "gray"),
    ]

    YEAR_PATTERN = re.compile(r"\b(20[0-9]{2})\b")
    NAME_PATTERN = re.compile(r"([A-Z][a-z]+)\s+([A-Z][a-z]+)")

    def __init__(self, relevance_threshold: float = RELEVANCE_THRESHOLD,
                 vandalism_threshold: float = VANDALISM_THRESHOLD):
        self.relevance_threshold = relevance_threshold
        self.vandalism_threshold = vandalism_threshold

    def analyze(self, text: str) -> ContentAnalysis:
        has_tesla = mentions(text, TESLA_KEYWORDS)
        has_vandalism = mentions(text, VANDALISM_KEYWORDS)

        tesla_score = 0.8 if has_tesla else 0.0
        vandalism_score = 0.8 if has_vandalism else 0.0
        relevance = round(tesla_score * 0.4 + vandalism_score * 0.6, 4)
        logger.debug(f"Relevance {relevance} (tesla={has_tesla}, vandalism={has_vandalism})")

        location = self.extract_location(text)
        target = self.extract_vehicle(text)
        target.type = determine_target_type(text)

        summary = ""
        if relevance > self.relevance_threshold:
            summary = self._summarize(text, location, target)

        return ContentAnalysis(
            is_relevant=relevance > self.relevance_threshold,
            is_vandalism=relevance > self.vandalism_threshold,
            relevance_score=relevance,
            has_tesla_reference=has_tesla,
            has_vandalism_reference=has_vandalism,
            location_info=location,
            target_info=target,
            damage_types=determine_damage_types(text),
            summary=summary,
            entities=self.extract_entities(text),
        )

    def analyze_media(self, url: str, media_type: str) -> MediaAnalysis:
        # No vision model yet: every attachment is taken at face value.
        return MediaAnalysis(
            detected_objects=["car", "person"],
            analysis=f"{media_type.capitalize()} appears to show damage to a Tesla vehicle",
        )

    def extract_location(self, text: str) -> LocationInfo:
        """Find an ``in <City>, <ST>`` phrase."""
        match = self.LOCATION_PATTERN.search(text)
        if not match:
            return LocationInfo(country=DEFAULT_COUNTRY, confidence=0.2)
        return LocationInfo(
            city=match.group(1).strip(),
            state=match.group(2),
            country=DEFAULT_COUNTRY,
            confidence=0.8,
        )

    def extract_vehicle(self, text: str) -> TargetInfo:
        model = next((name for pattern, name in self.MODEL_PATTERNS if pattern.search(text)), "")
        color = next((name for pattern, name in self.COLOR_PATTERNS if pattern.search(text)), "")
        return TargetInfo(
            make=VEHICLE_MAKE,
            model=model,
            color=color,
            year=self.extract_year(text),
            confidence=0.9 if model else 0.3,
        )

    def extract_year(self, text: str, current_year: Optional[int] = None) -> str:
        if current_year is None:
            current_year = datetime.utcnow().year
        for match in self.YEAR_PATTERN.finditer(text):
            year = int(match.group(1))
            if FIRST_MODEL_YEAR <= year <= current_year:
                return str(year)
        return ""

    def extract_entities(self, text: str) -> list[Entity]:
        """Capitalized word pairs, as a rough guess at person names."""
        return [
            Entity(type="PERSON", text=m.group(0), start=m.start(), end=m.end())
            for m in self.NAME_PATTERN.finditer(text)
        ]

    @staticmethod
    def _summarize(text: str, location: LocationInfo, target: TargetInfo) -> str:
        summary = f"{VEHICLE_MAKE} vandalism incident"
        if target.model:
            summary = f"{VEHICLE_MAKE} {target.model} vandalism incident"
        if target.color:
            summary = f"{target.color} {summary}"
        if location.city and location.state:
            summary += f" in {location.city}, {location.state}"

        damage = determine_damage_types(text)
        if "keying" in damage:
            summary += ". Vehicle was keyed"
        elif "broken_windows" in damage:
            summary += ". Windows were broken"
        elif "graffiti" in damage:
            summary += ". Vehicle was tagged with graffiti"
        elif "tire_slashing" in damage:
            summary += ". Tires were damaged"
        else:
            summary += ". Vehicle was damaged"
        return summary
