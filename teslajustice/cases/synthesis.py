"""
Template-based construction of case headlines, summaries and target details.

Every function here is pure: the same inputs always produce the same output.
"""

from typing import Optional

from teslajustice.cases.classification import (
    determine_building_type,
    determine_damage_types,
    determine_property_type,
)
from teslajustice.core.config import VEHICLE_MAKE
from teslajustice.data.schemas import (
    BuildingDetails,
    ContentAnalysis,
    PropertyDetails,
    VehicleDetails,
)

# Checked in order; the first damage tag present decides the wording.
HEADLINE_DAMAGE_SUFFIX = [
    ("keying", ": Keyed by vandal"),
    ("broken_windows", ": Windows smashed"),
    ("graffiti", ": Tagged with graffiti"),
    ("tire_slashing", ": Tires slashed"),
    ("arson", ": Set on fire"),
    ("denting", ": Body damaged"),
]

SUMMARY_DAMAGE_SENTENCE = [
    ("keying", ". The vehicle was keyed, causing damage to the paint."),
    ("broken_windows", ". One or more windows were broken or smashed."),
    ("graffiti", ". The target was tagged with graffiti."),
    ("tire_slashing", ". The tires were slashed or otherwise damaged."),
    ("arson", ". The target was set on fire or damaged by arson."),
    ("denting", ". The body was dented or physically damaged."),
]
GENERIC_DAMAGE_SENTENCE = ". The target sustained damage from vandalism."


def build_target_details(target_type: str, content: str, analysis: ContentAnalysis):
    """Build the target details variant matching ``target_type``."""
    if target_type == "vehicle":
        info = analysis.target_info
        return VehicleDetails(
            make=VEHICLE_MAKE,
            model=info.model,
            color=info.color,
            year=info.year,
        )
    if target_type == "building":
        return BuildingDetails(building_type=determine_building_type(content))
    return PropertyDetails(property_type=determine_property_type(content))


def _location_clause(analysis: ContentAnalysis) -> str:
    loc = analysis.location_info
    if loc.city and loc.state:
        return f" in {loc.city}, {loc.state}"
    return ""


def _first_match(damage_types: list[str], table: list[tuple[str, str]],
                 default: str = "") -> str:
    for tag, text in table:
        if tag in damage_types:
            return text
    return default


def generate_headline(content: str, analysis: ContentAnalysis, target_type: str,
                      damage_types: Optional[list[str]] = None) -> str:
    if damage_types is None:
        damage_types = determine_damage_types(content)

    if target_type == "vehicle":
        headline = VEHICLE_MAKE
        if analysis.target_info.model:
            headline += f" {analysis.target_info.model}"
        headline += " vandalized"
    elif target_type == "building":
        headline = f"{VEHICLE_MAKE} {determine_building_type(content)} vandalized"
    else:
        headline = f"{VEHICLE_MAKE} {determine_property_type(content)} vandalized"

    headline += _location_clause(analysis)
    headline += _first_match(damage_types, HEADLINE_DAMAGE_SUFFIX)
    return headline


def generate_summary(content: str, analysis: ContentAnalysis, target_type: str,
                     damage_types: Optional[list[str]] = None,
                     platform: Optional[str] = None) -> str:
    if damage_types is None:
        damage_types = determine_damage_types(content)

    if target_type == "vehicle":
        words = [analysis.target_info.color, VEHICLE_MAKE, analysis.target_info.model]
        summary = "A " + " ".join(w for w in words if w) + " was vandalized"
    elif target_type == "building":
        summary = f"A {VEHICLE_MAKE} {determine_building_type(content)} was vandalized"
    else:
        summary = f"{VEHICLE_MAKE} {determine_property_type(content)} was vandalized"

    summary += _location_clause(analysis)
    summary += _first_match(damage_types, SUMMARY_DAMAGE_SENTENCE, GENERIC_DAMAGE_SENTENCE)
    summary += f" This incident was reported on {platform or analysis.platform or 'social media'}."
    return summary
