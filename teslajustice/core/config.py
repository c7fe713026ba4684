"""
Central configuration for the TeslaJustice monitoring pipeline.
"""

import os
from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Load .env file if present (must happen before reading env vars)
try:
    from dotenv import load_dotenv
    load_dotenv(BASE_DIR / ".env")
except ImportError:
    pass

# Database
DATABASE_URL = os.getenv("TESLAJUSTICE_DB_URL", f"sqlite:///{BASE_DIR / 'teslajustice.db'}")

# Supported social media platforms
PLATFORMS = [
    "twitter",
    "instagram",
    "facebook",
    "youtube",
    "reddit",
    "tiktok",
]

# Case lifecycle, in order. "unresolved" is a terminal state outside the sequence.
CASE_STATUSES = [
    "reported",
    "verified",
    "identified",
    "apprehended",
    "prosecuted",
    "resolved",
    "unresolved",
]
CLOSED_STATUSES = ["resolved", "unresolved"]

TARGET_TYPES = ["vehicle", "building", "property"]

SEVERITY_LEVELS = ["minor", "moderate", "major", "severe"]

UPDATE_TYPES = [
    "status_change",
    "new_information",
    "suspect_identified",
    "media_added",
    "location_update",
    "other",
]

RELATIONSHIP_TYPES = [
    "possible_duplicate",
    "same_location",
    "same_suspect",
    "same_method",
    "part_of_series",
    "other",
]

# Keywords for relevance classification
TESLA_KEYWORDS = ["tesla", "cybertruck", "model s", "model 3", "model x", "model y"]

VANDALISM_KEYWORDS = [
    "vandalism", "vandalized", "damaged", "keyed",
    "scratched", "broken", "smashed", "graffiti",
]

# Target classification keywords, checked in this order
BUILDING_KEYWORDS = ["building", "store", "dealership", "showroom", "supercharger"]
PROPERTY_KEYWORDS = ["property", "sign", "billboard"]

# Damage categories: tag -> (any of these terms, and at least one of these qualifiers)
DAMAGE_KEYWORDS = {
    "keying": (["key", "scratch"], None),
    "broken_windows": (["window"], ["break", "broke", "broken", "smash"]),
    "graffiti": (["graffiti", "spray", "paint"], None),
    "tire_slashing": (["tire", "tyre", "slash"], None),
    "arson": (["fire", "burn", "arson"], None),
    "denting": (["dent", "hit", "smash"], None),
}
DEFAULT_DAMAGE_TYPE = "other_damage"

VEHICLE_MAKE = "Tesla"
DEFAULT_COUNTRY = "US"
FIRST_MODEL_YEAR = 2008

# Relevance thresholds for the keyword analyzer
RELEVANCE_THRESHOLD = 0.7
VANDALISM_THRESHOLD = 0.8

# Deduplication settings
DEDUP_CONFIG = {
    "duplicate_threshold": 0.85,   # above this the post is merged into the case
    "related_threshold": 0.6,      # above this a possible_duplicate link is made
    "candidate_limit": 10,
    "time_proximity_hours": 48,
}

# Similarity weights
SIMILARITY_WEIGHTS = {
    "city": 0.3,
    "state": 0.1,
    "target_type": 0.2,
    "vehicle_model": 0.2,
    "damage_type": 0.2,
    "time_proximity": 0.2,
}

# Monitoring
DEFAULT_HASHTAG = "#TeslaJustice"
MONITORING_INTERVAL_MINUTES = int(os.getenv("MONITORING_INTERVAL_MINUTES", "60"))
MONITORING_REQUEST_DELAY = float(os.getenv("MONITORING_REQUEST_DELAY", "1.0"))
SEARCH_RESULT_COUNT = 20

# Twitter search API (RapidAPI-style twitter241 endpoint)
TWITTER_API_URL = os.getenv("TWITTER_API_URL", "https://twitter241.p.rapidapi.com")
TWITTER_API_HOST = os.getenv("TWITTER_API_HOST", "twitter241.p.rapidapi.com")
TWITTER_API_KEY = os.getenv("TWITTER_API_KEY", "")
TWITTER_TIMEOUT = 30

# Start the monitoring scheduler together with the API server
MONITORING_AUTOSTART = os.getenv("MONITORING_AUTOSTART", "0").lower() in ("1", "true", "yes")
