"""
Keyword extraction rules, one per stage.

Every rule takes the lower-cased recognized text plus the fields collected so
far and returns a dict of fields to merge, or None when the turn did not
yield a usable answer. Speech-to-text output is noisy, so matching is plain
substring membership over small phrase sets. A rule never guesses between
two positive signals: if cues for more than one value are heard, the rule
fails and the caller is asked again.
"""
import re
from typing import Optional

# ── Category ───────────────────────────────────────────────────────────

DOMESTIC_HINTS = ("home", "house", "flat", "apartment", "studio", "tenancy", "move out", "landlord")
COMMERCIAL_HINTS = (
    "office", "shop", "warehouse", "school", "clinic", "gym",
    "venue", "site", "business", "restaurant", "workplace",
)

# Direct answers to "home or business?", matched on whole words only
DOMESTIC_DIRECT = ("domestic", "residential", "private")
COMMERCIAL_DIRECT = ("commercial", "corporate", "company")

# ── Service type ───────────────────────────────────────────────────────

SERVICE_TYPE_CUES = {
    "end_of_tenancy": ("end of tenancy", "end-of-tenancy", "tenancy", "move out", "moving out", "move-out"),
    "deep_clean": ("deep clean", "deep-clean", "deep"),
    "regular": ("regular", "weekly", "routine", "maintenance", "standard clean"),
    "post_construction": ("post construction", "post-construction", "construction", "builders", "renovation"),
    "disinfection": ("disinfect", "sanitis", "sanitiz", "sanitation", "covid", "virus"),
}
COMMERCIAL_SERVICE_TYPES = ("deep_clean", "regular", "post_construction", "disinfection")
DOMESTIC_SERVICE_TYPES = ("end_of_tenancy",) + COMMERCIAL_SERVICE_TYPES

# ── Job type (commercial cadence) ──────────────────────────────────────

JOB_TYPE_CUES = {
    "one_time": ("one-off", "one off", "oneoff", "one time", "one-time", "just once", "only once", "single clean"),
    "regular": (
        "regular", "weekly", "fortnightly", "monthly", "every week", "a week", "per week",
        "ongoing", "contract", "recurring", "daily", "every day",
    ),
}

# ── Property type ──────────────────────────────────────────────────────

DOMESTIC_PROPERTY_CUES = {
    "flat": ("flat", "apartment"),
    "house": ("house",),
    "studio": ("studio",),
    "bungalow": ("bungalow",),
    "maisonette": ("maisonette",),
}
COMMERCIAL_PROPERTY_CUES = {
    "office": ("office",),
    "retail": ("shop", "retail", "store"),
    "warehouse": ("warehouse",),
    "school": ("school", "nursery"),
    "clinic": ("clinic", "surgery", "medical"),
    "gym": ("gym",),
    "restaurant": ("restaurant", "cafe", "kitchen"),
    "venue": ("venue", "hall"),
}

UK_POSTCODE_RE = re.compile(r"\b([a-z]{1,2}\d[a-z\d]?)\s*(\d[a-z]{2})\b", re.IGNORECASE)

# ── Room counts ────────────────────────────────────────────────────────

NUMBER_WORDS = {
    "a": 1, "an": 1, "no": 0, "zero": 0,
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
}
ROOM_FIELDS = {
    "bed": "bedrooms",
    "bath": "bathrooms",
    "toilet": "toilets",
    "loo": "toilets",
    "wc": "toilets",
    "kitchen": "kitchens",
}
UNIT_WORDS = ("one", "two", "three", "four", "five", "six", "seven", "eight", "nine")
# "twenty one" must be tried before a bare "twenty" or the unit would be read alone
_COMPOUND_NUMBER = r"twenty[\s-]+(?:" + "|".join(UNIT_WORDS) + r")"
_ROOM_RE = re.compile(
    r"\b(\d+|" + _COMPOUND_NUMBER + "|" + "|".join(NUMBER_WORDS) + r")[\s-]+"
    r"(?:(?:double|small|large|big|separate|extra)\s+)?"
    r"(bed|bath|toilet|loo|wc|kitchen)(?:room)?s?\b"
)


def _matching_values(text: str, cues: dict, allowed=None) -> set:
    """Canonical values whose cue phrases occur in text."""
    found = set()
    for value, phrases in cues.items():
        if allowed is not None and value not in allowed:
            continue
        if any(phrase in text for phrase in phrases):
            found.add(value)
    return found


def _single(values: set) -> Optional[str]:
    if len(values) == 1:
        return next(iter(values))
    return None


def _has_word(text: str, words) -> bool:
    return any(re.search(rf"\b{re.escape(word)}\b", text) for word in words)


def detect_category(text: str) -> Optional[str]:
    """
    Classify the premises as domestic or commercial.

    The broad hint sets are tried first. If exactly one side is mentioned it
    wins; if both are mentioned the answer is ambiguous and nothing is
    returned. Only when neither side is mentioned are the direct answers
    ("domestic", "commercial", ...) checked as whole words.
    """
    mentioned_domestic = any(hint in text for hint in DOMESTIC_HINTS)
    mentioned_commercial = any(hint in text for hint in COMMERCIAL_HINTS)

    if mentioned_domestic and not mentioned_commercial:
        return "domestic"
    if mentioned_commercial and not mentioned_domestic:
        return "commercial"
    if mentioned_domestic and mentioned_commercial:
        return None

    said_domestic = _has_word(text, DOMESTIC_DIRECT)
    said_commercial = _has_word(text, COMMERCIAL_DIRECT)
    if said_domestic and not said_commercial:
        return "domestic"
    if said_commercial and not said_domestic:
        return "commercial"
    return None


def detect_service_type(text: str, category: str) -> Optional[str]:
    allowed = COMMERCIAL_SERVICE_TYPES if category == "commercial" else DOMESTIC_SERVICE_TYPES
    return _single(_matching_values(text, SERVICE_TYPE_CUES, allowed))


def detect_job_type(text: str) -> Optional[str]:
    return _single(_matching_values(text, JOB_TYPE_CUES))


def detect_property_type(text: str, category: str) -> Optional[str]:
    cues = COMMERCIAL_PROPERTY_CUES if category == "commercial" else DOMESTIC_PROPERTY_CUES
    return _single(_matching_values(text, cues))


def find_postcode(text: str) -> Optional[str]:
    """Return the first UK postcode in text, normalised to 'SW1A 1AA' form."""
    match = UK_POSTCODE_RE.search(text)
    if not match:
        return None
    return f"{match.group(1)} {match.group(2)}".upper()


def _spoken_number(words: str) -> int:
    return sum(NUMBER_WORDS[word] for word in re.split(r"[\s-]+", words))


def parse_room_counts(text: str) -> dict:
    """Extract room counts like 'three bedrooms and two bathrooms'."""
    counts = {}
    for number, room in _ROOM_RE.findall(text):
        count = int(number) if number.isdigit() else _spoken_number(number)
        counts[ROOM_FIELDS[room]] = count
    return counts


# ── Stage rules ────────────────────────────────────────────────────────

def extract_category(text: str, data: dict) -> Optional[dict]:
    category = detect_category(text)
    if category is None:
        return None
    return {"service_category": category}


def extract_service_type(text: str, data: dict) -> Optional[dict]:
    category = data.get("service_category", "domestic")
    service_type = detect_service_type(text, category)
    if service_type is None:
        return None
    return {f"{category}_service_type": service_type}


def extract_job_type(text: str, data: dict) -> Optional[dict]:
    job_type = detect_job_type(text)
    if job_type is None:
        return None
    return {"job_type": job_type}


def extract_property_and_postcode(text: str, data: dict) -> Optional[dict]:
    """Accepts any non-empty answer; postcode and property type are best effort."""
    if not text.strip():
        return None

    fields = {"property_and_postcode": text.strip()}

    postcode = find_postcode(text)
    if postcode:
        fields["postcode"] = postcode

    category = data.get("service_category", "domestic")
    property_type = detect_property_type(text, category)
    if property_type:
        fields[f"{category}_property_type"] = property_type

    return fields


def extract_rooms(text: str, data: dict) -> Optional[dict]:
    counts = parse_room_counts(text)
    return counts or None


STAGE_RULES = {
    "need_category": extract_category,
    "need_service_type": extract_service_type,
    "need_job_type": extract_job_type,
    "need_property_and_postcode": extract_property_and_postcode,
    "need_rooms": extract_rooms,
}
