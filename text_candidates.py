# text_candidates.py
# Pattern-based extraction of place-name candidates from OCR text

import re

# --- Candidate Patterns ---
# Order matters: matches are pooled in this order before dedup/length sort.
STREET_TYPES = r"Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Drive|Dr|Lane|Ln|Way|Place|Pl"
INSTITUTION_NOUNS = (r"University|College|School|Hospital|Medical Center|Library|Museum|Theater|Theatre"
                     r"|Center|Centre|Mall|Plaza|Park|Square|Station|Airport|Terminal")
BUSINESS_NOUNS = r"Restaurant|Cafe|Coffee|Hotel|Inn|Lodge|Bank|Store|Market|Pharmacy|Gas|Station"
GEO_FEATURE_NOUNS = r"Lake|River|Mountain|Beach|Bay|Island|Valley|Canyon|Hill|Bridge"

CANDIDATE_PATTERNS = [
    # Street addresses, e.g. "221 Baker Street"
    re.compile(rf"\d+\s+[A-Z][a-z]+\s+(?:{STREET_TYPES})", re.IGNORECASE),
    # "City, ST" with optional ZIP
    re.compile(r"[A-Z][a-z]{2,}\s*,\s*[A-Z]{2,3}(?:\s+\d{5})?"),
    # Landmark-style names
    re.compile(rf"[A-Z][a-z]+\s+(?:{INSTITUTION_NOUNS})", re.IGNORECASE),
    # Business-style names
    re.compile(rf"[A-Z][a-z]+\s+(?:{BUSINESS_NOUNS})", re.IGNORECASE),
    # Geographic features
    re.compile(rf"[A-Z][a-z]+\s+(?:{GEO_FEATURE_NOUNS})", re.IGNORECASE),
    # Generic proper names: 2-4 capitalized words
    re.compile(r"[A-Z][a-z]{2,}(?:\s+[A-Z][a-z]{2,}){1,3}"),
]

# Looser patterns used only once the ranked candidates are exhausted
SIMPLE_PATTERNS = [
    re.compile(r"[A-Z][a-z]{2,}\s+[A-Z][a-z]{2,}"),
    re.compile(r"[A-Z][a-z]+\s+(?:City|Town|Village)"),
]


def _find_all(pattern, text):
    return [match.group(0).strip() for match in pattern.finditer(text)]


def extract_candidates(text):
    """Returns unique place-name candidates found in text, longest first."""
    if not text:
        return []
    pooled = []
    for pattern in CANDIDATE_PATTERNS:
        pooled.extend(_find_all(pattern, text))

    unique = list(dict.fromkeys(pooled))
    # sorted() is stable, so equal lengths keep first-seen order
    return sorted(unique, key=len, reverse=True)


def extract_simple_candidates(text):
    """Returns the raw matches of each fallback pattern, one list per pattern."""
    if not text:
        return [[] for _ in SIMPLE_PATTERNS]
    return [_find_all(pattern, text) for pattern in SIMPLE_PATTERNS]
