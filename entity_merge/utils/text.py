"""Text processing utility functions for name comparison."""

import re

# Curly/smart quotes and look-alikes mapped to their straight equivalents
QUOTE_TRANSLATION = str.maketrans({
    "‘": "'",  # left single quotation mark
    "’": "'",  # right single quotation mark
    "‚": "'",  # single low-9 quotation mark
    "‛": "'",  # single high-reversed-9 quotation mark
    "′": "'",  # prime
    "´": "'",  # acute accent
    "`": "'",
    "“": '"',  # left double quotation mark
    "”": '"',  # right double quotation mark
    "„": '"',  # double low-9 quotation mark
    "‟": '"',  # double high-reversed-9 quotation mark
    "″": '"',  # double prime
})

_DISALLOWED_CHARS = re.compile(r"[^\w\s'-]")
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_name(name: str | None) -> str:
    """Normalize an entity display name for comparison.

    Applies the following transformations:
    - Converts to lowercase and strips surrounding whitespace
    - Maps curly/smart quotes to straight quotes
    - Removes everything except word characters, whitespace, hyphens and apostrophes
    - Collapses whitespace runs to a single space

    The function is total and idempotent: ``normalize_name(normalize_name(s)) == normalize_name(s)``.

    Args:
        name: The name to normalize

    Returns:
        Normalized name string, or empty string if input is empty/None
    """
    if not name:
        return ""

    text = name.lower().strip()
    text = text.translate(QUOTE_TRANSLATION)
    text = _DISALLOWED_CHARS.sub("", text)
    text = _WHITESPACE_RUN.sub(" ", text)

    # Stripping punctuation can expose leading/trailing spaces
    return text.strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost edit distance (insert, delete, substitute) between two strings."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Keep the shorter string in the inner loop
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current

    return previous[-1]


def name_similarity(a: str | None, b: str | None) -> float:
    """Normalized edit-distance similarity between two names, in [0, 1].

    Both names are normalized first. Identical normalized forms (including two
    empty strings) score 1.0; otherwise the score is
    ``1 - distance / max(len(a), len(b))``.
    """
    norm_a = normalize_name(a)
    norm_b = normalize_name(b)

    if norm_a == norm_b:
        return 1.0

    max_len = max(len(norm_a), len(norm_b))
    distance = levenshtein_distance(norm_a, norm_b)
    return 1.0 - distance / max_len
