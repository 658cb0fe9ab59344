"""Glossary term spotting."""

import re
from functools import lru_cache

from parley.alignment.models import GlossaryTerm


@lru_cache(maxsize=1024)
def term_pattern(name: str) -> re.Pattern[str]:
    """Whole-word, case-insensitive pattern for a term name."""
    return re.compile(rf"(?<!\w){re.escape(name)}(?!\w)", re.IGNORECASE)


class GlossaryMatcher:
    """Find glossary terms mentioned in conversation text.

    A term matches when its name or any synonym appears as a whole word,
    ignoring case.
    """

    def find_terms(self, terms: list[GlossaryTerm], texts: list[str]) -> list[GlossaryTerm]:
        """Return the mentioned terms in definition order."""
        if not terms or not texts:
            return []
        haystack = "\n".join(texts)
        return [
            term
            for term in terms
            if any(term_pattern(name).search(haystack) for name in term.all_names)
        ]
