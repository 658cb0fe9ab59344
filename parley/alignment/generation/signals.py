"""Signal matching between canned responses and text."""

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from parley.alignment.models import CannedResponse

_WORD = re.compile(r"[a-z0-9]+")

_STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "from",
        "has", "have", "i", "in", "is", "it", "its", "of", "on", "or", "our",
        "that", "the", "their", "this", "to", "was", "we", "will", "with",
        "you", "your",
    }
)


def _stem(word: str) -> str:
    for suffix in ("ing", "ed", "s"):
        if len(word) > len(suffix) + 3 and word.endswith(suffix) and not word.endswith("ss"):
            word = word[: -len(suffix)]
            break
    if len(word) > 4 and word.endswith("e"):
        word = word[:-1]
    return word


def _terms(text: str) -> set[str]:
    return {_stem(w) for w in _WORD.findall(text.lower()) if w not in _STOPWORDS}


class SignalMatch(BaseModel):
    """A canned response whose signal matched."""

    canned_response: CannedResponse
    signal: str
    score: float


class SignalMatcher:
    """Scores signals by the share of their words found in a text.

    Matching is deterministic: lowercase, stopwords removed, light suffix
    stemming. A signal matches when its score reaches the threshold. The
    highest score wins; ties go to the earlier canned response.
    """

    def __init__(self, threshold: float = 0.6) -> None:
        self._threshold = threshold

    def score(self, signal: str, text: str) -> float:
        wanted = _terms(signal)
        if not wanted:
            return 0.0
        return len(wanted & _terms(text)) / len(wanted)

    def best_match(
        self,
        candidates: list[CannedResponse],
        text: str,
        values: Mapping[str, Any] | None = None,
    ) -> SignalMatch | None:
        """Best-scoring candidate whose signal matches the text.

        Args:
            candidates: Canned responses in store order
            text: Text to match signals against
            values: When given, candidates that cannot render are skipped

        Returns:
            SignalMatch, or None
        """
        text_terms = _terms(text)
        best: SignalMatch | None = None

        for canned in candidates:
            if values is not None and not canned.can_render(values):
                continue
            for signal in canned.signals:
                wanted = _terms(signal)
                if not wanted:
                    continue
                score = len(wanted & text_terms) / len(wanted)
                if score >= self._threshold and (best is None or score > best.score):
                    best = SignalMatch(canned_response=canned, signal=signal, score=score)

        return best
