"""
Text analysis for query construction and indexing.

Two analyzers are available, selected once per run:

    std      StandardTokenizer: word split + lowercasing
    english  EnglishTokenizer: word split, possessive removal, lowercasing,
             Lucene English stopwords, Porter stemming

Both are plain callables ``text -> list[str]`` that keep token order and
duplicates.

Usage:
    from ranking_expanded.analysis import get_tokenizer

    tokenizer = get_tokenizer("english")
    tokenizer("The quick brown foxes")  # ['quick', 'brown', 'fox']
"""

from __future__ import annotations

import re
from collections.abc import Callable

from ranking_expanded.errors import ConfigurationError

# Lucene's EnglishAnalyzer default stop set (33 words)
LUCENE_STOPWORDS: frozenset[str] = frozenset(
    [
        "a",
        "an",
        "and",
        "are",
        "as",
        "at",
        "be",
        "but",
        "by",
        "for",
        "if",
        "in",
        "into",
        "is",
        "it",
        "no",
        "not",
        "of",
        "on",
        "or",
        "such",
        "that",
        "the",
        "their",
        "then",
        "there",
        "these",
        "they",
        "this",
        "to",
        "was",
        "will",
        "with",
    ]
)

_TOKEN_PATTERN = re.compile(r"\w+(?:['’]\w+)*")
_POSSESSIVE_SUFFIXES = ("'s", "’s")


# =============================================================================
# Porter Stemmer
# =============================================================================


class PorterStemmer:
    """
    The classic Porter (1980) stemming algorithm.

    Follows the reference implementation used by Lucene's PorterStemFilter,
    including its two departures from the paper (``bli -> ble`` in place of
    ``abli -> able``, and the extra ``logi -> log`` rule).
    """

    _STEP2 = (
        ("ational", "ate"),
        ("tional", "tion"),
        ("enci", "ence"),
        ("anci", "ance"),
        ("izer", "ize"),
        ("bli", "ble"),
        ("alli", "al"),
        ("entli", "ent"),
        ("eli", "e"),
        ("ousli", "ous"),
        ("ization", "ize"),
        ("ation", "ate"),
        ("ator", "ate"),
        ("alism", "al"),
        ("iveness", "ive"),
        ("fulness", "ful"),
        ("ousness", "ous"),
        ("aliti", "al"),
        ("iviti", "ive"),
        ("biliti", "ble"),
        ("logi", "log"),
    )

    _STEP3 = (
        ("icate", "ic"),
        ("ative", ""),
        ("alize", "al"),
        ("iciti", "ic"),
        ("ical", "ic"),
        ("ful", ""),
        ("ness", ""),
    )

    _STEP4 = (
        "al",
        "ance",
        "ence",
        "er",
        "ic",
        "able",
        "ible",
        "ant",
        "ement",
        "ment",
        "ent",
        "ion",
        "ou",
        "ism",
        "ate",
        "iti",
        "ous",
        "ive",
        "ize",
    )

    def stem(self, word: str) -> str:
        if len(word) <= 2:
            return word
        word = self._step1a(word)
        word = self._step1b(word)
        word = self._step1c(word)
        word = self._replace_first(word, self._STEP2)
        word = self._replace_first(word, self._STEP3)
        word = self._step4(word)
        word = self._step5(word)
        return word

    # -------------------------------------------------------------------------
    # Word shape helpers
    # -------------------------------------------------------------------------

    def _is_consonant(self, word: str, i: int) -> bool:
        ch = word[i]
        if ch in "aeiou":
            return False
        if ch == "y":
            return i == 0 or not self._is_consonant(word, i - 1)
        return True

    def _measure(self, stem: str) -> int:
        """Number of VC sequences in ``[C](VC)^m[V]``."""
        m = 0
        previous_vowel = False
        for i in range(len(stem)):
            consonant = self._is_consonant(stem, i)
            if consonant and previous_vowel:
                m += 1
            previous_vowel = not consonant
        return m

    def _has_vowel(self, stem: str) -> bool:
        return any(not self._is_consonant(stem, i) for i in range(len(stem)))

    def _ends_double_consonant(self, word: str) -> bool:
        return (
            len(word) >= 2
            and word[-1] == word[-2]
            and self._is_consonant(word, len(word) - 1)
        )

    def _ends_cvc(self, word: str) -> bool:
        if len(word) < 3:
            return False
        i = len(word) - 1
        return (
            self._is_consonant(word, i - 2)
            and not self._is_consonant(word, i - 1)
            and self._is_consonant(word, i)
            and word[i] not in "wxy"
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _step1a(self, word: str) -> str:
        if word.endswith("sses") or word.endswith("ies"):
            return word[:-2]
        if word.endswith("ss"):
            return word
        if word.endswith("s"):
            return word[:-1]
        return word

    def _step1b(self, word: str) -> str:
        if word.endswith("eed"):
            if self._measure(word[:-3]) > 0:
                return word[:-1]
            return word

        for suffix in ("ed", "ing"):
            if word.endswith(suffix):
                stem = word[: -len(suffix)]
                if not self._has_vowel(stem):
                    return word
                if stem.endswith(("at", "bl", "iz")):
                    return stem + "e"
                if self._ends_double_consonant(stem) and stem[-1] not in "lsz":
                    return stem[:-1]
                if self._measure(stem) == 1 and self._ends_cvc(stem):
                    return stem + "e"
                return stem
        return word

    def _step1c(self, word: str) -> str:
        if word.endswith("y") and self._has_vowel(word[:-1]):
            return word[:-1] + "i"
        return word

    def _replace_first(self, word: str, rules: tuple[tuple[str, str], ...]) -> str:
        # Only the first matching suffix is considered, even when its
        # measure condition fails.
        for suffix, replacement in rules:
            if word.endswith(suffix):
                stem = word[: -len(suffix)]
                if self._measure(stem) > 0:
                    return stem + replacement
                return word
        return word

    def _step4(self, word: str) -> str:
        for suffix in self._STEP4:
            if not word.endswith(suffix):
                continue
            stem = word[: -len(suffix)]
            if suffix == "ion" and not stem.endswith(("s", "t")):
                continue
            if self._measure(stem) > 1:
                return stem
            return word
        return word

    def _step5(self, word: str) -> str:
        if word.endswith("e"):
            stem = word[:-1]
            m = self._measure(stem)
            if m > 1 or (m == 1 and not self._ends_cvc(stem)):
                word = stem
        if word.endswith("ll") and self._measure(word) > 1:
            word = word[:-1]
        return word


# =============================================================================
# Tokenizers
# =============================================================================


class StandardTokenizer:
    """Basic analyzer: word tokens, lowercased, nothing removed."""

    name = "std"

    def __call__(self, text: str) -> list[str]:
        return _TOKEN_PATTERN.findall(text.lower())


class EnglishTokenizer:
    """
    Language-aware analyzer mirroring Lucene's EnglishAnalyzer.

    Applies:
    - Tokenization on word boundaries
    - Possessive ('s) removal
    - Lowercasing
    - English stopword removal (33 words by default)
    - Porter stemming
    """

    name = "english"

    def __init__(
        self,
        stopwords: frozenset[str] = LUCENE_STOPWORDS,
        stem: bool = True,
    ):
        self.stopwords = stopwords
        self._stemmer = PorterStemmer() if stem else None

    def __call__(self, text: str) -> list[str]:
        tokens = []
        for token in _TOKEN_PATTERN.findall(text.lower()):
            if token.endswith(_POSSESSIVE_SUFFIXES):
                token = token[:-2]
            if not token or token in self.stopwords:
                continue
            if self._stemmer is not None:
                token = self._stemmer.stem(token)
            tokens.append(token)
        return tokens


TOKENIZERS: dict[str, Callable[[], Callable[[str], list[str]]]] = {
    "std": StandardTokenizer,
    "english": EnglishTokenizer,
}


def get_tokenizer(name: str) -> Callable[[str], list[str]]:
    """Create the analyzer registered under ``name``."""
    try:
        factory = TOKENIZERS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown analyzer '{name}', expected one of {sorted(TOKENIZERS)}"
        ) from None
    return factory()


__all__ = [
    "LUCENE_STOPWORDS",
    "PorterStemmer",
    "StandardTokenizer",
    "EnglishTokenizer",
    "TOKENIZERS",
    "get_tokenizer",
]
