from __future__ import annotations

import re
from typing import Dict, List, Set, Tuple

MODEL_TOKEN_PATTERN = re.compile(r"[a-z0-9\-]+")
NON_WORD_PATTERN = re.compile(r"[\W_]+")
LETTER_PATTERN = re.compile(r"[a-z]")
DIGIT_PATTERN = re.compile(r"\d")

STOPWORDS = {
    "dan",
    "dengan",
    "yang",
    "untuk",
    "di",
    "ke",
    "dari",
    "itu",
    "ini",
    "the",
    "of",
    "a",
    "an",
    "to",
    "on",
    "in",
    "by",
    "or",
    "as",
}
SYNONYMS: Dict[str, List[str]] = {
    "sabuk": ["ikat", "pinggang", "gesper", "belt"],
    "gesper": ["sabuk", "ikat", "pinggang", "belt"],
    "cowo": ["cowok", "pria", "laki", "laki-laki", "lk", "men", "male"],
    "pria": ["cowo", "cowok", "laki", "laki-laki", "men", "male"],
}
PHRASE_SYNONYMS: Dict[str, List[str]] = {
    "tanpa lubang": ["no hole", "no-hole", "ratchet", "otomatis", "automatic"],
}
CATEGORY_TERMS = {"sabuk", "gesper", "belt", "ikat", "pinggang"}
PREFIX_LENGTH = 5


def tokenize(text: str) -> List[str]:
    cleaned = NON_WORD_PATTERN.sub(" ", (text or "").lower())
    return [token for token in cleaned.split() if token]


def flatten(text: str) -> str:
    return NON_WORD_PATTERN.sub("", (text or "").lower())


def extract_model_token(query: str) -> str:
    """Longest token mixing letters and digits ("rx580", "a54-5g"); "" when none."""
    tokens = [
        token
        for token in MODEL_TOKEN_PATTERN.findall((query or "").lower())
        if LETTER_PATTERN.search(token) and DIGIT_PATTERN.search(token)
    ]
    if not tokens:
        return ""
    return max(tokens, key=len)


def score_model_mode(query: str, title: str) -> int:
    title_lower = (title or "").lower()
    model = extract_model_token(query)
    model_flat = flatten(model)
    title_flat = flatten(title)

    score = 0
    if model and model in title_lower:
        score += 3
    if model_flat and model_flat in title_flat:
        score += 3
    if len(model_flat) >= PREFIX_LENGTH and model_flat[:PREFIX_LENGTH] in title_flat:
        score += 2

    query_words = set((query or "").lower().split())
    title_words = set(title_lower.split())
    if len(query_words & title_words) >= 2:
        score += 1
    return score


def _expansion_groups(terms: List[str]) -> List[Set[str]]:
    # one group per query term; a term inside a triggered phrase also accepts the phrase alternates
    joined = " ".join(terms)
    phrase_alternates: Dict[str, List[str]] = {}
    for phrase, alternates in PHRASE_SYNONYMS.items():
        if phrase in joined:
            for word in phrase.split():
                phrase_alternates.setdefault(word, []).extend(alternates)

    groups: List[Set[str]] = []
    for term in terms:
        group = {term}
        group.update(SYNONYMS.get(term, []))
        group.update(phrase_alternates.get(term, []))
        groups.append(group)
    return groups


def expand_terms(terms: List[str]) -> List[str]:
    expanded: List[str] = []
    for group in _expansion_groups(terms):
        for term in sorted(group):
            if term not in expanded:
                expanded.append(term)
    return expanded


def text_sim_generic(query: str, title: str) -> Tuple[int, float]:
    """
    Returns (match, ratio).

    match counts distinct expanded query terms found among the title tokens.
    ratio does not divide match by the expanded term count: its numerator is
    the number of query terms satisfied by themselves or one of their synonyms,
    over the number of query terms. A long synonym list therefore never dilutes
    a full match, and the two values are not derived from each other.
    """
    terms = [token for token in tokenize(query) if token not in STOPWORDS]
    groups = _expansion_groups(terms)
    title_tokens = set(tokenize(title))

    match = sum(1 for term in expand_terms(terms) if term in title_tokens)
    satisfied = sum(1 for group in groups if group & title_tokens)
    ratio = satisfied / max(1, len(groups))
    return match, ratio


def has_category_term(query: str, title: str) -> bool:
    if not any(token in CATEGORY_TERMS for token in tokenize(query)):
        return False
    return bool(CATEGORY_TERMS & set(tokenize(title)))
