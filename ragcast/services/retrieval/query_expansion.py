"""Synonym-based query expansion.

A question is normalized, tokenized, and matched against the token and
phrase synonym maps of a :class:`~ragcast.models.rag.QueryExpansionRules`.
Matched synonym phrases are appended to the normalized question so both
the lexical and vector indexes see them:

    rules.token_synonyms == {"car": ["automobile"]}
    expand_query("Car  issues?", rules)  ->  "Car issues? automobile"
"""

from __future__ import annotations

from ragcast.models.rag import QueryExpansionRules, normalize_query
from ragcast.services.retrieval.lexical_index import tokenize


def token_variants(token: str) -> list[str]:
    """Return the lookup forms of *token*: raw, without apostrophes, singular.

    The singular form only strips a trailing ``s`` from tokens longer than
    three characters, so "gas" and "bus" are left alone.
    """
    variants = [token, token.replace("'", "")]
    if token.endswith("s") and len(token) > 3:
        variants.append(token[:-1])
    return [v for v in dict.fromkeys(variants) if v]


def expand_query(query: str, rules: QueryExpansionRules | None) -> str:
    """Return the normalized *query* with matched synonym phrases appended.

    Phrases are collected from token matches first, then phrase matches,
    de-duplicated in first-seen order, and capped at
    ``rules.max_extra_phrases``.  With no rules or no matches the result is
    just the normalized query.
    """
    normalized = normalize_query(query)
    if rules is None:
        return normalized

    phrases: dict[str, None] = {}
    for token in tokenize(normalized):
        for variant in token_variants(token):
            for phrase in rules.token_synonyms.get(variant, ()):
                phrases.setdefault(phrase, None)

    haystack = f" {normalized.lower()} "
    for phrase, adds in rules.phrase_synonyms.items():
        needle = normalize_query(phrase).lower()
        if not needle or f" {needle} " not in haystack:
            continue
        for add in adds:
            phrases.setdefault(add, None)

    extra = list(phrases)[: rules.max_extra_phrases]
    if not extra:
        return normalized
    return normalize_query(f"{normalized} {' '.join(extra)}")
