"""Retrieval data models: chunks, query expansion rules, and answers.

All models are Pydantic v2 and frozen; a chunk never changes after the
chunker emits it, and expansion rules are fixed once a retriever is built.

Chunk metadata is a small fixed schema (ordinal, source type, display
label, access level) plus an ``extra`` map for values whose keys are not
known up front, such as the transcription model or the source descriptor.
Filters and fingerprints operate on the flattened view returned by
:meth:`ChunkMetadata.flat`.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_WHITESPACE_RE = re.compile(r"\s+")

# Number of leading content characters that participate in the fingerprint.
_FINGERPRINT_PREFIX = 100

DEFAULT_MAX_EXTRA_PHRASES = 8


def normalize_query(text: str) -> str:
    """Fold curly apostrophes, trim, and collapse internal whitespace."""
    text = text.replace("’", "'").replace("‘", "'")
    return _WHITESPACE_RE.sub(" ", text.strip())


# ---------------------------------------------------------------------------
# Chunk: the unit of retrieval.
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Metadata attached to every transcript chunk."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0, description="Zero-based ordinal within the document.")
    source_type: str = Field(default="unknown", description='e.g. "audio".')
    source_display: str = Field(
        default="Unknown Source",
        description='Human-readable source label, e.g. "Audio Transcript".',
    )
    access_level: str = Field(default="public", description="Used by retrieval filters.")
    extra: dict[str, Any] = Field(default_factory=dict)

    def flat(self) -> dict[str, Any]:
        """Return fixed fields and ``extra`` merged into one mapping.

        Fixed fields win over ``extra`` keys of the same name.
        """
        merged = dict(self.extra)
        merged.update(
            chunk_index=self.chunk_index,
            source_type=self.source_type,
            source_display=self.source_display,
            access_level=self.access_level,
        )
        return merged


class Chunk(BaseModel):
    """A contiguous span of transcript text with its metadata."""

    model_config = ConfigDict(frozen=True)

    text: str
    metadata: ChunkMetadata

    @property
    def fingerprint(self) -> str:
        """Deduplication key: content prefix plus sorted metadata pairs.

        Two chunks with identical content and metadata share a fingerprint
        regardless of which index returned them.
        """
        flat = self.metadata.flat()
        pairs = [[key, flat[key]] for key in sorted(flat)]
        return f"{self.text[:_FINGERPRINT_PREFIX]}|{json.dumps(pairs, default=str)}"


# ---------------------------------------------------------------------------
# Query expansion rules
# ---------------------------------------------------------------------------
class QueryExpansionRules(BaseModel):
    """Synonym rules appended to a query before retrieval.

    ``token_synonyms`` maps a single lower-case token to extra phrases;
    ``phrase_synonyms`` maps a multi-word phrase to extra phrases.  At most
    ``max_extra_phrases`` phrases are appended to any one query.
    """

    model_config = ConfigDict(frozen=True)

    max_extra_phrases: int = Field(default=DEFAULT_MAX_EXTRA_PHRASES, ge=0)
    token_synonyms: dict[str, list[str]] = Field(default_factory=dict)
    phrase_synonyms: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("token_synonyms", "phrase_synonyms", mode="before")
    @classmethod
    def _clean_synonym_map(cls, value: Any) -> dict[str, list[str]]:
        if not isinstance(value, dict):
            return {}
        cleaned: dict[str, list[str]] = {}
        for key, adds in value.items():
            if not isinstance(key, str) or not isinstance(adds, list):
                continue
            phrases = [normalize_query(a) for a in adds if isinstance(a, str)]
            phrases = [p for p in phrases if p]
            if phrases:
                cleaned[key.lower()] = phrases
        return cleaned

    @classmethod
    def from_mapping(cls, raw: Any) -> QueryExpansionRules:
        """Build rules from loosely-typed JSON/YAML data.

        Accepts both ``maxExtraPhrases``/``tokenSynonyms``/``phraseSynonyms``
        (the wire format used by clients) and snake_case keys.  Anything
        that is not a mapping yields the default (empty) rules.
        """
        if not isinstance(raw, dict):
            return cls()

        max_raw = raw.get("maxExtraPhrases", raw.get("max_extra_phrases"))
        if isinstance(max_raw, (int, float)) and not isinstance(max_raw, bool):
            max_extra = (
                max(0, int(max_raw)) if math.isfinite(max_raw) else DEFAULT_MAX_EXTRA_PHRASES
            )
        else:
            max_extra = DEFAULT_MAX_EXTRA_PHRASES

        return cls(
            max_extra_phrases=max_extra,
            token_synonyms=raw.get("tokenSynonyms", raw.get("token_synonyms", {})),
            phrase_synonyms=raw.get("phraseSynonyms", raw.get("phrase_synonyms", {})),
        )


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------
class AskResult(BaseModel):
    """An answer produced from retrieved transcript context."""

    model_config = ConfigDict(frozen=True)

    answer: str
    sources: list[Chunk] = Field(default_factory=list)
