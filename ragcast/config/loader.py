"""Query expansion rules loader.

# ─── RULES FILE FORMAT ─────────────────────────────────────────────────
#
# The file named by QUERY_EXPANSIONS_PATH is YAML (JSON is valid YAML, so
# .json files load too).  Both camelCase and snake_case keys are accepted:
#
#   maxExtraPhrases: 8
#   tokenSynonyms:
#     car: [automobile, vehicle]
#   phraseSynonyms:
#     machine learning: [ML, statistical learning]
#
# Keys are lower-cased, values whitespace-normalized, and non-string
# entries dropped (see QueryExpansionRules).  A missing or unreadable file
# falls back to the default rules with a warning instead of failing
# startup.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import structlog
import yaml

from ragcast.models.rag import QueryExpansionRules

logger = structlog.get_logger(logger_name=__name__)


def load_query_expansions(path: str | None) -> QueryExpansionRules:
    """Load expansion rules from *path*, or return the defaults.

    Args:
        path: Path to a YAML/JSON rules file.  Empty or ``None`` means no
            file is configured.

    Returns:
        The parsed rules, or empty rules when the file is absent or invalid.
    """
    if not path:
        return QueryExpansionRules()

    rules_path = Path(path)
    if not rules_path.exists():
        logger.warning("query_expansions_missing", path=str(rules_path))
        return QueryExpansionRules()

    try:
        with open(rules_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("query_expansions_unreadable", path=str(rules_path), error=str(exc))
        return QueryExpansionRules()

    rules = QueryExpansionRules.from_mapping(raw)
    logger.info(
        "query_expansions_loaded",
        path=str(rules_path),
        token_rules=len(rules.token_synonyms),
        phrase_rules=len(rules.phrase_synonyms),
        max_extra_phrases=rules.max_extra_phrases,
    )
    return rules
