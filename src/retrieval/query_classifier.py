# -*- coding: utf-8 -*-
"""
Query classification for raw-material retrieval.

Classifies a free-form Thai/English query into one of five intents (exact code,
name search, property search, description search, generic) and extracts the
codes, names, and properties the hybrid search strategies need. Rules run in a
fixed order and the first stage that fires decides the intent: (1) material code
families matched by regex, (2) product names found through quotes, trade-name
markers, interrogative phrasing, or a bare capitalized query, (3) curated
benefit/category/description vocabularies. Anything else is generic chit-chat
and must never reach the material store.

All rule tables live in config.retrieval_config so new code families or
keywords can be added without touching this module. Classification is pure
(no I/O, no shared mutable state) and never raises; malformed input degrades to
a generic classification.

The module also hosts fuzzy_match_score(), the single string-similarity
function used across the engine (classifier name de-duplication and the hybrid
fuzzy strategy).

Examples:
    from src.retrieval.query_classifier import classify_query, fuzzy_match_score

    result = classify_query("rm000001 คืออะไร")
    result.query_type            # QueryType.EXACT_CODE
    result.extracted_entities.codes  # ["RM000001"]
    result.language              # Language.MIXED

    result = classify_query("Ginger Extract - DL มีรหัสสารคืออะไร")
    result.query_type            # QueryType.NAME_SEARCH
    result.extracted_entities.names  # ["Ginger Extract - DL"]

    classify_query("hello").is_raw_materials_query  # False

    fuzzy_match_score("Giner Extract", "Ginger Extract")  # ~0.93

References:
    Rule tables: config.retrieval_config (CODE_PATTERNS, PROPERTY_KEYWORDS, ...)
    RapidFuzz: Levenshtein distance for fuzzy_match_score
"""
# Standard library
import logging
import re
from typing import List, Tuple

# Third-party
from rapidfuzz.distance import Levenshtein

# Config imports (direct)
from config.retrieval_config import (
    CAPITALIZED_SPAN_PATTERN,
    INTERROGATIVE_NAME_PATTERNS,
    KEYWORD_EXPANSION,
    LANGUAGE_CONFIG,
    LATIN_CHAR_PATTERN,
    MAX_EXPANDED_QUERIES,
    MIN_NAME_LENGTH,
    MULTI_CODE_CONFIDENCE,
    NAME_AFTER_MARKER_PATTERN,
    NAME_CONFIDENCE,
    NAME_MARKER_PATTERN,
    NAME_STOPWORDS,
    QUOTED_NAME_PATTERNS,
    SEMANTIC_BASE_CONFIDENCE,
    SEMANTIC_MAX_CONFIDENCE,
    SEMANTIC_SIGNAL_BONUS,
    THAI_CHAR_PATTERN,
    WHOLE_QUERY_DOMAIN_PATTERN,
    WHOLE_QUERY_NAME_PATTERN,
    match_code_families,
    parse_categories,
    parse_description_signals,
    parse_properties,
)

# Dataclass imports (direct)
from src.utils.dataclasses import (
    ExtractedEntities,
    Language,
    QueryClassification,
    QueryType,
    SearchStrategy,
)

logger = logging.getLogger(__name__)


# ============================================================================
# FUZZY MATCHING
# ============================================================================

CONTAINMENT_SCORE = 0.8
SINGLE_EDIT_SCORE = 0.85

# Names closer than this are treated as the same mention
NAME_DUPLICATE_THRESHOLD = 0.85


def _normalize_text(text: str) -> str:
    return ' '.join((text or '').lower().split())


def fuzzy_match_score(a: str, b: str) -> float:
    """
    Similarity between two strings in [0, 1].

    Symmetric and case-insensitive (whitespace is trimmed and collapsed).
    Guarantees:
        - identical strings -> 1.0
        - either string empty -> 0.0
        - one string contained in the other -> >= 0.8
        - exactly one insertion/deletion/substitution apart -> >= 0.85
        - otherwise normalized Levenshtein similarity

    Args:
        a: First string.
        b: Second string.

    Returns:
        Similarity score (max over the rules that apply).
    """
    s1 = _normalize_text(a)
    s2 = _normalize_text(b)

    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return 1.0

    score = Levenshtein.normalized_similarity(s1, s2)

    if s1 in s2 or s2 in s1:
        score = max(score, CONTAINMENT_SCORE)

    if Levenshtein.distance(s1, s2, score_cutoff=1) <= 1:
        score = max(score, SINGLE_EDIT_SCORE)

    return min(score, 1.0)


# ============================================================================
# LANGUAGE DETECTION
# ============================================================================

def detect_language(query: str) -> Language:
    """
    Detect dominant script of a query.

    Ratios are computed over non-whitespace characters.

    Args:
        query: User query string.

    Returns:
        Language.THAI, Language.MIXED, or Language.ENGLISH.
    """
    chars = [c for c in query or '' if not c.isspace()]
    if not chars:
        return Language.ENGLISH

    thai_ratio = sum(1 for c in chars if THAI_CHAR_PATTERN.match(c)) / len(chars)
    latin_ratio = sum(1 for c in chars if LATIN_CHAR_PATTERN.match(c)) / len(chars)

    if thai_ratio > LANGUAGE_CONFIG['thai_ratio_threshold']:
        if latin_ratio > LANGUAGE_CONFIG['mixed_latin_ratio_threshold']:
            return Language.MIXED
        return Language.THAI
    return Language.ENGLISH


# ============================================================================
# QUERY CLASSIFIER
# ============================================================================

class QueryClassifier:
    """
    Rule-based classifier for raw-material queries.

    Stateless: one instance can be shared across threads.

    Stages (first hit wins):
    - Code detection -> exact_code / exact_match
    - Name detection -> name_search / fuzzy_match
    - Property, category, description keywords -> semantic_search
    - Fallback -> generic / hybrid, not a raw-materials query
    """

    def classify(self, query: str) -> QueryClassification:
        """
        Classify a query and extract its entities.

        Args:
            query: Free-form user query (Thai, English, or mixed).

        Returns:
            QueryClassification. Never raises.
        """
        if not isinstance(query, str) or not query.strip():
            return self._generic(Language.ENGLISH)

        text = query.strip()
        language = detect_language(text)

        try:
            return self._classify(text, language)
        except re.error as e:
            # A broken rule table must not take the search path down
            logger.error(f"Query classification rule failed: {e}")
            return self._generic(language)

    def _classify(self, text: str, language: Language) -> QueryClassification:
        # Stage 1: material codes
        codes = match_code_families(text)
        if codes:
            names, name_patterns = self.extract_names(text)
            names = [n for n in names if not match_code_families(n)]
            if not names:
                name_patterns = []
            code_values = [code for code, _, _ in codes]
            families = [family for _, family, _ in codes]
            confidence = codes[0][2] if len(codes) == 1 else MULTI_CODE_CONFIDENCE

            logger.debug(f"Exact-code query: codes={code_values}, families={families}")
            return QueryClassification(
                is_raw_materials_query=True,
                query_type=QueryType.EXACT_CODE,
                confidence=confidence,
                search_strategy=SearchStrategy.EXACT_MATCH,
                extracted_entities=ExtractedEntities(codes=code_values, names=names),
                language=language,
                detected_patterns=[f"code:{f}" for f in dict.fromkeys(families)] + name_patterns,
                expanded_queries=self.expand_query(text, code_values),
                code_families=families,
            )

        # Stage 2: product names
        names, name_patterns = self.extract_names(text)
        if names:
            logger.debug(f"Name query: names={names}")
            return QueryClassification(
                is_raw_materials_query=True,
                query_type=QueryType.NAME_SEARCH,
                confidence=NAME_CONFIDENCE,
                search_strategy=SearchStrategy.FUZZY_MATCH,
                extracted_entities=ExtractedEntities(names=names),
                language=language,
                detected_patterns=name_patterns,
                expanded_queries=self.expand_query(text),
            )

        # Stage 3: properties, categories, descriptions
        properties, patterns, query_type = self.extract_properties(text)
        if query_type is not None:
            signals = len(patterns)
            confidence = min(
                SEMANTIC_BASE_CONFIDENCE + SEMANTIC_SIGNAL_BONUS * (signals - 1),
                SEMANTIC_MAX_CONFIDENCE,
            )
            logger.debug(f"{query_type.value} query: properties={properties}")
            return QueryClassification(
                is_raw_materials_query=True,
                query_type=query_type,
                confidence=confidence,
                search_strategy=SearchStrategy.SEMANTIC_SEARCH,
                extracted_entities=ExtractedEntities(properties=properties),
                language=language,
                detected_patterns=patterns,
                expanded_queries=self.expand_query(text, properties=properties),
            )

        return self._generic(language)

    # ------------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------------

    def extract_names(self, text: str) -> Tuple[List[str], List[str]]:
        """
        Find product-name mentions.

        Args:
            text: Stripped query.

        Returns:
            (names, detected pattern labels)
        """
        found: List[Tuple[str, str]] = []

        for pattern in QUOTED_NAME_PATTERNS:
            for match in pattern.finditer(text):
                found.append((match.group(1), 'name:quoted'))

        if NAME_MARKER_PATTERN.search(text):
            spans = CAPITALIZED_SPAN_PATTERN.findall(text)
            cleaned = [s for s in (_clean_name(span) for span in spans) if s]
            if cleaned:
                found.extend((name, 'name:marker') for name in cleaned)
            else:
                match = NAME_AFTER_MARKER_PATTERN.search(text)
                if match:
                    found.append((match.group('name'), 'name:marker'))

        for pattern in INTERROGATIVE_NAME_PATTERNS:
            for match in pattern.finditer(text):
                found.append((match.group('name'), 'name:interrogative'))

        whole = WHOLE_QUERY_NAME_PATTERN.fullmatch(text)
        if whole:
            span = _clean_name(whole.group('name'))
            if (span and len([w for w in span.split() if w != '-']) >= 2
                    and WHOLE_QUERY_DOMAIN_PATTERN.search(span)):
                found.append((span, 'name:whole_query'))

        names: List[str] = []
        patterns: List[str] = []
        for raw, label in found:
            name = _clean_name(raw)
            if not name:
                continue
            if label not in patterns:
                patterns.append(label)
            if any(fuzzy_match_score(name, kept) >= NAME_DUPLICATE_THRESHOLD
                   and len(kept) >= len(name) for kept in names):
                continue
            # A longer variant replaces shorter near-duplicates
            names = [kept for kept in names
                     if fuzzy_match_score(name, kept) < NAME_DUPLICATE_THRESHOLD]
            names.append(name)

        return names, patterns

    def extract_properties(self, text: str):
        """
        Match benefit, category, and description vocabularies.

        Args:
            text: Stripped query.

        Returns:
            (property terms, detected pattern labels, QueryType or None)
        """
        properties = parse_properties(text)
        categories = parse_categories(text)
        signals = parse_description_signals(text)

        terms: List[str] = list(properties) + list(categories)
        for signal in signals:
            for term in signal['terms']:
                if term not in terms:
                    terms.append(term)

        patterns = (
            [f"property:{p}" for p in properties]
            + [f"category:{c}" for c in categories]
            + [f"description:{s['name']}" for s in signals]
        )

        if properties or categories:
            return terms, patterns, QueryType.PROPERTY_SEARCH

        strong = any(s['strength'] == 'strong' for s in signals)
        weak = sum(1 for s in signals if s['strength'] == 'weak')
        if strong or weak >= 2:
            return terms, patterns, QueryType.DESCRIPTION_SEARCH

        return [], [], None

    def expand_query(self, text: str, codes: List[str] = None,
                     properties: List[str] = None) -> List[str]:
        """
        Build alternative phrasings for semantic retrieval.

        Args:
            text: Stripped query (always first in the result).
            codes: Normalized codes to add in common spellings.
            properties: Property terms to add as an English query.

        Returns:
            De-duplicated list, at most MAX_EXPANDED_QUERIES long.
        """
        expanded = [text]

        for thai, english_terms in KEYWORD_EXPANSION.items():
            if thai in text:
                for english in english_terms:
                    expanded.append(text.replace(thai, english))

        if properties:
            expanded.append(' '.join(properties))

        for code in codes or []:
            expanded.extend([code, code.lower(), f"{code[:2]}-{code[2:]}"])

        return list(dict.fromkeys(expanded))[:MAX_EXPANDED_QUERIES]

    @staticmethod
    def _generic(language: Language) -> QueryClassification:
        return QueryClassification(
            is_raw_materials_query=False,
            query_type=QueryType.GENERIC,
            confidence=0.0,
            search_strategy=SearchStrategy.HYBRID,
            extracted_entities=ExtractedEntities(),
            language=language,
        )


def _clean_name(span: str) -> str:
    """Trim whitespace and leading/trailing stop words from a name span."""
    tokens = (span or '').split()
    while tokens and tokens[0].lower() in NAME_STOPWORDS:
        tokens.pop(0)
    while tokens and tokens[-1].lower() in NAME_STOPWORDS:
        tokens.pop()
    name = ' '.join(tokens)
    return name if len(name) >= MIN_NAME_LENGTH else ''


# ============================================================================
# MODULE-LEVEL API
# ============================================================================

_default_classifier = QueryClassifier()


def classify_query(query: str) -> QueryClassification:
    """Classify a query with the default rule tables."""
    return _default_classifier.classify(query)
