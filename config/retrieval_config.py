# -*- coding: utf-8 -*-
"""
Retrieval Config

Rule tables and defaults for query classification and hybrid search over the
raw-material catalogue. The classifier reads every pattern from this module so
that code families, name markers, and property vocabularies can be extended
without touching classification logic.

Examples:
    from config.retrieval_config import SEARCH_CONFIG, match_code_families

    families = match_code_families("RM000001 และ RC00A008")
    # [('RM000001', 'rm', 0.95), ('RC00A008', 'rc', 0.8)]

References:
    src/retrieval/query_classifier.py (consumer of the rule tables)
    src/retrieval/hybrid_search.py (consumer of SEARCH_CONFIG / SCORING_CONFIG)
"""
import os
import re
from enum import Enum
from typing import Dict, List, Tuple

from dotenv import load_dotenv

load_dotenv()


# ============================================================================
# SEARCH STRATEGIES
# ============================================================================

class StrategyName(Enum):
    """
    Individual retrieval strategies run by the hybrid search service.

    EXACT: structured-store lookup by normalized code
    METADATA: substring filter on trade/INCI names
    FUZZY: edit-distance match on name variants
    SEMANTIC: keyword relevance on function/category text
    VECTOR: embedding similarity over indexed chunks
    """
    EXACT = "exact_match"
    METADATA = "metadata_filter"
    FUZZY = "fuzzy_match"
    SEMANTIC = "semantic_keywords"
    VECTOR = "semantic_vector"


# ============================================================================
# HYBRID SEARCH DEFAULTS
# ============================================================================

SEARCH_CONFIG = {
    'top_k': 10,
    'similarity_threshold': 0.5,
    'enable_exact_match': True,
    'enable_metadata_filter': True,
    'enable_fuzzy_match': True,
    'enable_semantic_search': True,

    # Bounded waits (seconds)
    'strategy_timeout': float(os.getenv('HYBRID_STRATEGY_TIMEOUT', '5.0')),
    'semantic_timeout': float(os.getenv('HYBRID_SEMANTIC_TIMEOUT', '3.0')),

    'collection': os.getenv('VECTOR_COLLECTION', 'raw_materials'),
    'max_workers': 5,                # In-process strategies (store lookups)
    'vector_workers': 2,             # Remote vector calls, on their own pool
    'max_expanded_queries': 3,       # Expanded queries sent to the vector index
    'vector_top_k_multiplier': 3,    # Chunk hits fetched per requested result
    'fuzzy_candidate_limit': 100,
}


SCORING_CONFIG = {
    'exact_score': 1.0,
    'metadata_score': 0.9,
    'fuzzy_weight': 0.85,            # score = similarity * weight
    'fuzzy_min_similarity': 0.6,
    'fuzzy_confidence_weight': 0.8,
    'semantic_weight': 0.75,         # score = relevance * weight
    'semantic_cap': 0.9,
    'semantic_field_hit': 0.8,       # Property found in function/category/name
    'semantic_text_hit': 0.3,        # Property found in description only
}


# Lower rank wins ties between equal scores
MATCH_TYPE_PRECEDENCE = {
    'exact': 0,
    'metadata': 1,
    'fuzzy': 2,
    'semantic': 3,
}


# ============================================================================
# COLLECTION ROUTING
# ============================================================================

# Catalogue -> vector collection holding its chunks
COLLECTION_CONFIG = {
    'in_stock': {
        'vector_collection': os.getenv('VECTOR_COLLECTION_IN_STOCK', 'raw_materials_stock'),
        'label': 'in-stock materials',
    },
    'all_fda': {
        'vector_collection': os.getenv('VECTOR_COLLECTION_ALL_FDA', 'raw_materials_fda'),
        'label': 'all FDA-registered ingredients',
    },
}

# Lowercase substrings; any hit counts
IN_STOCK_KEYWORDS = [
    'in stock', 'real stock', 'actual stock', 'stock', 'inventory', 'available',
    'can buy', 'purchase', 'order',
    'มีในสต็อก', 'สต็อก', 'มีอยู่', 'ของที่มี', 'ซื้อได้', 'สั่งได้',
]

ALL_FDA_KEYWORDS = [
    'all ingredients', 'any ingredient', 'fda', 'registered', 'approved', 'explore',
    'search all',
    'วัตถุดิบทั้งหมด', 'ทุกวัตถุดิบ', 'หาทั้งหมด', 'ค้นหาทั้งหมด',
]

AVAILABILITY_KEYWORDS = [
    'do we have', 'can we get', 'available', 'in stock',
    'มีไหม', 'หาได้ไหม',
]

ROUTING_CONFIDENCE = {
    'explicit': 1.0,
    'keyword': 0.9,
    'availability': 0.85,
    'default': 0.7,
}

AVAILABILITY_CONFIG = {
    'in_stock_min_score': 0.8,       # best in-stock hit must beat this
    'alternatives_top_k': 5,
}


# ============================================================================
# LANGUAGE DETECTION
# ============================================================================

THAI_CHAR_PATTERN = re.compile(r'[\u0E00-\u0E7F]')
LATIN_CHAR_PATTERN = re.compile(r'[A-Za-z]')

LANGUAGE_CONFIG = {
    'thai_ratio_threshold': 0.3,
    'mixed_latin_ratio_threshold': 0.1,
}


# ============================================================================
# CODE FAMILIES
# ============================================================================

# Alphanumeric neighbours only; Thai text may follow a code without a space
_CODE_START = r'(?<![A-Za-z0-9])'
_CODE_END = r'(?![A-Za-z0-9])'

CODE_PATTERNS = [
    {
        'name': 'rm',
        'pattern': re.compile(_CODE_START + r'RM[-_]?\d{6}' + _CODE_END, re.IGNORECASE),
        'confidence': 0.95,
    },
    {
        'name': 'rc',
        'pattern': re.compile(
            _CODE_START + r'RC[-_]?(?=[A-Z]*\d)[A-Z0-9]{6,}' + _CODE_END, re.IGNORECASE
        ),
        'confidence': 0.80,
    },
    {
        'name': 'rd',
        'pattern': re.compile(_CODE_START + r'RD[-_]?[A-Z]{2,}\d{3,}' + _CODE_END, re.IGNORECASE),
        'confidence': 0.80,
    },
    {
        # Case-sensitive: lowercase words joined by hyphens are not codes
        'name': 'generic',
        'pattern': re.compile(_CODE_START + r'[A-Z]{2,4}[-_]\d{3,6}' + _CODE_END),
        'confidence': 0.80,
    },
]

MULTI_CODE_CONFIDENCE = 0.90

CODE_SEPARATORS = re.compile(r'[-_\s]')


def normalize_code(raw: str) -> str:
    """
    Normalize a material code: uppercase, separators stripped.

    Args:
        raw: Code as written in a query or record (e.g., 'rm-000001').

    Returns:
        Canonical code (e.g., 'RM000001').
    """
    return CODE_SEPARATORS.sub('', raw or '').upper()


def match_code_families(query: str) -> List[Tuple[str, str, float]]:
    """
    Extract material codes from query using CODE_PATTERNS.

    Earlier patterns take precedence when several families match the same code.

    Args:
        query: User query string.

    Returns:
        List of (normalized_code, family, confidence) in order of appearance.
    """
    found: Dict[str, Tuple[int, str, float]] = {}
    for rule in CODE_PATTERNS:
        for match in rule['pattern'].finditer(query):
            code = normalize_code(match.group(0))
            if code not in found:
                found[code] = (match.start(), rule['name'], rule['confidence'])

    ordered = sorted(found.items(), key=lambda item: item[1][0])
    return [(code, family, confidence) for code, (_, family, confidence) in ordered]


# ============================================================================
# NAME DETECTION
# ============================================================================

NAME_CONFIDENCE = 0.85

# Capitalized word sequence, optionally hyphen-joined ("Ginger Extract - DL")
CAPITALIZED_SPAN = r'[A-Z][A-Za-z0-9]*(?:(?:[ \t]+|[ \t]*-[ \t]*)[A-Z][A-Za-z0-9]*)*'

QUOTED_NAME_PATTERNS = [
    re.compile(r'"([^"]{2,})"'),
    re.compile(r'\u201c([^\u201d]{2,})\u201d'),
    re.compile(r"(?:^|\s)'([^']{2,})'(?=\s|$|[?.!,])"),
]

# Markers announcing that a trade or INCI name follows
NAME_MARKER_PATTERN = re.compile(
    r'trade\s*name|brand\s*name|inci\s*name|ชื่อ(?:ทาง)?การค้า|ชื่อ\s*inci|ชื่อสากล|ชื่อทางเคมี',
    re.IGNORECASE,
)

NAME_AFTER_MARKER_PATTERN = re.compile(
    r'(?:trade\s*name|brand\s*name|inci\s*name|ชื่อ(?:ทาง)?การค้า|ชื่อ\s*inci|ชื่อสากล|ชื่อทางเคมี)'
    r'\s*(?:of|is|:)?\s*(?P<name>[A-Za-z0-9][A-Za-z0-9 \-]*[A-Za-z0-9])',
    re.IGNORECASE,
)

# Name followed by a Thai question ("Glycerin มีรหัสอะไร", "X คืออะไร")
THAI_QUESTION_SUFFIX = r'\s*(?:มี)?\s*(?:รหัส(?:สาร|วัตถุดิบ)?)?\s*(?:คือ)?\s*(?:อะไร|ไหน)'

# Name preceded by an English interrogative ("what code does X have")
ENGLISH_QUESTION_PREFIX = (
    r'(?i:\b(?:what\s+is|what\'s|what\s+are|what\s+code\s+(?:is|does|for)|'
    r'which\s+code\s+(?:is|does|for)|code\s+(?:of|for)|tell\s+me\s+about|'
    r'info(?:rmation)?\s+(?:on|about)|details?\s+(?:of|on|about)|search\s+for|look\s*up|find))'
)

INTERROGATIVE_NAME_PATTERNS = [
    re.compile(r'(?P<name>' + CAPITALIZED_SPAN + r')' + THAI_QUESTION_SUFFIX),
    re.compile(ENGLISH_QUESTION_PREFIX + r'\s+(?P<name>' + CAPITALIZED_SPAN + r')'),
]

WHOLE_QUERY_NAME_PATTERN = re.compile(
    r'\s*(?P<name>' + CAPITALIZED_SPAN + r')\s*[?.!]*\s*'
)

# A bare capitalized query is only a name when it carries an ingredient word
NAMED_INGREDIENTS = (
    r'hyaluronic|glycerin|retinol|niacinamide|ceramide|collagen|peptide|arbutin|'
    r'panthenol|squalane|allantoin|ginger|aloe|green\s+tea|chamomile|lavender|centella'
)
INCI_NAME_WORDS = (
    r'acid|extract|oil|butter|powder|wax|gum|ester|glycol|glyceride|complex|'
    r'ferment|filtrate|hydrolyzed|sodium|potassium|oxide|vitamin'
)
WHOLE_QUERY_DOMAIN_PATTERN = re.compile(
    r'(?:' + NAMED_INGREDIENTS + r')|\b(?:' + INCI_NAME_WORDS + r')\b',
    re.IGNORECASE,
)

CAPITALIZED_SPAN_PATTERN = re.compile(CAPITALIZED_SPAN)

NAME_STOPWORDS = {
    'a', 'about', 'an', 'and', 'are', 'can', 'code', 'compare', 'do', 'does',
    'find', 'for', 'give', 'good', 'hello', 'hey', 'hi', 'how', 'i', 'in',
    'is', 'list', 'me', 'morning', 'of', 'on', 'or', 'please', 'search',
    'show', 'tell', 'thank', 'thanks', 'the', 'what', 'which', 'who', 'why',
    'with', 'you', '-',
}

MIN_NAME_LENGTH = 2


# ============================================================================
# PROPERTY / CATEGORY / DESCRIPTION VOCABULARY
# ============================================================================

SEMANTIC_BASE_CONFIDENCE = 0.80
SEMANTIC_SIGNAL_BONUS = 0.05
SEMANTIC_MAX_CONFIDENCE = 0.90

# Canonical benefit -> query patterns and record search terms
PROPERTY_KEYWORDS = {
    'moisturizing': {
        'patterns': [r'moisturi[sz]', r'hydrat', r'ความชุ่มชื้น', r'ชุ่มชื้น'],
        'search_terms': ['moistur', 'hydrat', 'humectant', 'ชุ่มชื้น'],
    },
    'anti-aging': {
        'patterns': [r'anti[- ]?ag(?:e)?ing', r'anti[- ]?wrinkle', r'ต้านริ้วรอย', r'ริ้วรอย', r'ชะลอวัย'],
        'search_terms': ['anti-aging', 'anti aging', 'wrinkle', 'ริ้วรอย'],
    },
    'whitening': {
        'patterns': [r'whiten', r'brighten', r'lighten', r'กระจ่างใส', r'ผิวขาว'],
        'search_terms': ['whiten', 'brighten', 'lighten', 'กระจ่างใส'],
    },
    'soothing': {
        'patterns': [r'sooth', r'calming', r'anti[- ]?inflamm', r'ลดการอักเสบ', r'ปลอบประโลม'],
        'search_terms': ['sooth', 'calm', 'inflamm'],
    },
    'smoothing': {
        'patterns': [r'smooth', r'เรียบเนียน'],
        'search_terms': ['smooth', 'เรียบเนียน'],
    },
    'firming': {
        'patterns': [r'\bfirming', r'ยกกระชับ', r'กระชับ'],
        'search_terms': ['firm', 'กระชับ'],
    },
    'nourishing': {
        'patterns': [r'nourish', r'บำรุง'],
        'search_terms': ['nourish', 'บำรุง'],
    },
    'antioxidant': {
        'patterns': [r'anti[- ]?oxidant', r'ต้านอนุมูลอิสระ'],
        'search_terms': ['antioxidant', 'anti-oxidant'],
    },
    'acne care': {
        'patterns': [r'\bacne', r'สิว'],
        'search_terms': ['acne', 'สิว'],
    },
}

CATEGORY_KEYWORDS = {
    'humectant': [r'humectant', r'สารให้ความชุ่มชื้น'],
    'emollient': [r'emollient'],
    'emulsifier': [r'emulsifier', r'อิมัลซิไฟเออร์'],
    'surfactant': [r'surfactant', r'สารลดแรงตึงผิว'],
    'preservative': [r'preservative', r'สารกันเสีย'],
    'probiotic': [r'probiotic', r'โปรไบโอติก'],
    'skin lightening': [r'skin[- ]lightening'],
    'sunscreen': [r'sunscreen', r'uv[- ]?filter', r'กันแดด'],
    'fragrance': [r'fragrance', r'น้ำหอม'],
}

# strength: 'strong' alone is enough; 'weak' needs a second signal.
# extract: the matched text becomes a searchable property term.
DESCRIPTION_RULES = [
    {'name': 'supplier', 'strength': 'strong', 'extract': False,
     'pattern': r'supplier|manufacturer|vendor|ซัพพลายเออร์|ผู้ผลิต|ผู้จำหน่าย'},
    {'name': 'cost', 'strength': 'strong', 'extract': False,
     'pattern': r'\bprice|\bcost|ราคา|ต้นทุน'},
    {'name': 'raw_material_th', 'strength': 'strong', 'extract': False,
     'pattern': r'วัตถุดิบ|สารสกัด|สารออกฤทธิ์|ส่วนผสม'},
    {'name': 'raw_material_en', 'strength': 'strong', 'extract': False,
     'pattern': r'raw\s+materials?'},
    {'name': 'vitamin', 'strength': 'strong', 'extract': True,
     'pattern': r'vitamin\s*[a-e]\b|วิตามิน'},
    {'name': 'named_ingredient', 'strength': 'strong', 'extract': True,
     'pattern': NAMED_INGREDIENTS},
    {'name': 'formulation', 'strength': 'weak', 'extract': False,
     'pattern': r'formulat|สูตร|ตำรับ'},
    {'name': 'generic_material', 'strength': 'weak', 'extract': False,
     'pattern': r'\bingredients?\b|\bmaterials?\b|\bchemicals?\b|\bactives?\b|\bextracts?\b'},
    {'name': 'usage', 'strength': 'weak', 'extract': False,
     'pattern': r'used\s+(?:for|in)|use\s+for|ใช้(?:ทำ|สำหรับ)'},
]


def parse_properties(query: str) -> List[str]:
    """
    Extract canonical benefit names from query using PROPERTY_KEYWORDS.

    Args:
        query: User query string.

    Returns:
        List of canonical property names (e.g., ['moisturizing']).
    """
    properties = []
    for canonical, entry in PROPERTY_KEYWORDS.items():
        for pattern in entry['patterns']:
            if re.search(pattern, query, re.IGNORECASE):
                properties.append(canonical)
                break
    return properties


def parse_categories(query: str) -> List[str]:
    """
    Extract category names from query using CATEGORY_KEYWORDS.

    Args:
        query: User query string.

    Returns:
        List of category names (e.g., ['humectant']).
    """
    categories = []
    for category, patterns in CATEGORY_KEYWORDS.items():
        if any(re.search(p, query, re.IGNORECASE) for p in patterns):
            categories.append(category)
    return categories


def parse_description_signals(query: str) -> List[Dict]:
    """
    Match DESCRIPTION_RULES against query.

    Args:
        query: User query string.

    Returns:
        List of {'name', 'strength', 'terms'} for every rule that fired.
    """
    signals = []
    for rule in DESCRIPTION_RULES:
        matches = [m.group(0) for m in re.finditer(rule['pattern'], query, re.IGNORECASE)]
        if not matches:
            continue
        terms = []
        if rule['extract']:
            for text in matches:
                term = re.sub(r'\s+', ' ', text.lower()).strip()
                if term not in terms:
                    terms.append(term)
        signals.append({'name': rule['name'], 'strength': rule['strength'], 'terms': terms})
    return signals


# ============================================================================
# QUERY EXPANSION
# ============================================================================

# Thai keyword -> English equivalents used when expanding queries
KEYWORD_EXPANSION = {
    'วัตถุดิบ': ['raw material', 'ingredient'],
    'สารสกัด': ['extract'],
    'รหัสสาร': ['material code', 'rm code'],
    'ชื่อการค้า': ['trade name'],
    'ซัพพลายเออร์': ['supplier'],
    'ราคา': ['price', 'cost'],
    'ประโยชน์': ['benefit', 'function'],
    'สูตร': ['formulation'],
    'ความชุ่มชื้น': ['moisturizing', 'hydrating'],
    'ต้านริ้วรอย': ['anti-aging', 'anti-wrinkle'],
    'กระจ่างใส': ['brightening', 'whitening'],
}

MAX_EXPANDED_QUERIES = 8
