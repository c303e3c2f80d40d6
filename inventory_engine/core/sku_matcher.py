# inventory_engine/core/sku_matcher.py
"""Heuristic mapping suggestions between raw sales SKUs.

Suggestions are advisory and are never applied automatically. Rules:

1. A ``P`` suffix is the same product and resolves without a mapping.
2. A ``-BALL`` suffix is a different bill of materials grouped for display.
3. SKUs differing only in a number are different products (RS vs RS2).
4. Different category prefixes are different products (GBC vs TBC).
5. AFZ, MAH and AHW are the same material under different names.
6. Legacy product lines: PTB is Vantage, 02 / GBB02 is Icon.
"""
import re
from typing import Dict, Iterable, List, Optional, Set

from inventory_engine.core.sku_rules import (
    VARIANT_SUFFIXES, DISPLAY_GROUP_SUFFIXES, base_sku, display_group_base,
    is_excluded_product, is_variant_sku
)
from inventory_engine.utils.math_utils import string_similarity, word_overlap_score

CATEGORY_SUFFIX_PATTERNS = ('BC', 'DC', 'DS')

KNOWN_CATEGORY_PREFIXES = (
    'GBC', 'TBC', 'CBC', 'BBC', 'SBC', 'RBC', 'HBC', 'FBC', 'FHBC', 'IHC',
    'BBDC', 'CDC',
    'GBDS', 'CBDS', 'TBDS', 'FBDS', 'NFLBDS',
    'NFL', 'GBMS', 'GBPS',
)
_PREFIXES_LONGEST_FIRST = sorted(KNOWN_CATEGORY_PREFIXES, key=len, reverse=True)

# Ordered: the first keyword found in a title wins
PRODUCT_LINE_KEYWORDS = (
    ('vantage', 'VANTAGE'),
    ('icon', 'ICON'),
    ('prestige', 'PRESTIGE'),
    ('heritage', 'HERITAGE'),
    ('premium turf base', 'VANTAGE'),
    ('turf base', 'VANTAGE'),
    ('high gloss black', 'ICON'),
    ('black base', 'ICON'),
    ('gloss black', 'ICON'),
)

MATERIAL_KEYWORDS = (
    ('mahogany', 'MAH'),
    ('african hardwood', 'AHW'),
    ('hardwood', 'AHW'),
    ('solid oak', 'OAK'),
    ('oak', 'OAK'),
    ('olivewood', 'OLIVE'),
    ('olive', 'OLIVE'),
    ('afzelia', 'AFZ'),
)

EQUIVALENT_MATERIALS = ('AFZ', 'MAH', 'AHW')

BACKGROUND_KEYWORDS = (
    ('hole in one', 'HIO'),
    ('hole-in-one', 'HIO'),
    ('champion', 'CHAMP'),
    ('legendary', 'LEG'),
    ('golf course', 'GC'),
    ('eagle', 'EAGLE'),
    ('birdie', 'BIRDIE'),
    ('par edition', 'PAR'),
    ('albatross', 'ALBATROSS'),
    ('stadium', 'STADIUM'),
    ('home run', 'HOMERUN'),
    ('custom', 'CUSTOMBG'),
)

LEGACY_SKU_PATTERNS = (
    (re.compile(r'PTB', re.I), 'VANTAGE', 'Premium Turf Base = Vantage'),
    (re.compile(r'GBB02', re.I), 'ICON', 'Old Icon format'),
    (re.compile(r'02(?![0-9])', re.I), 'ICON', 'Old Icon format (02 not followed by digit)'),
)

SCORE_THRESHOLD = 0.5
LEGACY_SCORE_THRESHOLD = 0.45


def _first_keyword(text: str, keywords) -> Optional[str]:
    lower = (text or '').lower()
    for keyword, value in keywords:
        if keyword in lower:
            return value
    return None


class ProductAnalysis:
    """Attributes read from a SKU and its product title."""

    def __init__(self, sku: str, title: str):
        upper = sku.strip().upper()

        self.category_prefix = get_category_prefix(upper)
        self.is_excluded = is_excluded_product(sku, title)

        self.is_legacy = False
        self.legacy_notes = None
        self.product_line = None
        for pattern, product_line, notes in LEGACY_SKU_PATTERNS:
            if pattern.search(upper):
                self.is_legacy = True
                self.legacy_notes = notes
                self.product_line = product_line
                break

        if not self.product_line:
            if 'VANTAGE' in upper:
                self.product_line = 'VANTAGE'
            elif 'ICON' in upper:
                self.product_line = 'ICON'
            elif 'PRESTIGE' in upper:
                self.product_line = 'PRESTIGE'
            elif 'HERITAGE' in upper or 'HERI' in upper:
                self.product_line = 'HERITAGE'
        if not self.product_line:
            self.product_line = _first_keyword(title, PRODUCT_LINE_KEYWORDS)

        self.material = _material_from_sku(upper) or _first_keyword(title, MATERIAL_KEYWORDS)
        self.background = _first_keyword(title, BACKGROUND_KEYWORDS)

    def to_dict(self) -> Dict:
        return {
            'category_prefix': self.category_prefix,
            'product_line': self.product_line,
            'material': self.material,
            'background': self.background,
            'is_legacy': self.is_legacy,
            'legacy_notes': self.legacy_notes,
            'is_excluded': self.is_excluded
        }


def _material_from_sku(upper: str) -> Optional[str]:
    for code in ('AHW', 'MAH', 'AFZ', 'OAK', 'OLIVE'):
        if code in upper:
            return code
    return None


def materials_equivalent(mat1: Optional[str], mat2: Optional[str]) -> bool:
    if not mat1 or not mat2:
        return False
    if mat1 == mat2:
        return True
    return mat1 in EQUIVALENT_MATERIALS and mat2 in EQUIVALENT_MATERIALS


def get_category_prefix(sku: str) -> Optional[str]:
    """Category code at the start of a SKU (GBC, TBDS, ...), if any."""
    upper = sku.strip().upper()

    for prefix in _PREFIXES_LONGEST_FIRST:
        if upper.startswith(prefix):
            return prefix

    # Unknown codes of 2-6 letters ending in a category suffix
    for suffix in CATEGORY_SUFFIX_PATTERNS:
        for length in range(2, 7):
            if len(upper) > length:
                candidate = upper[:length]
                if candidate.endswith(suffix) and candidate.isalpha():
                    return candidate

    # B1-/B2-/B3- SKUs are sized bases without a category code
    return None


def _product_name(sku: str) -> str:
    upper = sku.strip().upper()
    prefix = get_category_prefix(upper)
    name = upper[len(prefix):] if prefix else upper

    for suffix in DISPLAY_GROUP_SUFFIXES:
        if name.endswith(suffix):
            name = name[:-len(suffix)]
            break
    for suffix in VARIANT_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            name = name[:-len(suffix)]
            break

    return name


def has_different_category_prefix(sku1: str, sku2: str) -> bool:
    prefix1 = get_category_prefix(sku1)
    prefix2 = get_category_prefix(sku2)

    if prefix1 and prefix2 and prefix1 != prefix2:
        return True

    name1 = _product_name(sku1)
    name2 = _product_name(sku2)
    if name1 and name1 == name2 and prefix1 != prefix2:
        return True

    return False


def differs_by_numeric_segment(sku1: str, sku2: str) -> bool:
    """True when two SKUs are the same apart from their numbers (RS vs RS2)."""
    upper1 = sku1.upper()
    upper2 = sku2.upper()
    nums1 = re.findall(r'\d+', upper1)
    nums2 = re.findall(r'\d+', upper2)

    if re.sub(r'\d+', '#', upper1) == re.sub(r'\d+', '#', upper2) and nums1 != nums2:
        return True

    if re.sub(r'\d+', '', upper1) == re.sub(r'\d+', '', upper2) and nums1 != nums2:
        return True

    return False


def differs_only_by_variant_suffix(sku1: str, sku2: str) -> bool:
    return base_sku(sku1) == base_sku(sku2) and is_variant_sku(sku1) != is_variant_sku(sku2)


def differs_only_by_display_suffix(sku1: str, sku2: str) -> bool:
    upper1 = sku1.strip().upper()
    upper2 = sku2.strip().upper()

    for suffix in DISPLAY_GROUP_SUFFIXES:
        has1 = upper1.endswith(suffix)
        has2 = upper2.endswith(suffix)
        if has1 != has2:
            stripped1 = upper1[:-len(suffix)] if has1 else upper1
            stripped2 = upper2[:-len(suffix)] if has2 else upper2
            if stripped1 == stripped2:
                return True

    return False


class SkuCandidate:
    """A SKU observed in sales, with the title it sold under."""

    def __init__(self, sku: str, product_name: str = '', order_count: int = 0, platforms: Optional[List[str]] = None):
        self.sku = sku
        self.product_name = product_name or ''
        self.order_count = order_count
        self.platforms = platforms or []


def calculate_match_score(source: SkuCandidate, target: SkuCandidate,
                          source_analysis: ProductAnalysis, target_analysis: ProductAnalysis) -> Optional[Dict]:
    """Score a candidate pair, or None when the pair is rejected outright.

    Different product lines (unless a legacy SKU is involved) and
    non-equivalent materials mean different bills of materials.
    """
    legacy = source_analysis.is_legacy or target_analysis.is_legacy

    if source_analysis.product_line and target_analysis.product_line:
        if source_analysis.product_line != target_analysis.product_line and not legacy:
            return None

    if source_analysis.material and target_analysis.material:
        if not materials_equivalent(source_analysis.material, target_analysis.material):
            return None

    sku_similarity = string_similarity(source.sku.upper(), target.sku.upper())
    name_similarity = word_overlap_score(source.product_name, target.product_name)

    score = sku_similarity * 0.4 + name_similarity * 0.4
    reasons = []

    if source_analysis.product_line and source_analysis.product_line == target_analysis.product_line:
        score += 0.15
        reasons.append(f"Same product line ({source_analysis.product_line})")

    if materials_equivalent(source_analysis.material, target_analysis.material):
        score += 0.1
        reasons.append(f"Equivalent materials ({source_analysis.material}->{target_analysis.material})")

    if legacy:
        legacy_notes = source_analysis.legacy_notes or target_analysis.legacy_notes
        if source_analysis.is_legacy:
            legacy_line, other_line = source_analysis.product_line, target_analysis.product_line
        else:
            legacy_line, other_line = target_analysis.product_line, source_analysis.product_line
        if legacy_line and other_line and legacy_line == other_line:
            score += 0.2
            reasons.append(f"Legacy SKU mapping ({legacy_notes})")

    if source_analysis.background and source_analysis.background == target_analysis.background:
        score += 0.05
        reasons.append(f"Same background ({source_analysis.background})")

    if name_similarity >= 0.8:
        score += 0.1
        reasons.append('Very similar titles')

    if score >= 0.85 or (legacy and score >= 0.7):
        confidence = 'high'
    elif score >= 0.65:
        confidence = 'medium'
    else:
        confidence = 'low'

    reason = f"SKU {round(sku_similarity * 100)}%, Title {round(name_similarity * 100)}%"
    if reasons:
        reason += ' | ' + ', '.join(reasons)

    return {'score': score, 'confidence': confidence, 'reason': reason}


def suggestions_for_sku(source: SkuCandidate, candidates: Iterable[SkuCandidate],
                        max_suggestions: int = 3) -> List[Dict]:
    """Best scoring mapping targets for one source SKU.

    Returns:
        List of dicts with source_sku, target_sku, confidence, reason and
        score, best first
    """
    source_upper = source.sku.strip().upper()
    source_analysis = ProductAnalysis(source.sku, source.product_name)
    if source_analysis.is_excluded:
        return []

    suggestions = []
    for target in candidates:
        target_upper = target.sku.strip().upper()
        if target_upper == source_upper:
            continue

        target_analysis = ProductAnalysis(target.sku, target.product_name)
        if target_analysis.is_excluded:
            continue
        if differs_by_numeric_segment(source_upper, target_upper):
            continue
        if has_different_category_prefix(source_upper, target_upper):
            continue
        # Suffix variants are handled by resolution and display grouping
        if differs_only_by_variant_suffix(source_upper, target_upper):
            continue
        if differs_only_by_display_suffix(source_upper, target_upper):
            continue
        if display_group_base(source_upper) == display_group_base(target_upper):
            continue

        match = calculate_match_score(source, target, source_analysis, target_analysis)
        if match is None:
            continue

        legacy = source_analysis.is_legacy or target_analysis.is_legacy
        threshold = LEGACY_SCORE_THRESHOLD if legacy else SCORE_THRESHOLD
        if match['score'] >= threshold:
            suggestions.append({
                'source_sku': source.sku,
                'target_sku': target.sku,
                'confidence': match['confidence'],
                'reason': match['reason'],
                'score': round(match['score'], 4)
            })

    suggestions.sort(key=lambda s: s['score'], reverse=True)
    return suggestions[:max_suggestions]


def generate_all_suggestions(candidates: List[SkuCandidate], mapped_skus: Optional[Set[str]] = None,
                             max_per_sku: int = 2) -> List[Dict]:
    """Suggestions for every SKU not already mapped, with mirror pairs removed."""
    mapped = {s.upper() for s in (mapped_skus or set())}
    all_suggestions = []

    for candidate in candidates:
        if candidate.sku.upper() in mapped:
            continue
        all_suggestions.extend(suggestions_for_sku(candidate, candidates, max_per_sku))

    seen = set()
    unique = []
    for suggestion in all_suggestions:
        forward = (suggestion['source_sku'].upper(), suggestion['target_sku'].upper())
        if forward in seen or (forward[1], forward[0]) in seen:
            continue
        seen.add(forward)
        unique.append(suggestion)

    return unique
