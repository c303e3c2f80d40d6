from .date_utils import add_days, convert_to_date, month_prefix
from .math_utils import round_to_multiple, levenshtein_distance, string_similarity, word_overlap_score
from .validation import require_int, require_non_negative_number, require_text

__all__ = [
    'add_days',
    'convert_to_date',
    'month_prefix',
    'round_to_multiple',
    'levenshtein_distance',
    'string_similarity',
    'word_overlap_score',
    'require_int',
    'require_non_negative_number',
    'require_text'
]
