# inventory_engine/utils/math_utils.py
import math
import re
from typing import Optional

import numpy as np


def round_to_multiple(value: float, multiple: float) -> float:
    """Round a value up to the next multiple.

    Args:
        value: Value to round
        multiple: Multiple to round to

    Returns:
        Rounded value
    """
    if multiple <= 0:
        return value

    return math.ceil(value / multiple) * multiple


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between two strings.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single character insertions, deletions or
        substitutions turning a into b
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    matrix = np.zeros((len(b) + 1, len(a) + 1), dtype=np.int32)
    matrix[:, 0] = np.arange(len(b) + 1)
    matrix[0, :] = np.arange(len(a) + 1)

    for i in range(1, len(b) + 1):
        for j in range(1, len(a) + 1):
            if b[i - 1] == a[j - 1]:
                matrix[i, j] = matrix[i - 1, j - 1]
            else:
                matrix[i, j] = min(
                    matrix[i - 1, j - 1] + 1,
                    matrix[i, j - 1] + 1,
                    matrix[i - 1, j] + 1
                )

    return int(matrix[len(b), len(a)])


def string_similarity(a: str, b: str) -> float:
    """Case-insensitive similarity in [0, 1] based on edit distance."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    distance = levenshtein_distance(a.lower(), b.lower())
    return 1.0 - distance / max_len


def word_overlap_score(name1: Optional[str], name2: Optional[str]) -> float:
    """Jaccard overlap of the words (longer than two characters) in two titles."""
    if not name1 or not name2:
        return 0.0

    words1 = {w for w in re.split(r'\s+', name1.lower()) if len(w) > 2}
    words2 = {w for w in re.split(r'\s+', name2.lower()) if len(w) > 2}

    if not words1 or not words2:
        return 0.0

    return len(words1 & words2) / len(words1 | words2)
