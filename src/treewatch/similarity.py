"""Token-containment similarity between two text blobs.

This is not an edit distance. Both texts are split on whitespace, and the
score is the share of the longer token list covered by tokens of the shorter
one, order-insensitive. Used to pick between files sharing an identity and
to quantify partial rewrites.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

from .utils import read_text


def score(source: Optional[str], target: Optional[str]) -> float:
    """Compute the match percentage between two texts.

    Args:
        source: First text (typically the snapshot content)
        target: Second text (typically the live content)

    Returns:
        Percentage in [0, 100]. Empty or missing input scores 0, identical
        input scores 100.

    Note:
        The shorter text is picked by character count, not token count. Each
        of its tokens counts once for every occurrence, as long as the token
        appears anywhere in the longer text, so repeated tokens overcount.
        Integer division truncates the result (1 of 3 tokens -> 33.0).

    Example:
        >>> score("a b", "a b c d")
        50.0
    """
    if not source or not target:
        return 0.0
    if source == target:
        return 100.0

    source_tokens = source.split()
    target_tokens = target.split()

    if len(source) > len(target):
        long, short = source_tokens, target_tokens
    else:
        long, short = target_tokens, source_tokens

    if not long:
        # Whitespace-only text has no tokens to cover
        return 0.0

    present = set(long)
    matches = sum(1 for token in short if token in present)
    return float(min(matches * 100 // len(long), 100))


def score_files(source: Union[str, Path], target: Union[str, Path]) -> float:
    """Score two files by their text content."""
    return score(read_text(Path(source)), read_text(Path(target)))


def best_match(source_text: str, candidates: List[Path]) -> Tuple[int, float]:
    """Find the candidate file whose content best matches source_text.

    Args:
        source_text: Reference content
        candidates: Non-empty list of files to compare against

    Returns:
        (index into candidates, score). The first candidate wins ties.
    """
    best_index, best_score = 0, -1.0
    for index, candidate in enumerate(candidates):
        value = score(source_text, read_text(candidate))
        if value > best_score:
            best_index, best_score = index, value
    return best_index, best_score
