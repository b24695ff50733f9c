from typing import Dict, Iterable, Optional, Sequence

from colorrace.models import COLORS


def count_colors(choices: Iterable[Optional[str]], gm_choices: Sequence[str], remove_gm_used: bool) -> Dict[str, int]:
    """Tally R/G/Y over the players' choices plus, unless the GM was removed,
    every GM card as an independent voter. Anything else (None, W) is ignored.
    """
    counts = {color: 0 for color in COLORS}
    voters = list(choices)
    if not remove_gm_used:
        voters.extend(gm_choices)
    for choice in voters:
        if choice in counts:
            counts[choice] += 1
    return counts


def determine_priority_color(counts: Dict[str, int], gm_choices: Sequence[str], remove_gm_used: bool) -> Optional[str]:
    """Minority-favoring vote with a first-GM-card tie-break.

    - no colors: no priority
    - one color: that color
    - two colors: the minority, or on a tie the first GM card
    - three colors a<=b<=c: a<b<c -> a, a==b<c -> c, a<b==c -> a,
      full tie -> the first GM card
    The GM tie-break only applies while the GM cards are in play; with the
    GM removed a tie yields no priority.
    """
    present = sorted(
        ((count, color) for color, count in counts.items() if count > 0),
        key=lambda item: item[0],
    )
    tie_break = gm_choices[0] if gm_choices and not remove_gm_used else None

    if not present:
        return None
    if len(present) == 1:
        return present[0][1]
    if len(present) == 2:
        (a, minority), (b, _) = present
        return tie_break if a == b else minority

    (a, low), (b, _), (c, high) = present
    if a < b < c:
        return low
    if a == b < c:
        return high
    if a < b == c:
        return low
    return tie_break
