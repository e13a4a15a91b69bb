from typing import Iterable, Sequence

# All helpers take labels newest first, as History.labels stores them.


def runs(labels: Iterable[str], k: int = 1):
    """Maximal runs as (start, end, label, length), keeping those of length >= k."""
    labels = list(labels)
    out = []
    if not labels:
        return out
    cur = labels[0]
    start = 0
    for i in range(1, len(labels)):
        if labels[i] == cur:
            continue
        # close segment
        seg_len = i - start
        if seg_len >= k:
            out.append((start, i-1, cur, seg_len))
        cur = labels[i]
        start = i
    # tail
    seg_len = len(labels) - start
    if seg_len >= k:
        out.append((start, len(labels)-1, cur, seg_len))
    return out


def leading_run(labels: Sequence[str]) -> tuple[str | None, int]:
    if not labels:
        return None, 0
    n = 1
    while n < len(labels) and labels[n] == labels[0]:
        n += 1
    return labels[0], n


def leading_alternation(labels: Sequence[str], limit: int = 10) -> int:
    """Length of the zig-zag starting at the newest round, looking at most `limit` rounds."""
    if not labels:
        return 0
    n = 1
    for i in range(1, min(len(labels), limit)):
        if labels[i] != labels[i-1]:
            n += 1
        else:
            break
    return n


def match_template(labels: Sequence[str], template: str) -> dict[str, str] | None:
    """Bind the letters of `template` (e.g. 'ABBA') to labels; None when the prefix doesn't fit.

    Distinct letters must bind to distinct labels.
    """
    if len(labels) < len(template):
        return None
    bound: dict[str, str] = {}
    for letter, lab in zip(template, labels):
        if letter in bound:
            if bound[letter] != lab:
                return None
        elif lab in bound.values():
            return None
        else:
            bound[letter] = lab
    return bound


def alternations(labels: Iterable[str], L: int = 4):
    labels = list(labels)
    out = []
    if len(labels) < 2:
        return out
    start = None
    for i in range(1, len(labels)):
        if labels[i] != labels[i-1]:
            if start is None:
                start = i-1
        else:
            if start is not None and i - start >= L:
                out.append((start, i-1))
            start = None
    if start is not None and len(labels) - start >= L:
        out.append((start, len(labels)-1))
    return out
