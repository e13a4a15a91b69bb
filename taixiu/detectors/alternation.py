"""Alternation family: zig-zags, k-k block rhythms and short exact motifs."""
from taixiu.analytics.patterns import leading_alternation, match_template, runs
from taixiu.core.labels import opposite
from taixiu.detectors.base import Signal, register


@register('cau_dao_11', family='alternation', priority=9, min_rounds=4)
def one_one(h, stats):
    n = leading_alternation(h.labels, limit=10)
    if n < 4:
        return None
    return Signal(opposite(h.labels[0]), min(14, n * 2 + 4), f'Cầu Đảo 1-1 ({n} phiên)', {'length': n})


def block_rhythm(labels, k: int):
    """(blocks, current_run) for a k-k rhythm ending at the newest round, or None.

    The current run may be partial (< k); every run behind it must be exactly k
    long to count.
    """
    segs = runs(labels)
    if len(segs) < 2:
        return None
    cur = segs[0][3]
    if cur > k:
        return None
    done = 0
    for s in segs[1:]:
        if s[3] != k:
            break
        done += 1
    if done == 0:
        return None
    blocks = done + (1 if cur == k else 0)
    if k == 2 and blocks < 2:
        return None
    return blocks, cur


def _rhythm(k: int, cap: int, per_block: int, base: int):
    def detect(h, stats):
        found = block_rhythm(h.labels, k)
        if found is None:
            return None
        blocks, cur = found
        # block complete: the next one starts on the other side
        pred = opposite(h.labels[0]) if cur == k else h.labels[0]
        return Signal(pred, min(cap, blocks * per_block + base), f'Cầu {k}-{k} ({blocks} bộ)',
                      {'blocks': blocks, 'position': cur})
    detect.__name__ = f'rhythm_{k}{k}'
    return detect


register('cau_22', family='alternation', priority=8, min_rounds=6)(_rhythm(2, 12, 3, 3))
register('cau_33', family='alternation', priority=8, min_rounds=6)(_rhythm(3, 13, 4, 5))
register('cau_44', family='alternation', priority=9, min_rounds=8)(_rhythm(4, 14, 4, 6))
register('cau_55', family='alternation', priority=9, min_rounds=10)(_rhythm(5, 15, 5, 7))


@register('cau_doi', family='alternation', priority=8, min_rounds=4)
def pairs(h, stats):
    labels = h.labels
    n = 0
    i = 0
    while i < len(labels) - 1 and labels[i] == labels[i+1]:
        n += 1
        i += 2
    if n < 2:
        return None
    if labels[0] != labels[2]:
        return Signal(opposite(labels[0]), min(12, n * 3 + 4), f'Cầu Đôi Đảo ({n} cặp)', {'pairs': n})
    return Signal(labels[0], min(11, n * 2 + 5), f'Cầu Đôi Bệt ({n} cặp)', {'pairs': n})


@register('cau_ziczac', family='alternation', priority=8, min_rounds=8)
def zigzag(h, stats):
    labels = h.labels
    z = 0
    for i in range(len(labels) - 2):
        if labels[i] != labels[i+1] and labels[i] == labels[i+2]:
            z += 1
        else:
            break
    if z < 3:
        return None
    return Signal(opposite(labels[0]), min(13, z * 2 + 5), f'Cầu Ziczac ({z} lần)', {'count': z})


# (pattern id, newest-first template, predicted letter, confidence, priority, label)
MOTIFS = [
    ('cau_121', 'ABBA', 'A', 10, 7, 'Cầu 1-2-1'),
    ('cau_123', 'AAABBA', 'A', 11, 7, 'Cầu 1-2-3'),
    ('cau_321', 'ABBAAA', 'B', 12, 7, 'Cầu 3-2-1'),
    ('cau_212', 'AABBA', 'B', 10, 8, 'Cầu 2-1-2'),
    ('cau_1221', 'ABBBAA', 'A', 11, 8, 'Cầu 1-2-2-1'),
    ('cau_2112', 'AABBAA', 'A', 11, 8, 'Cầu 2-1-1-2'),
    ('cau_3van1', 'AAAB', 'A', 8, 6, 'Cầu 3 Ván 1'),
]


def _motif(template: str, letter: str, confidence: int, label: str):
    def detect(h, stats):
        bound = match_template(h.labels, template)
        if bound is None or letter not in bound:
            return None
        return Signal(bound[letter], confidence, label, {'template': template})
    detect.__name__ = f'motif_{template.lower()}'
    return detect


for _pid, _tpl, _letter, _conf, _prio, _label in MOTIFS:
    register(_pid, family='alternation', priority=_prio, min_rounds=len(_tpl))(
        _motif(_tpl, _letter, _conf, _label))
