from taixiu.analytics.patterns import alternations, leading_alternation, leading_run, match_template, runs


def test_runs():
    assert runs("TTTXX", k=3) == [(0, 2, 'T', 3)]
    assert runs("TTTXX") == [(0, 2, 'T', 3), (3, 4, 'X', 2)]


def test_alt():
    out = alternations("TXTXTX", L=4)
    assert out and out[0][0] == 0


def test_leading():
    assert leading_run("XXXT") == ('X', 3)
    assert leading_run("") == (None, 0)
    assert leading_alternation("TXTXX") == 4
    assert leading_alternation("TXTXTXTXTXTX", limit=10) == 10


def test_match_template():
    assert match_template("TXXT", "ABBA") == {'A': 'T', 'B': 'X'}
    assert match_template("TXXX", "ABBA") is None
    # distinct letters cannot share a class
    assert match_template("TTTT", "ABBA") is None
    assert match_template("TX", "ABBA") is None
