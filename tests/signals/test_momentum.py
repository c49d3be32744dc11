from src.signals.models import NEUTRAL, UPWARD, PricePoint
from src.signals.momentum import analyze_momentum

NOW = 1_700_000_000.0


def test_empty_history_is_neutral():
    analysis = analyze_momentum([], NOW)
    assert analysis.medium.main == NEUTRAL
    assert analysis.short.main == NEUTRAL
    assert analysis.any_downward is False


def test_short_history_only_moves_short_term_signal():
    points = [
        PricePoint(100.0 if i >= 15 else 102.0, NOW - 30 - i * 60) for i in range(30)
    ]
    analysis = analyze_momentum(sorted(points, key=lambda p: p.timestamp), NOW)
    assert analysis.medium.main == NEUTRAL
    assert analysis.short.main == UPWARD
