"""
Tests for the domain metrics aggregator and learning curves.

Covers: zero-trial neutral record, trial-level statistics against hand-computed
values, fatigue thirds, consistency and z-score from daily history, the
recent-vs-baseline scenario, and independence from write order.
"""

from dataclasses import asdict
from datetime import date

import pytest

from factories import (
    every_domain_played,
    game_session,
    snapshot,
    summaries_from_scores,
)
from mindboost.config import EngineConfig, MetricsParams
from mindboost.metrics import (
    compute_domain_metrics,
    empty_domain_metrics,
    fatigue_index,
    get_learning_curves,
)
from mindboost.models import Snapshot


def _one(snap, domain, cfg):
    (m,) = compute_domain_metrics(snap, domain, cfg)
    return m


# ─── Zero state ───────────────────────────────────────────────


class TestZeroState:

    def test_every_domain_returned_in_catalog_order(self, cfg):
        result = compute_domain_metrics(Snapshot(), cfg=cfg)
        assert [m.domain for m in result] == list(cfg.domain_keys)

    def test_zero_trial_record_is_exact(self, cfg):
        m = _one(Snapshot(), "attention", cfg)
        assert asdict(m) == {
            "domain": "attention",
            "accuracy_rate": 0.0,
            "median_rt": 0.0,
            "rt_variability": 0.0,
            "omission_rate": 0.0,
            "speed_accuracy_tradeoff": 0.0,
            "learning_rate": 0.0,
            "fatigue_index": 0.0,
            "consistency": 0.0,
            "z_score": 0.0,
            "confidence_lower": -1.0,
            "confidence_upper": 1.0,
            "trial_count": 0,
        }
        assert not m.has_data

    def test_zero_trials_ignores_daily_history(self, cfg):
        history = summaries_from_scores(date(2026, 1, 1), {"attention": [40] * 5 + [90] * 5})
        m = _one(snapshot(summaries=history), "attention", cfg)
        assert m == empty_domain_metrics("attention")

    def test_unknown_domain_raises(self, cfg):
        with pytest.raises(ValueError):
            compute_domain_metrics(Snapshot(), "creativity", cfg)


# ─── Trial-level statistics ───────────────────────────────────


class TestTrialStatistics:

    @pytest.fixture
    def snap(self):
        s1 = game_session("n-back", [
            (True, 400), (True, 500), (True, 600),
            (False, 700), (False, 800), (False, 1600),
        ], day=date(2026, 3, 1))
        s2 = game_session("n-back", [(True, 300), (True, 300), (True, 300)], day=date(2026, 3, 2))
        return snapshot([s1, s2])

    def test_golden_values(self, snap, cfg):
        m = _one(snap, "working_memory", cfg)
        assert m.trial_count == 9
        assert m.accuracy_rate == 0.67           # 6 / 9
        assert m.median_rt == 500.0
        assert m.rt_variability == 400.0         # s[6] - s[2] = 700 - 300
        assert m.omission_rate == 0.11           # one trial over 1500 ms
        assert m.speed_accuracy_tradeoff == 0.44 # 2/3 × (1 − 500/1500)
        assert m.learning_rate == 0.5            # session accuracies [0.5, 1.0]
        assert m.fatigue_index == 0.0            # first three and last three all correct

    def test_no_daily_history_uses_neutral_standing(self, snap, cfg):
        m = _one(snap, "working_memory", cfg)
        assert m.consistency == 0.5
        assert m.z_score == 0.0
        assert m.confidence_lower == -1.96
        assert m.confidence_upper == 1.96

    def test_other_domains_stay_empty(self, snap, cfg):
        for m in compute_domain_metrics(snap, cfg=cfg)[1:]:
            assert m.trial_count == 0

    def test_write_order_does_not_matter(self, snap, cfg):
        reversed_snap = Snapshot(trials=tuple(reversed(snap.trials)), sessions=snap.sessions)
        assert compute_domain_metrics(reversed_snap, cfg=cfg) == compute_domain_metrics(snap, cfg=cfg)

    def test_slow_median_gives_negative_tradeoff(self, cfg):
        snap = snapshot([game_session("stroop", [(True, 1800), (True, 2100), (True, 2400)])])
        m = _one(snap, "inhibitory_control", cfg)
        # 1 × (1 − 2100/1500)
        assert m.speed_accuracy_tradeoff == -0.4
        assert m.omission_rate == 1.0

    def test_unknown_game_trials_are_ignored(self, cfg):
        snap = snapshot([game_session("mystery-game", [(True, 400)] * 3)])
        assert all(m.trial_count == 0 for m in compute_domain_metrics(snap, cfg=cfg))


# ─── Fatigue ──────────────────────────────────────────────────


class TestFatigue:

    def test_first_third_vs_last_third(self):
        assert fatigue_index([True, True, False, False, False, False]) == 1.0

    def test_improvement_is_negative(self):
        assert fatigue_index([False, False, False, True, True, True]) == -1.0

    def test_under_three_trials_is_zero(self):
        assert fatigue_index([True, False]) == 0.0
        assert fatigue_index([]) == 0.0

    def test_floor_division_for_third(self):
        # n=7 → third=2: early [T, T] = 1.0, late [F, T] = 0.5
        outcomes = [True, True, True, False, True, False, True]
        assert fatigue_index(outcomes) == 0.5

    def test_reported_in_domain_metrics(self, cfg):
        outcomes = [(True, 500)] * 3 + [(True, 500)] * 3 + [(False, 500)] * 3
        snap = snapshot([game_session("visual-search", outcomes)])
        assert _one(snap, "attention", cfg).fatigue_index == 1.0


# ─── Daily standing: consistency, z-score, interval ───────────


class TestStanding:

    def test_recent_vs_baseline_scenario(self, cfg):
        history = summaries_from_scores(
            date(2026, 3, 1), {"working_memory": [40, 40, 40, 40, 40, 90, 90, 90, 90, 90]},
        )
        snap = snapshot(every_domain_played(), summaries=history)
        by_domain = {m.domain: m for m in compute_domain_metrics(snap, cfg=cfg)}

        wm = by_domain["working_memory"]
        # flat baseline falls back to std 10: (90 − 40) / 10
        assert wm.z_score == 5.0
        assert wm.confidence_lower == 4.12       # 5 − 1.96/√5
        assert wm.confidence_upper == 5.88
        assert wm.consistency == 0.0             # std of the 10 scores ≈ 26 > 20

        for key in ("inhibitory_control", "cognitive_flexibility", "attention", "processing_speed"):
            assert by_domain[key].z_score == 0.0
            assert by_domain[key].consistency == 1.0

    def test_noisy_baseline_uses_sample_std(self, cfg):
        scores = [38, 42, 40, 41, 39, 45, 50, 50, 50, 50, 50]
        history = summaries_from_scores(date(2026, 1, 1), {"attention": scores})
        snap = snapshot([game_session("visual-search", [(True, 500)] * 3)], summaries=history)
        # baseline mean 40, std √2.5; recent mean 50
        assert _one(snap, "attention", cfg).z_score == 6.32

    def test_single_baseline_day_uses_default_std(self, cfg):
        history = summaries_from_scores(date(2026, 1, 1), {"attention": [70]})
        snap = snapshot([game_session("visual-search", [(True, 500)] * 3)], summaries=history)
        m = _one(snap, "attention", cfg)
        assert m.z_score == 0.0
        assert m.consistency == 0.5              # ≤ 2 daily scores

    def test_zero_scores_are_skipped(self, cfg):
        history = summaries_from_scores(date(2026, 1, 1), {"attention": [0, 0, 60, 62, 58]})
        snap = snapshot([game_session("visual-search", [(True, 500)] * 3)], summaries=history)
        m = _one(snap, "attention", cfg)
        # only [60, 62, 58] count: std 2 → 1 − 2/20
        assert m.consistency == 0.9

    def test_consistency_uses_last_ten_days(self, cfg):
        scores = [0.1, 100, 0.1, 100] + [60] * 10
        history = summaries_from_scores(date(2026, 1, 1), {"attention": scores})
        snap = snapshot([game_session("visual-search", [(True, 500)] * 3)], summaries=history)
        assert _one(snap, "attention", cfg).consistency == 1.0

    def test_summaries_sorted_before_slicing(self, cfg):
        history = summaries_from_scores(
            date(2026, 3, 1), {"working_memory": [40, 40, 40, 40, 40, 90, 90, 90, 90, 90]},
        )
        shuffled = history[5:] + history[:5]
        snap = snapshot(every_domain_played(), summaries=shuffled)
        assert _one(snap, "working_memory", cfg).z_score == 5.0

    def test_custom_default_std_scales_flat_baseline(self):
        cfg = EngineConfig(metrics=MetricsParams(baseline_std_default=25.0))
        history = summaries_from_scores(
            date(2026, 3, 1), {"working_memory": [40, 40, 40, 40, 40, 90, 90, 90, 90, 90]},
        )
        snap = snapshot(every_domain_played(), summaries=history)
        assert _one(snap, "working_memory", cfg).z_score == 2.0

    @pytest.mark.parametrize("bad", [0.0, -5.0])
    def test_non_positive_default_std_rejected(self, bad):
        with pytest.raises(ValueError, match="baseline_std_default"):
            MetricsParams(baseline_std_default=bad)

    def test_no_nan_anywhere(self, cfg):
        history = summaries_from_scores(date(2026, 1, 1), {"attention": [55]})
        snap = snapshot(every_domain_played(), summaries=history)
        for m in compute_domain_metrics(snap, cfg=cfg):
            for value in asdict(m).values():
                if isinstance(value, float):
                    assert value == value


# ─── Learning curves ──────────────────────────────────────────


class TestLearningCurves:

    def test_one_point_per_session_sorted_by_date(self, cfg):
        later = game_session("stroop", [(True, 400), (True, 600)], day=date(2026, 3, 5))
        earlier = game_session("stroop", [(False, 800), (True, 900), (True, 700)], day=date(2026, 3, 2))
        snap = snapshot([later, earlier])

        (curve,) = get_learning_curves(snap, "stroop", cfg)
        assert curve.game_id == "stroop"
        assert curve.domain == "inhibitory_control"
        assert [p.date for p in curve.sessions] == ["2026-03-02", "2026-03-05"]
        assert [p.accuracy for p in curve.sessions] == [0.67, 1.0]
        assert [p.median_rt for p in curve.sessions] == [800.0, 500.0]
        assert [p.trial_count for p in curve.sessions] == [3, 2]

    def test_all_games_by_default(self, cfg):
        curves = get_learning_curves(Snapshot(), cfg=cfg)
        assert [c.game_id for c in curves] == [g.id for g in cfg.games]
        assert all(c.sessions == () for c in curves)

    def test_unknown_game_raises(self, cfg):
        with pytest.raises(ValueError):
            get_learning_curves(Snapshot(), "chess", cfg)
