from bleproximity.config import LOCK_DISABLED, ProximityConfig
from bleproximity.estimator import RssiEstimator, clamp_rssi
from bleproximity.models import MonitoredTarget


def make_estimator(**options):
    config = ProximityConfig(**options)
    targets = {'A': MonitoredTarget.create('A', config.window_size)}
    return RssiEstimator(targets, config), targets


def test_empty_window_reports_just_below_lock_threshold():
    estimator, _ = make_estimator()
    assert estimator.estimate('A') == -81
    assert estimator.estimate('unknown') == -81


def test_absent_value_follows_lock_threshold():
    estimator, _ = make_estimator(lock_rssi=LOCK_DISABLED)
    assert estimator.estimate('A') == LOCK_DISABLED - 1


def test_estimate_is_mean_of_last_n_samples():
    estimator, targets = make_estimator(window_size=3)
    for rssi in (-90, -60, -70, -80):
        estimator.record_sample('A', rssi)

    assert list(targets['A'].samples) == [-60, -70, -80]
    assert estimator.estimate('A') == -70


def test_partial_window_uses_available_samples():
    estimator, _ = make_estimator()
    estimator.record_sample('A', -50)
    assert estimator.record_sample('A', -61) == -55.5


def test_positive_readings_are_clamped_to_zero():
    assert clamp_rssi(7) == 0
    assert clamp_rssi(-42) == -42

    estimator, targets = make_estimator()
    estimator.record_sample('A', 127)
    assert list(targets['A'].samples) == [0]


def test_clear_empties_window():
    estimator, _ = make_estimator()
    estimator.record_sample('A', -40)
    estimator.clear('A')
    assert estimator.estimate('A') == -81


def test_samples_for_untracked_identifier_are_dropped():
    estimator, targets = make_estimator()
    estimator.record_sample('B', -40)
    assert 'B' not in targets
