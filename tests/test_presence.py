from bleproximity.config import LOCK_DISABLED


def test_first_close_reading_reports_presence_immediately(passive):
    passive.engine.start_monitor(['A', 'B'])
    passive.seen('A', -55)

    assert passive.engine.present is True
    assert passive.presence_events == [(True, 'close')]


def test_both_targets_away_reports_away_once_after_debounce(passive):
    passive.engine.start_monitor(['A', 'B'])
    passive.seen('A', -55)
    for _ in range(5):
        passive.seen('A', -90)
        passive.seen('B', -90)

    assert passive.engine.presence.exit_pending
    passive.advance(4.5)
    assert passive.engine.present is True

    passive.advance(0.5)
    assert passive.engine.present is False
    passive.advance(10)
    assert passive.presence_events == [(True, 'close'), (False, 'away')]


def test_close_reading_during_debounce_cancels_away(passive):
    passive.engine.start_monitor(['A'])
    passive.seen('A', -55)
    for _ in range(3):
        passive.seen('A', -95)
    assert passive.engine.presence.exit_pending

    passive.advance(1)
    passive.seen('A', -20)
    assert not passive.engine.presence.exit_pending

    passive.advance(10)
    assert passive.engine.present is True
    assert passive.presence_events == [(True, 'close')]


def test_one_target_close_keeps_presence(passive):
    passive.engine.start_monitor(['A', 'B'])
    passive.seen('A', -50)
    passive.seen('B', -95)

    passive.advance(10)
    assert passive.engine.present is True


def test_unsampled_target_never_counts_as_present(passive):
    passive.engine.start_monitor(['A'])
    passive.advance(30)

    assert passive.engine.present is False
    assert passive.presence_events == []


def test_between_thresholds_counts_as_present_while_lock_enabled(passive):
    passive.engine.start_monitor(['A'])
    passive.seen('A', -70)
    assert passive.engine.present is True


def test_lock_disabled_uses_unlock_threshold(make_harness):
    harness = make_harness(passive_mode=True, lock_rssi=LOCK_DISABLED)
    harness.engine.start_monitor(['A'])
    harness.seen('A', -70)
    assert harness.engine.present is False

    harness.seen('A', -40)  # mean -55
    assert harness.engine.present is True


def test_thresholds_can_change_at_runtime(passive):
    passive.engine.start_monitor(['A'])
    passive.engine.set_thresholds(lock_rssi=-50, unlock_rssi=-40)
    passive.seen('A', -60)
    assert passive.engine.present is False


def test_signal_loss_clears_window_and_leads_to_away(passive):
    passive.engine.start_monitor(['A'])
    passive.seen('A', -50)

    passive.advance(59.5)
    assert passive.engine.estimate('A') == -50

    passive.advance(0.5)
    assert passive.engine.estimate('A') == -81
    assert ('update_rssi', 'A', None, False) in passive.listener.calls
    assert passive.engine.presence.exit_pending

    passive.advance(5)
    assert passive.presence_events == [(True, 'close'), (False, 'away')]


def test_new_sample_resets_signal_loss_timer(passive):
    passive.engine.start_monitor(['A'])
    passive.seen('A', -50)
    passive.advance(50)
    passive.seen('A', -50)
    passive.advance(50)

    assert passive.engine.estimate('A') == -50
    assert passive.engine.present is True


def test_failing_listener_does_not_break_transitions(passive, caplog):
    def broken(present, reason):
        raise RuntimeError('listener down')

    passive.listener.update_presence = broken
    passive.engine.start_monitor(['A'])
    passive.seen('A', -50)

    assert passive.engine.present is True
    assert 'update_presence failed' in caplog.text
