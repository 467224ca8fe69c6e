"""Aggregate presence over the monitored set.

Presence turns true the moment any target's smoothed RSSI reaches the
effective threshold. It turns false only after every target has stayed below
it for ``proximity_timeout`` seconds; any qualifying reading in between cancels
the countdown.
"""

import logging

logger = logging.getLogger(__name__)

REASON_CLOSE = 'close'
REASON_AWAY = 'away'


class PresenceStateMachine:
    def __init__(self, estimator, scheduler, config, notify):
        self._estimator = estimator
        self._scheduler = scheduler
        self._config = config
        self._notify = notify
        self.present = False
        self._exit_timer = None

    @property
    def exit_pending(self):
        return self._scheduler.is_pending(self._exit_timer)

    def is_target_present(self, identifier):
        return self._estimator.estimate(identifier) >= self._config.effective_threshold

    def recompute(self, identifiers):
        """Re-evaluate presence after any target's window changed."""
        if any(self.is_target_present(identifier) for identifier in identifiers):
            if not self.present:
                logger.info("At least one device is close")
                self.present = True
                self._notify(True, REASON_CLOSE)
            if self.exit_pending:
                self._cancel_exit_timer()
                logger.info("Proximity timer cancelled")
        elif self.present and not self.exit_pending:
            self._exit_timer = self._scheduler.call_later(self._config.proximity_timeout, self._on_exit_timer)
            logger.info(f"Proximity timer started ({self._config.proximity_timeout}s)")

    def suspend(self):
        """Force presence to absent without notifying, e.g. when the radio powers off."""
        self._cancel_exit_timer()
        if self.present:
            logger.info("Presence suspended")
        self.present = False

    def _on_exit_timer(self):
        self._exit_timer = None
        logger.info("All devices are away")
        self.present = False
        self._notify(False, REASON_AWAY)

    def _cancel_exit_timer(self):
        self._scheduler.cancel(self._exit_timer)
        self._exit_timer = None
