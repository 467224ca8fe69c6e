import logging

logger = logging.getLogger(__name__)


def clamp_rssi(raw):
    """Positive readings are hardware artifacts; treat them as 0 dBm."""
    return 0 if raw > 0 else int(raw)


class RssiEstimator:
    """Smooths RSSI per monitored target over its last ``window_size`` samples.

    Windows live on the ``MonitoredTarget`` records in ``targets``; the
    estimator only appends to and averages them.
    """

    def __init__(self, targets, config):
        self._targets = targets
        self._config = config

    @property
    def absent_value(self):
        """Estimate reported for a target with no samples: just below the lock threshold."""
        return self._config.lock_rssi - 1

    def record_sample(self, identifier, raw_rssi):
        target = self._targets.get(identifier)
        if target is None:
            return self.absent_value
        target.samples.append(clamp_rssi(raw_rssi))
        estimate = self.estimate(identifier)
        logger.debug(f"{identifier} sample {raw_rssi} dBm, estimate {estimate} dBm over {len(target.samples)}")
        return estimate

    def estimate(self, identifier):
        target = self._targets.get(identifier)
        if target is None or not target.samples:
            return self.absent_value
        return sum(target.samples) / len(target.samples)

    def clear(self, identifier):
        target = self._targets.get(identifier)
        if target is not None:
            target.samples.clear()
