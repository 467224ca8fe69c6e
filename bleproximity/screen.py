"""Lock and wake the GNOME screensaver over D-Bus when presence changes."""

import logging

import dbus

from .listener import LoggingListener

logger = logging.getLogger(__name__)

SCREENSAVER_SERVICE = 'org.gnome.ScreenSaver'
SCREENSAVER_PATH = '/org/gnome/ScreenSaver'
# For Cinnamon: 'org.cinnamon.ScreenSaver', for MATE: 'org.mate.ScreenSaver'


class ScreenLockListener(LoggingListener):
    def __init__(self, session_bus=None, service=SCREENSAVER_SERVICE, path=SCREENSAVER_PATH):
        self.session_bus = session_bus if session_bus is not None else dbus.SessionBus()
        self.service = service
        self.path = path
        self.screen_locked_by_us = False

    def update_presence(self, present, reason):
        super().update_presence(present, reason)
        if present:
            self.unlock_screen()
        else:
            self.lock_screen()

    def _screensaver(self):
        return self.session_bus.get_object(self.service, self.path)

    def is_screen_locked(self):
        try:
            return bool(self._screensaver().GetActive(dbus_interface=self.service))
        except dbus.exceptions.DBusException as e:
            logger.debug(f"Failed to check screen lock status: {e}")
            return False  # Assume not locked if status check fails

    def lock_screen(self):
        if self.is_screen_locked():
            return
        try:
            self._screensaver().Lock(dbus_interface=self.service)
            self.screen_locked_by_us = True
            logger.info("Screen locked.")
        except dbus.exceptions.DBusException as e:
            logger.error(f"Failed to lock screen: {e}")

    def unlock_screen(self):
        # Only undo locks we performed ourselves
        if not self.screen_locked_by_us or not self.is_screen_locked():
            return
        try:
            # This deactivates the screensaver, showing the password prompt.
            self._screensaver().SetActive(False, dbus_interface=self.service)
            self.screen_locked_by_us = False
            logger.info("Screen unlock attempted (woke screen).")
        except dbus.exceptions.DBusException as e:
            logger.error(f"Failed to unlock screen: {e}")
