# notifier.py

import logging

logger = logging.getLogger(__name__)

try:
    from plyer import notification
    PLYER_AVAILABLE = True
except ImportError:
    PLYER_AVAILABLE = False
    logger.warning("plyer is not installed, notifications go to the log only")


def send_notification(title: str, message: str, timeout: int = 10):
    """
    Desktop notification when possible; always written to the log.
    """
    logger.info("NOTIFY: %s: %s", title, message)

    if not PLYER_AVAILABLE:
        return

    try:
        notification.notify(
            title=title,
            message=message,
            app_name="CodeClock",
            timeout=timeout,
        )
    except Exception as e:
        # no notification backend on this desktop
        logger.warning("Notification failed: %s", e)
