import logging

from ...application.ports.notifier import Notifier

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """Development backend: writes codes to the application log instead of sending them."""

    def send(self, destination: str, code: str, channel: str) -> None:
        logger.info(f"[{channel}] code {code} for {destination}")
