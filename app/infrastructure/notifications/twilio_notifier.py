import logging
from typing import Optional, Dict

from twilio.rest import Client
from twilio.http.http_client import TwilioHttpClient

from ...application.ports.notifier import Notifier

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = "Your Harvest verification code is {code}. It expires in a few minutes."
CALL_TEMPLATE = "<Response><Say>Your Harvest verification code is {digits}.</Say></Response>"


class TwilioNotifier(Notifier):
    """Sends codes by SMS, WhatsApp or voice call through the Twilio REST API."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str, client: Optional[Client] = None):
        if client is None:
            if not account_sid or not auth_token:
                raise RuntimeError("Twilio credentials not configured")
            client = Client(account_sid, auth_token, http_client=TwilioHttpClient(timeout=10))
        self.client = client
        self.from_number = from_number

    def send(self, destination: str, code: str, channel: str) -> None:
        if channel == "call":
            digits = " ".join(code)
            call = self.client.calls.create(to=destination, from_=self.from_number, twiml=CALL_TEMPLATE.format(digits=digits))
            logger.info(f"Twilio call queued: {call.sid}")
            return

        to, from_ = destination, self.from_number
        if channel == "whatsapp":
            to, from_ = f"whatsapp:{destination}", f"whatsapp:{self.from_number}"
        message = self.client.messages.create(body=MESSAGE_TEMPLATE.format(code=code), from_=from_, to=to)
        logger.info(f"Twilio {channel} message queued: {message.sid}")


class ChannelNotifier(Notifier):
    """Routes each channel to its own backend, falling back to ``default``."""

    def __init__(self, routes: Dict[str, Notifier], default: Notifier):
        self.routes = routes
        self.default = default

    def send(self, destination: str, code: str, channel: str) -> None:
        self.routes.get(channel, self.default).send(destination, code, channel)
