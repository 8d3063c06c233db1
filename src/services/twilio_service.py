from __future__ import annotations

import asyncio

import structlog
from twilio.base.exceptions import TwilioException
from twilio.rest import Client
from twilio.twiml.voice_response import VoiceResponse

from src.config import Settings, settings as default_settings
from src.core.exceptions import ConfigurationError, TelephonyError


class TwilioService:
    """
    Thin wrapper around the Twilio SDK for voice calls.

    Builds the TwiML for inbound calls and escalations, and updates live calls.
    The REST client is created lazily, so TwiML can be rendered without credentials.
    """

    def __init__(self, config: Settings | None = None, client: Client | None = None) -> None:
        self.logger = structlog.get_logger(__name__)
        self.settings = config or default_settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(
            self.settings.twilio_account_sid and self.settings.twilio_auth_token
        )

    def _get_client(self) -> Client:
        if self._client is None:
            if not self.enabled:
                raise ConfigurationError(
                    "Twilio credentials are not configured. Set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN."
                )
            self._client = Client(self.settings.twilio_account_sid, self.settings.twilio_auth_token)
        return self._client

    def greeting(self, first_name: str | None = None) -> str:
        store_name = self.settings.store_name
        if first_name:
            return f"Hi {first_name}, thanks for calling {store_name}, How can I help you?"
        return f"Thanks for calling {store_name}, How can I help you?"

    def build_connect_twiml(self, first_name: str | None = None) -> str:
        """<Connect><Assistant/></Connect> handing the call to the assistant."""
        response = VoiceResponse()
        connect = response.connect()
        connect.add_child(
            "Assistant",
            id=self.settings.assistant_id or "",
            welcome_greeting=self.greeting(first_name),
            voice=self.settings.assistant_voice,
        )
        return str(response)

    def build_transfer_twiml(self) -> str:
        response = VoiceResponse()
        response.say(self.settings.transfer_message)
        response.dial(self.settings.transfer_fallback_number)
        return str(response)

    async def transfer_call(self, call_sid: str) -> None:
        """
        Redirect a live call to a human.

        Raises:
            ConfigurationError: Twilio credentials missing
            TelephonyError: Twilio rejected the call update
        """
        client = self._get_client()
        twiml = self.build_transfer_twiml()
        try:
            await asyncio.to_thread(lambda: client.calls(call_sid).update(twiml=twiml))
        except TwilioException as exc:
            self.logger.error("twilio_call_update_failed", call_sid=call_sid, error=str(exc))
            raise TelephonyError("Failed to forward the call") from exc
        self.logger.info("twilio_call_transferred", call_sid=call_sid, to=self.settings.transfer_fallback_number)
