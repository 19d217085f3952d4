import base64
import hashlib
import hmac
import json
from typing import Any, Dict, Mapping

from .errors import InvalidPayload, Unauthorized
from .helpers import ct_equal

SIGNATURE_HEADER = "x-webhook-signature"


def sign(secret: str, payload: bytes) -> str:
    mac = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    return base64.b64encode(mac).decode()


class WebhookVerifier:
    """Checks the HMAC signature of a raw webhook body before parsing it."""

    def __init__(self, secret: str) -> None:
        self.secret = secret

    def verify_webhook(self, payload: bytes,
                       headers: Mapping[str, str]) -> Dict[str, Any]:
        sig = headers.get(SIGNATURE_HEADER)
        # an unset secret must not turn into "everyone may sign"
        if not self.secret or not sig:
            raise Unauthorized("Invalid signature")
        if not ct_equal(sign(self.secret, payload), sig):
            raise Unauthorized("Invalid signature")
        try:
            event = json.loads(payload.decode())
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise InvalidPayload("Invalid JSON")
        if not isinstance(event, dict):
            raise InvalidPayload("Webhook body must be a JSON object")
        return event
