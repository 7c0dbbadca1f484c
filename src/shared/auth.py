"""
Shared-secret check for the admin endpoint.

The admin UI sends the operator's PIN inside the JSON body:

    {"pin": "482913", "action": "add_news", ...}

There is one PIN for everyone. It is compared in constant time against
ADMIN_PIN; both sides are trimmed first. A missing ADMIN_PIN never gets this
far: loading Settings raises ConfigurationError instead.
"""

import hmac

from shared.config import Settings
from shared.errors import AuthorizationError


def verify_pin(presented: object, settings: Settings) -> None:
    """Raise AuthorizationError unless the presented PIN matches ADMIN_PIN."""
    pin = "" if presented is None else str(presented).strip()
    if not pin:
        raise AuthorizationError("Missing pin")

    expected = settings.admin_pin.strip()
    if not hmac.compare_digest(pin.encode("utf-8"), expected.encode("utf-8")):
        raise AuthorizationError("Bad pin")
