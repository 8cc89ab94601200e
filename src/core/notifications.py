import time
from typing import Any, Dict, Optional

from config.constants import NOTIFICATION_CONFIG


def build_push_notification(text: Optional[str], app_name: str, now: Optional[float] = None) -> Optional[Dict[str, Any]]:
    """Payload for showing a push message. Empty push data yields None."""
    if not text:
        return None

    icon = NOTIFICATION_CONFIG["icon"]
    timestamp = time.time() if now is None else now
    return {
        "title": app_name,
        "options": {
            "body": text,
            "icon": icon,
            "badge": NOTIFICATION_CONFIG["badge"],
            "vibrate": list(NOTIFICATION_CONFIG["vibrate"]),
            "data": {
                "dateOfArrival": int(timestamp * 1000),
                "primaryKey": NOTIFICATION_CONFIG["primary_key"],
            },
            "actions": [
                {"action": "explore", "title": f"Open {app_name}", "icon": icon},
                {"action": "close", "title": "Close", "icon": icon},
            ],
        },
    }
