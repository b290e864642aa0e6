import logging

import httpx

logger = logging.getLogger(__name__)

REMINDER_COLOR = 0xFBBF24
DEFAULT_COLOR = 0x6366F1


def build_embed_payload(title: str, description: str, color: int = DEFAULT_COLOR) -> dict:
    return {"embeds": [{"title": title, "description": description, "color": color}]}


async def send_webhook_notification(
    webhook_url: str, title: str, description: str, color: int = DEFAULT_COLOR
) -> bool:
    """Post an embed message to the notification webhook.

    Returns ``False`` instead of raising when the URL is unset or delivery
    fails.
    """
    if not webhook_url:
        logger.debug(f"No webhook configured, dropping notification {title!r}")
        return False

    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            resp = await client.post(webhook_url, json=build_embed_payload(title, description, color))
        except httpx.HTTPError as e:
            logger.error(f"Notification webhook failed: {e}")
            return False

    if resp.is_error:
        logger.error(f"Notification webhook returned {resp.status_code}")
        return False
    return True
