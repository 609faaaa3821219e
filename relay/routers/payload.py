import json

from fastapi import Request

from relay.logging_config import get_logger

logger = get_logger("payload")


class InvalidPayloadError(Exception):
    pass


async def parse_json_body(request: Request) -> dict:
    """
    Parse a webhook body with tolerant decoding to avoid utf-8 crashes.
    Raises InvalidPayloadError if nothing decodes to a JSON object.
    """
    try:
        body = await request.json()
    except Exception as e:
        logger.warning(f"Standard request.json() failed: {e}, fallback decoding")
        body = None
        raw = await request.body()
        for enc in ("utf-8", "latin-1"):
            try:
                body = json.loads(raw.decode(enc, errors="replace"))
                break
            except ValueError:
                continue

    if not isinstance(body, dict):
        raise InvalidPayloadError("Webhook payload is not a JSON object")
    return body
