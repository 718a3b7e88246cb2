from foodtracker.config import get_settings


def get_recipient_id() -> str:
    """The implicit single tenant. Swap for a real auth dependency later."""
    return get_settings().DEFAULT_RECIPIENT_ID
