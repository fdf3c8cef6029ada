from fastapi import Header

from scanboard.core.settings import settings


def current_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    """Identity of the caller for watchlist scoping.

    There is no authentication here: the id comes from the ``X-User-Id``
    header, or ``DEFAULT_USER_ID`` when the header is absent or blank.
    """
    uid = (x_user_id or "").strip()
    return uid or settings.DEFAULT_USER_ID
