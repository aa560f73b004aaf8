from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config import Configuration
from client.errors import ErrorCode

MAINTENANCE_MESSAGE_KEY = "Error.maintenanceMessage"
UNSUPPORTED_VERSION_MESSAGE_KEY = "Error.unsupportedVersion"
GO_STORE_LABEL_KEY = "Common.goStore"


@dataclass(frozen=True)
class Notice:
    """A modal notice handed to the UI dialog surface.

    Message and label are localization keys; the surface resolves them and, when
    ``store_url`` is set, opens it on confirm.
    """

    kind: ErrorCode
    message_key: str
    ok_label_key: Optional[str] = None
    store_url: Optional[str] = None


def store_url_for(cfg: Configuration, platform: Optional[str]) -> Optional[str]:
    stores = {"ios": cfg.app_store_url, "android": cfg.play_store_url}
    return stores.get((platform or "").lower())


def notice_for(code: ErrorCode, cfg: Configuration, platform: Optional[str]) -> Optional[Notice]:
    if code is ErrorCode.MAINTENANCE_MODE:
        return Notice(kind=code, message_key=MAINTENANCE_MESSAGE_KEY)
    if code is ErrorCode.UNSUPPORTED_VERSION:
        return Notice(
            kind=code,
            message_key=UNSUPPORTED_VERSION_MESSAGE_KEY,
            ok_label_key=GO_STORE_LABEL_KEY,
            store_url=store_url_for(cfg, platform),
        )
    return None
