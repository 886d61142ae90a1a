from __future__ import annotations

import logging
import sys
from typing import Optional

from .application.self_test import ensure_self_test
from .domain.errors import CardPayError
from .env import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def startup(settings: Optional[Settings] = None) -> Settings:
    """Process start hook: load settings and run the known-answer self test.

    Call this once before serving payment pages so a broken crypto backend or
    a misconfigured merchant is reported before any customer is redirected.
    """
    if settings is None:
        settings = get_settings()
    ensure_self_test()
    logger.info(
        "CardPay ready: MID=%s variant=%s gateway=%s",
        settings.mid,
        settings.variant.value,
        settings.form_action_url or "<not configured>",
    )
    return settings


def main() -> None:
    """Check configuration and the self test, exiting non-zero on failure."""
    configure_logging()
    try:
        settings = startup()
    except CardPayError as e:
        logger.error("CardPay startup check failed: %s", e)
        sys.exit(1)
    logging.getLogger().setLevel(settings.log_level)
    print(f"CardPay merchant {settings.mid} ({settings.variant.value}) OK")


if __name__ == "__main__":
    main()
