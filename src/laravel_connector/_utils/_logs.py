import logging
import sys

logger = logging.getLogger("laravel_connector")


def setup_logging(should_debug: bool = False) -> None:
    """Attach a stderr handler to the package logger once."""
    level = logging.DEBUG if should_debug else logging.INFO
    logger.setLevel(level)

    if not any(getattr(h, "_laravel_connector", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        handler._laravel_connector = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
