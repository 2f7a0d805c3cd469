import logging
import sys


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configures logging for the application.
    """
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Driver chatter is only useful when debugging connections
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
