"""Centralized logging configuration for Finboard.

Standard usage:
    ```python
    import logging
    from finboard.config import get_settings
    from finboard.logging import LoggingConfig, setup_logging

    # Configure once at application startup
    setup_logging(LoggingConfig.from_settings(get_settings().logging))

    # Get loggers in each module
    logger = logging.getLogger(__name__)
    ```
"""

from .config import LoggingConfig, setup_logging

__all__ = ["LoggingConfig", "setup_logging"]
