"""
Logging for the relay.

Everything goes through one named application logger, with console output
and an optional rotating file. Module loggers are its children. Per-request
relay loggers also tag each line with the endpoint and a request number, so
that the lines of one streamed answer can be told apart when several streams
interleave.
"""

import itertools
import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional, Tuple

from .config import settings

PACKAGE = "playground"

_request_ids = itertools.count(1)


def _level() -> int:
    return getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)


def _build_handlers() -> Tuple[List[logging.Handler], Optional[str]]:
    """Console handler, plus the rotating file handler when LOG_FILE is set."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if not settings.LOG_FILE:
        return handlers, None

    try:
        Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            filename=settings.LOG_FILE,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8"
        ))
    except OSError as e:
        return handlers, str(e)
    return handlers, None


def setup_logging() -> logging.Logger:
    """
    Configure the application logger.

    Returns:
        logging.Logger: Logger named after APP_NAME; it does not propagate
    """
    app_logger = logging.getLogger(settings.APP_NAME)
    app_logger.setLevel(_level())

    # Reload re-imports this module
    app_logger.handlers.clear()

    formatter = logging.Formatter(fmt=settings.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers, file_error = _build_handlers()
    for handler in handlers:
        handler.setLevel(_level())
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)

    app_logger.propagate = False

    if file_error:
        app_logger.warning(f"File logging disabled, cannot open {settings.LOG_FILE}: {file_error}")

    return app_logger


logger = setup_logging()


def get_logger(module_name: Optional[str] = None) -> logging.Logger:
    """
    Get a child of the application logger.

    ``get_logger(__name__)`` in ``playground.llm.client`` gives
    ``"<APP_NAME>.llm.client"``.
    """
    if not module_name:
        return logger
    if module_name.startswith(PACKAGE + "."):
        module_name = module_name[len(PACKAGE) + 1:]
    return logging.getLogger(f"{settings.APP_NAME}.{module_name}")


class RelayLogAdapter(logging.LoggerAdapter):
    """Prefixes each message with ``[<route> #<request id>]``."""

    @property
    def tag(self) -> str:
        return f"[{self.extra['route']} #{self.extra['request_id']}]"

    def process(self, msg, kwargs):
        return f"{self.tag} {msg}", kwargs


def relay_logger(base: logging.Logger, route: str) -> RelayLogAdapter:
    """Logger for one relay request; each call takes the next request number."""
    return RelayLogAdapter(base, {"route": route, "request_id": next(_request_ids)})


def log_startup_info():
    """Log application startup information"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Debug Mode: {settings.DEBUG}")
    logger.info(
        f"LLM: {settings.LLM_MODEL_NAME} via {settings.LLM_TYPE} "
        f"({settings.LLM_BASE_URL or 'default endpoint'})"
    )
    logger.info(f"Embedding Model: {settings.EMBEDDING_MODEL} ({settings.EMBEDDING_BASE_URL})")
    if settings.VECTOR_STORE_TYPE == "qdrant":
        logger.info(f"Vector Store: qdrant at {settings.QDRANT_URL}")
    else:
        logger.info(f"Vector Store: {settings.VECTOR_STORE_TYPE}")
    logger.info(f"Default top-k: {settings.RETRIEVAL_TOP_K}, upstream timeout: {settings.REQUEST_TIMEOUT}s")
    logger.info("Relay endpoints: POST /api/runChat, POST /api/ragChat")
    logger.info("=" * 60)


def log_shutdown_info():
    """Log application shutdown information"""
    logger.info(f"Shutting down {settings.APP_NAME}")
