"""structlog setup shared by the CLI and library modules."""
import logging
import sys

import structlog


def setup_logging(level: str = "INFO") -> None:
    """Route structlog through the stdlib root logger with a console renderer."""
    common_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    structlog.configure(
        processors=[
            *common_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=common_processors,
        processor=structlog.dev.ConsoleRenderer(colors=False),
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
    # RDKit parse errors are reported per compound through BuildError
    from rdkit import RDLogger
    RDLogger.DisableLog("rdApp.*")
