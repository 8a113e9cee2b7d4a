"""Logging setup with correlation ids on every record."""

import logging

from clubcore.core.correlation import get_current_context

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "[corr=%(correlation_id)s cause=%(causation_id)s] %(message)s"
)


class CorrelationLogFilter(logging.Filter):
    """Stamp the active request's trace ids onto log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_current_context()
        record.correlation_id = context.correlation_id if context else "-"
        record.causation_id = context.causation_id if context else "-"
        return True


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    correlation_filter = CorrelationLogFilter()
    # Filters on handlers see records from every logger
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CorrelationLogFilter) for f in handler.filters):
            handler.addFilter(correlation_filter)
