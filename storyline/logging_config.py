import datetime
import logging

from asgi_correlation_id import CorrelationIdFilter


class UTCFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        utc_time = datetime.datetime.fromtimestamp(record.created, tz=datetime.timezone.utc)
        return utc_time.strftime("%Y-%m-%dT%H:%M:%S+0000")


def configure_logging():
    # Create a custom formatter with correlation ID and UTC timestamps
    formatter = UTCFormatter("%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s")

    # Clear any existing handlers on the root logger
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    # Create console handler with correlation ID filter
    console_handler = logging.StreamHandler()
    console_handler.addFilter(CorrelationIdFilter(uuid_length=8))
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.INFO)

    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(console_handler)
