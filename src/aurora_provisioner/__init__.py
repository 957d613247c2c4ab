"""aurora_provisioner."""

from .monitoring.logger import configure_logger

# Configure logger with default settings (console logging at INFO)
# Entry points reconfigure it from Settings on every invocation
configure_logger()
