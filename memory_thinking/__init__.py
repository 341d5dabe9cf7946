"""
Memory-thinking package initialization.
"""

__version__ = '0.1.0'

# Setup logging configuration on package import
from .utils.logging_config import setup_logging  # noqa: E402

setup_logging()
