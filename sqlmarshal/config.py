"""Shared configuration for sqlmarshal.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os

# Sink batching: rows accumulated before a flush, 0 flushes only on commit
BATCH_SIZE = int(os.getenv("SQLMARSHAL_BATCH_SIZE", "1000"))

# Source streaming
FETCH_SIZE = int(os.getenv("SQLMARSHAL_FETCH_SIZE", "1000"))

# Precision/scale used for numeric columns that report neither
DEFAULT_DECIMAL_PRECISION = int(os.getenv("SQLMARSHAL_DEFAULT_DECIMAL_PRECISION", "38"))
DEFAULT_DECIMAL_SCALE = int(os.getenv("SQLMARSHAL_DEFAULT_DECIMAL_SCALE", "0"))
