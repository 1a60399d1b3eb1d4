"""
Utility functions for the reconciliation engine.

This module contains logging setup, runtime settings and directory helpers
that are used across the package but are not directly related to matching
or projecting transactions.
"""

import os
import pathlib
import logging
from dataclasses import dataclass, fields, replace

logger = logging.getLogger(__name__)

def setup_logging(debug=False, log_level='info'):
    """Send import and projection logs to the console and to a log file.

    Args:
        debug (bool): Log every match decision (overrides ``log_level``)
        log_level (str): Level name used when ``debug`` is off

    Returns:
        str: Path of the log file, taken from ``LOG_FILE`` (default ``debug.log``)
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    log_file = os.getenv('LOG_FILE', 'debug.log')
    pathlib.Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
        handlers=[logging.FileHandler(log_file), logging.StreamHandler()]
    )
    return log_file

@dataclass(frozen=True)
class Settings:
    """Tunable thresholds used by the matcher, reconciler and projections.

    Attributes:
        amount_tolerance: Absolute difference under which two amounts are equal
        projected_window_days: Days either side of a projected entry in which a
            real transaction for the same bill replaces it
        pending_word_overlap: Word-overlap ratio for pending/posted matching
        bill_word_overlap: Word-overlap ratio for bill description matching
        bill_min_common_words: Common-word count that always satisfies bill matching
        min_token_length: Shortest cleaned token considered for bill matching
        merchant_min_length: Shortest merchant token accepted by the pipe rule
        default_variable_tolerance: Percent tolerance for variable bills without one
        projection_days: Default projection horizon
    """
    amount_tolerance: float = 0.01
    projected_window_days: int = 7
    pending_word_overlap: float = 0.7
    bill_word_overlap: float = 0.6
    bill_min_common_words: int = 3
    min_token_length: int = 3
    merchant_min_length: int = 3
    default_variable_tolerance: float = 10.0
    projection_days: int = 60

DEFAULT_SETTINGS = Settings()

def load_settings(environ=None):
    """Build Settings, overriding defaults from LEDGER_* environment variables.

    Each field maps to an upper-cased variable, e.g. ``projected_window_days``
    is read from ``LEDGER_PROJECTED_WINDOW_DAYS``.

    Args:
        environ (Mapping, optional): Environment to read. Defaults to os.environ.

    Returns:
        Settings: Settings with any overrides applied

    Raises:
        ValueError: If an override cannot be converted to the field's type
    """
    environ = os.environ if environ is None else environ
    overrides = {}
    for field in fields(Settings):
        name = f"LEDGER_{field.name.upper()}"
        raw = environ.get(name)
        if raw is None or str(raw).strip() == "":
            continue
        cast = int if isinstance(getattr(DEFAULT_SETTINGS, field.name), int) else float
        try:
            overrides[field.name] = cast(raw)
        except ValueError:
            raise ValueError(f"Invalid value for {name}: {raw}")
        logger.debug(f"Setting {field.name} overridden from {name}: {raw}")
    return replace(DEFAULT_SETTINGS, **overrides)

def ensure_directory(dir_type):
    """Ensure required directories exist.

    Args:
        dir_type (str): Type of directory ('output', 'logs', 'data')

    Returns:
        pathlib.Path: Path to the directory

    Raises:
        ValueError: If dir_type is invalid
    """
    valid_dir_types = ['output', 'logs', 'data']
    if dir_type not in valid_dir_types:
        raise ValueError(f"Invalid directory type: {dir_type}. Expected one of: {valid_dir_types}")

    base_dir = os.getenv('DATA_DIR', os.getcwd())
    dir_path = pathlib.Path(base_dir) / dir_type
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path
