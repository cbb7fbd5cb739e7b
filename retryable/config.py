import os
from typing import Optional

# Explicit result bundle directory for this run
RESULT_BUNDLE_ENV = "RETRYABLE_RESULT_BUNDLE"
# A path somewhere inside the result bundle, as exposed by the harness
CONFIGURATION_PATH_ENV = "RETRYABLE_TEST_CONFIGURATION_PATH"
BUNDLE_SUFFIX_ENV = "RETRYABLE_BUNDLE_SUFFIX"
LOG_FILE_ENV = "RETRYABLE_LOG_FILE"

DEFAULT_BUNDLE_SUFFIX = ".resultbundle"
DEFAULT_LOG_FILE = ".retryable/step_logs.json"
REPORT_FILENAME = "retryable-retries.json"

# Fixable flakes always get exactly one retry. If they annoy you, fix them.
FIXABLE_MAX_RETRY_COUNT = 1


def log_file() -> str:
    return os.getenv(LOG_FILE_ENV) or DEFAULT_LOG_FILE


def result_bundle_dir() -> Optional[str]:
    """
    Locate the result bundle for the active run.
    Returns None when no bundle can be resolved; callers treat that as
    "reporting disabled", never as an error.
    """
    explicit = os.getenv(RESULT_BUNDLE_ENV)
    if explicit:
        return explicit

    config_path = os.getenv(CONFIGURATION_PATH_ENV)
    if not config_path:
        return None
    suffix = os.getenv(BUNDLE_SUFFIX_ENV) or DEFAULT_BUNDLE_SUFFIX

    path = os.path.abspath(config_path)
    while True:
        if os.path.basename(path).endswith(suffix):
            return path
        parent = os.path.dirname(path)
        if parent == path:
            return None
        path = parent


def report_path() -> Optional[str]:
    bundle = result_bundle_dir()
    if bundle is None:
        return None
    return os.path.join(bundle, REPORT_FILENAME)
