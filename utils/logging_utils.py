"""
Logging setup shared by the EcoLife API, the maintenance CLI and the tests.

Usage
-----
In an entrypoint (server, cron job, one-off script):

    from utils.logging_utils import setup_logging

    def main() -> None:
        setup_logging(level="INFO", job_name="eco_tip_cleanup")
        ...

In a module:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="bike_sync")
    logger.info("Syncing bike networks")

Every record carries `job_name` and `tag` so output from the API process and
from cron-driven maintenance runs can be told apart in a shared log stream.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


# ---------------------------------------------------------------------------
# Bootstrap (records emitted before setup_logging() still get timestamps)
# ---------------------------------------------------------------------------

BOOTSTRAP_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
BOOTSTRAP_DATEFMT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(level=logging.INFO, format=BOOTSTRAP_FORMAT, datefmt=BOOTSTRAP_DATEFMT)


DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SENSITIVE_QUERY_TOKENS = ("pass", "pwd", "secret", "token", "key")

_CONFIGURED: bool = False


# ---------------------------------------------------------------------------
# Record filters
# ---------------------------------------------------------------------------

class MaxLevelFilter(logging.Filter):
    """Pass only records at or below `max_level` (keeps stdout free of warnings)."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class EnsureTagFilter(logging.Filter):
    """Give untagged records a `tag` derived from the last segment of the logger name."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            name = getattr(record, "name", "")
            record.tag = name.rsplit(".", 1)[-1] if name else "-"
        return True


class JobNameFilter(logging.Filter):
    """Stamp every record with the process-wide job name ("-" when unset)."""

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self._job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "job_name"):
            record.job_name = self._job_name
        return True


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Build the dictConfig mapping used by :func:`setup_logging`.

    DEBUG/INFO go to stdout, WARNING and above go to stderr. Both handlers
    share the tag and job-name filters.
    """
    shared_filters = ["ensure_tag", "job_name"]
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "ensure_tag": {"()": EnsureTagFilter},
            "job_name": {"()": JobNameFilter, "job_name": job_name},
            "stdout_max_info": {"()": MaxLevelFilter, "max_level": logging.INFO},
        },
        "formatters": {
            "standard": {"format": log_format, "datefmt": date_format},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": [*shared_filters, "stdout_max_info"],
                "level": "DEBUG",
                "stream": "ext://sys.stdout",
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": shared_filters,
                "level": "WARNING",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {"level": level, "handlers": ["stdout", "stderr"]},
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
    override_existing: bool = False,
) -> None:
    """
    Apply the application logging config once per process.

    Repeated calls are no-ops unless `override_existing` is True, which lets
    a CLI subcommand swap in its own `job_name` after the server defaults ran.
    """
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    logging.config.dictConfig(
        build_logging_config(
            level=level,
            log_format=log_format,
            date_format=date_format,
            job_name=job_name,
        )
    )
    _CONFIGURED = True


def get_tagged_logger(name: str, *, tag: Optional[str] = None) -> logging.LoggerAdapter:
    """Return a LoggerAdapter that attaches `tag` (default: last name segment) to every record."""
    if tag is None:
        tag = name.rsplit(".", 1)[-1]
    return logging.LoggerAdapter(logging.getLogger(name), {"tag": tag})


def mask_db_url(url: str) -> str:
    """Return `url` with user, password and sensitive query values replaced by ``***``.

    ``postgresql://app:secret@db:5432/ecolife`` becomes
    ``postgresql://***:***@db:5432/ecolife``; ``sqlite:///./ecolife.db`` is
    returned unchanged.
    """
    try:
        parsed = urlparse(url)
    except Exception:
        return url

    query = urlencode([
        (key, "***" if any(tok in key.lower() for tok in _SENSITIVE_QUERY_TOKENS) else value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
    ])

    netloc = ""
    if parsed.username:
        netloc = "***:***@" if parsed.password is not None else "***@"
    if parsed.hostname:
        netloc += parsed.hostname
    if parsed.port:
        netloc += f":{parsed.port}"

    # sqlite:///path and file:///path have no netloc; keep the triple slash
    if not netloc and not parsed.netloc and (parsed.path or "").startswith("/"):
        masked = f"{parsed.scheme}:///{parsed.path.lstrip('/')}"
        if query:
            masked = f"{masked}?{query}"
        if parsed.fragment:
            masked = f"{masked}#{parsed.fragment}"
        return masked

    return urlunparse((parsed.scheme, netloc, parsed.path or "", parsed.params or "", query, parsed.fragment or ""))
