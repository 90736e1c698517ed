import logging
import sys

from doctype_ui.core.config import settings

# Extra fields compiler log calls may attach; missing ones print as '-'
CONTEXT_FIELDS = ("entity", "stage", "path")

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "[entity=%(entity)s stage=%(stage)s path=%(path)s] - %(message)s"
)


class ContextFormatter(logging.Formatter):
    """Formatter that tags records with the entity, stage and artifact path being compiled."""
    def format(self, record):
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, '-')
        return super().format(record)


def configure_logging(level: str | None = None) -> None:
    # stderr, so CLI output on stdout stays machine-readable
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        handlers=[handler],
        force=True,
    )
