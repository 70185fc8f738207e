"""pypyr step: make sure the record store is reachable.

Usage in a pipeline YAML::

    steps:
      - name: userdata_mailer.steps.check_db

Context keys consumed:
    settings (Settings, optional): Loaded from the environment when absent.

Context keys produced:
    settings (Settings): The settings used, for later steps.
    db_ok (bool): Always ``True``; the step raises otherwise.
"""

import logging

from userdata_mailer.config import load_settings
from userdata_mailer.db.manager import check_connection
from userdata_mailer.errors import StorageUnavailable

logger = logging.getLogger(__name__)


def run_step(context: dict) -> None:
    """pypyr entry-point: fail the pipeline early if the store is down.

    Args:
        context: The mutable pypyr context dictionary.
    """
    settings = context.get("settings") or load_settings()
    context["settings"] = settings

    if not check_connection(settings.sql_connection_string):
        raise StorageUnavailable(
            f"Cannot open database {settings.sql_connection_string!r}"
        )

    context["db_ok"] = True
    logger.info("Database connection verified.")
