"""pypyr step: email the user data report.

Runs one request through the dispatch orchestrator, exactly as
``POST /api/email/send`` would, for the address in
``context['recipient_email']``.

Usage in a pipeline YAML::

    steps:
      - name: userdata_mailer.steps.dispatch_report

Context keys consumed:
    recipient_email (str): Address to send the report to.
    orchestrator (DispatchOrchestrator, optional): Used as is when present;
        otherwise built from ``settings``.
    settings (Settings, optional): Loaded from the environment when absent.
        Not read when ``orchestrator`` is given.

Context keys produced:
    dispatch_result (dict): ``status_code``, ``success`` and ``message``.
"""

import logging

from userdata_mailer.config import load_settings
from userdata_mailer.server import build_orchestrator

logger = logging.getLogger(__name__)


def run_step(context: dict) -> None:
    """pypyr entry-point: dispatch the report and record the outcome.

    Args:
        context: The mutable pypyr context dictionary.
    """
    orchestrator = context.get("orchestrator")
    if orchestrator is None:
        orchestrator = build_orchestrator(context.get("settings") or load_settings())

    result = orchestrator.handle({"receiverEmail": context.get("recipient_email")})
    context["dispatch_result"] = {
        "status_code": result.status_code,
        **result.response.model_dump(),
    }

    if result.response.success:
        logger.info(result.response.message)
    else:
        logger.warning(
            "Report dispatch failed (%d): %s",
            result.status_code, result.response.message,
        )
