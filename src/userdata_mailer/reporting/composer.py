"""Render the user data report.

Turns an ordered sequence of :class:`~userdata_mailer.models.Record` into a
standalone HTML document using the Jinja2 template at
``templates/user_data_report.html``.  Rendering reads no clock and no
external state, so the same records always produce the same bytes.
"""

import logging
import pathlib
from typing import Sequence

from jinja2 import Environment, FileSystemLoader

from userdata_mailer import DEFAULT_SUBJECT
from userdata_mailer.models import Record

logger = logging.getLogger(__name__)

# Locate the templates directory relative to this file.
_TEMPLATE_DIR = pathlib.Path(__file__).parent / "templates"

TEMPLATE_NAME = "user_data_report.html"

_environment = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=True,
)


def render_report(records: Sequence[Record], title: str = DEFAULT_SUBJECT) -> str:
    """Build the HTML report body.

    Args:
        records: Rows to show, already in display order.
        title: Heading and ``<title>`` of the document.

    Returns:
        The rendered HTML document: one ``record-row`` table row per
        record, or a "No data available" row when *records* is empty.
    """
    records = list(records)
    template = _environment.get_template(TEMPLATE_NAME)
    html_body = template.render(title=title, records=records)
    logger.info("Rendered report with %d rows", len(records))
    return html_body
