"""Reporting sub-package for userdata-mailer.

Exports the two main public pieces:

- ``render_report`` -- build the HTML report from fetched records.
- ``MailDispatcher`` -- deliver an HTML email through the provider and
  wait for its outcome.

Usage::

    from userdata_mailer.reporting import MailDispatcher, render_report

    html_body = render_report(records)
    outcome = dispatcher.send("recipient@example.com", "User Data Report", html_body)

The production provider client lives in
``userdata_mailer.reporting.azure_client``.
"""

from userdata_mailer.reporting.composer import render_report
from userdata_mailer.reporting.sender import MailDispatcher

__all__ = ["MailDispatcher", "render_report"]
