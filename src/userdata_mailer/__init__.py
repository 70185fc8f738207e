"""userdata-mailer: email a report of stored user data on request."""

__version__ = "0.1.0"

import pathlib

DEFAULT_PORT = 8080

DEFAULT_SUBJECT = "User Data Report"

MAX_SEND_TIMEOUT = 120.0

PACKAGE_DIR = pathlib.Path(__file__).parent
