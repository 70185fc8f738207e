"""pypyr steps for running a dispatch outside the HTTP service."""
