"""Operator command-line scripts (run with ``python -m truthlens.scripts.<name>``)."""
