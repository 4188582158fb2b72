"""CLI package for gcloud-identity-token

Prints a valid Google access/ID token as JSON, signing in through the
browser when needed.
"""

from cli.main import main

__all__ = [
    "main",
]
