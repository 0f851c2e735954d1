"""HTTP API package."""

from spendlog.api.app import create_app

__all__ = ["create_app"]
