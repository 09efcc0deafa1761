"""Volunteer attendance and hours ledger service."""


def register_models():
    """Import every model so string relationships resolve before first use."""
    from app.core import models  # noqa: F401


register_models()
