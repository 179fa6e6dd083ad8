"""Firebase ID token sign-in for migration operators."""

from flask import Blueprint

bp = Blueprint("auth", __name__, url_prefix="/auth")

from . import routes  # noqa: E402

__all__ = ["routes"]
