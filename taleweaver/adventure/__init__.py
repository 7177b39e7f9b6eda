from flask import Blueprint

bp = Blueprint("adventure", __name__)

from . import routes  # noqa: E402,F401
