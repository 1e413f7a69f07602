"""Partners blueprint"""
from flask import Blueprint

partners_bp = Blueprint('partners', __name__)

from mfi.partners import routes  # noqa: E402,F401
