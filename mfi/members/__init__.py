"""Members blueprint"""
from flask import Blueprint

members_bp = Blueprint('members', __name__)

from mfi.members import routes  # noqa: E402,F401
