"""Proxy for the active two-factor extension."""

from quart import current_app
from werkzeug.local import LocalProxy


def _get_two_factor():
    return current_app.extensions["two_factor"]


current_two_factor = LocalProxy(_get_two_factor)
