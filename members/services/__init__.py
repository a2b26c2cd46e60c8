"""Persistence and notification services for member accounts."""

from . import codes, models, notify, records, util
from .records import Records
from .util import init_app, create_all, drop_all, transaction, \
    current_session
