from datetime import date

from ..services.store import AppState, app_state


def get_state() -> AppState:
    return app_state


def get_today() -> date:
    return date.today()
