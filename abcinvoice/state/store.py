from __future__ import annotations
import logging
from typing import Any, Callable, List

from abcinvoice.state.app import AppState, reduce_app

logger = logging.getLogger(__name__)

Listener = Callable[[AppState, AppState, Any], None]


class Store:
    """Conteneur d'état: seul `dispatch` remplace l'état courant."""

    def __init__(self, state: AppState, reducer: Callable[[AppState, Any], AppState] = reduce_app):
        self.state = state
        self.reducer = reducer
        self._listeners: List[Listener] = []

    def subscribe(self, fn: Listener) -> Callable[[], None]:
        self._listeners.append(fn)
        return lambda: self._listeners.remove(fn)

    def dispatch(self, action: Any) -> AppState:
        prev = self.state
        self.state = self.reducer(prev, action)
        logger.debug("dispatch %s", type(action).__name__)
        for fn in list(self._listeners):
            fn(self.state, prev, action)
        return self.state
