"""
Connectivity Monitor

Holds the current reachability flag and fires edge-triggered listeners.

The platform adapter (OS network callback, browser online/offline events,
a health check loop in a service) calls report() whenever it learns
something; only actual transitions reach the listeners. Nothing here polls.
"""

import socket
from typing import Callable

import structlog


logger = structlog.get_logger(__name__)

ConnectivityListener = Callable[[], None]


class ConnectivityMonitor:
    """
    Edge-triggered online/offline signal.

    Usage:
        monitor = ConnectivityMonitor(initially_online=True)
        unsubscribe = monitor.on_became_online(engine_callback)
        monitor.report(False)  # fires on_became_offline listeners
        monitor.report(False)  # no-op, no transition
    """

    def __init__(self, initially_online: bool = True):
        self._online = initially_online
        self._online_listeners: list[ConnectivityListener] = []
        self._offline_listeners: list[ConnectivityListener] = []

    @classmethod
    def probe(cls, host: str, port: int = 443, timeout: float = 3.0) -> "ConnectivityMonitor":
        """
        Build a monitor whose initial value comes from one reachability check.

        A TCP connect to `host:port` is attempted once; any OSError counts as
        offline. Later transitions still come from report().
        """
        try:
            with socket.create_connection((host, port), timeout=timeout):
                online = True
        except OSError as e:
            logger.info("connectivity_probe_failed", host=host, port=port, error=str(e))
            online = False
        return cls(initially_online=online)

    @property
    def online(self) -> bool:
        return self._online

    def report(self, online: bool) -> None:
        """Record the platform's latest reachability value."""
        if online == self._online:
            return

        self._online = online
        logger.info("connectivity_changed", online=online)

        listeners = self._online_listeners if online else self._offline_listeners
        for listener in list(listeners):
            try:
                listener()
            except Exception:
                logger.exception("connectivity_listener_failed", online=online)

    def on_became_online(self, listener: ConnectivityListener) -> Callable[[], None]:
        return self._subscribe(self._online_listeners, listener)

    def on_became_offline(self, listener: ConnectivityListener) -> Callable[[], None]:
        return self._subscribe(self._offline_listeners, listener)

    @staticmethod
    def _subscribe(
        listeners: list[ConnectivityListener],
        listener: ConnectivityListener,
    ) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe
