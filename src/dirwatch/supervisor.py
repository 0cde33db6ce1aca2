"""Restart-on-error supervision."""

import logging
import threading
from typing import Callable, Optional


class Supervisor:
    """
    Runs a target repeatedly until it returns normally or is cancelled.
    
    Any exception raised by the target is logged and the target is invoked
    again after a fixed delay. The stop signal always wins over the delay.
    """

    def __init__(
        self,
        target: Callable[[], None],
        stopped: threading.Event,
        restart_delay: float = 1.0,
        logger: Optional[logging.Logger] = None,
        name: str = "supervisor",
        on_restart: Optional[Callable[[int], None]] = None,
    ):
        """
        Initialize the supervisor.
        
        Args:
            target: Function to supervise
            stopped: Cancellation signal
            restart_delay: Seconds to wait between a failure and the next attempt
            logger: Logger for failures
            name: Name used in log messages
            on_restart: Called with the restart count before each retry
        """
        self.target = target
        self.stopped = stopped
        self.restart_delay = restart_delay
        self.name = name
        self.on_restart = on_restart
        self._logger = logger or logging.getLogger(__name__)
        self._restarts = 0
        self._last_error: Optional[BaseException] = None

    @property
    def restarts(self) -> int:
        return self._restarts

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    def run(self) -> None:
        """Supervise the target until it returns or the stop signal is set."""
        while not self.stopped.is_set():
            try:
                self.target()
                return
            except Exception as e:
                self._last_error = e
                if self.stopped.is_set():
                    self._logger.debug(f"{self.name} failed during shutdown: {e}")
                    return
                self._logger.error(
                    f"{self.name} failed, restarting in {self.restart_delay}s: {e}",
                    exc_info=True,
                )
            
            if self.stopped.wait(self.restart_delay):
                return
            
            self._restarts += 1
            if self.on_restart:
                self.on_restart(self._restarts)
