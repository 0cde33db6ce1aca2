"""Bounded command queue with cancellable sends."""

import queue
import threading
from typing import Optional

from .models import Command


class CommandQueue:
    """
    FIFO hand-off channel between command producers and the watch agent.
    
    Features:
    - Bounded capacity so producers are paced by the agent
    - Every blocking send is raced against a stop signal
    - A shared wakeup event is set after each successful put
    """

    def __init__(
        self,
        maxsize: int = 1,
        wakeup: Optional[threading.Event] = None,
        poll_interval: float = 0.05,
    ):
        """
        Initialize the command queue.
        
        Args:
            maxsize: Maximum number of queued commands
            wakeup: Event set whenever a command is enqueued
            poll_interval: Seconds between checks of the stop signal while blocked
        """
        self.maxsize = maxsize
        self.wakeup = wakeup or threading.Event()
        self.poll_interval = poll_interval
        self._queue: "queue.Queue[Command]" = queue.Queue(maxsize=maxsize)

    def send(self, command: Command, stopped: threading.Event) -> bool:
        """
        Enqueue a command, blocking until there is room.
        
        Args:
            command: Command to enqueue
            stopped: Cancellation signal; once set the send is abandoned
            
        Returns:
            True if the command was enqueued, False if abandoned
        """
        while not stopped.is_set():
            try:
                self._queue.put(command, timeout=self.poll_interval)
            except queue.Full:
                continue
            self.wakeup.set()
            return True
        return False

    def offer(self, command: Command) -> bool:
        """
        Enqueue a command only if there is room right now.
        
        Returns:
            True if the command was enqueued
        """
        try:
            self._queue.put_nowait(command)
        except queue.Full:
            return False
        self.wakeup.set()
        return True

    def receive_nowait(self) -> Optional[Command]:
        """
        Take the next command without blocking.
        
        Returns:
            The oldest command, or None if the queue is empty
        """
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def size(self) -> int:
        """Return the approximate number of queued commands."""
        return self._queue.qsize()

    def drain(self) -> int:
        """
        Discard every queued command.
        
        Returns:
            Number of commands discarded
        """
        count = 0
        while self.receive_nowait() is not None:
            count += 1
        return count

    def __len__(self) -> int:
        return self.size()
