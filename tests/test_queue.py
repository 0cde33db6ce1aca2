"""Tests for command queue module."""

import pytest
import threading
import time
from pathlib import Path

from dirwatch.models import Command
from dirwatch.queue import CommandQueue


class TestCommandQueue:
    """Tests for CommandQueue class."""

    def test_send_receive(self):
        stopped = threading.Event()
        commands = CommandQueue(maxsize=2)
        
        assert commands.send(Command.add(Path("/a")), stopped) is True
        command = commands.receive_nowait()
        
        assert command.path == Path("/a")
        assert commands.receive_nowait() is None

    def test_fifo_order(self):
        stopped = threading.Event()
        commands = CommandQueue(maxsize=5)
        for i in range(5):
            commands.send(Command.add(Path(f"/p{i}")), stopped)
        
        for i in range(5):
            assert commands.receive_nowait().path == Path(f"/p{i}")

    def test_send_sets_wakeup(self):
        stopped = threading.Event()
        commands = CommandQueue()
        
        assert not commands.wakeup.is_set()
        commands.send(Command.stop(), stopped)
        assert commands.wakeup.is_set()

    def test_shared_wakeup(self):
        wakeup = threading.Event()
        commands = CommandQueue(wakeup=wakeup)
        assert commands.wakeup is wakeup

    def test_send_blocks_when_full(self):
        stopped = threading.Event()
        commands = CommandQueue(maxsize=1, poll_interval=0.01)
        commands.send(Command.add(Path("/first")), stopped)
        
        result = []
        sender = threading.Thread(
            target=lambda: result.append(commands.send(Command.add(Path("/second")), stopped))
        )
        sender.start()
        time.sleep(0.1)
        assert sender.is_alive()
        
        assert commands.receive_nowait().path == Path("/first")
        sender.join(timeout=1.0)
        
        assert result == [True]
        assert commands.receive_nowait().path == Path("/second")

    def test_send_abandoned_on_stop(self):
        stopped = threading.Event()
        commands = CommandQueue(maxsize=1, poll_interval=0.01)
        commands.send(Command.add(Path("/first")), stopped)
        
        result = []
        sender = threading.Thread(
            target=lambda: result.append(commands.send(Command.add(Path("/second")), stopped))
        )
        sender.start()
        time.sleep(0.05)
        stopped.set()
        sender.join(timeout=1.0)
        
        assert not sender.is_alive()
        assert result == [False]
        assert commands.size() == 1

    def test_send_after_stop_returns_false(self):
        stopped = threading.Event()
        stopped.set()
        commands = CommandQueue()
        
        assert commands.send(Command.add(Path("/a")), stopped) is False
        assert len(commands) == 0

    def test_offer(self):
        commands = CommandQueue(maxsize=1)
        
        assert commands.offer(Command.stop()) is True
        assert commands.offer(Command.stop()) is False
        assert commands.size() == 1

    def test_drain(self):
        stopped = threading.Event()
        commands = CommandQueue(maxsize=3)
        for i in range(3):
            commands.send(Command.add(Path(f"/p{i}")), stopped)
        
        assert commands.drain() == 3
        assert commands.size() == 0
