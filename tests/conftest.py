"""
Test Configuration
==================

Shared fixtures: loopback receivers and sqlite record files.
"""

import queue
import sqlite3
import socket

import pytest

from udprecord.core.receiver import Receiver

LOOPBACK = ("127.0.0.1", 0)


@pytest.fixture
def events():
    """Queue the receiver consumer pushes ReceiveEvents into."""
    return queue.Queue()


@pytest.fixture
def receiver(events):
    """A started receiver on an ephemeral loopback port."""
    rx = Receiver(events.put).start(LOOPBACK)
    yield rx
    rx.stop(timeout=2)


@pytest.fixture
def raw_socket():
    """Plain UDP socket for sending hand-made datagrams."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(LOOPBACK)
    yield sock
    sock.close()


@pytest.fixture
def make_db(tmp_path):
    """Create an sqlite file with a records table holding the given rows."""

    def _make(rows, name="records.sqlite"):
        path = tmp_path / name
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE records (id INTEGER PRIMARY KEY, data TEXT NOT NULL)")
        conn.executemany("INSERT INTO records VALUES (?, ?)", rows)
        conn.commit()
        conn.close()
        return path

    return _make
