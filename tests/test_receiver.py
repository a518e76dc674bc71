import os
import queue
import socket
import threading
import time

import pytest

from udprecord.core.codec import MAX_FRAME_SIZE, encode
from udprecord.core.errors import BindError, FrameTooLong, FrameTooShort, InvalidUtf8
from udprecord.core.receiver import Receiver, ReceiverState
from udprecord.core.record import Record
from udprecord.core.transport import Sender

from conftest import LOOPBACK


def next_event(events, timeout=2):
    return events.get(timeout=timeout)


def assert_no_event(events, wait=0.3):
    with pytest.raises(queue.Empty):
        events.get(timeout=wait)


def test_end_to_end_single_record(receiver, events):
    with Sender(LOOPBACK) as sender:
        sender.send(receiver.local_address, Record(42, "hello"))

    event = next_event(events)
    assert event.ok
    assert event.record == Record(42, "hello")
    assert event.error is None
    assert event.source[0] == "127.0.0.1"
    assert_no_event(events)


def test_source_is_senders_address(receiver, events):
    with Sender(LOOPBACK) as sender:
        sender.send(receiver.local_address, Record(1, "x"))
        expected = sender.local_address

    assert next_event(events).source == expected


def test_malformed_then_valid(receiver, events, raw_socket):
    raw_socket.sendto(os.urandom(3), receiver.local_address)
    raw_socket.sendto(encode(Record(7, "after garbage")), receiver.local_address)

    first = next_event(events)
    assert not first.ok
    assert isinstance(first.error, FrameTooShort)
    assert first.record is None
    assert receiver.state is ReceiverState.LISTENING

    second = next_event(events)
    assert second.record == Record(7, "after garbage")
    assert receiver.state is ReceiverState.LISTENING


def test_oversized_datagram_is_too_long_not_truncated(receiver, events, raw_socket):
    raw_socket.sendto(b"\x00\x00\x00\x01" + b"a" * 1000, receiver.local_address)

    event = next_event(events)
    assert isinstance(event.error, FrameTooLong)
    assert event.error.length == MAX_FRAME_SIZE + 1


def test_maximal_datagram_is_accepted(receiver, events, raw_socket):
    record = Record(3, "z" * (MAX_FRAME_SIZE - 4))
    raw_socket.sendto(encode(record), receiver.local_address)
    assert next_event(events).record == record


def test_invalid_utf8_datagram(receiver, events, raw_socket):
    raw_socket.sendto(b"\x00\x00\x00\x01\x80", receiver.local_address)
    event = next_event(events)
    assert isinstance(event.error, InvalidUtf8)
    assert event.record is None


def test_id_only_datagram(receiver, events, raw_socket):
    raw_socket.sendto(b"\x00\x00\x00\x09", receiver.local_address)
    assert next_event(events).record == Record(9, "")


def test_events_keep_arrival_order(receiver, events, raw_socket):
    frames = [
        encode(Record(1, "one")),
        b"\x01",
        encode(Record(2, "two")),
        b"\x00\x00\x00\x03\xff",
        encode(Record(3, "three")),
    ]
    for frame in frames:
        raw_socket.sendto(frame, receiver.local_address)

    got = [next_event(events) for _ in frames]
    assert [e.record.id if e.ok else None for e in got] == [1, None, 2, None, 3]


def test_consumer_exception_does_not_stop_loop(raw_socket):
    seen = queue.Queue()

    def consumer(event):
        seen.put(event)
        if event.record and event.record.id == 1:
            raise RuntimeError("consumer bug")

    with Receiver(consumer).start(LOOPBACK) as rx:
        raw_socket.sendto(encode(Record(1, "boom")), rx.local_address)
        raw_socket.sendto(encode(Record(2, "fine")), rx.local_address)
        assert seen.get(timeout=2).record.id == 1
        assert seen.get(timeout=2).record.id == 2
        assert rx.state is ReceiverState.LISTENING


def test_stop_while_idle_wait_releases_socket(events):
    rx = Receiver(events.put).start(LOOPBACK)
    address = rx.local_address

    started = time.monotonic()
    assert rx.stop(timeout=2)
    assert time.monotonic() - started < 1.5
    assert rx.state is ReceiverState.STOPPED
    assert rx.local_address is None

    # the port is free again
    again = Receiver(events.put).start(address)
    assert again.local_address == address
    assert again.stop(timeout=2)


def test_stop_is_idempotent(receiver):
    assert receiver.stop(timeout=2)
    assert receiver.stop(timeout=2)
    assert receiver.wait(0)


def test_stop_from_other_thread(receiver):
    stopper = threading.Thread(target=receiver.stop)
    stopper.start()
    assert receiver.wait(2)
    stopper.join(2)
    assert receiver.state is ReceiverState.STOPPED
    assert receiver.failure is None


def test_stop_from_consumer_thread(raw_socket):
    holder = {}

    def consumer(event):
        holder["rx"].stop()

    rx = Receiver(consumer).start(LOOPBACK)
    holder["rx"] = rx
    raw_socket.sendto(encode(Record(1, "stop please")), rx.local_address)
    assert rx.wait(2)
    assert rx.state is ReceiverState.STOPPED


def test_bind_without_start_is_idle(events):
    rx = Receiver(events.put).bind(LOOPBACK)
    assert rx.state is ReceiverState.IDLE
    assert rx.local_address is not None
    rx.stop()
    assert rx.state is ReceiverState.STOPPED


def test_bind_conflict(receiver, events):
    with pytest.raises(BindError):
        Receiver(events.put).start(receiver.local_address)


def test_start_needs_address(events):
    with pytest.raises(ValueError):
        Receiver(events.put).start()


def test_restart_after_stop_is_refused(events):
    rx = Receiver(events.put).start(LOOPBACK)
    rx.stop(timeout=2)
    with pytest.raises(RuntimeError):
        rx.start(LOOPBACK)


def test_fatal_socket_error_stops_loop(events):
    rx = Receiver(events.put).start(LOOPBACK)
    # pull the socket out from under the loop without a stop request
    rx.sock.close()
    assert rx.wait(2)
    assert rx.state is ReceiverState.STOPPED
    assert rx.failure is not None


def test_many_independent_receivers(events):
    receivers = [Receiver(events.put).start(LOOPBACK) for _ in range(3)]
    try:
        with Sender(LOOPBACK) as sender:
            for i, rx in enumerate(receivers):
                sender.send(rx.local_address, Record(i, "fan out"))
        ids = sorted(next_event(events).record.id for _ in receivers)
        assert ids == [0, 1, 2]
    finally:
        for rx in receivers:
            rx.stop(timeout=2)


def test_on_stopped_reports_failure(events):
    stopped = queue.Queue()
    rx = Receiver(events.put, on_stopped=stopped.put).start(LOOPBACK)
    rx.sock.close()
    assert stopped.get(timeout=2) is rx
    assert rx.failure is not None


def test_on_stopped_after_clean_stop(events):
    stopped = queue.Queue()
    rx = Receiver(events.put, on_stopped=stopped.put).start(LOOPBACK)
    rx.stop(timeout=2)
    assert stopped.get(timeout=2) is rx
    assert rx.failure is None
