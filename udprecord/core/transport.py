# core/transport.py

import logging
import socket
from typing import Iterable

from udprecord.core.codec import MAX_TEXT_SIZE, encode, fit_text
from udprecord.core.errors import BindError, PayloadTooLarge, TransportError
from udprecord.core.network import Address
from udprecord.core.record import Record

log = logging.getLogger(__name__)


class Sender:
    """
    Sending side of the record transport.

    Responsibilities:
    - Own one UDP socket bound to a local address
    - Encode a record and write it as exactly one datagram

    Non-responsibilities:
    - No retries, acknowledgements or ordering
    - No receiving

    One Sender may be shared between threads: every send() is a single
    sendto() call and datagram writes are atomic.
    """

    def __init__(self, bind_address: Address = ("0.0.0.0", 0)):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self.sock.bind(bind_address)
        except OSError as e:
            self.sock.close()
            raise BindError(bind_address, e) from e
        self._closed = False

    @property
    def local_address(self) -> Address:
        return self.sock.getsockname()[:2]

    def send(self, destination: Address, record: Record) -> int:
        """
        Send one record to destination (host, port).

        Raises PayloadTooLarge before touching the network, or
        TransportError if the socket write fails.
        """
        frame = encode(record)
        try:
            sent = self.sock.sendto(frame, destination)
        except (OSError, OverflowError) as e:
            # OverflowError: port outside 0-65535
            raise TransportError(f"Couldn't send record {record.id} to {destination}: {e}", e) from e
        log.debug("sent record %d (%d bytes) to %s", record.id, sent, destination)
        return sent

    def send_many(self, records: Iterable[Record], destination: Address, truncate: bool = False) -> int:
        """
        Send each record as its own datagram. Returns the number sent.

        With truncate=True, oversized text is cut at a character boundary
        and a warning is logged. Otherwise PayloadTooLarge propagates.
        """
        count = 0
        for record in records:
            try:
                self.send(destination, record)
            except PayloadTooLarge as e:
                if not truncate:
                    raise
                log.warning("Record %d too large by %d bytes, truncated", record.id, e.excess)
                self.send(destination, Record(record.id, fit_text(record.text, MAX_TEXT_SIZE)))
            count += 1
        return count

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.sock.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
