# core/receiver.py

import enum
import errno
import logging
import socket
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from udprecord.core.codec import MAX_FRAME_SIZE, decode
from udprecord.core.errors import BindError, DecodeError, TransportError
from udprecord.core.network import Address
from udprecord.core.record import Record

log = logging.getLogger(__name__)

# errno values after which the socket can't be read from again
_FATAL_ERRNOS = {errno.EBADF, errno.ENOTSOCK}
_SILENT_ERRNOS = {errno.EAGAIN, errno.EWOULDBLOCK, errno.EINTR}


class ReceiverState(enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ReceiveEvent:
    """
    What the consumer gets for every datagram: either a record or the
    DecodeError explaining why the datagram was rejected.
    """

    source: Address
    record: Optional[Record] = None
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Receiver:
    """
    Receiving side of the record transport.

    Lifecycle:
      IDLE       socket bound, nothing read yet
      LISTENING  worker thread reading and decoding datagrams
      STOPPED    socket closed, terminal

    consumer(event) is called from the worker thread once per datagram,
    in arrival order. A bad datagram never ends the loop; only stop() or
    a dead socket does.

    on_stopped(receiver), if given, is called from the worker thread once
    the loop has exited and the socket is closed; check `failure` there.
    """

    READ_TIMEOUT = 0.1     # seconds, upper bound on stop() latency
    # One byte more than a valid frame, so oversized datagrams show up as
    # too long instead of being cut to a valid-looking length by recvfrom.
    BUFFER_SIZE = MAX_FRAME_SIZE + 1

    def __init__(
        self,
        consumer: Callable[[ReceiveEvent], None],
        on_stopped: Optional[Callable[["Receiver"], None]] = None,
    ):
        self.consumer = consumer
        self.on_stopped = on_stopped
        self.sock: Optional[socket.socket] = None
        self.failure: Optional[TransportError] = None

        self._state = ReceiverState.IDLE
        self._lock = threading.Lock()
        self._stop_requested = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ---------------- lifecycle ----------------

    @property
    def state(self) -> ReceiverState:
        return self._state

    @property
    def local_address(self) -> Optional[Address]:
        with self._lock:
            if self.sock is None or self._state is ReceiverState.STOPPED:
                return None
            return self.sock.getsockname()[:2]

    def bind(self, address: Address) -> "Receiver":
        """
        Bind the socket. Never retried: a failure raises BindError.
        """
        with self._lock:
            if self._state is not ReceiverState.IDLE or self.sock is not None:
                raise RuntimeError(f"Receiver already bound ({self._state.value})")
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.bind(address)
            except OSError as e:
                sock.close()
                raise BindError(address, e) from e
            sock.settimeout(self.READ_TIMEOUT)
            self.sock = sock
        log.info("Receiver bound to %s:%s", *sock.getsockname()[:2])
        return self

    def start(self, address: Optional[Address] = None) -> "Receiver":
        """
        Bind (unless bind() was already called) and start listening.
        """
        if self.sock is None:
            if address is None:
                raise ValueError("start() needs an address when the receiver isn't bound")
            self.bind(address)

        with self._lock:
            if self._state is not ReceiverState.IDLE:
                raise RuntimeError(f"Receiver can't start from {self._state.value}")
            self._state = ReceiverState.LISTENING
            self._thread = threading.Thread(
                target=self._listen_loop,
                name="udprecord-receiver",
                daemon=True,
            )
            self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Ask the loop to exit and wait for the socket to be released.

        Safe from any thread and safe to call more than once. Returns
        True once the receiver is STOPPED.
        """
        with self._lock:
            self._stop_requested.set()
            thread = self._thread
            if thread is None:
                # never started: nothing else owns the socket
                self._release()

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        return self._state is ReceiverState.STOPPED

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the receiver reaches STOPPED.
        """
        return self._done.wait(timeout)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stop()

    # ---------------- internal ----------------

    def _listen_loop(self):
        sock = self.sock
        try:
            while not self._stop_requested.is_set():
                try:
                    data, source = sock.recvfrom(self.BUFFER_SIZE)
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._stop_requested.is_set():
                        break
                    if self._is_fatal(sock, e):
                        self.failure = TransportError(f"Receiver socket failed: {e}", e)
                        log.error("Receiver socket is unusable, stopping: %s", e)
                        break
                    if e.errno not in _SILENT_ERRNOS:
                        log.warning("Error while reading from socket: %s", e)
                    continue

                self._dispatch(data, source[:2])
        finally:
            with self._lock:
                self._release()
            if self.on_stopped:
                try:
                    self.on_stopped(self)
                except Exception:
                    log.exception("Receiver on_stopped hook raised")

    def _dispatch(self, data: bytes, source: Address):
        try:
            event = ReceiveEvent(source=source, record=decode(data))
        except DecodeError as e:
            log.warning("Got corrupted packet from %s:%s: %s", source[0], source[1], e)
            event = ReceiveEvent(source=source, error=e)

        try:
            self.consumer(event)
        except Exception:
            log.exception("Receiver consumer raised; continuing")

    @staticmethod
    def _is_fatal(sock: socket.socket, e: OSError) -> bool:
        return sock.fileno() == -1 or e.errno in _FATAL_ERRNOS

    def _release(self):
        # caller holds self._lock
        if self.sock is not None:
            self.sock.close()
        self._state = ReceiverState.STOPPED
        self._done.set()
