# runtime/session.py

import logging
import threading
import time
from collections import deque
from typing import List, Optional

from udprecord.core.errors import RecordError
from udprecord.core.network import Address, format_address
from udprecord.core.receiver import ReceiveEvent, Receiver, ReceiverState
from udprecord.core.record import Record
from udprecord.core.transport import Sender
from udprecord.store.record_store import load_records

log = logging.getLogger(__name__)


class SessionBusy(RecordError):
    pass


class Session:
    """
    Runs one task at a time on behalf of the CLI and the UI: either a
    listening Receiver or a background batch send.

    Keeps a short timestamped log for display and the outcome of the
    last finished task in `status` (None until something finishes).
    """

    LOG_SIZE = 200
    RECORDS_SIZE = 200

    def __init__(self, bind_ip: str = "0.0.0.0"):
        self.bind_ip = bind_ip
        self.status: Optional[bool] = None

        self._lock = threading.Lock()
        self._task_lock = threading.Lock()
        self._log_buffer = deque(maxlen=self.LOG_SIZE)
        self._records = deque(maxlen=self.RECORDS_SIZE)
        self._receiver: Optional[Receiver] = None
        self._worker: Optional[threading.Thread] = None

    # ---------------- log ----------------

    def record_log(self, message: str, level: int = logging.INFO):
        stamp = time.strftime("%H:%M:%S")
        with self._lock:
            self._log_buffer.append(f"{stamp} {message}")
        log.log(level, message)

    def logs(self) -> List[str]:
        with self._lock:
            return list(self._log_buffer)

    def records(self) -> List[Record]:
        with self._lock:
            return list(self._records)

    # ---------------- state ----------------

    @property
    def busy(self) -> bool:
        with self._lock:
            receiver, worker = self._receiver, self._worker
        if receiver is not None and receiver.state is ReceiverState.LISTENING:
            return True
        return worker is not None and worker.is_alive()

    @property
    def listening_on(self) -> Optional[Address]:
        receiver = self._receiver
        return receiver.local_address if receiver else None

    def _ensure_idle(self):
        if self.busy:
            raise SessionBusy("A task is already running, stop it first")

    # ---------------- listen ----------------

    def listen(self, address: Address) -> Address:
        """
        Start a receiver on address. Returns the address actually bound.
        """
        with self._task_lock:
            self._ensure_idle()
            # a receiver that died on its own is replaced here
            with self._lock:
                self._receiver = None
            receiver = Receiver(self._on_event, on_stopped=self._on_receiver_stopped)
            try:
                receiver.start(address)
            except RecordError as e:
                self._finish(False, str(e))
                raise
            with self._lock:
                self._receiver = receiver

        bound = receiver.local_address
        self.record_log(f"Listening on {format_address(bound)}...")
        return bound

    def stop(self) -> bool:
        """
        Stop the running receiver. Returns False if nothing was listening.
        """
        with self._lock:
            receiver, self._receiver = self._receiver, None
        if receiver is None:
            return False

        receiver.stop()
        # a failed receiver was already reported by _on_receiver_stopped
        if receiver.failure is None:
            self.record_log("Stopped")
            self._finish(True)
        return True

    def _on_receiver_stopped(self, receiver: Receiver):
        if receiver.failure is not None:
            self._finish(False, f"Receiver failed: {receiver.failure}")

    def _on_event(self, event: ReceiveEvent):
        if event.ok:
            with self._lock:
                self._records.append(event.record)
            self.record_log(f"Got record {event.record}")
        else:
            self.record_log(
                f"Got corrupted packet from {format_address(event.source)} ({event.error})",
                logging.WARNING,
            )

    # ---------------- send ----------------

    def send_record(self, destination: Address, record: Record) -> int:
        """
        Send one record right away from an ephemeral socket.
        Errors propagate to the caller.
        """
        with Sender((self.bind_ip, 0)) as sender:
            sent = sender.send(destination, record)
        self.record_log(f"Sent record {record} to {format_address(destination)}")
        return sent

    def send_from_db(self, destination: Address, db_file: str, truncate: bool = False) -> threading.Thread:
        """
        Load records from db_file and send them on a worker thread.
        The outcome lands in `status` and the log.
        """
        with self._task_lock:
            self._ensure_idle()
            worker = threading.Thread(
                target=self._send_worker,
                args=(destination, db_file, truncate),
                name="udprecord-sender",
                daemon=True,
            )
            with self._lock:
                self._worker = worker
            worker.start()
        return worker

    def _send_worker(self, destination: Address, db_file: str, truncate: bool):
        self.record_log("Sending data...")
        try:
            records = load_records(db_file)
            with Sender((self.bind_ip, 0)) as sender:
                count = sender.send_many(records, destination, truncate=truncate)
        except RecordError as e:
            self._finish(False, f"Error sending data: {e}")
            return
        self.record_log(f"Sent {count} record(s) to {format_address(destination)}")
        self.record_log("Done!")
        self._finish(True)

    def _finish(self, ok: bool, message: Optional[str] = None):
        if message:
            self.record_log(message, logging.INFO if ok else logging.ERROR)
        self.status = ok

    def close(self):
        self.stop()
        worker = self._worker
        if worker is not None:
            worker.join()
