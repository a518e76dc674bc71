# config/settings.py

import os

from udprecord.core.network import parse_address


class Settings:
    """
    Centralized runtime settings.
    Override via environment variables (UDPRECORD_*).
    """

    def __init__(
        self,
        bind_ip: str | None = None,
        port: int = 8142,
        destination: str | None = None,
        db_file: str = "records.sqlite",
        ui_host: str = "127.0.0.1",
        ui_port: int = 5000,
        log_level: str = "INFO",
    ):
        self.bind_ip = bind_ip
        self.port = port
        self.destination = destination
        self.db_file = db_file
        self.ui_host = ui_host
        self.ui_port = ui_port
        self.log_level = log_level.upper()

    def destination_address(self):
        """
        Parsed destination, or None when it isn't configured.
        """
        if not self.destination:
            return None
        return parse_address(self.destination)

    @classmethod
    def from_env(cls):
        bind_ip = os.getenv("UDPRECORD_BIND_IP")
        port = int(os.getenv("UDPRECORD_PORT", "8142"))
        destination = os.getenv("UDPRECORD_DESTINATION")
        db_file = os.getenv("UDPRECORD_DB_FILE", "records.sqlite")
        ui_host = os.getenv("UDPRECORD_UI_HOST", "127.0.0.1")
        ui_port = int(os.getenv("UDPRECORD_UI_PORT", "5000"))
        log_level = os.getenv("UDPRECORD_LOG_LEVEL", "INFO")

        return cls(
            bind_ip=bind_ip,
            port=port,
            destination=destination,
            db_file=db_file,
            ui_host=ui_host,
            ui_port=ui_port,
            log_level=log_level,
        )
