from __future__ import annotations

import threading

from flask import Flask

from udprecord.ui.routes import configure_routes


class UIServer:
    """
    Thin Flask layer over a Session.
    - No sockets of its own
    - No codec logic
    """

    def __init__(self, session, settings):
        self.session = session
        self.settings = settings

        self.app = Flask(__name__)
        configure_routes(self.app, self)

    # ---------------- lifecycle ----------------

    def run(self, host: str = "127.0.0.1", port: int = 5000):
        thread = threading.Thread(
            target=self.app.run,
            kwargs={
                "host": host,
                "port": port,
                "debug": False,
                "use_reloader": False,
                "threaded": True,
            },
            daemon=True,
        )
        thread.start()
        return thread

    # ---------------- state ----------------

    def serialize_state(self):
        listening = self.session.listening_on
        return {
            "busy": self.session.busy,
            "status": self.session.status,
            "listening": list(listening) if listening else None,
            "logs": self.session.logs(),
            "records": [
                {"id": record.id, "text": record.text}
                for record in self.session.records()
            ],
        }


def run_ui_server(session, settings, host: str = "127.0.0.1", port: int = 5000) -> UIServer:
    """
    Convenience helper.
    """
    ui = UIServer(session=session, settings=settings)
    ui.run(host=host, port=port)
    return ui
