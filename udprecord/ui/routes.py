from flask import jsonify, request

from udprecord.core.errors import BindError, PayloadTooLarge, RecordError, TransportError
from udprecord.core.network import format_address, parse_address
from udprecord.core.record import Record
from udprecord.runtime.session import SessionBusy


def _payload():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _record_id(value) -> int:
    # bools and floats would be silently coerced to a different id
    if isinstance(value, bool):
        raise ValueError("Record id must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(f"Record id must be an integer, got {value!r}")


def configure_routes(app, ui):
    @app.errorhandler(SessionBusy)
    def handle_busy(err):
        return jsonify({"error": str(err)}), 409

    @app.errorhandler(PayloadTooLarge)
    def handle_too_large(err):
        return jsonify({"error": str(err), "excess": err.excess}), 413

    @app.errorhandler(BindError)
    def handle_bind(err):
        return jsonify({"error": str(err)}), 409

    @app.errorhandler(TransportError)
    def handle_transport(err):
        return jsonify({"error": str(err)}), 502

    @app.get("/api/state")
    def api_state():
        return jsonify(ui.serialize_state())

    @app.post("/api/listen")
    def api_listen():
        payload = _payload()
        address = str(payload.get("address") or "").strip()
        try:
            if address:
                bind = parse_address(address)
            else:
                bind = (ui.settings.bind_ip or "0.0.0.0", ui.settings.port)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        bound = ui.session.listen(bind)
        return jsonify({"ok": True, "listening": format_address(bound)})

    @app.post("/api/stop")
    def api_stop():
        return jsonify({"ok": True, "stopped": ui.session.stop()})

    @app.post("/api/send")
    def api_send():
        payload = _payload()
        try:
            destination = parse_address(str(payload.get("address") or ""))
            record = Record(id=_record_id(payload.get("id")), text=payload.get("text", ""))
        except (TypeError, ValueError) as e:
            return jsonify({"error": str(e)}), 400

        sent = ui.session.send_record(destination, record)
        return jsonify({"ok": True, "bytes": sent})

    @app.post("/api/senddb")
    def api_senddb():
        payload = _payload()
        address = payload.get("address") or ui.settings.destination
        if not address:
            return jsonify({"error": "No destination address"}), 400
        try:
            destination = parse_address(str(address))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        db_file = str(payload.get("db_file") or ui.settings.db_file)
        truncate = bool(payload.get("truncate", False))
        ui.session.send_from_db(destination, db_file, truncate=truncate)
        return jsonify({"ok": True, "sending": format_address(destination)}), 202

    @app.errorhandler(RecordError)
    def handle_record_error(err):
        return jsonify({"error": str(err)}), 400
