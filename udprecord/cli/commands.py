# cli/commands.py

from udprecord.core.errors import PayloadTooLarge, RecordError
from udprecord.core.network import format_address, parse_address
from udprecord.core.record import Record
from udprecord.runtime.session import SessionBusy


def print_banner(settings):
    print("udprecord started")
    print(f"Records are sent as single UDP datagrams (max 508 bytes), default port {settings.port}")
    print("Type /help to see available commands.\n")


def print_menu(settings, ui_url, session):
    print("\n=== udprecord ===")
    listening = session.listening_on
    print(f"Listening: {format_address(listening) if listening else 'no'}")
    if settings.destination:
        print(f"Destination: {settings.destination}")
    print(f"UI: {ui_url}")
    print("Commands: /menu /help /listen /stop /send /senddb /status /logs /quit\n")


def print_help():
    print(
        "\nCommands:\n"
        "  /listen [host:port]            Listen for records\n"
        "  /stop                          Stop listening\n"
        "  /send <host:port> <id> <text>  Send one record\n"
        "  /senddb <host:port> [db]       Send every record from an sqlite file\n"
        "  /status                        Show what is running\n"
        "  /logs                          Show recent logs\n"
        "  /menu                          Show the main menu\n"
        "  /help                          Show this help\n"
        "  /quit                          Exit\n"
    )


def print_status(session):
    listening = session.listening_on
    if listening:
        print(f"Listening on {format_address(listening)}")
    elif session.busy:
        print("Sending...")
    else:
        print("Idle")

    if session.status is True:
        print("Last task: ok")
    elif session.status is False:
        print("Last task: failed")


def _address_or_default(value, default):
    if value:
        return parse_address(value)
    if default is None:
        raise ValueError("No address given and none configured")
    return default


def handle_command(line, session, settings, show_menu=None):
    """
    Handle a single CLI command.
    Returns False if the app should exit.
    """
    if line in ("/quit", "/exit"):
        return False

    if line == "/menu":
        if show_menu:
            show_menu()
        else:
            print_help()
        return True

    if line == "/help":
        print_help()
        return True

    if line == "/status":
        print_status(session)
        return True

    if line == "/logs":
        logs = session.logs()
        if not logs:
            print("No logs yet.")
            return True
        print("\nRecent logs:")
        for entry in logs:
            print(f"  {entry}")
        print()
        return True

    if line == "/listen" or line.startswith("/listen "):
        parts = line.split(maxsplit=1)
        try:
            address = _address_or_default(
                parts[1] if len(parts) > 1 else None,
                (settings.bind_ip or "0.0.0.0", settings.port),
            )
            bound = session.listen(address)
        except ValueError as e:
            print(f"Bad address: {e}")
        except SessionBusy as e:
            print(e)
        except RecordError as e:
            print(f"Couldn't listen: {e}")
        else:
            print(f"Listening on {format_address(bound)}.")
        return True

    if line == "/stop":
        if session.stop():
            print("Stopped.")
        else:
            print("Nothing to stop.")
        return True

    if line == "/senddb" or line.startswith("/senddb "):
        parts = line.split(maxsplit=2)
        try:
            destination = _address_or_default(
                parts[1] if len(parts) > 1 else None,
                settings.destination_address(),
            )
        except ValueError as e:
            print(f"Bad address: {e}")
            return True
        db_file = parts[2] if len(parts) > 2 else settings.db_file
        try:
            session.send_from_db(destination, db_file)
        except SessionBusy as e:
            print(e)
            return True
        print(f"Sending records from {db_file} to {format_address(destination)}. See /logs.")
        return True

    if line.startswith("/send "):
        parts = line.split(maxsplit=3)
        if len(parts) < 4:
            print("Usage: /send <host:port> <id> <text>")
            return True

        _, addr, record_id, text = parts
        try:
            destination = parse_address(addr)
            record = Record(id=int(record_id), text=text)
        except ValueError as e:
            print(f"Invalid input: {e}")
            return True

        try:
            session.send_record(destination, record)
            print(f"Sent {record} to {format_address(destination)}.")
        except PayloadTooLarge as e:
            print(f"Text too long by {e.excess} byte(s), shorten it and retry.")
        except RecordError as e:
            print(f"Send failed: {e}")
        return True

    print("Unknown command. Type /help.")
    return True
