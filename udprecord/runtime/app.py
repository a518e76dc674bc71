import logging

from udprecord.cli.commands import handle_command, print_banner, print_menu
from udprecord.config.settings import Settings
from udprecord.core.network import default_interface_ip
from udprecord.runtime.session import Session
from udprecord.ui.server import run_ui_server


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("werkzeug").setLevel(logging.ERROR)


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    session = Session(bind_ip=settings.bind_ip or "0.0.0.0")
    session.record_log(f"Local interface IP: {settings.bind_ip or default_interface_ip()}")

    def current_ui_url():
        host_label = settings.ui_host
        if host_label == "0.0.0.0":
            host_label = default_interface_ip()
        return f"http://{host_label}:{settings.ui_port}"

    # --- UI server (non-blocking) ---
    run_ui_server(
        session=session,
        settings=settings,
        host=settings.ui_host,
        port=settings.ui_port,
    )
    session.record_log(f"UI running at {current_ui_url()}")

    # --- CLI ---
    def show_menu():
        print_menu(settings, current_ui_url(), session)

    print_banner(settings)
    show_menu()

    try:
        while True:
            line = input("> ").strip()
            if not line:
                continue

            should_continue = handle_command(
                line=line,
                session=session,
                settings=settings,
                show_menu=show_menu,
            )

            if not should_continue:
                break

    except (KeyboardInterrupt, EOFError):
        pass
    finally:
        print("\nExiting...")
        session.close()
