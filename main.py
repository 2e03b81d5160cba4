"""
SensorWatch Desktop Client Entry Point.

Bootstraps the dependency graph via constructor injection and launches
the CustomTkinter GUI.  Every subsystem is wired here; no
module-level globals.

Usage::

    python main.py        # or the installed ``sensorwatch`` script
"""

from __future__ import annotations

import sys
import traceback
from pathlib import Path

from sensorwatch.config import get_config
from sensorwatch.logger import StructuredLogger, get_logger
from sensorwatch.scheduling import TkScheduler
from sensorwatch.services import create_services
from sensorwatch.services.fingerprint import TkFingerprintSource
from sensorwatch.services.session_cache import EncryptedSessionStore
from sensorwatch.ui.app_shell import AppShell


def _launch(logger: StructuredLogger) -> None:
    """Wire dependencies and run the Tk main loop until the window closes."""
    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Encrypted session store (the single "auth-token" slot)
    # ------------------------------------------------------------------
    store = EncryptedSessionStore(
        db_path=Path(config.SESSION_DB_PATH),
        salt_path=Path(config.SESSION_SALT_PATH),
        logger=get_logger("session_store"),
    )

    # ------------------------------------------------------------------
    # 3. Host window (backs the scheduler, navigator and fingerprint)
    # ------------------------------------------------------------------
    app = AppShell(config=config, logger=get_logger("ui"))

    # ------------------------------------------------------------------
    # 4. Service Container (API client + controllers, single composition root)
    # ------------------------------------------------------------------
    services = create_services(
        config=config,
        store=store,
        scheduler=TkScheduler(app),
        navigator=app,
        fingerprint_source=TkFingerprintSource(app),
    )

    # ------------------------------------------------------------------
    # 5. Launch the GUI (blocks until window closes)
    # ------------------------------------------------------------------
    logger.info("Launching GUI...", extra={"api_base_url": config.api_root})
    app.start(services)
    app.mainloop()


def _report_crash(exc: BaseException) -> None:
    """Tell the user the client crashed.

    Plain ``tkinter.messagebox`` is used because the crash may have come
    from CustomTkinter itself.  Without a display the report goes to
    stderr.
    """
    summary = f"{type(exc).__name__}: {exc}"
    try:
        import tkinter
        from tkinter import messagebox

        # messagebox needs a root; keep it hidden.
        root = tkinter.Tk()
        root.withdraw()
        messagebox.showerror(
            title="SensorWatch",
            message=f"SensorWatch stopped unexpectedly.\n\n{summary}",
            detail="Details were written to the log file.",
        )
        root.destroy()
    except Exception:
        sys.stderr.write(
            "SensorWatch stopped unexpectedly: "
            + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        )


def main() -> int:
    """Application entry point; returns the process exit code."""
    logger = get_logger("main")
    logger.info("Starting SensorWatch...")
    try:
        _launch(logger)
    except KeyboardInterrupt:
        return 0
    except Exception as exc:
        logger.exception("Unhandled error, shutting down.", extra={"event": "CRASH"})
        _report_crash(exc)
        return 1
    finally:
        logger.info("SensorWatch shut down.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
