"""Entry point for the Stempeluhr time tracker.

This script launches ``StempeluhrApp`` from ``stempeluhr.ui``: a tray
icon to start, pause and stop work, plus a window for reviewing, editing
and exporting the recorded sessions.
"""

from stempeluhr.logging_config import setup_logging
from stempeluhr.ui import StempeluhrApp


def main() -> None:
    setup_logging()
    app = StempeluhrApp()
    app.mainloop()


if __name__ == "__main__":
    main()
