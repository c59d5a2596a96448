"""Allow running Multimer as a module: python -m multimer."""

import logging
import sys

from PyQt6.QtWidgets import QApplication

from .database.db import init_db
from .settings import load_settings
from .app import MultimerApp


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()

    app = QApplication(sys.argv)
    app.setApplicationName("Multimer")
    app.setOrganizationName("Multimer")
    app.setQuitOnLastWindowClosed(False)

    shell = MultimerApp(settings=settings)
    engines = shell.restore()
    logging.getLogger(__name__).info("Multimer ready with %d timer(s)", len(engines))

    app.aboutToQuit.connect(shell.shutdown)
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
