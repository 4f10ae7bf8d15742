"""ReportCite launcher: open a report PDF next to its cited analysis."""

import sys

import click
from PyQt6.QtWidgets import QApplication

from app_logger import setup_logging
from gui.main_window import MainWindow

DEFAULT_REPORT = "report.pdf"


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("pdf", default=DEFAULT_REPORT, type=click.Path(dir_okay=False))
@click.option(
    "--log-level",
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Console log level.",
)
@click.option(
    "--log-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Also write logs to this file.",
)
def cli(pdf, log_level, log_file):
    """View a financial report PDF with clickable citations."""
    logger = setup_logging(log_level, log_file)

    app = QApplication(sys.argv[:1])
    window = MainWindow(pdf)
    window.show()
    window.start_loading()
    logger.info("Viewer started for %s", pdf)
    sys.exit(app.exec())


def main():
    cli()


if __name__ == "__main__":
    main()
