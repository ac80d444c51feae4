"""
Application Initialization
==========================
This module parses the command line, builds the window and starts the Qt
event loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Sets up logging and loads the configuration.
2. Instantiates the viewer state and the dataset loader.
3. Passes them into the Main Window (View).
4. Prevents circular import errors by being the orchestrator.
"""
from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from graphi import __version__
from graphi.config import load_config
from graphi.errors import ConfigError
from graphi.logging_config import parse_level, setup_logging
from graphi.model.io import DatasetLoader
from graphi.model.state import ViewerState

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="graphi", description="Interactive citation graph explorer.")
    parser.add_argument("--dataset", help="Dataset to open first, e.g. graph2.json")
    parser.add_argument("--config", help="JSON file overriding the default configuration")
    parser.add_argument("--data-dir", help="Directory holding the dataset files")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR (default: INFO)")
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args, qt_args = parser.parse_known_args(argv)

    # 1. Setup Logging (Console + Optional File)
    try:
        level = parse_level(args.log_level)
    except ValueError as e:
        parser.error(str(e))
    setup_logging(level=level, log_file=args.log_file)

    # 2. Configuration
    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    # Qt is imported only once the command line is valid
    from graphi.view.application import create_app
    from graphi.view.main_window import MainWindow

    # 3. Create the Qt Application
    app = create_app([parser.prog, *qt_args])

    # 4. Initialize the Data Model and the Main Window
    window = MainWindow(
        state=ViewerState(),
        config=config,
        loader=DatasetLoader(args.data_dir),
        initial_dataset=args.dataset,
    )
    window.show()

    # 5. Start Event Loop
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
