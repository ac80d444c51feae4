"""
Main Application Window
=======================
The primary GUI container: header with the dataset selector, the graph canvas
and the status bar.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It turns a dataset selection into a load, hands the result to the
   GraphView and reports load or layout failures to the user.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QSettings, Qt
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QComboBox, QHBoxLayout, QLabel, QMainWindow, QMessageBox, QVBoxLayout, QWidget
)

from graphi.config import DATASETS, DEFAULT_DATASET, GraphConfig
from graphi.errors import DataError
from graphi.layout.scheduler import FrameScheduler
from graphi.model.io import DatasetLoader
from graphi.model.state import ViewerState
from graphi.view.graph_view import GraphView

logger = logging.getLogger(__name__)

VISIBLE_APP_NAME = "Graphi"
SETTINGS_LAST_DATASET = "ui/last_dataset"


class MainWindow(QMainWindow):
    def __init__(
        self,
        state: Optional[ViewerState] = None,
        config: Optional[GraphConfig] = None,
        loader: Optional[DatasetLoader] = None,
        scheduler: Optional[FrameScheduler] = None,
        initial_dataset: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.state: ViewerState = state or ViewerState()
        self.config: GraphConfig = config or GraphConfig()
        self.loader: DatasetLoader = loader or DatasetLoader()
        self.show_error_dialogs: bool = True

        self.setWindowTitle(VISIBLE_APP_NAME)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QVBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # --- 1. HEADER ---
        header = QWidget()
        header.setObjectName("header")
        header.setStyleSheet("""
            QWidget#header { background-color: #2c3e50; }
            QLabel { color: white; font-size: 20px; font-weight: bold; }
        """)
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(16, 8, 16, 8)

        title = QLabel(VISIBLE_APP_NAME)
        header_layout.addWidget(title)
        header_layout.addStretch()

        self.dataset_combo = QComboBox()
        self.dataset_combo.setMinimumWidth(140)
        self._populate_datasets()
        header_layout.addWidget(self.dataset_combo)

        main_layout.addWidget(header)

        # --- 2. CANVAS ---
        self.graph_view = GraphView(self.config, scheduler=scheduler)
        main_layout.addWidget(self.graph_view, stretch=1)

        # --- 3. STATUS BAR ---
        self.statusBar().showMessage("Ready")

        # --- SIGNAL CONNECTIONS ---
        self.dataset_combo.currentIndexChanged.connect(self.on_dataset_selected)
        self.graph_view.simulation_failed.connect(self.on_simulation_failed)
        self.graph_view.simulation_converged.connect(self.on_simulation_converged)

        # Initial dataset: command line > last session > default
        identifier = initial_dataset or QSettings().value(SETTINGS_LAST_DATASET, DEFAULT_DATASET, type=str)
        self.select_dataset(identifier)

    def _populate_datasets(self) -> None:
        """Known datasets first (with their visible names), then any other file found."""
        self.dataset_combo.blockSignals(True)
        try:
            self.dataset_combo.clear()
            for name, identifier in DATASETS.items():
                self.dataset_combo.addItem(name, identifier)
            for identifier in self.loader.available():
                if identifier not in DATASETS.values():
                    self.dataset_combo.addItem(identifier, identifier)
        finally:
            self.dataset_combo.blockSignals(False)

    # --- HELPER METHODS ---

    def select_dataset(self, identifier: str) -> None:
        """Select ``identifier`` in the combo box (adding it if needed) and load it."""
        index = self.dataset_combo.findData(identifier)
        if index < 0:
            self.dataset_combo.addItem(identifier, identifier)
            index = self.dataset_combo.count() - 1

        if index == self.dataset_combo.currentIndex():
            self.load_dataset(identifier)
        else:
            # currentIndexChanged -> on_dataset_selected -> load_dataset
            self.dataset_combo.setCurrentIndex(index)

    def on_dataset_selected(self, index: int) -> None:
        identifier = self.dataset_combo.itemData(index)
        if identifier:
            self.load_dataset(identifier)

    def load_dataset(self, identifier: str) -> bool:
        """
        Load a dataset and start its layout. On failure the canvas stays empty.

        Returns:
            True if the dataset is now shown.
        """
        self.statusBar().showMessage(f"Loading {identifier}...")
        try:
            dataset = self.loader.load(identifier)
        except DataError as e:
            self.graph_view.clear()
            self.state.set_failed(identifier, str(e))
            self.statusBar().showMessage(f"Failed to load {identifier}")
            if self.show_error_dialogs:
                QMessageBox.critical(self, "Error", f"Could not load dataset '{identifier}':\n{e}")
            return False

        self.state.set_loaded(dataset)
        self.graph_view.show_dataset(dataset)
        QSettings().setValue(SETTINGS_LAST_DATASET, identifier)
        self.setWindowTitle(f"{VISIBLE_APP_NAME} - [{identifier}]")
        self.statusBar().showMessage(
            f"{len(dataset.papers)} papers, {len(dataset.citations)} citations. Laying out..."
        )
        return True

    # --- SLOTS ---

    def on_simulation_failed(self, message: str) -> None:
        self.state.last_error = message
        self.statusBar().showMessage(f"Layout halted: {message}")

    def on_simulation_converged(self, ticks: int) -> None:
        self.statusBar().showMessage(f"Layout converged after {ticks} ticks.", 5000)

    def closeEvent(self, event: QCloseEvent, /) -> None:
        """Stop the layout and remove the tooltip before the window goes away."""
        self.graph_view.clear()
        event.accept()
