"""
Viewer State (Data Model)
=========================
This module defines the central data structure for the running application.

Why is this file needed?
------------------------
1. State Management: It holds the selected dataset identifier, the loaded
   dataset and the last reported error in one place.
2. Decoupling: Views read from this object; the main window writes to it
   after each load attempt.

Layouts are deliberately absent: positions live only inside a running
simulation and are discarded with it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from graphi.config import DEFAULT_DATASET
from graphi.model.dataset import Dataset

logger = logging.getLogger(__name__)


@dataclass
class ViewerState:
    """
    Singleton-like class that holds the state of the open viewer.
    Pass this instance to the window and its widgets.
    """
    dataset_id: str = DEFAULT_DATASET
    dataset: Optional[Dataset] = None
    last_error: Optional[str] = None

    def set_loaded(self, dataset: Dataset) -> None:
        self.dataset_id = dataset.identifier
        self.dataset = dataset
        self.last_error = None

    def set_failed(self, dataset_id: str, message: str) -> None:
        self.dataset_id = dataset_id
        self.dataset = None
        self.last_error = message

    def reset(self) -> None:
        """Forget the loaded dataset"""
        self.dataset_id = DEFAULT_DATASET
        self.dataset = None
        self.last_error = None
        logger.info("Viewer state has been reset.")
