"""
Dataset Loader (JSON)
Reads citation graphs from the data directory by identifier.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Optional

from graphi.config import DATA_PATH
from graphi.errors import DataError
from graphi.model.dataset import Dataset

logger = logging.getLogger(__name__)


class DatasetLoader:
    """
    Resolves a dataset identifier (a file name such as ``graph1.json``) to a
    validated Dataset. Every call reads the file again; nothing is cached, so a
    reload always yields fresh records.
    """
    EXTENSION = ".json"

    def __init__(self, data_dir: Optional[str] = None) -> None:
        self.data_dir = data_dir or DATA_PATH

    def available(self) -> list[str]:
        """Identifiers of all dataset files in the data directory, sorted."""
        try:
            names = os.listdir(self.data_dir)
        except OSError as e:
            logger.warning(f"Cannot list data directory '{self.data_dir}': {e}")
            return []
        return sorted(name for name in names if name.endswith(self.EXTENSION))

    def path_for(self, identifier: str) -> str:
        # Identifiers are plain file names; anything else could escape the data directory
        if not identifier or os.path.basename(identifier) != identifier or identifier in (".", ".."):
            raise DataError(f"Invalid dataset identifier '{identifier}'.")
        if not identifier.endswith(self.EXTENSION):
            identifier += self.EXTENSION
        return os.path.join(self.data_dir, identifier)

    def load(self, identifier: str) -> Dataset:
        """
        Read and validate one dataset.

        Args:
            identifier: File name inside the data directory.

        Returns:
            The validated dataset.

        Raises:
            DataError: If the file is missing, is not JSON, or fails validation.
        """
        path = self.path_for(identifier)
        logger.info(f"Loading dataset from: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                payload = json.load(f)
        except FileNotFoundError as e:
            msg = f"Dataset '{identifier}' not found in {self.data_dir}."
            logger.error(msg)
            raise DataError(msg) from e
        except (OSError, json.JSONDecodeError) as e:
            msg = f"Dataset '{identifier}' could not be read: {e}"
            logger.error(msg)
            raise DataError(msg) from e

        try:
            dataset = Dataset.from_payload(identifier, payload)
        except DataError as e:
            logger.error(f"Dataset '{identifier}' is invalid: {e}")
            raise

        logger.info(f"Loaded '{identifier}': {len(dataset.papers)} papers, {len(dataset.citations)} citations.")
        return dataset
