#!/usr/bin/env python
"""Standardized output paths and CSV table export."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import pandas as pd

logger = logging.getLogger(__name__)


class OutputManager:
    """Resolves export locations and writes tables with an optional metadata sidecar."""

    def __init__(self, base_dir: Union[str, Path] = 'exports'):
        self.base_dir = Path(base_dir)

    def get_output_path(
        self,
        folder: Union[str, Path],
        filename: str,
        suffix: str = '.csv'
    ) -> Path:
        """Build ``<base_dir>/<folder>/<filename><suffix>``.

        Absolute folders are used as-is.
        """
        folder = Path(folder)
        if not folder.is_absolute():
            folder = self.base_dir / folder
        return folder / f"{filename}{suffix}"

    def save_table(
        self,
        data: pd.DataFrame,
        output_path: Path,
        selectors: Optional[Sequence[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Path:
        """Write a table as CSV.

        Args:
            data: Table to export
            output_path: Destination CSV file
            selectors: Columns to write, in order. Columns absent from the
                table are written empty.
            metadata: When given, written to a JSON file next to the CSV

        Returns:
            Path of the written CSV
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if selectors is not None:
            data = data.reindex(columns=list(selectors))

        data.to_csv(output_path, index=False)
        logger.info("Wrote %d rows to %s", len(data), output_path)

        if metadata is not None:
            self.save_metadata(output_path, metadata, row_count=len(data))
        return output_path

    def save_metadata(self, output_path: Path, metadata: Dict[str, Any], row_count: int) -> Path:
        """Write ``<output>.json`` describing how a table was produced."""
        meta_path = Path(output_path).with_suffix('.json')
        payload = {
            'created': datetime.now().isoformat(timespec='seconds'),
            'table': Path(output_path).name,
            'rows': row_count,
            **metadata,
        }
        with open(meta_path, 'w') as fh:
            json.dump(payload, fh, indent=2, default=str)
        return meta_path


def get_output_manager(base_dir: Union[str, Path] = 'exports') -> OutputManager:
    """Return an output manager rooted at ``base_dir``."""
    return OutputManager(base_dir)
