"""Write generated files to disk."""

import logging
import os
from pathlib import Path
from typing import Iterable

from .generator import GeneratedFile

logger = logging.getLogger(__name__)


def write_files(files: Iterable[GeneratedFile], output_dir: str | Path) -> list[Path]:
    """Write files under ``output_dir``, creating directories as needed.

    Returns the written paths in order.
    """
    output_dir = Path(output_dir)
    written: list[Path] = []
    for generated in files:
        full_path = output_dir / generated.path
        os.makedirs(full_path.parent, exist_ok=True)
        with open(full_path, "w", encoding="utf-8") as f:
            f.write(generated.content)
        written.append(full_path)
    logger.info("wrote %d files to %s", len(written), output_dir)
    return written
