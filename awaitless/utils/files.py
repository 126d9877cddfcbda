"""
File I/O utilities
"""

import os
from typing import Optional


def read_source(file_path: str) -> str:
    """Read a Python source file, keeping its line endings"""
    with open(file_path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_source(file_path: str, source: str, output_dir: Optional[str] = None) -> str:
    """
    Write fixed source.

    Args:
        file_path: Original file path
        source: Source to write
        output_dir: Write a copy into this directory instead of in place

    Returns:
        Path written
    """
    target = file_path
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        target = os.path.join(output_dir, os.path.basename(file_path))

    with open(target, "w", encoding="utf-8", newline="") as f:
        f.write(source)

    return target
