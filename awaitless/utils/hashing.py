"""
Cryptographic hashing utilities for awaitless reports.
Provides integrity checking for analyzed and fixed Python source.
"""

import hashlib
from typing import Optional


class ArtifactHasher:
    """
    Computes SHA-256 hashes so a report can be matched to the source it describes.
    """

    @staticmethod
    def hash_string(content: str) -> str:
        """
        Compute SHA-256 hash of a string.

        Args:
            content: String to hash

        Returns:
            Hexadecimal hash string
        """
        return hashlib.sha256(content.encode('utf-8')).hexdigest()

    @staticmethod
    def hash_file(file_path: str) -> Optional[str]:
        """
        Compute SHA-256 hash of a file, line endings as stored.

        Returns:
            Hexadecimal hash string, or None if file doesn't exist
        """
        try:
            with open(file_path, 'r', encoding='utf-8', newline='') as f:
                content = f.read()
            return ArtifactHasher.hash_string(content)
        except (FileNotFoundError, IOError):
            return None

    @staticmethod
    def compute_combined_hash(source_hash: str, fixed_hash: str) -> str:
        """Combined hash of the analyzed source and its fixed version"""
        combined = f"{source_hash}|{fixed_hash}"
        return hashlib.sha256(combined.encode('utf-8')).hexdigest()

    @staticmethod
    def verify_integrity(report: dict, source: str, fixed_source: Optional[str] = None) -> dict:
        """
        Check a report's artifacts section against actual source.

        Args:
            report: Report dict (or its artifacts section)
            source: Current source of the analyzed file
            fixed_source: Fixed source, if one was produced

        Returns:
            {
                'valid': bool,
                'source_match': bool,
                'fixed_match': bool (or None if no fixed source given)
            }
        """
        artifacts = report.get('artifacts', report)

        source_match = ArtifactHasher.hash_string(source) == artifacts.get('source_hash')

        fixed_match = None
        if fixed_source is not None:
            fixed_match = ArtifactHasher.hash_string(fixed_source) == artifacts.get('fixed_hash')

        valid = source_match and fixed_match is not False
        return {
            'valid': valid,
            'source_match': source_match,
            'fixed_match': fixed_match
        }
