"""
JSON output formatter for awaitless analysis results.
Generates a report with integrity hashes of the analyzed source.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Dict, Any, Optional

from awaitless.core.config import RULE_ID, VERSION
from awaitless.utils.hashing import ArtifactHasher


class FindingsJSONFormatter:
    """
    Formats per-function analysis results as structured JSON.
    """

    SCHEMA_VERSION = "1.0.0"

    def __init__(self, source_file: str, source: str, settings: Optional[Dict[str, Any]] = None):
        """
        Initialize formatter.

        Args:
            source_file: Path to the Python source file analyzed
            source: Source text that was analyzed
            settings: Analyzer settings to record in the metadata
        """
        self.source_file = source_file
        self.source = source
        self.settings = settings or {}
        self.fixed_source: Optional[str] = None
        self.results: List[Dict[str, Any]] = []

    def add_result(self,
                   function_name: str,
                   line_number: int,
                   flagged: bool,
                   reason: str,
                   finding: Optional[Dict[str, Any]] = None,
                   fixed: bool = False) -> None:
        """
        Add the result for one function-like body.

        Args:
            function_name: Qualified name of the function
            line_number: Line where the function is defined
            flagged: Whether the rule fired
            reason: Why the rule did not fire ("" when flagged)
            finding: Finding dict when flagged
            fixed: Whether the fix was applied
        """
        result = {
            "function": {
                "name": function_name,
                "line": line_number
            },
            "analysis": {
                "flagged": flagged,
                "status": "flagged" if flagged else "clean",
                "reason": reason,
                "fixed": fixed
            }
        }

        if finding:
            result["finding"] = finding

        self.results.append(result)

    def set_fixed_source(self, fixed_source: str) -> None:
        self.fixed_source = fixed_source

    def generate(self) -> Dict[str, Any]:
        """
        Generate the complete JSON output structure.

        Returns:
            Dictionary representing the JSON structure
        """
        total = len(self.results)
        flagged = sum(1 for r in self.results if r["analysis"]["flagged"])
        fixed = sum(1 for r in self.results if r["analysis"]["fixed"])

        artifacts = {"source_hash": ArtifactHasher.hash_string(self.source)}
        if self.fixed_source is not None:
            fixed_hash = ArtifactHasher.hash_string(self.fixed_source)
            artifacts["fixed_hash"] = fixed_hash
            artifacts["combined_hash"] = ArtifactHasher.compute_combined_hash(
                artifacts["source_hash"], fixed_hash
            )

        return {
            "schema_version": self.SCHEMA_VERSION,
            "metadata": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "source_file": self.source_file,
                "analyzer_version": f"awaitless-{VERSION}",
                "rule_id": RULE_ID,
                "settings": self.settings
            },
            "summary": {
                "total_functions": total,
                "flagged": flagged,
                "clean": total - flagged,
                "fixed": fixed
            },
            "results": self.results,
            "artifacts": artifacts
        }

    def to_json_string(self, indent: int = 2) -> str:
        """Generate JSON string."""
        return json.dumps(self.generate(), indent=indent)

    def save_to_file(self, output_path: str, indent: int = 2) -> None:
        """
        Save JSON to file.

        Args:
            output_path: Path to output JSON file
            indent: Number of spaces for indentation
        """
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.generate(), f, indent=indent)
