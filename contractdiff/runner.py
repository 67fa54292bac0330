"""Runner that compares two contract files from disk."""

from __future__ import annotations

import yaml
from pathlib import Path
from typing import Optional

from .engine import ContractDiffEngine
from .elements import ChangedOpenApi
from .models import EngineConfig, ErrorResponse


class ContractDiffRunner:
    """
    Loads two YAML or JSON contract files and compares them.

    Usage:
        runner = ContractDiffRunner("v1.yaml", "v2.yaml")
        result = runner.run()
        result.print_summary()

    Or as a one-liner:
        result = ContractDiffRunner.run_diff("v1.yaml", "v2.yaml")
    """

    def __init__(
        self,
        old_path: str,
        new_path: str,
        engine_config: Optional[EngineConfig] = None
    ):
        """
        Initialize the runner.

        Args:
            old_path: Path to the baseline contract
            new_path: Path to the contract to check
            engine_config: Optional engine configuration
        """
        self.old_path = Path(old_path)
        self.new_path = Path(new_path)
        self.engine = ContractDiffEngine(engine_config or EngineConfig())

    @staticmethod
    def load_document(path: Path) -> dict:
        """Load a contract from a YAML or JSON file."""
        if not path.exists():
            raise FileNotFoundError(f"Contract file not found: {path}")

        with open(path, 'r') as f:
            content = f.read()

        # JSON is valid YAML
        try:
            document = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse contract file {path}: {e}")

        if not isinstance(document, dict):
            raise ValueError(f"Contract file {path} does not contain a mapping")
        return document

    def run(self) -> ChangedOpenApi | ErrorResponse:
        """
        Compare the two files.

        Returns:
            ChangedOpenApi on success, ErrorResponse if the engine rejected the documents
        """
        return self.engine.compare(
            self.load_document(self.old_path),
            self.load_document(self.new_path),
            old_identifier=str(self.old_path),
            new_identifier=str(self.new_path),
        )

    @classmethod
    def run_diff(
        cls,
        old_path: str,
        new_path: str,
        engine_config: Optional[EngineConfig] = None
    ) -> ChangedOpenApi | ErrorResponse:
        """
        Convenience class method to compare two files in one call.

        Example:
            result = ContractDiffRunner.run_diff("v1.yaml", "v2.yaml")
        """
        return cls(old_path, new_path, engine_config).run()


def run_diff(
    old_path: str,
    new_path: str,
    engine_config: Optional[EngineConfig] = None
) -> ChangedOpenApi | ErrorResponse:
    """
    Compare two contract files.

        from contractdiff.runner import run_diff
        result = run_diff("v1.yaml", "v2.yaml")

    Args:
        old_path: Path to the baseline contract
        new_path: Path to the contract to check
        engine_config: Optional engine configuration

    Returns:
        ChangedOpenApi on success, ErrorResponse on engine errors
    """
    return ContractDiffRunner.run_diff(old_path, new_path, engine_config)
