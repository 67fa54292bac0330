"""
contractdiff - OpenAPI 3 Contract Diff Engine

Compares two OpenAPI 3 documents element by element and classifies every
difference by how it affects existing clients, so that a pipeline can gate
on whether the new contract is backward compatible.
"""

from .engine import ContractDiffEngine, DiffSession, compare
from .models import (
    EngineConfig,
    ErrorResponse,
    Endpoint,
    ChangeSummary,
    CoreDelta,
    ChangeType,
    DiffContext,
    Direction,
    ElementType,
    LogLevel,
    Severity,
)
from .changes import ChangeRecord, CompositeChangeRecord
from .elements import (
    ChangedOpenApi,
    ChangedOperation,
    ChangedSchema,
)
from .exceptions import (
    ContractDiffError,
    ValidationError,
    PathCollisionError,
    UnresolvedRefError,
    UnsupportedSchemaError,
    JSONPathError,
)
from .extensions import (
    ExtensionChange,
    ExtensionDiff,
    ExtensionRegistry,
)
from .log import configure_logging
from .runner import (
    ContractDiffRunner,
    run_diff,
)

__version__ = ContractDiffEngine.VERSION
__all__ = [
    # Engine
    "ContractDiffEngine",
    "DiffSession",
    "EngineConfig",
    "compare",
    # Results
    "ChangedOpenApi",
    "ChangedOperation",
    "ChangedSchema",
    "ChangeRecord",
    "CompositeChangeRecord",
    "ChangeSummary",
    "CoreDelta",
    "ChangeType",
    "ElementType",
    "Endpoint",
    "ErrorResponse",
    "Severity",
    # Context
    "DiffContext",
    "Direction",
    # Errors
    "ContractDiffError",
    "ValidationError",
    "PathCollisionError",
    "UnresolvedRefError",
    "UnsupportedSchemaError",
    "JSONPathError",
    # Extensions
    "ExtensionChange",
    "ExtensionDiff",
    "ExtensionRegistry",
    # Logging
    "LogLevel",
    "configure_logging",
    # File Runner
    "ContractDiffRunner",
    "run_diff",
]
