"""Custom exceptions for the contractdiff engine."""


class ContractDiffError(Exception):
    """Base exception for contractdiff errors."""
    pass


class ValidationError(ContractDiffError):
    """Raised when input validation fails."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PathCollisionError(ContractDiffError):
    """Raised when two path templates of one document share a signature."""
    def __init__(self, template: str, paths: list[str]):
        super().__init__(
            f"Two path items have the same signature {template}: {', '.join(paths)}"
        )
        self.template = template
        self.paths = paths


class UnresolvedRefError(ContractDiffError):
    """Raised when a reference cannot be resolved against the component table."""
    def __init__(self, ref: str, reason: str = None):
        message = f"Cannot resolve reference: {ref}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.ref = ref
        self.reason = reason


class UnsupportedSchemaError(ContractDiffError):
    """Raised when a schema or security scheme has a shape the engine cannot compare."""
    def __init__(self, message: str, reason: str = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class JSONPathError(ContractDiffError):
    """Raised when a global-ignore expression is not valid JSONPath."""
    def __init__(self, expression: str, reason: str):
        super().__init__(f"Invalid JSONPath expression '{expression}': {reason}")
        self.expression = expression
        self.reason = reason
