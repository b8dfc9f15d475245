"""
tmap_lib/errors.py: Exception taxonomy.

ValidationError  - bad input shape or range; carries the offending field.
NotFoundError    - lookup miss for an atlas, map or tile id.
ProcessingError  - decode/extraction/composition failure; reported generically
                   at the HTTP boundary.
"""


class ValidationError(ValueError):
    """Raised when a caller-supplied value is malformed or out of range."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class InvalidDimensions(ValidationError):
    pass


class UnknownEnvironment(ValidationError):
    pass


class InvalidGridConfig(ValidationError):
    pass


class NotFoundError(LookupError):
    """Raised when an id does not resolve."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind.capitalize()} not found: {key}")
        self.kind = kind
        self.key = key

    def __str__(self):
        return self.args[0]


class AtlasNotFound(NotFoundError):
    def __init__(self, atlas_id: str):
        super().__init__("atlas", atlas_id)


class ProcessingError(RuntimeError):
    pass


class EmptyTilePool(ProcessingError):
    pass
