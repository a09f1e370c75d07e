class ValidationFailed(ValueError):
    """Business-rule violation on an incoming payload; surfaced as HTTP 400."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field
