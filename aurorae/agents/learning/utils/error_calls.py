
class AgentError(Exception):
    """Base class for learning agent failures"""
    def __init__(self, message="Learning agent failure"):
        super().__init__(message)
        self.message = message

class InvalidConfiguration(AgentError):
    """Raised when the agent is built or driven with an unusable configuration"""
    def __init__(self, message="Invalid agent configuration"):
        super().__init__(message)

    def __str__(self):
        return f'InvalidConfiguration: {self.message}'

class DeserializationError(AgentError):
    """Raised when a snapshot is missing, unreadable or does not match the schema"""
    def __init__(self, path=None, reason=None):
        message = "Could not deserialize agent snapshot"
        if path is not None:
            message += f" from {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.path = path
        self.reason = reason

class IOFailure(AgentError):
    """Raised when the underlying storage fails during save or load"""
    def __init__(self, path=None, operation="write"):
        message = f"Storage {operation} failed" + (f" for {path}" if path is not None else "")
        super().__init__(message)
        self.path = path
        self.operation = operation
