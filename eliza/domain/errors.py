class ElizaError(Exception):
    """Base error for the agent runtime"""


class RuntimeConfigurationError(ElizaError, ValueError):
    """Raised when a runtime cannot be constructed from the given options"""


class GenerationError(ElizaError):
    """Raised when the text generation backend is missing or fails"""


class UnparseableResponseError(GenerationError):
    """Raised when model output does not have the expected shape"""

    def __init__(self, expected: str, response: str):
        self.expected = expected
        self.response = response
        super().__init__(f"Could not parse {expected} from model response: {response[:200]!r}")
