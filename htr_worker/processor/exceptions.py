class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class MissingPageSelectionError(ProcessorError):
    """Raised when neither an item pid nor a pid file was given."""


class PollTimeoutError(ProcessorError):
    """Raised when Transkribus did not finish before the polling deadline."""


class UnexpectedStagingContentError(ProcessorError):
    """Raised when a single-file stage holds no file or more than one."""


class SourceFetchError(ProcessorError):
    """Raised when a source image or hOCR file cannot be fetched."""


class UnsupportedSourceError(SourceFetchError):
    """Raised when a source URI uses a scheme the loader does not accept."""
