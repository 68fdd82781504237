"""Exception types raised by the job tracker pipeline."""


class PipelineError(Exception):
    """Base class for errors that end a pipeline run."""


class ConfigurationError(PipelineError):
    """Required external configuration is missing or invalid."""


class ValidationError(PipelineError):
    """The scan request is missing fields or carries invalid dates."""


class AuthenticationError(PipelineError):
    """No usable access credential was supplied."""


class FetchError(Exception):
    """A single message could not be retrieved from the message source.

    Recovered inside the batch fetcher: the message is dropped and the run continues.
    """

    def __init__(self, message_id: str, reason: str):
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"Failed to fetch message {message_id}: {reason}")
