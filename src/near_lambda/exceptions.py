"""Custom exceptions."""


class NearLambdaError(Exception):
    """Base class for all custom exceptions.

    Useful to catch all of them.
    """


class RequestDecodeError(NearLambdaError):
    """The serialized request could not be decoded into execute arguments."""

    def __init__(self, raw: str, reason: str | None = None):
        """Raise the RequestDecodeError.

        Args:
            raw (str): The offending serialized payload.
            reason (str | None): Optional detail from the decoder.
        """
        self.raw = raw
        msg = f"Deserializing params string '{raw}' failed"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ResultEncodeError(NearLambdaError):
    """The lambda result could not be serialized."""

    def __init__(self, raw: object, reason: str | None = None):
        self.raw = raw
        msg = f"Serializing the lambda result {raw!r} failed"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PlatformError(NearLambdaError):
    """Any failure reported by the orchestration platform."""


class ServiceCreationError(PlatformError):
    """The platform refused or failed to start a service."""

    def __init__(self, service_name: str, reason: str):
        self.service_name = service_name
        self.reason = reason
        super().__init__(f"Failed to create service '{service_name}': {reason}")


class ReadinessTimeoutError(NearLambdaError):
    """A service came up but never became ready within its retry budget."""

    def __init__(self, attempts: int, delay_s: float, target: str | None = None):
        self.attempts = attempts
        self.delay_s = delay_s
        self.target = target
        what = f"'{target}'" if target else "the service"
        super().__init__(
            f"Couldn't get a ready result from {what}, even after {attempts} attempts "
            f"with {delay_s * 1000:g}ms between attempts"
        )


class ValidatorKeyDecodeError(NearLambdaError):
    """The validator key read from the indexer is not a JSON object."""

    def __init__(self, raw: str, reason: str | None = None):
        self.raw = raw
        msg = f"JSON-parsing validator key string '{raw}' failed"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class TopologyConfigError(NearLambdaError):
    """The topology file is missing, malformed or incomplete."""
