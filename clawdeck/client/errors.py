"""Controller client exception hierarchy with stable taxonomy fields."""


class ClientError(Exception):
    """Base error type for all controller transport failures."""

    error_class = "client"
    error_code = "CLIENT_ERROR"

    def __init__(self, message: str, *, error_class: str | None = None, error_code: str | None = None):
        super().__init__(message)
        if error_class is not None:
            self.error_class = error_class
        if error_code is not None:
            self.error_code = error_code


class ExecutionError(ClientError):
    """Controller subprocess exited non-zero or was killed by a signal."""

    error_class = "execution"
    error_code = "EXEC_FAILED"

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class CommandTimeoutError(ExecutionError):
    """Controller subprocess ran past its deadline and was killed."""

    error_code = "EXEC_TIMEOUT"


class SpawnError(ExecutionError):
    """Controller binary could not be started at all."""

    error_code = "EXEC_SPAWN_FAILED"


class OutputParseError(ClientError):
    """Structured output was expected but could not be parsed."""

    error_class = "parse"
    error_code = "PARSE_INVALID"


class EmptyOutputError(OutputParseError):
    """Structured output was expected but the command printed nothing."""

    error_code = "PARSE_EMPTY"


class GatewayNetworkError(ClientError):
    """Gateway HTTP request could not complete."""

    error_class = "network"
    error_code = "NET_FAILED"


class GatewayTimeoutError(GatewayNetworkError):
    """Gateway HTTP request was aborted at its deadline."""

    error_code = "NET_TIMEOUT"


class GatewayRemoteError(ClientError):
    """Gateway answered with a non-success HTTP status."""

    error_class = "remote"
    error_code = "REMOTE_STATUS"

    def __init__(self, message: str, *, status_code: int, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConfigurationError(ClientError):
    """Transport cannot be used with the resolved configuration."""

    error_class = "configuration"
    error_code = "CONFIG_INVALID"


class UnsupportedOperationError(ClientError):
    """Operation shape is not expressible over the selected transport."""

    error_class = "configuration"
    error_code = "OP_UNSUPPORTED"
