class ProxyError(Exception):
    """Failure that terminates a request with ``{success: false, error}``"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ProxyError):
    status_code = 500

    def __init__(self, message: str = (
        "Missing configuration. Check the AZURE_LANGUAGE_KEY and "
        "AZURE_LANGUAGE_ENDPOINT environment variables."
    )):
        super().__init__(message)


class ValidationError(ProxyError):
    status_code = 400


class UpstreamError(ProxyError):
    """The language service rejected the document"""

    status_code = 500

    def __init__(self, cause: str):
        super().__init__(f"Analysis error: {cause}")
        self.cause = cause


class UnexpectedError(ProxyError):
    status_code = 500

    def __init__(self, message: str = (
        "Internal server error. Check the Azure AI configuration."
    )):
        super().__init__(message)
