from fastapi import status

class BaseAppException(Exception):
    def __init__(self, code: str, message: str, http_status: int):
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)

class ValidationAppError(BaseAppException):
    def __init__(self, code: str, message: str):
        super().__init__(code, message, status.HTTP_400_BAD_REQUEST)

class ForbiddenError(BaseAppException):
    def __init__(self, code: str, message: str):
        super().__init__(code, message, status.HTTP_403_FORBIDDEN)

class RemoteApiError(BaseAppException):
    """Raised when the task service answers with a non-2xx status."""
    def __init__(self, operation: str, status_code: int, body: str):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__("REMOTE_API_ERROR", f"{operation} failed ({status_code}): {body}", status.HTTP_502_BAD_GATEWAY)

class ConfigError(BaseAppException):
    """Startup-fatal configuration problem."""
    def __init__(self, message: str):
        super().__init__("CONFIG_ERROR", message, status.HTTP_500_INTERNAL_SERVER_ERROR)
