from typing import Generic, TypeVar, Optional, Any, Dict, Union
from http import HTTPStatus

T = TypeVar('T')  # Generic type variable

class Result(Generic[T]):
    """
    Outcome of an import request.

    A successful Result carries the data produced by the pipeline, a failed
    one carries the message that is safe to show to the uploader. Either way
    the HTTP status travels with it so the endpoint can answer directly.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (only present when success is True)
        message (Optional[str]): Message for the client on success
        error (Optional[str]): Error message (only present when success is False)
        status_code (HTTPStatus): HTTP status code (default: 200 for success, 400 for failure)
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None,
        message: Optional[str] = None
    ):
        self.success = success
        self.data = data
        self.error = error
        self.message = message

        # Set default status code based on success/failure if not provided
        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        elif isinstance(status_code, HTTPStatus):
            self.status_code = status_code
        else:
            self.status_code = HTTPStatus(status_code)

    @classmethod
    def ok(cls, data: T, message: Optional[str] = None) -> "Result[T]":
        """
        Create a successful Result with the provided data.

        Args:
            data (T): The data to be wrapped in the Result
            message (Optional[str], optional): Message shown to the client. Defaults to None.

        Returns:
            Result[T]: A successful Result with 200 status code
        """
        return cls(success=True, data=data, message=message, status_code=HTTPStatus.OK)

    @classmethod
    def fail(cls, error: str, status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.BAD_REQUEST) -> "Result[T]":
        """
        Create a failed Result with the provided error message.

        Args:
            error (str): The error message describing the failure
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 400 BAD_REQUEST.

        Returns:
            Result[T]: A failed Result containing the error message
        """
        return cls(success=False, error=error, status_code=status_code)

    @classmethod
    def invalid_input(cls, error: str = "Invalid input data") -> "Result[T]":
        """
        Create a failed Result with BAD_REQUEST status code.

        Args:
            error (str, optional): The error message. Defaults to "Invalid input data".

        Returns:
            Result[T]: A failed Result with 400 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.BAD_REQUEST)

    @classmethod
    def server_error(cls, error: str = "Internal server error") -> "Result[T]":
        """
        Create a failed Result with INTERNAL_SERVER_ERROR status code.

        Args:
            error (str, optional): The error message. Defaults to "Internal server error".

        Returns:
            Result[T]: A failed Result with 500 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert Result to a dictionary suitable for API responses.

        Pydantic models in ``data`` are dumped to plain dicts.

        Returns:
            Dict[str, Any]: Dictionary containing status, status_code, message/data or error
        """
        response: Dict[str, Any] = {
            "success": self.success,
            "status_code": self.status_code.value,
            "status": self.status_code.phrase
        }

        if self.is_success():
            response["message"] = self.message
            data = self.data
            if hasattr(data, "model_dump"):
                data = data.model_dump()
            response["data"] = data
        else:
            response["error"] = self.error

        return response

    def __str__(self) -> str:
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            # Truncate long data representations
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}): {self.error}"

    def __repr__(self) -> str:
        return f"Result(success={self.success}, status_code={self.status_code!r}, data={self.data!r}, error={self.error!r})"
