from typing import Generic, TypeVar, Optional, Callable, Any, Dict, Union
from http import HTTPStatus

T = TypeVar('T')  # Generic type variable
U = TypeVar('U')  # Additional type variable for chained operations

class Result(Generic[T]):
    """
    A generic result class that represents the outcome of a service operation.

    Services return either successful results with data or failed results
    with an error message and the HTTP status the API layer should answer with.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (only present when success is True)
        error (Optional[str]): Error message (only present when success is False)
        details (Optional[Dict[str, Any]]): Extra failure context, e.g. the id of a failed file
        status_code (HTTPStatus): HTTP status code (default: 200 for success, 400 for failure)
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize a Result object.

        Args:
            success (bool): Whether the operation succeeded
            data (Optional[T], optional): The data returned by a successful operation. Defaults to None.
            error (Optional[str], optional): Error message for a failed operation. Defaults to None.
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code.
                Defaults to 200 for success, 400 for failure.
            details (Optional[Dict[str, Any]], optional): Extra context for failures. Defaults to None.
        """
        self.success = success
        self.data = data
        self.error = error
        self.details = details

        # Set default status code based on success/failure if not provided
        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        else:
            if isinstance(status_code, int):
                self.status_code = HTTPStatus(status_code)
            else:
                self.status_code = status_code

    @classmethod
    def ok(cls, data: T, status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.OK) -> "Result[T]":
        """
        Create a successful Result with the provided data.

        Args:
            data (T): The data to be wrapped in the Result
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 200 OK.

        Returns:
            Result[T]: A successful Result containing the provided data
        """
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def created(cls, data: T) -> "Result[T]":
        """
        Create a successful Result for a newly created record (201).
        """
        return cls(success=True, data=data, status_code=HTTPStatus.CREATED)

    @classmethod
    def fail(
        cls,
        error: str,
        status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.BAD_REQUEST,
        details: Optional[Dict[str, Any]] = None
    ) -> "Result[T]":
        """
        Create a failed Result with the provided error message.

        Args:
            error (str): The error message describing the failure
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 400 BAD_REQUEST.
            details (Optional[Dict[str, Any]], optional): Extra context returned with the error.

        Returns:
            Result[T]: A failed Result containing the error message
        """
        return cls(success=False, error=error, status_code=status_code, details=details)

    @classmethod
    def not_found(cls, error: str = "Resource not found") -> "Result[T]":
        """
        Create a failed Result with NOT_FOUND status code.

        Args:
            error (str, optional): The error message. Defaults to "Resource not found".

        Returns:
            Result[T]: A failed Result with 404 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.NOT_FOUND)

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
    def unauthorized(cls, error: str = "Authentication required") -> "Result[T]":
        """
        Create a failed Result with UNAUTHORIZED status code.
        """
        return cls(success=False, error=error, status_code=HTTPStatus.UNAUTHORIZED)

    @classmethod
    def forbidden(cls, error: str = "Access denied") -> "Result[T]":
        """
        Create a failed Result with FORBIDDEN status code.

        Args:
            error (str, optional): The error message. Defaults to "Access denied".

        Returns:
            Result[T]: A failed Result with 403 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.FORBIDDEN)

    @classmethod
    def unprocessable(cls, error: str, details: Optional[Dict[str, Any]] = None) -> "Result[T]":
        """
        Create a failed Result for content that was received but could not be processed (422).

        Used when an uploaded spreadsheet is stored but cannot be parsed.
        """
        return cls(
            success=False,
            error=error,
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            details=details
        )

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
        """
        Check if the Result represents a successful operation.

        Returns:
            bool: True if the Result is successful, False otherwise
        """
        return self.success

    def is_failure(self) -> bool:
        """
        Check if the Result represents a failed operation.

        Returns:
            bool: True if the Result is a failure, False otherwise
        """
        return not self.success

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Chain operations that return Result objects.

        If this Result is a failure, it short-circuits and returns an equivalent failure.
        If it's a success, it applies the function to the data and returns the new Result.

        Args:
            fn (Callable[[T], Result[U]]): Function that takes the success data and returns a new Result

        Returns:
            Result[U]: Either the original failure or the new Result from the function
        """
        if not self.is_success():
            return Result.fail(self.error or "", status_code=self.status_code, details=self.details)  # type: ignore
        return fn(self.data)  # type: ignore

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert Result to a dictionary suitable for API responses.

        Returns:
            Dict[str, Any]: Dictionary containing status, status_code, data/error
        """
        response = {
            "success": self.success,
            "status_code": self.status_code.value,
            "status": self.status_code.phrase
        }

        if self.is_success():
            response["data"] = self.data
        else:
            response["error"] = self.error
            if self.details:
                response["details"] = self.details

        return response

    def __repr__(self) -> str:
        return f"Result(success={self.success}, status_code={self.status_code!r}, data={self.data!r}, error={self.error!r})"
