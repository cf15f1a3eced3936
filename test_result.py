from http import HTTPStatus

from utils.pagination import page_info
from utils.result import Result


class TestResult:
    """
    Tests for the Result type returned by every service.
    """

    def test_success_to_dict(self):
        assert Result.created({"id": 1}).to_dict() == {
            "success": True,
            "status_code": 201,
            "status": "Created",
            "data": {"id": 1},
        }

    def test_failure_to_dict_includes_details(self):
        result = Result.unprocessable("Failed to parse Excel file: bad", details={"file_id": 3})

        assert result.to_dict() == {
            "success": False,
            "status_code": 422,
            "status": "Unprocessable Entity",
            "error": "Failed to parse Excel file: bad",
            "details": {"file_id": 3},
        }

    def test_int_status_code_is_converted(self):
        assert Result.fail("nope", status_code=409).status_code == HTTPStatus.CONFLICT

    def test_and_then_chains_successes(self):
        result = Result.ok(2).and_then(lambda value: Result.ok(value * 10))

        assert result.data == 20

    def test_and_then_short_circuits_failures(self):
        calls = []
        failure = Result.forbidden().and_then(lambda value: calls.append(value) or Result.ok(value))

        assert calls == []
        assert failure.status_code == HTTPStatus.FORBIDDEN
        assert failure.error == "Access denied"
        assert failure.data is None

    def test_and_then_keeps_failure_details(self):
        failure = Result.unprocessable("bad sheet", details={"file_id": 7}).and_then(Result.ok)

        assert failure.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
        assert failure.details == {"file_id": 7}


def test_page_info_rounds_up():
    assert page_info(total=21, page=2, limit=10) == {"total_pages": 3, "current_page": 2, "total": 21}
    assert page_info(total=0, page=1, limit=10)["total_pages"] == 0
