"""Error Hierarchy — tests for status codes and response envelopes."""

from roomshare.core.errors import (
    ErrorContext, InputValidationError, JoinCodeExhaustedError, NotAuthenticatedError,
    PartialDeletionError, PermissionDeniedError, ProfileIncompleteError, ResourceNotFoundError,
    RoomShareError,
    StoreError, UniquenessViolationError, UsernameTakenError,
)


def test_http_statuses():
    assert InputValidationError("bad", "name").http_status == 400
    assert NotAuthenticatedError().http_status == 401
    assert PermissionDeniedError("delete this room").http_status == 403
    assert ProfileIncompleteError().http_status == 403
    assert ResourceNotFoundError("Room", "x").http_status == 404
    assert UsernameTakenError("alice").http_status == 409
    assert UniquenessViolationError("rooms.join_code").http_status == 409
    assert JoinCodeExhaustedError(3).http_status == 409
    assert PartialDeletionError("r", "delete_files", []).http_status == 500
    assert StoreError("down", "query").http_status == 503


def test_all_errors_share_the_base_class():
    assert isinstance(UsernameTakenError("a"), RoomShareError)


def test_response_prefers_user_message():
    err = ResourceNotFoundError("Room", "ABC", ErrorContext(user_message="Room not found!"))
    body = err.to_response()["error"]
    assert body["message"] == "Room not found!"
    assert body["code"] == "RESOURCE_NOT_FOUND"


def test_partial_deletion_records_progress():
    err = PartialDeletionError("room-1", "delete_files", ["list_files", "remove_objects"])
    assert err.failed_step == "delete_files"
    assert err.completed_steps == ["list_files", "remove_objects"]
    assert err.to_response()["error"]["context"]["room_id"] == "room-1"


def test_sse_event_marks_warnings_recoverable():
    event = NotAuthenticatedError().to_sse_event()
    assert event["type"] == "error"
    assert event["data"]["recoverable"] is True
    assert StoreError("down", "query").to_sse_event()["data"]["recoverable"] is False
