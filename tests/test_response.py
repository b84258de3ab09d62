"""Tests for the response envelope."""

from datetime import datetime
from http import HTTPStatus

from models.message import Message
from models.response import Response, failure, success


def test_success_envelope() -> None:
    response = success({"mid": 1})

    assert response.ok
    assert response.status_code == 200
    assert response.to_dict() == {"statusCode": 200, "data": {"mid": 1}}


def test_failure_envelope_has_no_data() -> None:
    response = failure(HTTPStatus.FORBIDDEN, "Users are not contacts")

    assert not response.ok
    assert response.to_dict() == {"statusCode": 403, "error": "Users are not contacts"}


def test_message_payloads_are_expanded() -> None:
    sent_at = datetime(2024, 5, 1, 9, 30)
    message = Message(mid=7, sender_uid=1, receiver_uid=2, content="c", nonce="n", timestamp=sent_at)

    assert success([message]).to_dict()["data"] == [{
        "mid": 7, "sender_uid": 1, "receiver_uid": 2, "content": "c", "nonce": "n", "timestamp": sent_at,
    }]


def test_empty_list_is_still_data() -> None:
    assert Response(status_code=200, data=[]).to_dict() == {"statusCode": 200, "data": []}
