"""Mock responses for X API integration tests."""

from __future__ import annotations

POST_RESPONSE = {
    "data": {
        "id": "1234567890",
        "text": "Test post",
        "author_id": "123456",
        "created_at": "2024-01-01T00:00:00.000Z",
    }
}

RATE_LIMIT_HEADERS = {
    "x-rate-limit-limit": "900",
    "x-rate-limit-remaining": "899",
    "x-rate-limit-reset": "1700000000",
}

PARTIAL_ERROR_RESPONSE = {
    "data": [{"id": "1111111111", "text": "First result"}],
    "errors": [
        {
            "value": "2222222222",
            "detail": "Could not find tweet with ids: [2222222222].",
            "title": "Not Found Error",
            "type": "https://api.twitter.com/2/problems/resource-not-found",
        }
    ],
}

NOT_FOUND_PROBLEM = {
    "title": "Not Found Error",
    "detail": "Could not find tweet with id: [404].",
    "type": "https://api.twitter.com/2/problems/resource-not-found",
    "status": 404,
}

UNAUTHORIZED_PROBLEM = {
    "title": "Unauthorized",
    "type": "about:blank",
    "status": 401,
    "detail": "Unauthorized",
}

RATE_LIMIT_ERROR_RESPONSE = {
    "errors": [
        {
            "message": "Rate limit exceeded",
            "code": 88,
        }
    ]
}

ERROR_ONLY_RESPONSE = {
    "errors": [
        {
            "message": "Sorry, that page does not exist",
            "code": 34,
        }
    ]
}

MEDIA_UPLOAD_IMAGE_RESPONSE = {
    "media_id": 1234567890123456789,
    "media_id_string": "1234567890123456789",
    "media_key": "3_1234567890123456789",
    "size": 12345,
    "expires_after_secs": 86400,
    "image": {
        "image_type": "image/png",
        "w": 1200,
        "h": 675,
    },
}

MEDIA_UPLOAD_INIT_RESPONSE = {
    "media_id": 9876543210987654321,
    "media_id_string": "9876543210987654321",
    "media_key": "7_9876543210987654321",
    "expires_after_secs": 86400,
}

MEDIA_UPLOAD_FINALIZE_RESPONSE = {
    "media_id": 9876543210987654321,
    "media_id_string": "9876543210987654321",
    "media_key": "7_9876543210987654321",
    "size": 10,
    "expires_after_secs": 86400,
    "processing_info": {
        "state": "pending",
        "check_after_secs": 1,
    },
}
