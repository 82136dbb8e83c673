"""Idempotency support for API endpoints.

Recording a customer payment allocates money; a client retrying a timed-out
request must not allocate it twice. Endpoints call ``check_idempotency``
first: it returns a cached ``JSONResponse`` when the ``Idempotency-Key`` has
already completed, an ``IdempotencyResult`` when the key is new, or ``None``
when no key was sent. After the endpoint completes, call
``record_idempotency_response`` to persist the response for future replays.
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.repositories.idempotency_repository import IdempotencyRepository

IDEMPOTENCY_HEADER = "Idempotency-Key"


@dataclass
class IdempotencyResult:
    """Holds pending idempotency key info for later recording."""

    key: str
    method: str
    path: str


def check_idempotency(request: Request, db: Session) -> JSONResponse | IdempotencyResult | None:
    key = request.headers.get(IDEMPOTENCY_HEADER)
    if not key:
        return None

    repo = IdempotencyRepository(db)
    existing = repo.get_by_key(key)

    if existing is not None and existing.response_status is not None:
        response = JSONResponse(
            content=existing.response_body,
            status_code=int(existing.response_status),
        )
        response.headers["Idempotency-Replayed"] = "true"
        return response

    if existing is None:
        repo.create(
            idempotency_key=key,
            request_method=request.method,
            request_path=request.url.path,
        )

    return IdempotencyResult(key=key, method=request.method, path=request.url.path)


def record_idempotency_response(
    db: Session,
    key: str,
    status: int,
    body: dict[str, Any],
) -> None:
    """Persist the endpoint response so subsequent calls return the cached result."""
    repo = IdempotencyRepository(db)
    record = repo.get_by_key(key)
    if record is not None:
        repo.update_response(record, status, body)
