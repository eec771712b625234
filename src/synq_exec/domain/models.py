# src/synq_exec/domain/models.py
import json
from http import HTTPStatus
from typing import Any, Final

from pydantic import BaseModel, ConfigDict

SUCCESS_STATUS: Final[HTTPStatus] = HTTPStatus.OK
ERROR_STATUS: Final[HTTPStatus] = HTTPStatus.BAD_REQUEST

INDENT: Final[str] = "    "


class ApiError(BaseModel):
    """Structured error document returned to callers when a run fails.

    ``details`` holds the child's raw error stream. It is embedded as-is,
    so a child that writes invalid JSON produces an invalid document.
    """

    model_config = ConfigDict(frozen=True)
    name: str
    url: str
    message: str
    details: bytes | None = None

    def with_message(self, message: str) -> "ApiError":
        return self.model_copy(update={"message": message})

    def with_details(self, details: bytes) -> "ApiError":
        return self.model_copy(update={"details": details})

    def to_json(self) -> bytes:
        head = self.model_dump(include={"name", "url", "message"})
        body = json.dumps(head, indent=INDENT)
        if self.details is None:
            return body.encode()

        # Splice the raw bytes in as the last member, no re-encoding.
        raw = self.details.strip().decode(errors="replace") or "null"
        body = "%s,\n%s\"details\": %s\n}" % (body[:-2], INDENT, raw)
        return body.encode()


DEFAULT_ERROR: Final[ApiError] = ApiError(
    name="exec_error",
    url="http://docs.synq.fm/api/v1/errors/",
    message="An error occurred while running your script",
)


class ExecResponse(BaseModel):
    model_config = ConfigDict(frozen=True)
    status_code: HTTPStatus
    body: bytes

    @property
    def ok(self) -> bool:
        return self.status_code == SUCCESS_STATUS

    def decode(self) -> Any:
        return json.loads(self.body)
