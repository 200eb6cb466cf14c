"""
errors.py — AppError and the error code registry.

Every failure the StudyBuddy core reports uses a code defined here. Services
raise AppError with a code and a human-readable message; they never choose an
HTTP status. The transport layer (app/__init__.py error handlers) maps the
code to a status through ERROR_HTTP_STATUS.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - ANONYMOUS_CALLER (401) means we do not know who you are.
    NOT_GROUP_ADMIN / FORBIDDEN (403) mean we know, and you may not.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code    = code
        self.message = message
        self.field   = field  # which request field caused the error

    @property
    def http_status(self) -> int:
        return ERROR_HTTP_STATUS.get(self.code, 500)

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment and in
# ERROR_HTTP_STATUS below.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    USERNAME_TAKEN             = "USERNAME_TAKEN"
    EMAIL_TAKEN                = "EMAIL_TAKEN"
    ALREADY_MEMBER             = "ALREADY_MEMBER"
    ALREADY_ADMIN              = "ALREADY_ADMIN"
    TOPIC_ALREADY_EXISTS       = "TOPIC_ALREADY_EXISTS"
    CONCURRENT_UPDATE          = "CONCURRENT_UPDATE"
    USER_ADMINISTERS_GROUP     = "USER_ADMINISTERS_GROUP"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    TARGET_NOT_FOUND           = "TARGET_NOT_FOUND"
    TOPIC_NOT_FOUND            = "TOPIC_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    NOT_A_MEMBER               = "NOT_A_MEMBER"
    TARGET_NOT_A_MEMBER        = "TARGET_NOT_A_MEMBER"
    CANNOT_KICK_ADMIN          = "CANNOT_KICK_ADMIN"
    MEETING_DATE_IN_PAST       = "MEETING_DATE_IN_PAST"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (anonymous / bad credentials)
    # 403 = we know who you are, but you are not allowed
    ANONYMOUS_CALLER           = "ANONYMOUS_CALLER"       # 401
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    NOT_GROUP_ADMIN            = "NOT_GROUP_ADMIN"        # 403
    FORBIDDEN                  = "FORBIDDEN"              # 403 — missing capability

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


ERROR_HTTP_STATUS: dict[str, int] = {
    ErrorCode.MISSING_FIELD:        400,
    ErrorCode.INVALID_FIELD:        400,

    ErrorCode.USERNAME_TAKEN:       409,
    ErrorCode.EMAIL_TAKEN:          409,
    ErrorCode.ALREADY_MEMBER:       409,
    ErrorCode.ALREADY_ADMIN:        409,
    ErrorCode.TOPIC_ALREADY_EXISTS: 409,
    ErrorCode.CONCURRENT_UPDATE:    409,
    ErrorCode.USER_ADMINISTERS_GROUP: 409,

    ErrorCode.USER_NOT_FOUND:       404,
    ErrorCode.GROUP_NOT_FOUND:      404,
    ErrorCode.TARGET_NOT_FOUND:     404,
    ErrorCode.TOPIC_NOT_FOUND:      404,

    ErrorCode.NOT_A_MEMBER:         422,
    ErrorCode.TARGET_NOT_A_MEMBER:  422,
    ErrorCode.CANNOT_KICK_ADMIN:    422,
    ErrorCode.MEETING_DATE_IN_PAST: 422,

    ErrorCode.ANONYMOUS_CALLER:     401,
    ErrorCode.INVALID_CREDENTIALS:  401,
    ErrorCode.TOKEN_INVALID:        401,
    ErrorCode.TOKEN_EXPIRED:        401,
    ErrorCode.NOT_GROUP_ADMIN:      403,
    ErrorCode.FORBIDDEN:            403,

    ErrorCode.INTERNAL_ERROR:       500,
}
