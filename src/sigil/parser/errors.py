"""Parser errors with source context."""

from __future__ import annotations

from sigil._types import Token
from sigil.environment.exceptions import ErrorCode, TemplateSyntaxError


class ParseError(TemplateSyntaxError):
    """Structural error found while building the node tree.

    Located at the offending token; the caret points at its column.
    """

    code: ErrorCode | None = ErrorCode.UNEXPECTED_TOKEN

    def __init__(
        self,
        message: str,
        token: Token,
        source: str | None = None,
        filename: str | None = None,
        suggestion: str | None = None,
        *,
        name: str | None = None,
        code: ErrorCode | None = None,
    ):
        self.token = token
        super().__init__(
            message,
            token.lineno,
            name,
            filename,
            source,
            token.col_offset,
            suggestion=suggestion,
            code=code,
        )

    def with_template(
        self, name: str | None, filename: str | None, source: str | None
    ) -> ParseError:
        return ParseError(
            self.message,
            self.token,
            self.source or source,
            self.filename or filename,
            self.suggestion,
            name=self.name or name,
            code=self.code,
        )
