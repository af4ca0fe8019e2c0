"""Response envelope wrappers.

Many APIs wrap the real payload in an envelope such as
``{"code": 0, "msg": "ok", "data": {...}}``.  A wrapper receives the caller's
payload slot through :meth:`Wrapper.set_data`, is decoded in its place, and then
gets to reject the response in :meth:`Wrapper.validate` even though the HTTP
status and the JSON decoding both succeeded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .errors import ValidationFailure

__all__ = ["Wrapper", "CodeMsgEnvelope"]


class Wrapper(ABC):
    """Envelope around a decoded payload with a semantic validity check."""

    @abstractmethod
    def set_data(self, target: Any) -> None:
        """Attach the caller's payload slot where the envelope keeps its data."""

    @abstractmethod
    def validate(self) -> None:
        """Raise :class:`ValidationFailure` if the decoded envelope reports an error."""


@dataclass
class CodeMsgEnvelope(Wrapper):
    """Envelope of the form ``{"code": int, "msg": str, "data": ...}``.

    Any non-zero ``code`` is treated as a business failure.
    """

    code: int = 0
    msg: str = ""
    data: Any = None

    def set_data(self, target: Any) -> None:
        self.data = target

    def validate(self) -> None:
        if self.code != 0:
            detail = f": {self.msg}" if self.msg else ""
            raise ValidationFailure(f"server code[{self.code}] is incorrect{detail}")
