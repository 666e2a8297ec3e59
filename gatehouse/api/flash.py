from __future__ import annotations

from typing import Dict, List

from itsdangerous import BadSignature, URLSafeSerializer
from starlette.requests import Request
from starlette.responses import Response

FLASH_COOKIE_NAME = "gatehouse_flash"


class FlashMessages:
    """One-shot notices that survive exactly one redirect.

    Messages are kept in a signed cookie keyed by category. Reading them on the
    next request and calling `clear()` on that response drops the cookie.
    """

    def __init__(self, secret_key: str, *, secure: bool = False, cookie_name: str = FLASH_COOKIE_NAME) -> None:
        if not secret_key:
            raise ValueError("A secret key is required to sign flash messages")
        self._serializer = URLSafeSerializer(secret_key=secret_key, salt="gatehouse.flash.v1")
        self._secure = secure
        self.cookie_name = cookie_name

    def flash(self, response: Response, category: str, messages: List[str]) -> None:
        payload = {category: [str(m) for m in messages if str(m)]}
        response.set_cookie(
            self.cookie_name,
            self._serializer.dumps(payload),
            httponly=True,
            samesite="lax",
            secure=self._secure,
        )

    def _load(self, request: Request) -> Dict[str, List[str]]:
        raw = request.cookies.get(self.cookie_name, "")
        if not raw:
            return {}
        try:
            data = self._serializer.loads(raw)
        except BadSignature:
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): [str(m) for m in (v or [])] for k, v in data.items() if isinstance(v, list)}

    def consume(self, request: Request, category: str) -> List[str]:
        return self._load(request).get(category, [])

    def clear(self, request: Request, response: Response) -> None:
        if self.cookie_name in request.cookies:
            response.delete_cookie(self.cookie_name)
