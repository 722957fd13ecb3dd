import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response from the ExamGuard API"""

    def __init__(self, status_code: int, kind: str, message: str):
        super().__init__(f"{status_code} {kind}: {message}")
        self.status_code = status_code
        self.kind = kind
        self.message = message


class ProctoringApiClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        response = await self._client.request(method, path, json=json, headers=self._headers)
        if response.status_code >= 400:
            raise self._to_error(response)
        return response.json()

    @staticmethod
    def _to_error(response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if "error" in body:
            return ApiError(response.status_code, body["error"], body.get("message", ""))
        # FastAPI's own HTTPException and validation errors use "detail"
        detail = body.get("detail", response.text)
        return ApiError(response.status_code, "http_error", str(detail))

    async def start_session(self, exam_id: str) -> Dict[str, Any]:
        return await self._request("POST", "/sessions/start", {"exam_id": exam_id})

    async def update_activity(
        self,
        session_id: str,
        is_fullscreen_active: Optional[bool] = None,
        tab_switch_count: Optional[int] = None,
        answers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        patch = {
            "is_fullscreen_active": is_fullscreen_active,
            "tab_switch_count": tab_switch_count,
            "answers": answers,
        }
        return await self._request(
            "PUT",
            f"/sessions/{session_id}/activity",
            {k: v for k, v in patch.items() if v is not None},
        )

    async def end_session(self, session_id: str, status: str = "completed") -> Dict[str, Any]:
        return await self._request("PUT", f"/sessions/{session_id}/end", {"status": status})

    async def log_violation(self, payload: dict) -> Dict[str, Any]:
        return await self._request("POST", "/proctoring/violation", payload)

    async def get_log(self, session_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/proctoring/session/{session_id}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ProctoringApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
