"""
API Client - Outbound calls to the action endpoint.

Every call is a POST to "<backend_url>?action=<name>" with the payload as a
JSON text/plain body. When no backend URL is configured the client talks to
an in-memory mock backend through the same code path.
"""
from typing import Any, Dict, List, Optional
import json
import logging

import httpx

from ..config import settings
from .exceptions import ApiError
from .mock import MockBackend

logger = logging.getLogger(__name__)

MOCK_URL = "http://mock.radcenter/exec"


class ApiClient:
    """
    Wrapper around the backend actions.

    Attributes:
        url: Full endpoint URL (e.g. http://host:8000/exec)
        mock: The mock backend when running without a configured URL
    """

    def __init__(
        self,
        backend_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        mock: Optional[MockBackend] = None,
        timeout: Optional[float] = None,
    ):
        self.mock: Optional[MockBackend] = None
        if http_client is not None:
            self.url = backend_url or MOCK_URL
            self._client = http_client
        elif backend_url:
            self.url = backend_url
            self._client = httpx.Client(timeout=timeout or settings.request_timeout_seconds)
        else:
            logger.warning("MOCK MODE: No backend URL set.")
            self.mock = mock or MockBackend()
            self.url = MOCK_URL
            self._client = httpx.Client(transport=httpx.MockTransport(self.mock.handle))

    @property
    def is_mock(self) -> bool:
        return self.mock is not None

    def request(self, action: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Call one action.

        Args:
            action: Action name
            payload: JSON object sent as the body

        Returns:
            Dict: The success envelope

        Raises:
            ApiError: On transport failure, a non-JSON reply or an error envelope
        """
        try:
            response = self._client.post(
                self.url,
                params={"action": action},
                content=json.dumps(payload or {}),
                headers={"Content-Type": "text/plain;charset=utf-8"},
            )
        except httpx.HTTPError as e:
            logger.error(f"API Error ({action}): {str(e)}")
            raise ApiError(f"Network error: {str(e)}") from e

        try:
            body = response.json()
        except ValueError:
            raise ApiError(f"Invalid response from backend (HTTP {response.status_code})", response.status_code)

        if not isinstance(body, dict) or body.get("status") != "success":
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(message or f"Request failed (HTTP {response.status_code})", response.status_code)
        return body

    def _created_id(self, action: str, payload: Dict[str, Any]) -> str:
        return self.request(action, payload).get("data", {}).get("id")

    # Endpoints

    def get_all_data(self) -> Dict[str, List[Dict[str, Any]]]:
        return self.request("getAllData").get("data") or {}

    def create_patient(self, patient: Dict[str, Any]) -> str:
        return self._created_id("createPatient", patient)

    def create_visit(self, visit: Dict[str, Any]) -> str:
        return self._created_id("createVisit", visit)

    def create_study(self, study: Dict[str, Any]) -> str:
        return self._created_id("createStudy", study)

    def create_user(self, user: Dict[str, Any]) -> str:
        return self._created_id("createUser", user)

    def update_study_status(self, study_id: str, status: str) -> None:
        self.request("updateStudyStatus", {"id": study_id, "status": status})

    def save_report(self, study_id: str, content_html: str) -> None:
        self.request("saveReport", {"study_id": study_id, "content_html": content_html})

    def mark_complete(self, study_id: str) -> None:
        self.request("markComplete", {"study_id": study_id})

    def update_image_links(self, study_id: str, image_links: List[str]) -> None:
        self.request("updateImageLinks", {"study_id": study_id, "image_links": image_links})

    def save_template(self, template: Dict[str, Any]) -> str:
        return self._created_id("saveTemplate", template)

    def delete_template(self, template_id: str) -> None:
        self.request("deleteTemplate", {"id": template_id})

    def close(self) -> None:
        self._client.close()
