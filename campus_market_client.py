"""Campus Market API client.

A thin wrapper around the REST API served by ``campus_market_api``.
It keeps the bearer token returned by :meth:`CampusMarketClient.login`
or :meth:`CampusMarketClient.register` and sends it with every later
request.  The client uses the ``requests`` library internally.

Failed calls raise :class:`CampusMarketError`.  Its ``detail`` is the
message the backend produced for the user, for example
``"You have already shown interest in this listing."``, so a UI can
show it directly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests


logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class CampusMarketError(Exception):
    """Raised when the API returns an error or cannot be reached.

    Attributes:
        status_code: HTTP status of the response, ``None`` when the
            request never got a response.
        detail: Human readable error message.
    """

    def __init__(self, status_code: Optional[int], detail: str) -> None:
        super().__init__(f"{status_code}: {detail}" if status_code else detail)
        self.status_code = status_code
        self.detail = detail


class CampusMarketClient:
    """Client for the campus marketplace API."""

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL of the server, e.g. ``http://localhost:8000``.
            token: Optional bearer token from an earlier login.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Timeout in seconds for every request.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
        files: Dict[str, Any] | None = None,
    ) -> Any:
        """Perform an HTTP request and return the decoded JSON body.

        Returns ``None`` for empty responses.  Raises
        :class:`CampusMarketError` on HTTP and connection errors.
        """
        url = f"{self.base_url}{API_PREFIX}{path}"
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    message = err_json.get("detail") or err_json.get("message") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not isinstance(message, str):
                # Request validation errors arrive as a list of problems.
                message = "; ".join(str(item.get("msg", item)) for item in message)
            message = message or str(exc)
            logger.error("API request failed (%s): %s", status, message)
            raise CampusMarketError(status, message) from exc
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            raise CampusMarketError(None, str(exc)) from exc
        if response.content:
            return response.json()
        return None

    def _store_token(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.token = data["access_token"]
        return data["profile"]

    # ------------------------------------------------------------------
    # Auth and profiles
    # ------------------------------------------------------------------
    def register(self, email: str, password: str, name: str) -> Dict[str, Any]:
        """Create an account and keep its token; returns the profile."""
        data = self._request(
            "POST", "/auth/register", json_body={"email": email, "password": password, "name": name}
        )
        return self._store_token(data)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self._request("POST", "/auth/login", json_body={"email": email, "password": password})
        return self._store_token(data)

    def logout(self) -> None:
        self.token = None

    def get_me(self) -> Dict[str, Any]:
        return self._request("GET", "/profiles/me")

    def update_me(self, **fields: Any) -> Dict[str, Any]:
        return self._request("PUT", "/profiles/me", json_body=fields)

    def get_profile(self, profile_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/profiles/{profile_id}")

    def list_profiles(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/profiles/")

    def get_profiles_by_ids(self, ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(ids)
        if not ids:
            return {}
        return self._request("GET", "/profiles/by-ids", params={"ids": ids})

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def list_listings(
        self,
        *,
        status: Optional[str] = "available",
        category: Optional[str] = None,
        location: Optional[str] = None,
        q: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {"status": status, "category": category, "location": location, "q": q}
        return self._request("GET", "/listings/", params=params)

    def list_my_listings(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/listings/mine")

    def get_listing(self, listing_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/listings/{listing_id}")

    def create_listing(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/listings/", json_body=payload)

    def update_listing(self, listing_id: str, **fields: Any) -> Dict[str, Any]:
        return self._request("PATCH", f"/listings/{listing_id}", json_body=fields)

    def delete_listing(self, listing_id: str) -> None:
        self._request("DELETE", f"/listings/{listing_id}")

    def upload_listing_image(self, filename: str, content: bytes, content_type: str = "image/jpeg") -> str:
        """Upload an image and return its public URL."""
        data = self._request(
            "POST", "/uploads/listing-image", files={"file": (filename, content, content_type)}
        )
        return data["url"]

    # ------------------------------------------------------------------
    # Need requests
    # ------------------------------------------------------------------
    def list_requests(
        self,
        *,
        status: Optional[str] = "open",
        category: Optional[str] = None,
        location: Optional[str] = None,
        q: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {"status": status, "category": category, "location": location, "q": q}
        return self._request("GET", "/requests/", params=params)

    def list_my_requests(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/requests/mine")

    def get_request(self, request_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/requests/{request_id}")

    def create_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/requests/", json_body=payload)

    def update_request(self, request_id: str, **fields: Any) -> Dict[str, Any]:
        return self._request("PATCH", f"/requests/{request_id}", json_body=fields)

    def delete_request(self, request_id: str) -> None:
        self._request("DELETE", f"/requests/{request_id}")

    # ------------------------------------------------------------------
    # Matches and chat
    # ------------------------------------------------------------------
    def express_interest(self, listing_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/listings/{listing_id}/interest")

    def offer_item(self, request_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/requests/{request_id}/offer")

    def list_my_matches(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return self._request("GET", "/matches/", params={"status": status})

    def get_match(self, match_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/matches/{match_id}")

    def update_match(self, match_id: str, **fields: Any) -> Dict[str, Any]:
        return self._request("PATCH", f"/matches/{match_id}", json_body=fields)

    def schedule_meeting(
        self, match_id: str, location: Optional[str] = None, time: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._request(
            "POST", f"/matches/{match_id}/schedule", json_body={"location": location, "time": time}
        )

    def complete_match(self, match_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/matches/{match_id}/complete")

    def cancel_match(self, match_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/matches/{match_id}/cancel")

    def list_messages(self, match_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/matches/{match_id}/messages")

    def send_message(self, match_id: str, content: str) -> Dict[str, Any]:
        return self._request("POST", f"/matches/{match_id}/messages", json_body={"content": content})

    def messages_stream_url(self, match_id: str) -> str:
        """URL for an ``EventSource`` on the chat of ``match_id``."""
        return f"{self.base_url}{API_PREFIX}/matches/{match_id}/messages/stream?access_token={self.token}"

    # ------------------------------------------------------------------
    # Ratings and notifications
    # ------------------------------------------------------------------
    def rate(self, match_id: str, overall_rating: int, **details: Any) -> Dict[str, Any]:
        """Rate the other party of a completed match.

        ``details`` may hold ``communication_rating``, ``accuracy_rating``,
        ``punctuality_rating`` and ``review``.
        """
        payload = {"match_id": match_id, "overall_rating": overall_rating, **details}
        return self._request("POST", "/ratings/", json_body=payload)

    def list_user_ratings(self, user_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/ratings/user/{user_id}")

    def list_notifications(self, unread_only: bool = False) -> Dict[str, Any]:
        return self._request("GET", "/notifications/", params={"unread_only": unread_only or None})

    def mark_notification_read(self, notification_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/notifications/{notification_id}/read")

    def mark_all_notifications_read(self) -> int:
        return self._request("POST", "/notifications/read-all")["updated"]

    def notifications_stream_url(self) -> str:
        return f"{self.base_url}{API_PREFIX}/notifications/stream?access_token={self.token}"
