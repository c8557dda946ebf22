"""
Gmail REST client bound to one access token

Sends plain-text mail for campaigns and reads the team's inbox.
"""
import asyncio
import base64
from typing import Any, Dict, List, Optional

import httpx

from leadwatch.core.exceptions import GmailAPIError
from leadwatch.core.logging import setup_logging

logger = setup_logging(__name__)

API_BASE = "https://gmail.googleapis.com/gmail/v1"


def build_raw_message(to: str, subject: str, body: str) -> str:
    """RFC 2822 message, base64url encoded without padding as Gmail expects."""
    message = "\r\n".join([f"To: {to}", f"Subject: {subject}", "", body])
    return base64.urlsafe_b64encode(message.encode("utf-8")).decode("ascii").rstrip("=")


def _decode_body(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def parse_message(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a ``format=full`` message into headers and the plain-text body."""
    part = payload.get("payload") or {}
    headers = {h["name"].lower(): h.get("value", "") for h in part.get("headers", [])}

    body = ""
    if (part.get("body") or {}).get("data"):
        body = _decode_body(part["body"]["data"])
    else:
        text_part = next((p for p in part.get("parts") or [] if p.get("mimeType") == "text/plain"), None)
        if text_part and (text_part.get("body") or {}).get("data"):
            body = _decode_body(text_part["body"]["data"])

    return {
        "id": payload.get("id"),
        "thread_id": payload.get("threadId"),
        "snippet": payload.get("snippet", ""),
        "from": headers.get("from", ""),
        "to": headers.get("to", ""),
        "subject": headers.get("subject", ""),
        "date": headers.get("date", ""),
        "label_ids": payload.get("labelIds") or [],
        "body": body,
    }


class GmailClient:
    def __init__(self, access_token: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.access_token = access_token
        self.transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
            response = await client.request(
                method,
                f"{API_BASE}{path}",
                headers={"Authorization": f"Bearer {self.access_token}"},
                **kwargs,
            )

        if response.is_error:
            try:
                message = response.json().get("error", {}).get("message") or "Unknown error"
            except ValueError:
                message = response.text[:200] or "Unknown error"
            raise GmailAPIError(
                f"Gmail API error: {message}",
                details={"upstream_status": response.status_code, "path": path},
            )
        return response.json()

    async def send_email(self, to: str, subject: str, body: str) -> Dict[str, Any]:
        result = await self._request(
            "POST",
            "/users/me/messages/send",
            json={"raw": build_raw_message(to, subject, body)},
        )
        logger.info(f"Gmail message {result.get('id')} sent")
        return result

    async def get_message(self, message_id: str) -> Dict[str, Any]:
        payload = await self._request("GET", f"/users/me/messages/{message_id}", params={"format": "full"})
        return parse_message(payload)

    async def list_messages(self, max_results: int = 20, page_token: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"maxResults": max_results}
        if page_token:
            params["pageToken"] = page_token

        listing = await self._request("GET", "/users/me/messages", params=params)
        ids = [item["id"] for item in listing.get("messages") or []]
        messages: List[Dict[str, Any]] = list(
            await asyncio.gather(*(self.get_message(message_id) for message_id in ids))
        )
        return {"messages": messages, "next_page_token": listing.get("nextPageToken")}

    async def get_profile(self) -> Dict[str, Any]:
        return await self._request("GET", "/users/me/profile")
