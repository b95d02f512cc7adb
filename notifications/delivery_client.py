#Purpose: The delivery service "adapter/client".
#Sole responsibility: talk to the offer delivery endpoint via HTTP and return
#the normalized status string.
#Encapsulates endpoint-specific details:
#URL construction
#bearer key header
#timeouts and HTTP error handling
#parsing the JSON body into a plain status
#It should not contain retry policy, ranking or assignment rules
#(retry lives in dispatch.notifier).


from dotenv import load_dotenv
import os
from typing import Optional
import requests

from .base import DeliveryError

# Read delivery endpoint settings from environment
# Example in .env:
# DELIVERY_BASE_URL=https://example.supabase.co/functions/v1
# DELIVERY_API_KEY=service-role-key
load_dotenv()
DELIVERY_BASE_URL = os.getenv("DELIVERY_BASE_URL")
DELIVERY_API_KEY = os.getenv("DELIVERY_API_KEY")


class HttpDeliveryClient:
    """
    Delivery Adapter / Client

    Sole responsibility:
    - POST {"task_id", "runner_id"} to the assign-and-notify endpoint
    - Return the "status" field of the response
    - Turn every transport/HTTP/parse problem into DeliveryError

    """
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 5,
        session: Optional[requests.Session] = None,
        path: str = "assign-and-notify",
    ):
        self.base_url = (base_url or DELIVERY_BASE_URL or "").rstrip("/")
        self.api_key = api_key if api_key is not None else DELIVERY_API_KEY
        self.timeout = timeout #how long to wait for the endpoint before giving up
        self.session = session or requests.Session()
        self.path = path

        if not self.base_url:
            raise ValueError("Delivery base URL not set. Please set DELIVERY_BASE_URL in the .env file.")

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def deliver(self, task_id: str, runner_id: str) -> str:
        """
        Calls the delivery endpoint for one (task, runner) offer.

        Returns:
            the raw status string, e.g. "assigned" or "no_eligible_runners"
        """
        url = f"{self.base_url}/{self.path}"

        try:
            response = self.session.post(
                url,
                json={"task_id": task_id, "runner_id": runner_id},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DeliveryError(f"Delivery request failed: {exc}") from exc

        if not response.ok:
            raise DeliveryError(f"Delivery endpoint returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise DeliveryError("Delivery endpoint returned a non-JSON body") from exc

        #validating response
        status = data.get("status") if isinstance(data, dict) else None
        if not status:
            error = data.get("error", "Unknown error") if isinstance(data, dict) else "Unknown error"
            raise DeliveryError(f"Delivery endpoint error: {error}")

        return str(status)
