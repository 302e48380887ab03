"""
This module provides communication clients for the external systems used by the checkout service:
- Relational store (PostgREST-style REST API) holding 'orders', 'order_items' and 'user_addresses'
- Payment gateway orders API (REST, HTTP basic auth)
Each class encapsulates its protocol logic, error handling, and connection management.
"""

import time
from typing import Optional

import httpx

from . import config
from .errors import StoreError
from .logging_config import get_logger
from .models import AddressSnapshot
from .pricing import round_half_up

log = get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("description") or error.get("message") or str(error)
        return body.get("message") or error or str(body)
    return str(body)


# --- Store Client (REST) ---
class StoreClient:
    """
    Client for the relational store's REST API.
    Supports the four table operations the checkout needs: insert, select, update, delete.
    Filters are equality filters, sent as `column=eq.value` query parameters.
    """
    def __init__(self, base_url: str = None, api_key: str = None, client: httpx.Client = None):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            base_url (str): Store URL. Defaults to config.STORE_URL.
            api_key (str): Service key sent as 'apikey' and bearer token.
            client (httpx.Client): Pre-built client to use instead (e.g. a test client).
        """
        api_key = config.STORE_API_KEY if api_key is None else api_key
        headers = {"apikey": api_key, "Authorization": f"Bearer {api_key}"} if api_key else {}
        self._owns_client = client is None
        if client is None:
            timeout_config = httpx.Timeout(5.0, read=8.0)
            client = httpx.Client(base_url=base_url or config.STORE_URL, timeout=timeout_config)
        client.headers.update(headers)
        self.client = client

    def close(self):
        """Closes the HTTP client session if this instance created it."""
        if getattr(self, "_owns_client", False):
            self.client.close()

    def __del__(self):
        self.close()

    @staticmethod
    def _params(filters: Optional[dict], columns: Optional[str] = None) -> dict:
        params = {}
        for column, value in (filters or {}).items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            params[column] = f"eq.{value}"
        if columns:
            params["select"] = columns
        return params

    def _request(self, method: str, table: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, f"/rest/v1/{table}", **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            log.error(f"Store {method} on '{table}' failed (HTTP {e.response.status_code}): {message}")
            raise StoreError(table, message, status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            log.error(f"Store {method} on '{table}' failed: {e}")
            raise StoreError(table, str(e)) from e

    def insert(self, table: str, records, returning: str = None) -> list:
        """
        Inserts one record or a batch of records.
        Args:
            table (str): Target table.
            records (dict | list[dict]): Row(s) to insert.
            returning (str): Columns to return, e.g. 'id,order_number'. Nothing is returned if omitted.
        Returns:
            list: Returned rows (empty unless `returning` is set).
        Raises:
            StoreError: If the store rejects the insert or cannot be reached.
        """
        payload = records if isinstance(records, list) else [records]
        headers = {"Prefer": "return=representation" if returning else "return=minimal"}
        params = {"select": returning} if returning else None
        response = self._request("POST", table, json=payload, headers=headers, params=params)
        return response.json() if returning and response.content else []

    def select(self, table: str, filters: dict = None, columns: str = "*") -> list:
        response = self._request("GET", table, params=self._params(filters, columns))
        return response.json()

    def update(self, table: str, patch: dict, filters: dict):
        self._request("PATCH", table, json=patch, params=self._params(filters))

    def delete(self, table: str, filters: dict):
        if not filters:
            raise ValueError("Refusing to delete without a filter")
        self._request("DELETE", table, params=self._params(filters))

    def fetch_default_address(self, user_id: str) -> Optional[AddressSnapshot]:
        """
        Loads the user's default delivery address from 'user_addresses'.
        Returns:
            AddressSnapshot | None: None if the user has no default address.
        Raises:
            StoreError: If the lookup fails.
        """
        if not user_id:
            return None
        rows = self.select("user_addresses", {"user_id": user_id, "is_default": True})
        if not rows:
            return None
        return AddressSnapshot.model_validate(rows[0])


# --- Gateway Client (REST) ---
class GatewayClient:
    """
    Client for the payment gateway's orders API.
    A gateway order ("session") must exist before the native checkout UI can collect the payment.
    """
    def __init__(self, base_url: str = None, key_id: str = None, key_secret: str = None,
                 client: httpx.Client = None):
        """
        Initializes the HTTP client with basic auth and timeout configuration.
        """
        self.key_id = config.RAZORPAY_KEY_ID if key_id is None else key_id
        self.key_secret = config.RAZORPAY_KEY_SECRET if key_secret is None else key_secret
        self._owns_client = client is None
        if client is None:
            timeout_config = httpx.Timeout(5.0, read=8.0)
            client = httpx.Client(base_url=base_url or config.GATEWAY_URL, timeout=timeout_config)
        self.client = client

    def close(self):
        if getattr(self, "_owns_client", False):
            self.client.close()

    def __del__(self):
        self.close()

    @property
    def is_available(self) -> bool:
        """True when merchant credentials are configured."""
        return bool(self.key_id and self.key_secret)

    @property
    def is_production(self) -> bool:
        return self.key_id.startswith("rzp_live_")

    def create_session(self, amount_minor: int, currency: str = None, receipt: str = None,
                       notes: dict = None) -> dict:
        """
        Creates a gateway order that the native checkout is opened against.
        Args:
            amount_minor (int): Amount in minor units (e.g. paise). Must be positive.
            currency (str): ISO currency code. Defaults to config.CHECKOUT_CURRENCY.
            receipt (str): Merchant receipt reference. Defaults to 'rcpt_<epoch ms>'.
            notes (dict): Free-form metadata stored with the gateway order.
        Returns:
            dict: The gateway order, including its 'id'.
        Raises:
            ValueError: If the amount is not positive.
            httpx.HTTPStatusError: If the gateway rejects the request.
            httpx.ConnectError / httpx.TimeoutException: If the gateway cannot be reached.
        """
        amount = round_half_up(amount_minor)
        if amount <= 0:
            raise ValueError("Invalid amount")

        payload = {
            "amount": amount,
            "currency": currency or config.CHECKOUT_CURRENCY,
            "receipt": receipt or f"rcpt_{int(time.time() * 1000)}",
            "notes": notes or {},
        }

        try:
            response = self.client.post("/v1/orders", json=payload, auth=(self.key_id, self.key_secret))
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            log.error(f"[Receipt: {payload['receipt']}] Gateway timeout while creating order.")
            raise
        except httpx.HTTPStatusError as e:
            log.error(f"[Receipt: {payload['receipt']}] Gateway rejected order "
                      f"(HTTP {e.response.status_code}): {_error_message(e.response)}")
            raise
