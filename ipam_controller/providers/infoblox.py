"""Infoblox WAPI provider adapter."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Callable
from typing import Any

import httpx

from ipam_controller.providers.base import (
    ProviderAuthError,
    ProviderConfigurationError,
    ProviderRequestError,
)

HTTPClientFactory = Callable[..., httpx.Client]
RESERVED_MAC = "00:00:00:00:00:00"


class InfobloxProvider:
    """Forwards allocation and record operations to an Infoblox grid.

    Address reservations are fixed addresses with the all-zero MAC, bindings
    are ``record:a`` objects in the configured DNS view.
    """

    provider_name = "infoblox"

    def __init__(
        self,
        *,
        host: str,
        port: str,
        version: str,
        username: str,
        password: str,
        ssl_verify: bool = False,
        network_view: str = "default",
        dns_view: str = "default",
        timeout_seconds: float = 10.0,
        http_client_factory: HTTPClientFactory = httpx.Client,
        logger: logging.Logger | None = None,
    ) -> None:
        missing = [
            name
            for name, value in (
                ("infoblox-host", host),
                ("wapi-port", port),
                ("wapi-version", version),
                ("wapi-username", username),
                ("wapi-password", password),
            )
            if not str(value).strip()
        ]
        if missing:
            raise ProviderConfigurationError(
                "infoblox provider requires " + ", ".join(missing)
            )

        normalized_version = version.strip().lstrip("v")
        self._base_url = f"https://{host.strip()}:{port.strip()}/wapi/v{normalized_version}"
        self._auth = (username.strip(), password)
        self._ssl_verify = ssl_verify
        self._network_view = network_view
        self._dns_view = dns_view
        self._timeout_seconds = timeout_seconds
        self._http_client_factory = http_client_factory
        self._log = logger or logging.getLogger(__name__)

        self._probe()
        self._log.info("infoblox provider connected base_url=%s", self._base_url)

    @property
    def base_url(self) -> str:
        return self._base_url

    def create_a_record(self, hostname: str, ip_address: str) -> bool:
        existing = self._find_a_records(hostname)
        if existing:
            record = existing[0]
            previous = str(record.get("ipv4addr", ""))
            if previous == ip_address:
                return True
            response = self._request(
                "PUT", record["_ref"], json_body={"ipv4addr": ip_address}
            )
            if response.status_code == 400:
                self._log.error(
                    "infoblox rejected rebinding hostname=%s ip=%s: %s",
                    hostname,
                    ip_address,
                    _truncate(response.text),
                )
                return False
            self._raise_for_status(response, default_message="failed to update A record")
            if previous and not self._find_a_records_by_address(previous):
                self.release_addr(previous)
            self._log.info("rebound A record hostname=%s ip=%s", hostname, ip_address)
            return True

        response = self._request(
            "POST",
            "record:a",
            json_body={"name": hostname, "ipv4addr": ip_address, "view": self._dns_view},
        )
        if response.status_code == 400:
            self._log.error(
                "infoblox rejected A record hostname=%s ip=%s: %s",
                hostname,
                ip_address,
                _truncate(response.text),
            )
            return False
        self._raise_for_status(response, default_message="failed to create A record")
        self._log.info("created A record hostname=%s ip=%s", hostname, ip_address)
        return True

    def delete_a_record(self, hostname: str, ip_address: str) -> None:
        bound = [str(record.get("ipv4addr", "")) for record in self._find_a_records(hostname)]
        if bound and ip_address not in bound:
            self._log.warning(
                "not deleting A record hostname=%s: bound to %s, not %s",
                hostname,
                ", ".join(bound),
                ip_address,
            )
            return

        for record in self._find_a_records(hostname, ip_address=ip_address):
            response = self._request("DELETE", record["_ref"])
            if response.status_code == 404:
                continue
            self._raise_for_status(response, default_message="failed to delete A record")

        owners = sorted(
            {str(record.get("name", "")) for record in self._find_a_records_by_address(ip_address)}
        )
        if owners:
            self._log.warning(
                "not releasing %s: bound to %s, not %s", ip_address, ", ".join(owners), hostname
            )
            return
        self.release_addr(ip_address)
        self._log.info("deleted A record hostname=%s ip=%s", hostname, ip_address)

    def get_ip_address(self, hostname: str) -> str:
        records = self._find_a_records(hostname)
        if not records:
            return ""
        return str(records[0].get("ipv4addr", ""))

    def get_next_addr(self, cidr: str) -> str:
        response = self._request(
            "POST",
            "fixedaddress",
            params={"_return_fields": "ipv4addr"},
            json_body={
                "ipv4addr": f"func:nextavailableip:{cidr},{self._network_view}",
                "mac": RESERVED_MAC,
                "network_view": self._network_view,
            },
        )
        if response.status_code == 400:
            self._log.warning(
                "no free address available in %s: %s", cidr, _truncate(response.text)
            )
            return ""
        self._raise_for_status(response, default_message=f"failed to reserve next address in {cidr}")

        body = _parse_json(response)
        if isinstance(body, dict) and isinstance(body.get("ipv4addr"), str):
            return body["ipv4addr"]
        raise ProviderRequestError(
            f"infoblox reservation response is missing ipv4addr (status={response.status_code})",
            status_code=response.status_code,
        )

    def allocate_ip_address(self, cidr: str, ip_address: str) -> bool:
        network = ipaddress.IPv4Network(cidr, strict=False)
        address = ipaddress.IPv4Address(ip_address)
        if address not in network:
            self._log.error("cannot allocate %s: outside %s", ip_address, cidr)
            return False
        if network.prefixlen < 31 and address in (network.network_address, network.broadcast_address):
            self._log.error("cannot allocate %s: not a usable address in %s", ip_address, cidr)
            return False

        response = self._request(
            "POST",
            "fixedaddress",
            json_body={
                "ipv4addr": ip_address,
                "mac": RESERVED_MAC,
                "network_view": self._network_view,
            },
        )
        if response.status_code == 400:
            self._log.error(
                "infoblox rejected allocation of %s: %s", ip_address, _truncate(response.text)
            )
            return False
        self._raise_for_status(response, default_message=f"failed to allocate {ip_address}")
        return True

    def release_addr(self, ip_address: str) -> None:
        response = self._request(
            "GET",
            "fixedaddress",
            params={"ipv4addr": ip_address, "network_view": self._network_view},
        )
        self._raise_for_status(response, default_message=f"failed to look up {ip_address}")
        for reference in _extract_refs(_parse_json(response)):
            delete_response = self._request("DELETE", reference)
            if delete_response.status_code == 404:
                continue
            self._raise_for_status(
                delete_response, default_message=f"failed to release {ip_address}"
            )

    def _probe(self) -> None:
        response = self._request("GET", "", params={"_schema": "1"})
        self._raise_for_status(response, default_message="infoblox schema probe failed")

    def _find_a_records(
        self, hostname: str, *, ip_address: str | None = None
    ) -> list[dict[str, Any]]:
        params = {"name": hostname, "view": self._dns_view, "_return_fields": "name,ipv4addr"}
        if ip_address is not None:
            params["ipv4addr"] = ip_address
        response = self._request("GET", "record:a", params=params)
        self._raise_for_status(response, default_message=f"failed to look up A record {hostname}")
        return _extract_records(_parse_json(response))

    def _find_a_records_by_address(self, ip_address: str) -> list[dict[str, Any]]:
        params = {"ipv4addr": ip_address, "view": self._dns_view, "_return_fields": "name,ipv4addr"}
        response = self._request("GET", "record:a", params=params)
        self._raise_for_status(
            response, default_message=f"failed to look up A records for {ip_address}"
        )
        return _extract_records(_parse_json(response))

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        with self._http_client_factory(
            base_url=self._base_url,
            auth=self._auth,
            verify=self._ssl_verify,
            timeout=self._timeout_seconds,
        ) as client:
            try:
                return client.request(method, f"/{path}", params=params, json=json_body)
            except httpx.HTTPError as exc:
                raise ProviderRequestError(f"infoblox request failed: {exc}") from exc

    def _raise_for_status(self, response: httpx.Response, *, default_message: str) -> None:
        if response.status_code < 400:
            return

        status_code = response.status_code
        if status_code in {401, 403}:
            raise ProviderAuthError(
                f"infoblox authentication failed with status={status_code}",
                status_code=status_code,
            )

        response_text = response.text.strip()
        detail = f"{default_message}; status={status_code}"
        if response_text:
            detail = f"{detail}; body={_truncate(response_text)}"
        raise ProviderRequestError(detail, status_code=status_code)


def _parse_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ProviderRequestError(
            f"infoblox response was not valid JSON (status={response.status_code})",
            status_code=response.status_code,
        ) from exc


def _extract_records(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict) and "_ref" in item]


def _extract_refs(payload: Any) -> list[str]:
    if not isinstance(payload, list):
        return []
    refs: list[str] = []
    for item in payload:
        if isinstance(item, dict) and isinstance(item.get("_ref"), str):
            refs.append(item["_ref"])
    return refs


def _truncate(text: str) -> str:
    return text.strip()[:240]
