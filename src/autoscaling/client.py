"""
Auto Scaling API Client - aiohttp client for the scaling group API.

Talks JSON to a scaling group endpoint:

    GET    {base}/autoscaling-groups/{asg}/lifecycle-hooks
    PUT    {base}/autoscaling-groups/{asg}/lifecycle-hooks/{name}
    DELETE {base}/autoscaling-groups/{asg}/lifecycle-hooks/{name}

Error responses carry ``{"Error": {"Code": ..., "Message": ...}}``.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from autoscaling.base import HOOK_NAME, AutoScalingAPI, AutoScalingAPIError

logger = logging.getLogger(__name__)


class HTTPAutoScalingAPI(AutoScalingAPI):
    """AutoScalingAPI implementation over HTTP using aiohttp."""

    def __init__(
        self,
        api_base_url: str,
        token: Optional[str] = None,
        request_timeout: float = 30.0,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.token = token
        self.request_timeout = request_timeout

    @classmethod
    def from_config(cls, config: Any) -> "HTTPAutoScalingAPI":
        """Build a client from an AutoScalingConfig."""
        return cls(
            api_base_url=config.api_base_url,
            token=config.token,
            request_timeout=config.request_timeout,
        )

    async def describe_lifecycle_hooks(
        self, asg_name: str, names: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        params = [("LifecycleHookNames", name) for name in names or []]
        data = await self._request("GET", self._hooks_url(asg_name), params=params)
        return data.get("LifecycleHooks", []) if data else []

    async def put_lifecycle_hook(self, asg_name: str, hook: Dict[str, Any]) -> None:
        name = quote(hook[HOOK_NAME], safe="")
        url = f"{self._hooks_url(asg_name)}/{name}"
        await self._request("PUT", url, json=hook)

    async def delete_lifecycle_hook(self, asg_name: str, name: str) -> None:
        url = f"{self._hooks_url(asg_name)}/{quote(name, safe='')}"
        await self._request("DELETE", url)

    # Private helper methods

    def _hooks_url(self, asg_name: str) -> str:
        return (
            f"{self.api_base_url}/autoscaling-groups/"
            f"{quote(asg_name, safe='')}/lifecycle-hooks"
        )

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for scaling group API requests."""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self, method: str, url: str, **kwargs: Any
    ) -> Optional[Dict[str, Any]]:
        """
        Perform a request and decode the JSON body.

        Raises:
            AutoScalingAPIError: On a non-2xx answer, a transport error or a
                timeout.
        """
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, headers=self._get_headers(), **kwargs
                ) as response:
                    if response.status >= 400:
                        raise await self._error_from_response(response)
                    if response.status == 204 or response.content_length == 0:
                        return None
                    return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise AutoScalingAPIError(
                f"{method} {url} timed out after {self.request_timeout}s",
                code="RequestError",
            ) from e
        except aiohttp.ClientError as e:
            raise AutoScalingAPIError(
                f"{method} {url} failed: {e}", code="RequestError"
            ) from e

    async def _error_from_response(
        self, response: aiohttp.ClientResponse
    ) -> AutoScalingAPIError:
        text = await response.text()
        code = ""
        message = text
        try:
            error = (await response.json(content_type=None) or {}).get("Error", {})
            code = error.get("Code", "")
            message = error.get("Message", text)
        except (ValueError, AttributeError):
            pass
        logger.debug(f"Scaling group API error: {response.status} - {text}")
        return AutoScalingAPIError(
            f"{response.method} {response.url} returned {response.status}: "
            f"{code or 'Error'}: {message}",
            status=response.status,
            code=code,
        )
