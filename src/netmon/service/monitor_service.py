"""
HTTP API of the network monitor.

GET  /health  network status info
POST /state   change monitor state, protected by auth token header
"""

import hmac
import json
import logging
from typing import Optional

from aiohttp import web

from netmon.monitoring.network_monitor import NetworkMonitor
from netmon.storage.models import MonitorState

DEFAULT_AUTH_HEADER = 'X-Waves-Monitor-Auth'
PRIVATE_ROUTES = frozenset(['/state'])


class MonitorService:
    """HTTP server exposing network monitor."""

    def __init__(self, monitor: NetworkMonitor,
                 auth_header: str = DEFAULT_AUTH_HEADER,
                 auth_token: str = ''):
        """
        Initialize monitor service.

        Args:
            monitor: Network monitor to expose
            auth_header: Header carrying auth token for private routes
            auth_token: Expected auth token, private routes are closed if empty
        """
        self.monitor = monitor
        self.auth_header = auth_header
        self.auth_token = auth_token
        self.logger = logging.getLogger('monitor_service')

        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    def create_app(self) -> web.Application:
        """Build aiohttp application with routes and auth middleware."""
        app = web.Application(middlewares=[self.auth_middleware])
        app.router.add_get('/health', self.network_health, allow_head=False)
        app.router.add_post('/state', self.set_monitor_state)
        return app

    async def start(self, host: str, port: int) -> None:
        """Start HTTP server."""
        if not self.auth_token:
            self.logger.warning("HTTP auth token is empty, private routes are disabled")

        self.app = self.create_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, host, port)
        await self.site.start()

        self.logger.info(f"HTTP server started on {host}:{port}")

    async def stop(self) -> None:
        """Stop HTTP server, waiting for in-flight requests."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            self.logger.info("HTTP server stopped")

    @web.middleware
    async def auth_middleware(self, request: web.Request, handler):
        if request.path in PRIVATE_ROUTES:
            token = request.headers.get(self.auth_header, '')
            if not self.auth_token or not hmac.compare_digest(token.encode(), self.auth_token.encode()):
                self.logger.warning(f"Unauthorized request to {request.path!r} from {request.remote}")
                raise web.HTTPForbidden()
        return await handler(request)

    async def network_health(self, request: web.Request) -> web.Response:
        """Network status info endpoint."""
        return web.json_response(self.monitor.network_status_info().to_dict())

    async def set_monitor_state(self, request: web.Request) -> web.Response:
        """
        Monitor state change endpoint.

        Expects JSON body {"state": "<state>"}.
        """
        try:
            body = await request.json()
            new_state = MonitorState.from_string(body['state'])
        except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Invalid set monitor state request: {e!r}")
            raise web.HTTPBadRequest()

        prev_state = self.monitor.state()
        self.monitor.change_state(new_state)
        self.logger.info(
            f"Monitor state has been successfully changed from {str(prev_state)!r} to {str(new_state)!r}"
        )
        return web.Response()
