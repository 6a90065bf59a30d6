"""
FileKeep Server - Plugin Registry

Static registry for commands handled outside the core engine:
- video_process (refused with 503 unless a rate limiter is registered)
- publiclink_* (any command with this prefix)

Plugins receive the raw request parameters and return a result dict that is
echoed to the client. A command with no registered plugin answers 503.
"""

import logging
import threading
import time
from collections import defaultdict, deque
from typing import Dict, Optional

from exceptions import PluginUnavailableError, RateLimitedError
from models.infrastructure import CommandResult, FileManagerConfig

logger = logging.getLogger(__name__)


VIDEO_PROCESS_COMMAND = "video_process"
PUBLIC_LINK_PREFIX = "publiclink_"
RATE_LIMITED_COMMANDS = (VIDEO_PROCESS_COMMAND,)


class FileManagerPlugin:
    """Base class for command plugins"""

    name = "plugin"

    def HandleCommand(self, command: str, params: dict, context) -> dict:
        """
        Handle a routed command

        Args:
            command: Command name as sent by the client
            params: Raw request parameters
            context: RequestContext of the calling user

        Returns:
            dict: Result echoed to the client; "code" or "success" selects the status
        """
        raise NotImplementedError


class RateLimiterPlugin:
    """
    Sliding-window limiter keyed by client address

    Defaults allow 4 requests per 30 minutes per client.
    """

    name = "ratelimiter"

    def __init__(self, max_requests: int = 4, window_seconds: int = 1800):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests = defaultdict(deque)
        self._lock = threading.Lock()

    def Allow(self, client_key: str, action: str = VIDEO_PROCESS_COMMAND) -> bool:
        """Record a request and return False once the window is full"""
        now = time.monotonic()
        key = (client_key, action)

        with self._lock:
            timestamps = self._requests[key]
            while timestamps and now - timestamps[0] >= self.window_seconds:
                timestamps.popleft()

            if len(timestamps) >= self.max_requests:
                return False

            timestamps.append(now)
            return True


class PluginRegistry:
    """Maps plugin command names and prefixes to plugin instances"""

    def __init__(self):
        self._commands: Dict[str, FileManagerPlugin] = {}
        self._prefixes: Dict[str, FileManagerPlugin] = {}
        self.rate_limiter: Optional[RateLimiterPlugin] = None

    def Register(self, command: str, plugin: FileManagerPlugin) -> None:
        self._commands[command] = plugin
        logger.info(f"Registered plugin '{plugin.name}' for command '{command}'")

    def RegisterPrefix(self, prefix: str, plugin: FileManagerPlugin) -> None:
        self._prefixes[prefix] = plugin
        logger.info(f"Registered plugin '{plugin.name}' for commands '{prefix}*'")

    def SetRateLimiter(self, limiter: RateLimiterPlugin) -> None:
        self.rate_limiter = limiter

    def Find(self, command: str) -> Optional[FileManagerPlugin]:
        if command in self._commands:
            return self._commands[command]
        for prefix, plugin in self._prefixes.items():
            if command.startswith(prefix):
                return plugin
        return None

    def Dispatch(self, command: str, params: dict, context) -> CommandResult:
        """
        Route a plugin command and wrap its result

        Raises:
            RateLimitedError: If the rate limiter refuses the client
            PluginUnavailableError: If no plugin (or no rate limiter) handles the command
        """
        if command in RATE_LIMITED_COMMANDS:
            if self.rate_limiter is None:
                raise PluginUnavailableError("Rate limiter not available")
            if not self.rate_limiter.Allow(context.client_address, command):
                logger.warning(f"Rate limit exceeded for {command} from {context.client_address}")
                raise RateLimitedError()

        plugin = self.Find(command)
        if plugin is None:
            raise PluginUnavailableError(f"Plugin not available for command: {command}")

        result = plugin.HandleCommand(command, params, context) or {}

        status_code = result.get("code")
        if not isinstance(status_code, int):
            status_code = 200 if result.get("success", True) else 500

        return CommandResult.Success(result, status_code=status_code)


def IsPluginCommand(command: str) -> bool:
    return command == VIDEO_PROCESS_COMMAND or command.startswith(PUBLIC_LINK_PREFIX)


def CreatePluginRegistry(config: FileManagerConfig) -> PluginRegistry:
    """Build the registry for the plugins enabled in configuration"""
    registry = PluginRegistry()

    if "ratelimiter" in config.enabled_plugins:
        registry.SetRateLimiter(RateLimiterPlugin())
        logger.info("Rate limiter enabled")

    return registry
