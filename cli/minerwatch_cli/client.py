import asyncio
import itertools
import json
import os
from typing import Dict, Any

from agent.minerwatch.config.defaults import DEFAULT_SOCKET_PATH
from agent.minerwatch.ipc import INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR, SERVER_ERROR

DEFAULT_TIMEOUT = 5.0

_request_ids = itertools.count(1)


class AgentError(RuntimeError):
    """The agent answered with a JSON-RPC error."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code


def describe_error(method: str, error: Dict[str, Any]) -> AgentError:
    code = error.get("code", SERVER_ERROR)
    message = error.get("message", "unknown error")

    if code == METHOD_NOT_FOUND:
        text = f"Agent does not support '{method}' (older agent version?)"
    elif code in (PARSE_ERROR, INVALID_REQUEST):
        text = f"Agent rejected the request: {message}"
    else:
        text = f"Agent failed to run '{method}': {message}"
    return AgentError(code, text)


def read_response(method: str, msg_id: int, data: bytes) -> Any:
    """Decode one reply line and return its result, raising AgentError on error replies."""
    response = json.loads(data.decode())

    if "error" in response:
        raise describe_error(method, response["error"])
    if response.get("id") != msg_id:
        raise AgentError(INVALID_REQUEST, f"Agent answered request {response.get('id')}, expected {msg_id}")

    return response.get("result")


class IPCClient:
    def __init__(self, socket_path: str = None, timeout: float = DEFAULT_TIMEOUT):
        self.socket_path = socket_path or os.environ.get("MINERWATCH_SOCKET") or str(DEFAULT_SOCKET_PATH)
        self.timeout = timeout

    async def call(self, method: str, params: Dict[str, Any] = None) -> Any:
        if not os.path.exists(self.socket_path):
            raise ConnectionError(f"Agent socket not found at {self.socket_path}. Is the agent running?")

        reader, writer = await asyncio.open_unix_connection(self.socket_path)
        msg_id = next(_request_ids)

        try:
            request = {"jsonrpc": "2.0", "method": method, "params": params or {}, "id": msg_id}
            writer.write(json.dumps(request).encode() + b"\n")
            await writer.drain()

            data = await asyncio.wait_for(reader.readuntil(b"\n"), timeout=self.timeout)
            return read_response(method, msg_id, data)
        finally:
            writer.close()
            await writer.wait_closed()


def run_command(method: str, params: Dict[str, Any] = None) -> Any:
    """Helper to run sync command from CLI."""
    client = IPCClient()
    return asyncio.run(client.call(method, params))
