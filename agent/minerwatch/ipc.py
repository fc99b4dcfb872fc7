import asyncio
import json
import os
from typing import Callable, Dict, Any, Awaitable

from .utils.logging import get_logger

logger = get_logger("ipc_server")

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
SERVER_ERROR = -32000


def error_response(code: int, message: str, msg_id: Any = None) -> Dict:
    return {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": msg_id}


class IPCServer:
    """Newline-delimited JSON-RPC over a unix socket, used by the minerwatch CLI."""

    def __init__(self, socket_path: str, handlers: Dict[str, Callable[[Any], Awaitable[Any]]]):
        self.socket_path = socket_path
        self.handlers = handlers
        self.server = None

    async def start(self):
        # Remove a socket left behind by a previous run
        if os.path.exists(self.socket_path):
            os.unlink(self.socket_path)

        os.makedirs(os.path.dirname(self.socket_path) or ".", exist_ok=True)

        self.server = await asyncio.start_unix_server(
            self.handle_client, self.socket_path
        )
        logger.info(f"IPC Server listening on {self.socket_path}")

    async def stop(self):
        if not self.server:
            return
        server, self.server = self.server, None
        server.close()
        await server.wait_closed()
        if os.path.exists(self.socket_path):
            os.unlink(self.socket_path)
        logger.info("IPC Server stopped")

    async def handle_client(self, reader, writer):
        try:
            while True:
                data = await reader.readuntil(b"\n")
                response = await self.handle_message(data)

                writer.write(json.dumps(response).encode() + b"\n")
                await writer.drain()
        except asyncio.IncompleteReadError:
            pass
        except ConnectionError as e:
            logger.error(f"IPC Client Error: {e}")
        finally:
            writer.close()
            await writer.wait_closed()

    async def handle_message(self, data: bytes) -> Dict:
        try:
            request = json.loads(data.decode().strip())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return error_response(PARSE_ERROR, f"Parse error: {e}")

        if not isinstance(request, dict):
            return error_response(INVALID_REQUEST, "Request must be an object")
        return await self.process_request(request)

    async def process_request(self, request: Dict) -> Dict:
        method = request.get("method")
        params = request.get("params", {})
        msg_id = request.get("id")

        if method not in self.handlers:
            return error_response(METHOD_NOT_FOUND, "Method not found", msg_id)

        try:
            result = await self.handlers[method](params)
            return {"jsonrpc": "2.0", "result": result, "id": msg_id}
        except Exception as e:
            logger.error(f"Error processing {method}: {e}")
            return error_response(SERVER_ERROR, str(e), msg_id)
