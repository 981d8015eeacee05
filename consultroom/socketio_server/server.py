#!/usr/bin/env python3
"""consultroom development relay server

Stand-in for the room server during local development and integration tests.
It routes events between participants of the same room:

- join_room {username, room}           -> server_message to the room
- chat_message {username, room, msg}   -> chat_response {username, msg} to the room

HTTP endpoints:
- POST /broadcast {room, msg}  push a system notice to a room
- GET  /health                 server status and client count
"""
import sys
import logging
import argparse
import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

import requests
import socketio
from aiohttp import web

from ..utils.config_loader import config as config_manager
from ..utils.event_utils import (
    EventPayloadError, EventType, ServerMessage, parse_outbound, to_wire
)
from ..utils.message_utils import create_join_notice, create_server_notice

logger = logging.getLogger(__name__)


class RelayServer:
    """Socket.IO room relay attached to an aiohttp application."""

    def __init__(self, cors_allowed_origins='*'):
        self.sio = socketio.AsyncServer(async_mode='aiohttp', cors_allowed_origins=cors_allowed_origins)
        self.connected_clients: Dict[str, Dict[str, Any]] = {}
        self.register_handlers()

    def register_handlers(self):
        """Register Socket.IO event handlers."""
        self.sio.on('connect', self.on_connect)
        self.sio.on('disconnect', self.on_disconnect)
        self.sio.on(EventType.JOIN_ROOM.value, self.on_join_room)
        self.sio.on(EventType.CHAT_MESSAGE.value, self.on_chat_message)

    def create_app(self) -> web.Application:
        app = web.Application()
        self.sio.attach(app)
        app.router.add_post('/broadcast', self.handle_broadcast)
        app.router.add_get('/health', self.handle_health)
        return app

    async def on_connect(self, sid: str, environ: Dict, auth: Optional[Dict] = None):
        """Handle new client connections."""
        client_ip = environ.get('REMOTE_ADDR', 'Unknown IP')
        self.connected_clients[sid] = {
            "address": client_ip,
            "connect_time": datetime.now().isoformat(),
            "username": None,
            "room": None,
        }
        logger.info(f"Client connected: {sid} ({client_ip})")

    async def on_disconnect(self, sid: str, *args):
        """Handle client disconnections."""
        client_info = self.connected_clients.pop(sid, None)
        if client_info is None:
            logger.warning(f"Disconnect event received for unknown SID: {sid}")
            return
        logger.info(f"Client disconnected: {sid} ({client_info.get('username')})")

    async def on_join_room(self, sid: str, data):
        """Put the client in a room and announce it there."""
        try:
            join = parse_outbound(EventType.JOIN_ROOM, data)
        except EventPayloadError as e:
            logger.warning(f"Invalid join_room from {sid}: {e}")
            await self.notify(sid, create_server_notice("Room name is required."))
            return
        if not join.room:
            await self.notify(sid, create_server_notice("Room name is required."))
            return

        await self.sio.enter_room(sid, join.room)
        if sid in self.connected_clients:
            self.connected_clients[sid].update(username=join.username, room=join.room)
        logger.info(f"Client {sid} ({join.username}) joined room: {join.room}")
        await self.notify(join.room, create_join_notice(join.username, join.room))

    async def on_chat_message(self, sid: str, data):
        """Relay a chat message to everyone in its room, sender included."""
        try:
            chat = parse_outbound(EventType.CHAT_MESSAGE, data)
        except EventPayloadError as e:
            logger.warning(f"Invalid chat_message from {sid}: {e}")
            return

        if chat.room not in self.sio.rooms(sid):
            logger.warning(f"Client {sid} sent to room '{chat.room}' without joining it")
            await self.notify(sid, create_server_notice(f"You are not in room: {chat.room}"))
            return

        await self.sio.emit(EventType.CHAT_RESPONSE.value,
                            {"username": chat.username, "msg": chat.msg}, room=chat.room)

    async def notify(self, room: str, notice: ServerMessage):
        """Send a system notice to a room or a single sid."""
        event_name, payload = to_wire(notice)
        await self.sio.emit(event_name, payload, room=room)

    async def handle_broadcast(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except ValueError:
            return web.json_response({"error": "Body must be JSON"}, status=400)
        room = body.get('room') if isinstance(body, dict) else None
        msg = body.get('msg') if isinstance(body, dict) else None
        if not isinstance(room, str) or not room or not isinstance(msg, str):
            return web.json_response({"error": "Fields 'room' and 'msg' are required"}, status=400)
        await self.notify(room, create_server_notice(msg))
        logger.info(f"Broadcast notice to room {room}")
        return web.json_response({"status": "ok"})

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "clients": len(self.connected_clients)})


def broadcast_notice(room: str, msg: str, url: Optional[str] = None, timeout: float = 5) -> bool:
    """Push a system notice to a room through a running relay server."""
    url = url or config_manager.get('server', 'url')
    try:
        response = requests.post(f"{url.rstrip('/')}/broadcast", json={"room": room, "msg": msg}, timeout=timeout)
        return response.status_code == 200
    except requests.RequestException as e:
        logger.error(f"Error sending notice to relay server: {e}")
        return False


# --- Argument Parsing ---
def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="consultroom relay server")
    parser.add_argument('--host', type=str, default=config_manager.get('server', 'host', default='0.0.0.0'),
                        help='Host IP address to bind the server to.')
    parser.add_argument('--port', type=int, default=config_manager.get('server', 'port', default=5000),
                        help='Port number to bind the server to.')
    return parser.parse_args(argv)


async def start_server(host: str, port: int, relay: Optional[RelayServer] = None):
    """Starts the relay server and runs until cancelled."""
    relay = relay or RelayServer()
    runner = web.AppRunner(relay.create_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)

    logger.info(f"Starting relay server on {host}:{port}")
    await site.start()
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def main(argv=None):
    args = parse_args(argv)
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=config_manager.get('logging', 'level', default='INFO'),
                            format=config_manager.get('logging', 'format'))
    try:
        asyncio.run(start_server(args.host, args.port))
    except KeyboardInterrupt:
        logger.info("Server stopped by user (KeyboardInterrupt).")
    return 0


if __name__ == '__main__':
    sys.exit(main())
