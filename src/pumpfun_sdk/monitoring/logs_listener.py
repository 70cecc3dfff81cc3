"""
Program logs listener using websocket logsSubscribe.
"""

import asyncio
import json
from typing import Any

import websockets

from pumpfun_sdk.core.errors import MalformedEvent
from pumpfun_sdk.core.pubkeys import DEFAULT_COMMITMENT
from pumpfun_sdk.monitoring.base_listener import BaseEventListener
from pumpfun_sdk.platforms.pumpfun.event_parser import EventEnvelope, PumpFunEventParser
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)


class LogsEventListener(BaseEventListener):
    """Streams pump.fun events from program logs over a websocket."""

    def __init__(
        self,
        wss_endpoint: str,
        event_parser: PumpFunEventParser | None = None,
        commitment: str = DEFAULT_COMMITMENT,
        ping_interval: float = 20,
        reconnect_delay: float = 5,
    ):
        """Initialize the logs listener.

        Args:
            wss_endpoint: WebSocket endpoint URL
            event_parser: Parser for program data entries
            commitment: Commitment level for the subscription
            ping_interval: Seconds between keep-alive pings
            reconnect_delay: Seconds to wait before reconnecting after an error
        """
        super().__init__()
        self.wss_endpoint = wss_endpoint
        self.event_parser = event_parser or PumpFunEventParser()
        self.commitment = commitment
        self.ping_interval = ping_interval
        self.reconnect_delay = reconnect_delay
        self._task: asyncio.Task | None = None
        self._cancelled_task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the listening task on the running event loop if not started."""
        if not self.is_running:
            self._task = asyncio.create_task(self.listen())
            logger.info(f"Started logs listener on {self.wss_endpoint}")

    async def stop(self) -> None:
        """Cancel the listening task and wait for it to finish."""
        tasks = [task for task in (self._task, self._cancelled_task) if task is not None]
        if not tasks:
            return
        self._task = None
        self._cancelled_task = None
        for task in tasks:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Stopped logs listener")

    def remove_event_listener(self, listener_id: int) -> None:
        """Remove a callback; the stream is cancelled once none remain.

        The cancelled task is kept until stop() awaits it.
        """
        super().remove_event_listener(listener_id)
        if self.listener_count == 0 and self.is_running:
            self._task.cancel()
            self._cancelled_task = self._task
            self._task = None

    async def listen(self) -> None:
        """Receive events until cancelled, reconnecting after errors."""
        while True:
            try:
                async with websockets.connect(self.wss_endpoint) as websocket:
                    await self._subscribe_to_logs(websocket)
                    ping_task = asyncio.create_task(self._ping_loop(websocket))

                    try:
                        async for message in websocket:
                            for envelope in self.handle_message(message):
                                await self.dispatch(envelope)
                    finally:
                        ping_task.cancel()

                logger.warning("WebSocket connection closed. Reconnecting...")

            except asyncio.CancelledError:
                raise
            except (websockets.exceptions.WebSocketException, OSError) as e:
                logger.error(f"WebSocket connection error: {e!s}")
                logger.info(f"Reconnecting in {self.reconnect_delay} seconds...")
                await asyncio.sleep(self.reconnect_delay)

    def subscription_request(self, request_id: int = 1) -> dict[str, Any]:
        """Build the logsSubscribe request for the program."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "logsSubscribe",
            "params": [
                {"mentions": [str(self.event_parser.get_program_id())]},
                {"commitment": self.commitment},
            ],
        }

    async def _subscribe_to_logs(self, websocket) -> None:
        """Subscribe to logs mentioning the program ID.

        Args:
            websocket: Active WebSocket connection
        """
        await websocket.send(json.dumps(self.subscription_request()))
        logger.info(
            f"Subscribed to logs mentioning program: {self.event_parser.get_program_id()}"
        )

        # Wait for subscription confirmation
        response = await websocket.recv()
        response_data = json.loads(response)
        if "result" in response_data:
            logger.info(f"Subscription confirmed with ID: {response_data['result']}")
        else:
            logger.warning(f"Unexpected subscription response: {response}")

    async def _ping_loop(self, websocket) -> None:
        """Keep connection alive with pings."""
        try:
            while True:
                await asyncio.sleep(self.ping_interval)
                try:
                    pong_waiter = await websocket.ping()
                    await asyncio.wait_for(pong_waiter, timeout=10)
                except asyncio.TimeoutError:
                    logger.warning("Ping timeout - server not responding")
                    await websocket.close()
                    return
        except asyncio.CancelledError:
            pass
        except websockets.exceptions.ConnectionClosed as e:
            logger.debug(f"Ping loop stopped: {e!s}")

    def handle_message(self, message: str | bytes) -> list[EventEnvelope]:
        """Decode one websocket message into event envelopes.

        Messages other than logsNotification, notifications for failed
        transactions and malformed payloads yield no envelopes.
        """
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            logger.warning("Received non-JSON websocket message")
            return []

        if not isinstance(data, dict) or data.get("method") != "logsNotification":
            return []

        params = data.get("params")
        result = params.get("result") if isinstance(params, dict) else None
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict):
            logger.warning("Skipping logsNotification without a result value")
            return []
        if value.get("err") is not None:
            return []

        context = result.get("context")
        slot = context.get("slot", 0) if isinstance(context, dict) else 0
        signature = value.get("signature", "unknown")
        logs = value.get("logs")
        if not isinstance(logs, list):
            return []
        logs = [line for line in logs if isinstance(line, str)]
        try:
            return self.event_parser.parse_events_from_logs(logs, slot, signature)
        except MalformedEvent as e:
            logger.warning(f"Skipping malformed event in {signature}: {e!s}")
            return []
