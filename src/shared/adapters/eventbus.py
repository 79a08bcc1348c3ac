# pylint: disable=broad-except
"""
Event bus client over Redis Streams.

One stream per topic, one consumer group per service. Every service reads
every message on the topics it subscribes to, starting from the oldest
entry, so a fresh service replays the full history into its projections.

The client degrades instead of failing: when the broker cannot be reached
within the connect timeout it disables itself for the rest of the process.
Publishing then becomes a no-op and consuming returns no handle. There is
no reconnect; a restart is needed once the broker is back.
"""

import logging
import os
import socket
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

import redis
from redis.backoff import NoBackoff
from redis.retry import Retry

import config
from shared.adapters import envelope
from shared.domain.commands import Event
from shared.domain.errors import (
    ConnectionTimeout,
    ConsumerConnectFailure,
    MalformedMessage,
    PublishFailure,
)
from shared.domain.timestamps import isoformat, utcnow

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, Dict[str, Any]], Any]

# Broker errors after which the connection is treated as gone for good.
FATAL_SEND_ERRORS = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


def default_client_factory(**kwargs) -> redis.Redis:
    """Client without command retries: a failed call disables the bus instead."""
    return redis.Redis(
        **config.get_redis_host_and_port(), decode_responses=True, retry=Retry(NoBackoff(), 0), **kwargs
    )


class ConsumerHandle:
    """
    A running subscription of one consumer group to a set of topics.

    block_ms bounds how long one poll waits for new entries; 0 or None
    returns immediately.
    claim_idle_ms is how long an entry must sit unacknowledged with another
    consumer before this one takes it over.
    """

    def __init__(
        self,
        client: redis.Redis,
        group_id: str,
        topics: Sequence[str],
        handler: MessageHandler,
        block_ms: Optional[int] = None,
        batch_size: int = 10,
        claim_idle_ms: int = 30000,
    ):
        self.client = client
        self.group_id = group_id
        self.topics = tuple(topics)
        self.handler = handler
        self.block_ms = block_ms
        self.batch_size = batch_size
        self.claim_idle_ms = claim_idle_ms
        self.consumer_name = f"{group_id}-{socket.gethostname()}-{os.getpid()}"
        self._stopped = threading.Event()
        self._recovering = True
        self._thread = None  # type: Optional[threading.Thread]

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "ConsumerHandle":
        if self.running:
            return self
        self._thread = threading.Thread(
            target=self.run, name=f"{self.group_id}-consumer", daemon=True
        )
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None):
        self._stopped.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def run(self):
        """Poll until stopped. A lost connection ends the loop; there is no reconnect."""
        logger.info(f"Consumer {self.consumer_name} reading {', '.join(self.topics)}")
        while not self._stopped.is_set():
            try:
                self.poll()
            except redis.exceptions.RedisError as e:
                logger.error(f"Consumer {self.group_id} lost its broker connection, stopping: {e}")
                break
        logger.info(f"Consumer {self.consumer_name} stopped")

    def poll(self) -> int:
        """
        Read and handle one batch. Returns the number of entries read.

        Until the backlog is clear, a poll first re-handles entries this
        consumer read but never acknowledged, then claims entries that other
        consumers of the group left idle for claim_idle_ms. Only then does it
        move on to new entries.
        """
        if self._recovering:
            count = self._recover()
            if count:
                return count
            self._recovering = False
            logger.info(f"Consumer {self.consumer_name} recovered its pending entries")

        response = self.client.xreadgroup(
            self.group_id,
            self.consumer_name,
            {topic: ">" for topic in self.topics},
            count=self.batch_size,
            block=self.block_ms or None,
        )
        return self._handle_response(response)

    def _recover(self) -> int:
        response = self.client.xreadgroup(
            self.group_id,
            self.consumer_name,
            {topic: "0" for topic in self.topics},
            count=self.batch_size,
        )
        count = self._handle_response(response)
        if count:
            return count

        for topic in self.topics:
            claimed = self.client.xautoclaim(
                topic,
                self.group_id,
                self.consumer_name,
                self.claim_idle_ms,
                start_id="0-0",
                count=self.batch_size,
            )
            entries = claimed[1] if claimed else []
            if entries:
                logger.warning(f"Consumer {self.consumer_name} claimed {len(entries)} stale entries on {topic}")
            count += self._handle_entries(topic, entries)
        return count

    def _handle_response(self, response) -> int:
        if not response:
            return 0
        streams = response.items() if isinstance(response, dict) else response

        count = 0
        for stream, entries in streams:
            if isinstance(entries, list) and entries and isinstance(entries[0], list):
                entries = entries[0]
            count += self._handle_entries(stream, entries)
        return count

    def _handle_entries(self, stream: str, entries) -> int:
        count = 0
        for message_id, fields in entries:
            self._deliver(stream, message_id, fields or {})
            self.client.xack(stream, self.group_id, message_id)
            count += 1
        return count

    def _deliver(self, topic: str, message_id: str, fields: Dict[str, Any]):
        """Hand one entry to the handler. Bad entries are logged and skipped."""
        try:
            payload = envelope.decode(fields.get("value"))
        except MalformedMessage as e:
            logger.warning(f"Skipping malformed message {message_id} on {topic}: {e}")
            return

        try:
            self.handler(topic, payload)
        except Exception:
            logger.exception(f"Failed to handle message {message_id} on {topic}, skipping")


class MessageBusClient:
    """
    Process-wide publisher and consumer for one service.

    Holds one outbound and one inbound connection and a single disabled flag
    shared by both directions.
    """

    def __init__(
        self,
        service: str,
        client_factory: Callable[..., redis.Redis] = None,
        connect_timeout_ms: Optional[int] = None,
        enabled: Optional[bool] = None,
        block_ms: Optional[int] = None,
        batch_size: Optional[int] = None,
        claim_idle_ms: Optional[int] = None,
        clock: Callable = utcnow,
    ):
        settings = config.get_bus_config()
        self.service = service
        self.client_factory = client_factory or default_client_factory
        self.connect_timeout_ms = connect_timeout_ms or settings["connect_timeout_ms"]
        self.block_ms = block_ms if block_ms is not None else settings["block_ms"]
        self.batch_size = batch_size or settings["batch_size"]
        self.claim_idle_ms = claim_idle_ms if claim_idle_ms is not None else settings["claim_idle_ms"]
        self.clock = clock
        self.disabled = not (settings["enabled"] if enabled is None else enabled)

        self._producer = None  # type: Optional[redis.Redis]
        self._consumer = None  # type: Optional[ConsumerHandle]
        self._lock = threading.Lock()
        self._sender = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{service}-publisher")

    def _connect(self, read_timeout: Optional[float] = None) -> redis.Redis:
        """
        Open a connection and prove it with PING, bounded by the connect timeout.

        Every socket operation is bounded too, so a broker that accepts the
        connection but never answers counts as unreachable. read_timeout
        overrides that bound for connections that block on reads.
        """
        timeout = self.connect_timeout_ms / 1000.0
        try:
            client = self.client_factory(
                socket_connect_timeout=timeout,
                socket_timeout=read_timeout or timeout,
            )
            client.ping()
            return client
        except (redis.exceptions.RedisError, OSError) as e:
            raise ConnectionTimeout(
                f"Broker not reachable within {self.connect_timeout_ms}ms: {e}"
            ) from e

    def _get_producer(self) -> Optional[redis.Redis]:
        if self.disabled:
            return None
        with self._lock:
            if self._producer is not None:
                return self._producer
            if self.disabled:
                return None
            try:
                self._producer = self._connect()
                logger.info(f"[{self.service}] Event bus publisher connected")
            except ConnectionTimeout as e:
                logger.error(f"[{self.service}] Failed to establish event bus connection, disabling publisher: {e}")
                self.disabled = True
                return None
            return self._producer

    def publish(self, topic: str, payload: Dict[str, Any], key: Optional[str] = None) -> Optional[Future]:
        """
        Fire-and-forget publish.

        Returns the send task's future once the connection is ready, or None
        when the bus is disabled. A completed call does not mean delivery.
        """
        producer = self._get_producer()
        if producer is None:
            return None

        partition_key = key or payload.get("id") or None
        body = dict(payload, emittedAt=isoformat(self.clock()))
        entry = {"key": partition_key or "", "value": envelope.encode(body)}

        try:
            future = self._sender.submit(self._send, producer, topic, entry)
        except RuntimeError as e:
            logger.error(f"[{self.service}] Publisher is shut down, dropping {body.get('type')} on {topic}: {e}")
            return None
        future.add_done_callback(lambda f: self._on_sent(f, topic, body))
        return future

    def publish_event(self, event: Event, key: Optional[str] = None) -> Optional[Future]:
        return self.publish(event.TOPIC, envelope.to_wire(event), key=key or envelope.event_key(event))

    @staticmethod
    def _send(producer: redis.Redis, topic: str, entry: Dict[str, str]) -> str:
        try:
            return producer.xadd(topic, entry)
        except redis.exceptions.RedisError as e:
            raise PublishFailure(f"Broker rejected entry for {topic}") from e

    def _on_sent(self, future: Future, topic: str, body: Dict[str, Any]):
        error = future.exception()
        if error is None:
            logger.debug(f"[{self.service}] Published {body.get('type')} to {topic}")
            return
        logger.error(f"[{self.service}] Failed to publish event {body.get('type')} to {topic}: {error.__cause__ or error}")
        if isinstance(error.__cause__, FATAL_SEND_ERRORS):
            logger.error(f"[{self.service}] Broker connection lost, disabling publisher")
            self.disabled = True

    def consume(
        self,
        group_id: str,
        topics: Iterable[str],
        handler: MessageHandler,
        autostart: bool = True,
    ) -> Optional[ConsumerHandle]:
        """
        Subscribe group_id to topics from the earliest entry.

        Returns None instead of raising when the broker is unreachable; the
        service then runs without updating its projections.
        """
        topics = tuple(topics)
        if self.disabled:
            logger.warning(f"[{self.service}] Event bus disabled, consumer not started")
            return None
        if self._consumer is not None:
            return self._consumer

        try:
            client = self._connect(read_timeout=(self.connect_timeout_ms + self.block_ms) / 1000.0)
            self._ensure_groups(client, group_id, topics)
        except (ConnectionTimeout, ConsumerConnectFailure) as e:
            logger.warning(f"[{self.service}] Failed to connect event bus consumer, disabling: {e}")
            self.disabled = True
            return None

        self._consumer = ConsumerHandle(
            client,
            group_id,
            topics,
            handler,
            block_ms=self.block_ms,
            batch_size=self.batch_size,
            claim_idle_ms=self.claim_idle_ms,
        )
        if autostart:
            self._consumer.start()
        return self._consumer

    @staticmethod
    def _ensure_groups(client: redis.Redis, group_id: str, topics: Sequence[str]):
        for topic in topics:
            try:
                client.xgroup_create(topic, group_id, id="0", mkstream=True)
            except redis.exceptions.ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise ConsumerConnectFailure(f"Cannot join {group_id} on {topic}: {e}") from e
            except redis.exceptions.RedisError as e:
                raise ConsumerConnectFailure(f"Cannot join {group_id} on {topic}: {e}") from e

    def close(self):
        if self._consumer is not None:
            self._consumer.stop(timeout=5)
        self._sender.shutdown(wait=True)
