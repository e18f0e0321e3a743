"""Read-side caches for broker review lists and rating aggregates.

Every cached value for a broker lives under a key that embeds the broker's
current generation number. ``invalidate`` bumps the generation, so all
previous entries become unreachable at once; values are always written whole,
so a reader sees either the old aggregate or the new one, never a mix.

The cache is an accelerator, not a source of truth: when Redis is down,
reads go straight to the database and a failed invalidation is replayed on
the next read for that broker.
"""
import json
import logging
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime

import redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrokerReviewAggregate:
    broker_id: int
    approved_count: int
    average_rating: float
    last_updated: str

    def to_dict(self):
        return asdict(self)

    def public_dict(self):
        data = self.to_dict()
        data['average_rating'] = round(self.average_rating, 2)
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(**data)


class MemoryCacheBackend:
    """Process-local backend for tests and single-process deployments.

    Invalidation only reaches the worker that performed it; run several
    workers with ``CACHE_BACKEND=redis``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._values = {}

    def _sweep(self, now):
        for key in [k for k, (expires_at, _) in self._values.items()
                    if expires_at is not None and expires_at < now]:
            del self._values[key]

    def get(self, key):
        with self._lock:
            entry = self._values.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at is not None and expires_at < time.monotonic():
                del self._values[key]
                return None
            return value

    def set(self, key, value, ttl=None):
        now = time.monotonic()
        expires_at = now + ttl if ttl else None
        with self._lock:
            self._sweep(now)
            self._values[key] = (expires_at, value)

    def incr(self, key):
        with self._lock:
            _, current = self._values.get(key, (None, 0))
            current = int(current) + 1
            self._values[key] = (None, current)
            return current

    def delete_prefix(self, prefix):
        with self._lock:
            for key in [k for k in self._values if k.startswith(prefix)]:
                del self._values[key]


class RedisCacheBackend:
    def __init__(self, url):
        self.redis_client = redis.Redis.from_url(url, decode_responses=True)
        logger.info("Connected to Redis cache")

    def get(self, key):
        return self.redis_client.get(key)

    def set(self, key, value, ttl=None):
        self.redis_client.set(key, value, ex=ttl)

    def incr(self, key):
        return int(self.redis_client.incr(key))

    def delete_prefix(self, prefix):
        keys = list(self.redis_client.scan_iter(match=f'{prefix}*'))
        if keys:
            self.redis_client.delete(*keys)


def build_backend(config):
    if config.get('CACHE_BACKEND') == 'redis':
        return RedisCacheBackend(config['REDIS_URL'])
    if not config.get('TESTING'):
        logger.warning("Using the in-process review cache; other worker processes will not see invalidations")
    return MemoryCacheBackend()


class CacheInvalidationCoordinator:
    def __init__(self, backend, store, ttl=300, eager=True):
        self.backend = backend
        self.store = store
        self.ttl = ttl
        self.eager = eager
        self._pending_lock = threading.Lock()
        self._pending = set()

    @staticmethod
    def _generation_key(broker_id):
        return f'reviews:{broker_id}:generation'

    @staticmethod
    def _prefix(broker_id, generation):
        return f'reviews:{broker_id}:v{generation}:'

    def _generation(self, broker_id):
        return int(self.backend.get(self._generation_key(broker_id)) or 0)

    def invalidate(self, broker_id):
        """Mark every cached list page and the aggregate of ``broker_id`` stale.

        Runs after the database commit, so a cache outage is logged and
        remembered rather than raised.
        """
        try:
            generation = self.backend.incr(self._generation_key(broker_id))
            # every generation, including entries a slow reader wrote after an earlier sweep
            self.backend.delete_prefix(f'reviews:{broker_id}:v')
        except redis.exceptions.RedisError:
            with self._pending_lock:
                self._pending.add(broker_id)
            logger.error("Could not invalidate review caches for broker %s, retrying on next read",
                         broker_id, exc_info=True)
            return
        with self._pending_lock:
            self._pending.discard(broker_id)
        logger.info("Invalidated review caches for broker %s (generation %s)", broker_id, generation)
        if self.eager:
            try:
                self._rebuild_aggregate(broker_id, generation)
            except redis.exceptions.RedisError:
                logger.error("Could not store rebuilt aggregate for broker %s", broker_id, exc_info=True)

    def _replay_pending(self, broker_id):
        with self._pending_lock:
            pending = broker_id in self._pending
        if pending:
            self.invalidate(broker_id)

    def get_aggregate(self, broker_id):
        try:
            self._replay_pending(broker_id)
            generation = self._generation(broker_id)
            raw = self.backend.get(self._prefix(broker_id, generation) + 'aggregate')
            if raw is not None:
                return BrokerReviewAggregate.from_dict(json.loads(raw))
            return self._rebuild_aggregate(broker_id, generation)
        except redis.exceptions.RedisError:
            logger.warning("Review cache unavailable, computing aggregate for broker %s from the database",
                           broker_id, exc_info=True)
            return self._compute_aggregate(broker_id)

    def _compute_aggregate(self, broker_id):
        count, average = self.store.approved_stats(broker_id)
        return BrokerReviewAggregate(
            broker_id=broker_id,
            approved_count=count,
            average_rating=average if count else 0.0,
            last_updated=datetime.utcnow().isoformat(),
        )

    def _rebuild_aggregate(self, broker_id, generation):
        aggregate = self._compute_aggregate(broker_id)
        self.backend.set(self._prefix(broker_id, generation) + 'aggregate',
                         json.dumps(aggregate.to_dict()), ttl=self.ttl)
        return aggregate

    def list_approved(self, broker_id, page, per_page):
        try:
            self._replay_pending(broker_id)
            generation = self._generation(broker_id)
            key = self._prefix(broker_id, generation) + f'page:{per_page}:{page}'
            raw = self.backend.get(key)
        except redis.exceptions.RedisError:
            logger.warning("Review cache unavailable, listing broker %s from the database", broker_id,
                           exc_info=True)
            return self.store.list_approved(broker_id, page=page, per_page=per_page)
        if raw is not None:
            return json.loads(raw)
        result = self.store.list_approved(broker_id, page=page, per_page=per_page)
        try:
            self.backend.set(key, json.dumps(result), ttl=self.ttl)
        except redis.exceptions.RedisError:
            logger.warning("Could not cache review page %s for broker %s", page, broker_id, exc_info=True)
        return result
