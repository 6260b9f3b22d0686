"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"amora_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"amora_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

DISCOVERY_FEEDS = Counter(
	"amora_discovery_feeds_total",
	"Discovery feed pages served",
	["result"],
)

DISCOVERY_CANDIDATES = Histogram(
	"amora_discovery_eligible_candidates",
	"Eligible candidates per discovery feed request",
	buckets=(0, 1, 5, 10, 25, 50, 100, 250, 500),
)

SWIPES = Counter(
	"amora_swipes_total",
	"Swipes recorded",
	["action"],
)

SWIPE_CONFLICTS = Counter(
	"amora_swipe_conflicts_total",
	"Duplicate swipe attempts rejected",
)

MATCHES_CREATED = Counter(
	"amora_matches_created_total",
	"Mutual matches created",
)

UNMATCHES = Counter(
	"amora_unmatches_total",
	"Matches deactivated by a participant",
)

BLOCKS = Counter(
	"amora_blocks_total",
	"Blocks placed and lifted",
	["action"],
)

MESSAGES_SENT = Counter(
	"amora_messages_sent_total",
	"Messages sent into matches",
)

MESSAGE_REJECTS = Counter(
	"amora_message_rejects_total",
	"Message sends rejected by the conversation gatekeeper",
	["reason"],
)

MESSAGES_READ = Counter(
	"amora_messages_read_total",
	"Messages flipped to read",
)

NOTIFICATION_FAILURES = Counter(
	"amora_notification_failures_total",
	"Notification events that could not be handed to the dispatcher stream",
	["kind"],
)

REDIS_UP = Gauge("amora_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("amora_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("amora_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("amora_postgres_latency_seconds", "Postgres ping latency (seconds)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_discovery_feed(result: str) -> None:
	DISCOVERY_FEEDS.labels(result=result).inc()


def observe_discovery_candidates(count: int) -> None:
	DISCOVERY_CANDIDATES.observe(count)


def inc_swipe(action: str) -> None:
	SWIPES.labels(action=action).inc()


def inc_swipe_conflict() -> None:
	SWIPE_CONFLICTS.inc()


def inc_match_created() -> None:
	MATCHES_CREATED.inc()


def inc_unmatch() -> None:
	UNMATCHES.inc()


def inc_block(action: str) -> None:
	BLOCKS.labels(action=action).inc()


def inc_message_sent() -> None:
	MESSAGES_SENT.inc()


def inc_message_reject(reason: str) -> None:
	MESSAGE_REJECTS.labels(reason=reason).inc()


def inc_messages_read(count: int = 1) -> None:
	if count > 0:
		MESSAGES_READ.inc(count)


def inc_notification_failure(kind: str) -> None:
	NOTIFICATION_FAILURES.labels(kind=kind).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
