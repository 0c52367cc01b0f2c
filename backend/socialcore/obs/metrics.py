"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"socialcore_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"socialcore_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

FRIEND_REQUESTS = Counter(
	"socialcore_friend_requests_total",
	"Friend request outcomes",
	["result"],
)

FRIENDSHIPS_ACCEPTED = Counter(
	"socialcore_friendships_accepted_total",
	"Friendships that reached the accepted state",
	["via"],
)

FRIENDSHIPS_REMOVED = Counter(
	"socialcore_friendships_removed_total",
	"Accepted friendships removed",
	["via"],
)

FOLLOW_EVENTS = Counter(
	"socialcore_follow_events_total",
	"Follow edge mutations",
	["kind", "action"],
)

GRAPH_CONFLICT_RETRIES = Counter(
	"socialcore_graph_conflict_retries_total",
	"Relationship mutations retried after a unique-constraint conflict",
	["operation"],
)

NOTIFICATIONS_DISPATCHED = Counter(
	"socialcore_notifications_dispatched_total",
	"Notification dispatch outcomes",
	["type", "result"],
)

FEED_COMPOSITIONS = Counter(
	"socialcore_feed_compositions_total",
	"Feed compositions served",
)

FEED_ITEMS = Counter(
	"socialcore_feed_items_total",
	"Feed items served by origin",
	["origin"],
)

FEED_LATENCY = Histogram(
	"socialcore_feed_compose_duration_seconds",
	"Feed composition latency",
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0),
)

BOOSTS_EXPIRED = Counter(
	"socialcore_boosts_expired_total",
	"Boosted posts transitioned to expired",
	["trigger"],
)

BOOSTS_CREATED = Counter(
	"socialcore_boosts_created_total",
	"Boosted post creation outcomes",
	["result"],
)

BACKGROUND_RUNS = Counter(
	"socialcore_jobs_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"socialcore_jobs_duration_seconds",
	"Background job duration",
	["name"],
	buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 15.0, 30.0, 60.0),
)


def observe_request(route: str, method: str, status: int, duration_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(duration_seconds)


def inc_friend_request(result: str) -> None:
	FRIEND_REQUESTS.labels(result=result).inc()


def inc_friendship_accepted(via: str) -> None:
	FRIENDSHIPS_ACCEPTED.labels(via=via).inc()


def inc_friendship_removed(via: str) -> None:
	FRIENDSHIPS_REMOVED.labels(via=via).inc()


def inc_follow(kind: str, action: str) -> None:
	FOLLOW_EVENTS.labels(kind=kind, action=action).inc()


def inc_graph_retry(operation: str) -> None:
	GRAPH_CONFLICT_RETRIES.labels(operation=operation).inc()


def inc_notification(type_: str, result: str) -> None:
	NOTIFICATIONS_DISPATCHED.labels(type=type_, result=result).inc()


def observe_feed(duration_seconds: float, *, boosted: int, organic: int) -> None:
	FEED_COMPOSITIONS.inc()
	FEED_LATENCY.observe(duration_seconds)
	if boosted:
		FEED_ITEMS.labels(origin="boosted").inc(boosted)
	if organic:
		FEED_ITEMS.labels(origin="organic").inc(organic)


def inc_boosts_expired(trigger: str, count: int) -> None:
	if count > 0:
		BOOSTS_EXPIRED.labels(trigger=trigger).inc(count)


def inc_boost_created(result: str) -> None:
	BOOSTS_CREATED.labels(result=result).inc()


def record_job(name: str, result: str, duration_seconds: float | None = None) -> None:
	BACKGROUND_RUNS.labels(name=name, result=result).inc()
	if duration_seconds is not None:
		BACKGROUND_DURATION.labels(name=name).observe(duration_seconds)
