"""Cassandra connection and schema bootstrap.

Uses cassandra-asyncio-driver, whose sessions add ``aexecute()`` on top of
the regular cassandra-driver API. Connecting is synchronous; queries are not.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from learnhub.access.models import ACCESS_TABLES_CQL
from learnhub.config.settings import get_settings
from learnhub.courses.models import COURSES_TABLES_CQL
from learnhub.notifications.models import NOTIFICATIONS_TABLES_CQL
from learnhub.progress.models import PROGRESS_TABLES_CQL
from learnhub.users.models import USERS_TABLES_CQL


logger = structlog.get_logger(__name__)


# Table groups in creation order
SCHEMA: list[tuple[str, list[str]]] = [
    ("users", USERS_TABLES_CQL),
    ("courses", COURSES_TABLES_CQL),
    ("progress", PROGRESS_TABLES_CQL),
    ("access", ACCESS_TABLES_CQL),
    ("notifications", NOTIFICATIONS_TABLES_CQL),
]


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing the existing session if open.

        Raises:
            ConnectionError: If the cluster cannot be reached
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
        logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def keyspace_cql(keyspace: str, production: bool, replication_factor: int) -> str:
    """Build the CREATE KEYSPACE statement for the environment."""
    if production:
        replication = (
            f"'class': 'NetworkTopologyStrategy', 'datacenter1': {replication_factor}"
        )
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"
    return (
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )


async def init_async_schema(session, keyspace: str) -> None:
    """Create every table group in ``keyspace``."""
    for group, statements in SCHEMA:
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("cassandra_tables_created", group=group, keyspace=keyspace)


async def init_async_cassandra():
    """Connect, create keyspace and tables, and return the session."""
    settings = get_settings()
    session = AsyncCassandraConnection.connect()

    await session.aexecute(
        keyspace_cql(
            settings.cassandra_keyspace,
            settings.is_production,
            settings.cassandra_replication_factor,
        )
    )
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_schema(session, settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
