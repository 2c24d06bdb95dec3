"""Async Cassandra connection using cassandra-asyncio-driver.

Provides:
- Cluster/session lifecycle
- Session with aexecute() for non-blocking queries
- Keyspace and query-table initialization

Every domain module exposes its CREATE TABLE statements as a list of
templates formatted with ``{keyspace}``; they are applied in dependency-free
order at startup.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from social.activities.models import ACTIVITIES_TABLES_CQL
from social.comments.models import COMMENTS_TABLES_CQL
from social.config.settings import get_settings
from social.posts.models import POSTS_TABLES_CQL
from social.reactions.models import REACTIONS_TABLES_CQL


logger = structlog.get_logger(__name__)

SCHEMA = {
    "activities": ACTIVITIES_TABLES_CQL,
    "reactions": REACTIONS_TABLES_CQL,
    "comments": COMMENTS_TABLES_CQL,
    "posts": POSTS_TABLES_CQL,
}


class AsyncCassandraConnection:
    """Cassandra cluster/session holder.

    Connecting is synchronous; queries go through ``session.aexecute()``.
    """

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing an open session.

        Raises:
            ConnectionError: If the cluster cannot be reached.
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
            cls._session.default_timeout = settings.cassandra_request_timeout
            logger.info(
                "async_cassandra_connected",
                hosts=settings.cassandra_hosts,
                port=settings.cassandra_port,
                protocol_version=settings.cassandra_protocol_version,
            )
        except Exception as e:
            logger.error("async_cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        return cls._session

    @classmethod
    def get_session(cls):
        """Get active session, connecting if necessary."""
        if cls._session is None:
            return cls.connect()
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        """Close session and cluster."""
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
            logger.info("async_cassandra_session_closed")

        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("async_cassandra_cluster_closed")

    @classmethod
    def is_connected(cls) -> bool:
        """Check if connection is active."""
        return cls._session is not None and not cls._session.is_shutdown


def get_async_cassandra_session():
    """Get async-capable Cassandra session."""
    return AsyncCassandraConnection.get_session()


async def init_async_keyspace(session, keyspace: str) -> None:
    """Create keyspace if it does not exist."""
    settings = get_settings()

    if settings.is_production:
        replication = "'class': 'NetworkTopologyStrategy', 'datacenter1': 3"
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"

    cql = f"""
        CREATE KEYSPACE IF NOT EXISTS {keyspace}
        WITH replication = {{{replication}}}
        AND durable_writes = true
    """

    await session.aexecute(cql)
    logger.info("async_keyspace_created", keyspace=keyspace)


async def init_async_tables(session, keyspace: str) -> None:
    """Create every query table of the service."""
    for domain, templates in SCHEMA.items():
        for cql_template in templates:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("async_tables_created", domain=domain, keyspace=keyspace)


async def init_async_cassandra():
    """Connect, create keyspace and tables, and return the session."""
    settings = get_settings()

    session = AsyncCassandraConnection.connect()

    await init_async_keyspace(session, settings.cassandra_keyspace)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_tables(session, settings.cassandra_keyspace)

    logger.info("async_cassandra_initialized", keyspace=settings.cassandra_keyspace)

    return session


async def shutdown_async_cassandra() -> None:
    """Shutdown async Cassandra connection."""
    AsyncCassandraConnection.disconnect()
