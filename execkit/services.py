"""Simulated Graph Protocol services that take typed actions and emit typed events.

Actions and events are plain dataclasses. As JSON, an action is an object
whose ``"type"`` key names the action, and an event is an object whose
``"event"`` key names the event; the other keys are the fields.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Mapping, Union

logger = logging.getLogger(__name__)


# Graph Node


@dataclass(frozen=True)
class DeploySubgraph:
    """Deploy a new subgraph."""

    name: str
    ipfs_hash: str
    version_label: str | None = None


@dataclass(frozen=True)
class QuerySubgraph:
    """Query a deployed subgraph."""

    subgraph_name: str
    query: str


@dataclass(frozen=True)
class RemoveSubgraph:
    """Remove a subgraph deployment."""

    deployment_id: str


@dataclass(frozen=True)
class DeploymentStarted:
    """A deployment has started."""

    deployment_id: str
    timestamp: str


@dataclass(frozen=True)
class DeploymentProgress:
    """Progress of a running deployment."""

    deployment_id: str
    status: str
    percent: int


@dataclass(frozen=True)
class DeploymentCompleted:
    """A deployment has finished (or been removed, with no endpoints)."""

    deployment_id: str
    endpoints: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class QueryResult:
    """The result of a subgraph query."""

    data: Any


# Anvil


@dataclass(frozen=True)
class MineBlocks:
    """Mine a number of blocks, optionally waiting between them."""

    count: int
    interval_secs: int | None = None


@dataclass(frozen=True)
class SetBalance:
    """Set the balance of an account."""

    address: str
    balance: str


@dataclass(frozen=True)
class Fork:
    """Fork a chain from a URL, optionally at a given block."""

    url: str
    block_number: int | None = None


@dataclass(frozen=True)
class BlockMined:
    """A block has been mined."""

    block_number: int
    block_hash: str


@dataclass(frozen=True)
class BalanceUpdated:
    """An account balance has been changed."""

    address: str
    new_balance: str


@dataclass(frozen=True)
class ForkCreated:
    """A fork has been created."""

    fork_url: str
    forked_at_block: int


# PostgreSQL


@dataclass(frozen=True)
class CreateDatabase:
    """Create a database."""

    name: str


@dataclass(frozen=True)
class ExecuteQuery:
    """Run a SQL query."""

    query: str


@dataclass(frozen=True)
class Backup:
    """Back up the database to a path."""

    backup_path: str


@dataclass(frozen=True)
class DatabaseCreated:
    """A database has been created."""

    name: str


@dataclass(frozen=True)
class QueryExecuted:
    """A query has run."""

    rows_affected: int


@dataclass(frozen=True)
class BackupCompleted:
    """A backup has been written."""

    path: str
    size_bytes: int


# IPFS


@dataclass(frozen=True)
class AddContent:
    """Add content to IPFS."""

    content: str


@dataclass(frozen=True)
class Pin:
    """Pin a hash."""

    hash: str


@dataclass(frozen=True)
class Unpin:
    """Unpin a hash."""

    hash: str


@dataclass(frozen=True)
class Cat:
    """Fetch the content stored under a hash."""

    hash: str


@dataclass(frozen=True)
class ContentAdded:
    """Content has been added."""

    hash: str
    size: int


@dataclass(frozen=True)
class Pinned:
    """A hash has been pinned."""

    hash: str


@dataclass(frozen=True)
class Unpinned:
    """A hash has been unpinned."""

    hash: str


@dataclass(frozen=True)
class ContentRetrieved:
    """Content has been retrieved."""

    hash: str
    content: str


@dataclass(frozen=True)
class ServiceErrorEvent:
    """An error reported by any service."""

    TAG: ClassVar[str] = "Error"

    message: str


def _tag(obj: Any) -> str:
    return getattr(type(obj), "TAG", type(obj).__name__)


def event_to_dict(event: Any) -> dict[str, Any]:
    """The JSON-ready form of an event, tagged by its ``"event"`` key."""
    return {"event": _tag(event), **asdict(event)}


def _field_kind(annotation: Any) -> tuple[str, bool]:
    """The base type name of a field annotation and whether it may be None."""
    text = annotation if isinstance(annotation, str) else getattr(
        annotation, "__name__", str(annotation)
    )
    parts = [part.strip() for part in text.split("|")]
    optional = "None" in parts
    base = next((part for part in parts if part != "None"), "Any")
    return base, optional


def _check_value(value: Any, base: str, optional: bool, name: str) -> None:
    if optional and value is None:
        return
    if base == "int":
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValueError(f"field {name!r} must be a non-negative integer")
    elif base == "str":
        if not isinstance(value, str):
            raise ValueError(f"field {name!r} must be a string")


def _parse(payload: Mapping[str, Any], variants: tuple[type, ...]) -> Any:
    if not isinstance(payload, Mapping):
        raise ValueError("action must be a JSON object")
    by_name = {cls.__name__: cls for cls in variants}
    try:
        tag = payload["type"]
    except KeyError:
        raise ValueError("missing field 'type'") from None
    cls = by_name.get(tag) if isinstance(tag, str) else None
    if cls is None:
        raise ValueError(
            f"unknown variant {tag!r}, expected one of {', '.join(by_name)}"
        )
    values: dict[str, Any] = {}
    for spec in fields(cls):
        base, optional = _field_kind(spec.type)
        if spec.name not in payload:
            if optional:
                values[spec.name] = None
                continue
            raise ValueError(f"missing field {spec.name!r}")
        _check_value(payload[spec.name], base, optional, spec.name)
        values[spec.name] = payload[spec.name]
    return cls(**values)


class _Service(ABC):
    """A service that performs actions and reports events."""

    name: ClassVar[str]
    description: ClassVar[str]
    actions: ClassVar[tuple[type, ...]]

    def _expect(self, action: Any) -> None:
        if not isinstance(action, self.actions):
            raise TypeError(f"{self.name} cannot perform {action!r}")

    @abstractmethod
    async def dispatch_action(self, action: Any) -> list[Any]:
        """Perform the action and return the events it produced, in order."""


class GraphNodeService(_Service):
    """Graph Node service that deploys and queries subgraphs."""

    name = "graph-node"
    description = "Graph Node service for subgraph deployment and querying"
    actions = (DeploySubgraph, QuerySubgraph, RemoveSubgraph)

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint

    def parse_action(self, payload: Mapping[str, Any]) -> Any:
        """Build an action from its JSON form, raising ValueError if invalid."""
        return _parse(payload, self.actions)

    async def dispatch_action(self, action: Any) -> list[Any]:
        self._expect(action)
        if isinstance(action, DeploySubgraph):
            return await self._deploy(action)
        if isinstance(action, QuerySubgraph):
            logger.info(
                "Querying subgraph '%s' with query: %s",
                action.subgraph_name,
                action.query,
            )
            return [QueryResult(data={"data": {"example": "result"}})]
        logger.info("Removing subgraph deployment '%s'", action.deployment_id)
        return [DeploymentCompleted(deployment_id=action.deployment_id, endpoints=[])]

    async def _deploy(self, action: DeploySubgraph) -> list[Any]:
        logger.info(
            "Deploying subgraph '%s' with IPFS hash '%s'", action.name, action.ipfs_hash
        )
        if len(action.ipfs_hash) < 2:
            raise ValueError(f"IPFS hash too short: {action.ipfs_hash!r}")
        deployment_id = f"Qm{action.ipfs_hash[2:]}"
        events: list[Any] = [
            DeploymentStarted(
                deployment_id=deployment_id,
                timestamp=datetime.now(timezone.utc).isoformat(),
            )
        ]
        for percent in range(0, 101, 20):
            events.append(
                DeploymentProgress(
                    deployment_id=deployment_id,
                    status="Syncing blockchain data",
                    percent=percent,
                )
            )
            await asyncio.sleep(0.1)
        events.append(
            DeploymentCompleted(
                deployment_id=deployment_id,
                endpoints=[
                    f"http://{self.endpoint}:8000/subgraphs/name/{action.name}",
                    f"ws://{self.endpoint}:8001/subgraphs/name/{action.name}",
                ],
            )
        )
        return events


class AnvilService(_Service):
    """Local Ethereum blockchain for testing."""

    name = "anvil"
    description = "Anvil local Ethereum blockchain for testing"
    actions = (MineBlocks, SetBalance, Fork)

    def __init__(self, chain_id: int, port: int) -> None:
        self.chain_id = chain_id
        self.port = port

    def parse_action(self, payload: Mapping[str, Any]) -> Any:
        """Build an action from its JSON form, raising ValueError if invalid."""
        return _parse(payload, self.actions)

    async def dispatch_action(self, action: Any) -> list[Any]:
        self._expect(action)
        if isinstance(action, MineBlocks):
            logger.info("Mining %d blocks", action.count)
            interval = action.interval_secs or 0
            events: list[Any] = []
            for index in range(action.count):
                events.append(
                    BlockMined(block_number=1000 + index, block_hash=f"0x{index:064x}")
                )
                if interval > 0:
                    await asyncio.sleep(interval)
            return events
        if isinstance(action, SetBalance):
            logger.info("Setting balance for %s to %s", action.address, action.balance)
            return [BalanceUpdated(address=action.address, new_balance=action.balance)]
        logger.info("Creating fork from %s at block %s", action.url, action.block_number)
        return [
            ForkCreated(fork_url=action.url, forked_at_block=action.block_number or 0)
        ]


class PostgresService(_Service):
    """PostgreSQL database service."""

    name = "postgres"
    description = "PostgreSQL database service"
    actions = (CreateDatabase, ExecuteQuery, Backup)

    def __init__(self, db_name: str, port: int) -> None:
        self.db_name = db_name
        self.port = port

    def parse_action(self, payload: Mapping[str, Any]) -> Any:
        """Build an action from its JSON form, raising ValueError if invalid."""
        return _parse(payload, self.actions)

    async def dispatch_action(self, action: Any) -> list[Any]:
        self._expect(action)
        if isinstance(action, CreateDatabase):
            logger.info("Creating database '%s'", action.name)
            return [DatabaseCreated(name=action.name)]
        if isinstance(action, ExecuteQuery):
            logger.info("Executing query: %s", action.query)
            return [QueryExecuted(rows_affected=42)]
        logger.info("Creating backup at %s", action.backup_path)
        return [BackupCompleted(path=action.backup_path, size_bytes=1024 * 1024)]


class IpfsService(_Service):
    """IPFS distributed storage service."""

    name = "ipfs"
    description = "IPFS distributed storage service"
    actions = (AddContent, Pin, Unpin, Cat)

    def __init__(self, api_port: int, gateway_port: int) -> None:
        self.api_port = api_port
        self.gateway_port = gateway_port

    def parse_action(self, payload: Mapping[str, Any]) -> Any:
        """Build an action from its JSON form, raising ValueError if invalid."""
        return _parse(payload, self.actions)

    async def dispatch_action(self, action: Any) -> list[Any]:
        self._expect(action)
        if isinstance(action, AddContent):
            logger.info("Adding content to IPFS")
            size = len(action.content.encode("utf-8"))
            return [ContentAdded(hash=f"Qm{size:x}", size=size)]
        if isinstance(action, Pin):
            logger.info("Pinning hash: %s", action.hash)
            return [Pinned(hash=action.hash)]
        if isinstance(action, Unpin):
            logger.info("Unpinning hash: %s", action.hash)
            return [Unpinned(hash=action.hash)]
        logger.info("Retrieving content for hash: %s", action.hash)
        return [ContentRetrieved(hash=action.hash, content="Example content")]


GraphTestService = Union[GraphNodeService, AnvilService, PostgresService, IpfsService]