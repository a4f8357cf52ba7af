import pytest

from execkit.services import (
    AddContent,
    AnvilService,
    Backup,
    BackupCompleted,
    BalanceUpdated,
    BlockMined,
    Cat,
    ContentAdded,
    ContentRetrieved,
    CreateDatabase,
    DatabaseCreated,
    DeploySubgraph,
    DeploymentCompleted,
    DeploymentProgress,
    DeploymentStarted,
    ExecuteQuery,
    Fork,
    ForkCreated,
    GraphNodeService,
    IpfsService,
    MineBlocks,
    Pin,
    Pinned,
    PostgresService,
    QueryExecuted,
    QueryResult,
    QuerySubgraph,
    RemoveSubgraph,
    ServiceErrorEvent,
    SetBalance,
    Unpin,
    Unpinned,
    event_to_dict,
)


@pytest.mark.asyncio
async def test_graph_node_deploy_subgraph():
    service = GraphNodeService("localhost")
    assert service.name == "graph-node"
    assert "Graph Node" in service.description

    action = DeploySubgraph(
        name="test-subgraph", ipfs_hash="QmTest123", version_label="v1.0.0"
    )
    events = await service.dispatch_action(action)

    assert len(events) == 8
    started = events[0]
    assert isinstance(started, DeploymentStarted)
    assert started.deployment_id == "QmTest123"
    progress = events[1:7]
    assert all(isinstance(event, DeploymentProgress) for event in progress)
    assert [event.percent for event in progress] == [0, 20, 40, 60, 80, 100]
    assert all(event.percent <= 100 for event in progress)
    completed = events[-1]
    assert isinstance(completed, DeploymentCompleted)
    assert completed.endpoints == [
        "http://localhost:8000/subgraphs/name/test-subgraph",
        "ws://localhost:8001/subgraphs/name/test-subgraph",
    ]


@pytest.mark.asyncio
async def test_graph_node_short_hash_rejected():
    service = GraphNodeService("localhost")
    with pytest.raises(ValueError):
        await service.dispatch_action(DeploySubgraph(name="s", ipfs_hash="Q"))


@pytest.mark.asyncio
async def test_graph_node_query_and_remove():
    service = GraphNodeService("localhost")
    query_events = await service.dispatch_action(
        QuerySubgraph(subgraph_name="s", query="{ a }")
    )
    assert query_events == [QueryResult(data={"data": {"example": "result"}})]

    remove_events = await service.dispatch_action(RemoveSubgraph(deployment_id="Qm1"))
    assert remove_events == [DeploymentCompleted(deployment_id="Qm1", endpoints=[])]


@pytest.mark.asyncio
async def test_anvil_mine_blocks():
    service = AnvilService(31337, 8545)
    assert service.name == "anvil"
    assert "Anvil" in service.description

    events = await service.dispatch_action(MineBlocks(count=3, interval_secs=None))
    blocks = [event for event in events if isinstance(event, BlockMined)]
    assert len(blocks) == 3
    assert [block.block_number for block in blocks] == [1000, 1001, 1002]
    assert blocks[2].block_hash == "0x" + "0" * 63 + "2"


@pytest.mark.asyncio
async def test_anvil_balance_and_fork():
    service = AnvilService(31337, 8545)
    assert await service.dispatch_action(
        SetBalance(address="0xabc", balance="100")
    ) == [BalanceUpdated(address="0xabc", new_balance="100")]
    assert await service.dispatch_action(Fork(url="http://localhost:8545")) == [
        ForkCreated(fork_url="http://localhost:8545", forked_at_block=0)
    ]
    assert await service.dispatch_action(
        Fork(url="http://localhost:8545", block_number=7)
    ) == [ForkCreated(fork_url="http://localhost:8545", forked_at_block=7)]


@pytest.mark.asyncio
async def test_postgres_actions():
    service = PostgresService("graph-node", 5432)
    assert await service.dispatch_action(CreateDatabase(name="db")) == [
        DatabaseCreated(name="db")
    ]
    assert await service.dispatch_action(ExecuteQuery(query="SELECT 1")) == [
        QueryExecuted(rows_affected=42)
    ]
    assert await service.dispatch_action(Backup(backup_path="/tmp/b")) == [
        BackupCompleted(path="/tmp/b", size_bytes=1048576)
    ]


@pytest.mark.asyncio
async def test_ipfs_actions():
    service = IpfsService(5001, 8080)
    assert await service.dispatch_action(AddContent(content="Hello IPFS")) == [
        ContentAdded(hash="Qma", size=10)
    ]
    assert await service.dispatch_action(AddContent(content="é")) == [
        ContentAdded(hash="Qm2", size=2)
    ]
    assert await service.dispatch_action(Pin(hash="Qm1")) == [Pinned(hash="Qm1")]
    assert await service.dispatch_action(Unpin(hash="Qm1")) == [Unpinned(hash="Qm1")]
    assert await service.dispatch_action(Cat(hash="Qm1")) == [
        ContentRetrieved(hash="Qm1", content="Example content")
    ]


@pytest.mark.asyncio
async def test_wrong_action_type_rejected():
    with pytest.raises(TypeError):
        await PostgresService("db", 5432).dispatch_action(Pin(hash="Qm1"))


@pytest.mark.asyncio
async def test_complete_graph_stack_dispatch_from_json():
    services = {
        "graph-node-1": GraphNodeService("localhost"),
        "anvil-1": AnvilService(31337, 8545),
        "postgres-1": PostgresService("graph-node", 5432),
        "ipfs-1": IpfsService(5001, 8080),
    }
    assert {service.name for service in services.values()} == {
        "graph-node",
        "anvil",
        "postgres",
        "ipfs",
    }

    postgres = services["postgres-1"]
    action = postgres.parse_action({"type": "CreateDatabase", "name": "test_db"})
    assert await postgres.dispatch_action(action) == [DatabaseCreated(name="test_db")]

    ipfs = services["ipfs-1"]
    action = ipfs.parse_action({"type": "AddContent", "content": "Hello IPFS"})
    assert await ipfs.dispatch_action(action) == [ContentAdded(hash="Qma", size=10)]


def test_parse_action_optional_fields_default_to_none():
    action = AnvilService(1, 2).parse_action({"type": "MineBlocks", "count": 5})
    assert action == MineBlocks(count=5, interval_secs=None)
    deploy = GraphNodeService("h").parse_action(
        {"type": "DeploySubgraph", "name": "n", "ipfs_hash": "Qm12"}
    )
    assert deploy == DeploySubgraph(name="n", ipfs_hash="Qm12", version_label=None)


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "x"},
        {"type": "DropDatabase", "name": "x"},
        {"type": "CreateDatabase"},
        {"type": "CreateDatabase", "name": 3},
    ],
)
def test_parse_action_rejects_invalid(payload):
    with pytest.raises(ValueError):
        PostgresService("db", 5432).parse_action(payload)


def test_parse_action_rejects_negative_count():
    with pytest.raises(ValueError):
        AnvilService(1, 2).parse_action({"type": "MineBlocks", "count": -1})


def test_event_to_dict_tags():
    assert event_to_dict(BlockMined(block_number=1000, block_hash="0x0")) == {
        "event": "BlockMined",
        "block_number": 1000,
        "block_hash": "0x0",
    }
    assert event_to_dict(ServiceErrorEvent(message="boom")) == {
        "event": "Error",
        "message": "boom",
    }
    assert event_to_dict(DeploymentCompleted(deployment_id="Qm1", endpoints=["a"])) == {
        "event": "DeploymentCompleted",
        "deployment_id": "Qm1",
        "endpoints": ["a"],
    }