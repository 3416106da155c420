# tests/test_models.py

from __future__ import annotations

import threading

import pytest

from aria2ctl.exceptions import LocalContractViolation
from aria2ctl.models.endpoint import Endpoint
from aria2ctl.models.queue import PositionOrigin, QueueMove, position_token
from aria2ctl.models.task import TaskDescriptor, TaskStatus


def test_endpoint_defaults() -> None:
    endpoint = Endpoint()
    assert endpoint.url == "http://localhost:6800/jsonrpc"


def test_endpoint_recomposes_on_every_field_change() -> None:
    endpoint = Endpoint()

    endpoint.host = "nas.local"
    assert endpoint.url == "http://nas.local:6800/jsonrpc"
    endpoint.port = 16800
    assert endpoint.url == "http://nas.local:16800/jsonrpc"
    endpoint.path = "/rpc"
    assert endpoint.url == "http://nas.local:16800/rpc"

    endpoint.update(host="10.0.0.5", port=6801)
    assert (endpoint.host, endpoint.port, endpoint.path) == ("10.0.0.5", 6801, "/rpc")
    assert endpoint.url == "http://10.0.0.5:6801/rpc"


@pytest.mark.parametrize(
    "change",
    [{"host": ""}, {"port": 0}, {"port": 70000}, {"port": "6800"}, {"path": "jsonrpc"}],
)
def test_endpoint_rejects_invalid_values_and_keeps_old_address(change) -> None:
    endpoint = Endpoint()
    with pytest.raises(LocalContractViolation):
        endpoint.update(**change)
    assert endpoint.url == "http://localhost:6800/jsonrpc"


def test_endpoint_is_never_observed_half_updated() -> None:
    endpoint = Endpoint("a", 1, "/a")
    consistent = {"http://a:1/a", "http://b:2/b"}
    seen: set[str] = set()
    stop = threading.Event()

    def reader() -> None:
        while not stop.is_set():
            seen.add(endpoint.url)

    thread = threading.Thread(target=reader)
    thread.start()
    for i in range(2000):
        if i % 2:
            endpoint.update(host="a", port=1, path="/a")
        else:
            endpoint.update(host="b", port=2, path="/b")
    stop.set()
    thread.join()

    assert seen <= consistent


def test_task_descriptor_decodes_daemon_strings() -> None:
    task = TaskDescriptor.model_validate(
        {
            "gid": "2089b05ecca3d829",
            "status": "active",
            "totalLength": "34896138",
            "completedLength": "34896138",
            "downloadSpeed": "1024",
            "seeder": "true",
            "followedBy": ["abc"],
            "files": [{"index": "1", "path": "/d/a.iso", "selected": "false"}],
            "someFutureKey": "kept",
        }
    )

    assert task.status is TaskStatus.ACTIVE
    assert task.total_length == 34896138
    assert task.progress == 1.0
    assert task.seeder is True
    assert task.files[0].selected is False
    assert task.name == "a.iso"
    assert task.model_extra == {"someFutureKey": "kept"}


def test_projected_descriptor_defaults_unfetched_fields() -> None:
    task = TaskDescriptor.model_validate({"gid": "abc"})

    assert task.status is None
    assert task.total_length == 0
    assert task.files == []
    assert task.progress == 0.0
    assert task.name == "abc"


def test_task_name_prefers_torrent_name() -> None:
    task = TaskDescriptor.model_validate(
        {"gid": "abc", "bittorrent": {"info": {"name": "ubuntu"}}}
    )
    assert task.name == "ubuntu"


def test_unknown_descriptor_is_tagged() -> None:
    task = TaskDescriptor.unknown("abc", "connection_error")

    assert task.gid == "abc"
    assert task.status is TaskStatus.REMOVED
    assert task.is_unknown
    assert task.lookup_error == "connection_error"
    assert not TaskDescriptor(gid="abc", status=TaskStatus.REMOVED).is_unknown


@pytest.mark.parametrize(
    ("origin", "token"),
    [
        (PositionOrigin.BEGIN, "POS_SET"),
        (PositionOrigin.CURRENT, "POS_CUR"),
        (PositionOrigin.END, "POS_END"),
        ("Begin", "POS_SET"),
        (" current ", "POS_CUR"),
    ],
)
def test_position_tokens(origin, token) -> None:
    assert position_token(origin) == token


def test_every_origin_has_exactly_one_distinct_token() -> None:
    tokens = [position_token(origin) for origin in PositionOrigin]
    assert sorted(tokens) == ["POS_CUR", "POS_END", "POS_SET"]


@pytest.mark.parametrize("origin", ["POS_CUR", "start", "", 1, None])
def test_position_token_rejects_anything_else(origin) -> None:
    with pytest.raises(LocalContractViolation):
        position_token(origin)


def test_queue_move_params() -> None:
    move = QueueMove("abc", -2, PositionOrigin.END)
    assert move.to_params() == ["abc", -2, "POS_END"]


@pytest.mark.parametrize("offset", [1.5, "1", True])
def test_queue_move_rejects_non_integer_offsets(offset) -> None:
    with pytest.raises(LocalContractViolation):
        QueueMove("abc", offset, PositionOrigin.BEGIN).to_params()
