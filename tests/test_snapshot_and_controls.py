"""Tests for snapshot export, display helpers and process control flags."""

import json

import pytest

from chainwindow import utils
from chainwindow.control_process import apply_control, main as control_main
from chainwindow.models import Block, CameraMode, SelectedObject, Transaction, WindowSnapshot, burned_for, degraded_block
from chainwindow.snapshot_writer import SnapshotWriter


def sample_snapshot():
    tx = Transaction(hash="T1", height="11", gas_used=10, gas_wanted=20, success=True)
    blocks = (
        degraded_block(10),
        Block(height=11, hash="H11", time="t", proposer="P", tx_count=1, txs=(tx,), just_arrived=True),
        Block(height=12, hash="H12", time="t", proposer="P", tx_count=2),
    )
    return WindowSnapshot(
        blocks=blocks,
        latest_known_height=14,
        camera_mode=CameraMode.FREE,
        selected_object=SelectedObject("tx", tx),
        session_gas_burned=2_500_000.0,
        gas_price=0.01,
        initialized=True,
    )


def test_snapshot_writer_exports_json(tmp_path):
    target = tmp_path / "out" / "window.json"
    writer = SnapshotWriter(str(target))
    writer.save(sample_snapshot())

    data = json.loads(target.read_text(encoding="utf-8"))
    assert writer.writes == 1
    assert data["latest_known_height"] == 14
    assert data["camera_mode"] == "FREE"
    assert [b["height"] for b in data["blocks"]] == [10, 11, 12]
    assert data["blocks"][0]["hash"] == "ERROR_FETCHING"
    assert data["blocks"][1]["txs"][0]["gas_used"] == 10
    assert data["selected_object"] == {
        "kind": "tx",
        "data": {"hash": "T1", "height": "11", "gas_used": 10, "gas_wanted": 20, "success": True},
    }


def test_failed_serialization_keeps_previous_file(tmp_path):
    target = tmp_path / "window.json"
    writer = SnapshotWriter(str(target))
    writer.save(sample_snapshot())
    before = target.read_text(encoding="utf-8")

    broken = WindowSnapshot(selected_object=SelectedObject("block", object()))
    with pytest.raises(TypeError):
        writer.save(broken)

    assert target.read_text(encoding="utf-8") == before
    assert json.loads(before)["latest_known_height"] == 14
    assert writer.writes == 1


def test_block_helpers():
    snap = sample_snapshot()
    degraded, full, ghost = snap.blocks
    assert degraded.is_degraded and not degraded.is_ghost
    assert full.display_tx_count == 1
    assert ghost.is_ghost and ghost.display_tx_count == 2
    assert full.with_arrival(False).just_arrived is False
    assert ghost.with_arrival(False) is ghost


def test_burned_for():
    assert burned_for([10, 20, 0], 0.5) == 15.0
    assert burned_for([], 3.0) == 0


def test_describe_snapshot():
    line = utils.describe_snapshot(sample_snapshot())
    assert "window 10..12 (3 blocks)" in line
    assert "new [11]" in line
    assert "degraded 1, ghost 1" in line
    assert "2.500000 OM" in line
    assert "window empty" in utils.describe_snapshot(WindowSnapshot())


async def test_stop_flag_is_consumed(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert await utils.check_process_controls("watch") is False

    apply_control("watch", "stop")
    assert (tmp_path / "watch.stop.flag").exists()
    assert await utils.check_process_controls("watch") is True
    assert not (tmp_path / "watch.stop.flag").exists()


def test_pause_and_resume_flags(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert "not currently paused" in apply_control("watch", "resume")

    assert control_main(["watch", "pause"]) == 0
    assert (tmp_path / "watch.pause.flag").exists()

    assert "removed" in apply_control("watch", "resume")
    assert not (tmp_path / "watch.pause.flag").exists()
